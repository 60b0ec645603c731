#!/usr/bin/env python3
"""
Identity Store Seed Script

Creates the SQL schema, checks the connection and seeds one demo user
with a submitted KYC session and a passport upload. Prints a bearer token
for that user so the profile endpoints can be tried from /docs.

Usage: PLACEMENT_DATABASE_URL=sqlite:///./dev.db python scripts/seed_identity_store.py
"""
from placement_verify.core.auth import create_access_token
from placement_verify.core.config import get_settings
from placement_verify.db.sql_store import SqlIdentityStore


def main():
    settings = get_settings()
    print("=" * 50)
    print("PLACEMENT VERIFY - IDENTITY STORE SEED")
    print("=" * 50)

    print("\n[1] Connecting...")
    print(f"    URL: {settings.database_url}")
    store = SqlIdentityStore.from_url(settings.database_url)
    if not store.test_connection():
        print("    ❌ Database: FAILED")
        return 1
    print("    ✅ Database: CONNECTED")

    print("\n[2] Creating schema...")
    store.create_schema()
    print("    ✅ Tables ready")

    print("\n[3] Seeding demo user...")
    user = store.create_user("Demo Candidate", "demo.candidate@example.com")
    session = store.create_kyc_session(user.id)
    store.create_identity_document(session.id, "PASSPORT", object_key=f"kyc/{session.id}/passport.jpg")
    store.update_kyc_session_status(session.id, "SUBMITTED")
    print(f"    User:    {user.id}")
    print(f"    Session: {session.id} (SUBMITTED, 1 document)")

    print("\n[4] Bearer token:")
    print(f"    {create_access_token({'sub': user.id})}")

    print("\n" + "=" * 50)
    print("Seed complete!")
    print("=" * 50)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
