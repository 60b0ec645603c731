"""
SQL identity store - the Store contract over SQLAlchemy.

Tables:
- users               (id, full_name, email, avatar_url, ...)
- kyc_sessions        (id, user_id, status, provider_ref, provider_metadata_json, ...)
- identity_documents  (id, kyc_session_id, document_type, metadata_json, ...)

Queries are plain SQL through ``text()`` so the same statements run on
PostgreSQL and SQLite. JSON bags are stored as text, timestamps as ISO-8601
strings. The engine is blocking, so every Store method hops to a worker
thread with ``run_in_threadpool`` and the contract stays async.
"""

import json
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from placement_verify.models.identity import IdentityDocument, KycSession, UserProfile

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        full_name TEXT,
        email TEXT,
        avatar_url TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS kyc_sessions (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users(id),
        status TEXT NOT NULL,
        provider_ref TEXT,
        provider_metadata_json TEXT NOT NULL DEFAULT '{}',
        submitted_at TEXT,
        reviewed_at TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS identity_documents (
        id TEXT PRIMARY KEY,
        kyc_session_id TEXT NOT NULL REFERENCES kyc_sessions(id),
        document_type TEXT NOT NULL,
        metadata_json TEXT NOT NULL DEFAULT '{}',
        verified_at TEXT,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_kyc_sessions_user ON kyc_sessions (user_id, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_identity_documents_session ON identity_documents (kyc_session_id, created_at)",
]

USER_COLUMNS = "id, full_name, email, avatar_url"
SESSION_COLUMNS = (
    "id, user_id, status, provider_ref, provider_metadata_json, "
    "submitted_at, reviewed_at, created_at, updated_at"
)
DOCUMENT_COLUMNS = "id, kyc_session_id, document_type, metadata_json, verified_at, created_at"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _load_json(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring undecodable JSON column value")
        return {}
    return value if isinstance(value, dict) else {}


def _user_from_row(row) -> Optional[UserProfile]:
    if row is None:
        return None
    return UserProfile(id=row["id"], full_name=row["full_name"], email=row["email"], avatar_url=row["avatar_url"])


def _session_from_row(row) -> Optional[KycSession]:
    if row is None:
        return None
    return KycSession(
        id=row["id"],
        user_id=row["user_id"],
        status=row["status"],
        provider_ref=row["provider_ref"],
        provider_metadata=_load_json(row["provider_metadata_json"]),
        submitted_at=row["submitted_at"],
        reviewed_at=row["reviewed_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _document_from_row(row) -> IdentityDocument:
    return IdentityDocument(
        id=row["id"],
        kyc_session_id=row["kyc_session_id"],
        document_type=row["document_type"],
        metadata=_load_json(row["metadata_json"]),
        verified_at=row["verified_at"],
        created_at=row["created_at"],
    )


def create_store_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine with a connection pool.

    SQLite connections are shared with the worker threads, so the
    same-thread check is turned off for that driver.
    """
    if database_url.startswith("sqlite"):
        return create_engine(database_url, echo=echo, connect_args={"check_same_thread": False})
    # pool_size=5: maintain 5 connections ready
    # max_overflow=10: allow 10 extra connections under load
    return create_engine(database_url, pool_size=5, max_overflow=10, echo=echo)


class SqlIdentityStore:

    def __init__(self, engine: Engine):
        self.engine = engine
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False) -> "SqlIdentityStore":
        return cls(create_store_engine(database_url, echo=echo))

    @contextmanager
    def session_scope(self):
        """
        Context manager for database sessions.
        Usage:
            with store.session_scope() as db:
                db.execute(text("SELECT * FROM users"))
        """
        session: Session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_schema(self) -> None:
        with self.session_scope() as db:
            for statement in SCHEMA_STATEMENTS:
                db.execute(text(statement))
        logger.info("Identity store schema ready")

    def _fetch_one(self, sql: str, params: dict):
        with self.session_scope() as db:
            return db.execute(text(sql), params).mappings().first()

    def _fetch_all(self, sql: str, params: dict) -> list:
        with self.session_scope() as db:
            return list(db.execute(text(sql), params).mappings().all())

    # -- Store contract ------------------------------------------------------

    async def find_user_by_id(self, user_id: str) -> Optional[UserProfile]:
        row = await run_in_threadpool(
            self._fetch_one, f"SELECT {USER_COLUMNS} FROM users WHERE id = :id", {"id": user_id}
        )
        return _user_from_row(row)

    async def update_user_profile(self, user_id: str, **fields: Any) -> Optional[UserProfile]:
        return await run_in_threadpool(self._update_user_profile, user_id, fields)

    def _update_user_profile(self, user_id: str, fields: Dict[str, Any]) -> Optional[UserProfile]:
        updates = []
        params = {"id": user_id, "updated_at": _now_iso()}
        if "full_name" in fields:
            updates.append("full_name = :full_name")
            params["full_name"] = fields["full_name"]
        if "avatar_url" in fields:
            updates.append("avatar_url = :avatar_url")
            params["avatar_url"] = fields["avatar_url"]
        unknown = set(fields) - {"full_name", "avatar_url"}
        if unknown:
            raise TypeError(f"unsupported profile fields: {sorted(unknown)}")

        with self.session_scope() as db:
            result = db.execute(
                text(f"UPDATE users SET {', '.join(updates + ['updated_at = :updated_at'])} WHERE id = :id"),
                params,
            )
            if result.rowcount == 0:
                return None
            row = db.execute(
                text(f"SELECT {USER_COLUMNS} FROM users WHERE id = :id"), {"id": user_id}
            ).mappings().first()
        return _user_from_row(row)

    async def find_latest_kyc_session_by_user_id(self, user_id: str) -> Optional[KycSession]:
        row = await run_in_threadpool(
            self._fetch_one,
            f"SELECT {SESSION_COLUMNS} FROM kyc_sessions WHERE user_id = :user_id "
            "ORDER BY created_at DESC LIMIT 1",
            {"user_id": user_id},
        )
        return _session_from_row(row)

    async def list_identity_documents_by_session_id(self, session_id: str) -> List[IdentityDocument]:
        rows = await run_in_threadpool(
            self._fetch_all,
            f"SELECT {DOCUMENT_COLUMNS} FROM identity_documents WHERE kyc_session_id = :sid "
            "ORDER BY created_at ASC",
            {"sid": session_id},
        )
        return [_document_from_row(row) for row in rows]

    async def update_kyc_session_provider_data(
        self,
        session_id: str,
        provider_ref: Optional[str],
        provider_metadata: Dict[str, Any],
    ) -> Optional[KycSession]:
        return await run_in_threadpool(
            self._update_kyc_session_provider_data, session_id, provider_ref, provider_metadata
        )

    def _update_kyc_session_provider_data(
        self, session_id: str, provider_ref: Optional[str], provider_metadata: Dict[str, Any]
    ) -> Optional[KycSession]:
        with self.session_scope() as db:
            result = db.execute(
                text("""
                    UPDATE kyc_sessions
                    SET provider_ref = :provider_ref,
                        provider_metadata_json = :metadata,
                        updated_at = :updated_at
                    WHERE id = :id
                """),
                {
                    "id": session_id,
                    "provider_ref": provider_ref,
                    "metadata": json.dumps(provider_metadata or {}, default=str),
                    "updated_at": _now_iso(),
                },
            )
            if result.rowcount == 0:
                return None
            row = db.execute(
                text(f"SELECT {SESSION_COLUMNS} FROM kyc_sessions WHERE id = :id"), {"id": session_id}
            ).mappings().first()
        return _session_from_row(row)

    # -- Seeding helpers (used by scripts and tests) -------------------------

    def create_user(self, full_name: Optional[str], email: Optional[str], avatar_url: Optional[str] = None) -> UserProfile:
        user_id = str(uuid4())
        now = _now_iso()
        with self.session_scope() as db:
            db.execute(
                text("""
                    INSERT INTO users (id, full_name, email, avatar_url, created_at, updated_at)
                    VALUES (:id, :full_name, :email, :avatar_url, :now, :now)
                """),
                {"id": user_id, "full_name": full_name, "email": email, "avatar_url": avatar_url, "now": now},
            )
        return UserProfile(id=user_id, full_name=full_name, email=email, avatar_url=avatar_url)

    def create_kyc_session(
        self,
        user_id: str,
        status: str = "CREATED",
        provider_ref: Optional[str] = None,
        provider_metadata: Optional[Dict[str, Any]] = None,
    ) -> KycSession:
        session_id = str(uuid4())
        now = _now_iso()
        with self.session_scope() as db:
            db.execute(
                text("""
                    INSERT INTO kyc_sessions (id, user_id, status, provider_ref, provider_metadata_json, created_at, updated_at)
                    VALUES (:id, :user_id, :status, :provider_ref, :metadata, :now, :now)
                """),
                {
                    "id": session_id,
                    "user_id": user_id,
                    "status": status,
                    "provider_ref": provider_ref,
                    "metadata": json.dumps(provider_metadata or {}),
                    "now": now,
                },
            )
        return _session_from_row(
            self._fetch_one(f"SELECT {SESSION_COLUMNS} FROM kyc_sessions WHERE id = :id", {"id": session_id})
        )

    def update_kyc_session_status(self, session_id: str, status: str) -> KycSession:
        now = _now_iso()
        stamp = ""
        if status == "SUBMITTED":
            stamp = ", submitted_at = :now"
        elif status in ("VERIFIED", "REJECTED"):
            stamp = ", reviewed_at = :now"
        with self.session_scope() as db:
            db.execute(
                text(f"UPDATE kyc_sessions SET status = :status, updated_at = :now{stamp} WHERE id = :id"),
                {"id": session_id, "status": status, "now": now},
            )
        return _session_from_row(
            self._fetch_one(f"SELECT {SESSION_COLUMNS} FROM kyc_sessions WHERE id = :id", {"id": session_id})
        )

    def create_identity_document(
        self,
        session_id: str,
        document_type: str,
        object_key: Optional[str] = None,
        verified_at: Optional[datetime] = None,
    ) -> IdentityDocument:
        document_id = str(uuid4())
        with self.session_scope() as db:
            db.execute(
                text("""
                    INSERT INTO identity_documents (id, kyc_session_id, document_type, metadata_json, verified_at, created_at)
                    VALUES (:id, :sid, :document_type, :metadata, :verified_at, :now)
                """),
                {
                    "id": document_id,
                    "sid": session_id,
                    "document_type": document_type,
                    "metadata": json.dumps({"objectKey": object_key} if object_key else {}),
                    "verified_at": verified_at.isoformat() if verified_at else None,
                    "now": _now_iso(),
                },
            )
        return _document_from_row(
            self._fetch_one(f"SELECT {DOCUMENT_COLUMNS} FROM identity_documents WHERE id = :id", {"id": document_id})
        )

    def test_connection(self) -> bool:
        """
        Test if the database is reachable.
        Returns True if connection successful, False otherwise.
        """
        try:
            row = self._fetch_one("SELECT 1 AS test", {})
            return row["test"] == 1
        except Exception as e:
            logger.warning("Identity store connection failed: %s", e)
            return False
