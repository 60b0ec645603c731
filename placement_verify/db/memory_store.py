"""
In-memory identity store.

Implements the async Store contract ProfileService depends on, plus a few
seeding helpers (create_user, create_kyc_session, ...) that stand in for
the auth and KYC upload flows during local runs and tests.

Records are copied on the way in and out so callers never hold a live
reference into the store.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from placement_verify.models.identity import IdentityDocument, KycSession, UserProfile

PROFILE_FIELDS = ("full_name", "avatar_url")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryIdentityStore:

    def __init__(self):
        self.users: Dict[str, UserProfile] = {}
        self.sessions: Dict[str, KycSession] = {}
        self.session_ids_by_user: Dict[str, List[str]] = {}
        self.documents_by_session: Dict[str, List[IdentityDocument]] = {}

    # -- Store contract ------------------------------------------------------

    async def find_user_by_id(self, user_id: str) -> Optional[UserProfile]:
        user = self.users.get(user_id)
        return user.model_copy(deep=True) if user else None

    async def update_user_profile(self, user_id: str, **fields: Any) -> Optional[UserProfile]:
        """Apply only the keys that were passed; unknown keys are an error."""
        unknown = set(fields) - set(PROFILE_FIELDS)
        if unknown:
            raise TypeError(f"unsupported profile fields: {sorted(unknown)}")

        user = self.users.get(user_id)
        if user is None:
            return None
        updated = user.model_copy(update=fields)
        self.users[user_id] = updated
        return updated.model_copy(deep=True)

    async def find_latest_kyc_session_by_user_id(self, user_id: str) -> Optional[KycSession]:
        session_ids = self.session_ids_by_user.get(user_id) or []
        if not session_ids:
            return None
        return self.sessions[session_ids[-1]].model_copy(deep=True)

    async def list_identity_documents_by_session_id(self, session_id: str) -> List[IdentityDocument]:
        documents = self.documents_by_session.get(session_id) or []
        # sorted() is stable, so same-timestamp uploads keep insertion order
        ordered = sorted(documents, key=lambda document: document.created_at or datetime.min.replace(tzinfo=timezone.utc))
        return [document.model_copy(deep=True) for document in ordered]

    async def update_kyc_session_provider_data(
        self,
        session_id: str,
        provider_ref: Optional[str],
        provider_metadata: Dict[str, Any],
    ) -> Optional[KycSession]:
        session = self.sessions.get(session_id)
        if session is None:
            return None
        updated = session.model_copy(
            update={
                "provider_ref": provider_ref,
                "provider_metadata": dict(provider_metadata or {}),
                "updated_at": _now(),
            },
            deep=True,
        )
        self.sessions[session_id] = updated
        return updated.model_copy(deep=True)

    # -- Seeding helpers -----------------------------------------------------

    def create_user(
        self,
        full_name: Optional[str],
        email: Optional[str],
        avatar_url: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> UserProfile:
        user = UserProfile(
            id=user_id or str(uuid4()),
            full_name=full_name,
            email=email,
            avatar_url=avatar_url,
        )
        self.users[user.id] = user
        return user.model_copy(deep=True)

    def create_kyc_session(
        self,
        user_id: str,
        status: str = "CREATED",
        provider_ref: Optional[str] = None,
        provider_metadata: Optional[Dict[str, Any]] = None,
    ) -> KycSession:
        now = _now()
        session = KycSession(
            id=str(uuid4()),
            user_id=user_id,
            status=status,
            provider_ref=provider_ref,
            provider_metadata=provider_metadata or {},
            created_at=now,
            updated_at=now,
        )
        self.sessions[session.id] = session
        self.session_ids_by_user.setdefault(user_id, []).append(session.id)
        return session.model_copy(deep=True)

    def update_kyc_session_status(self, session_id: str, status: str) -> KycSession:
        """Mimic the KYC flow: submit stamps submitted_at, decisions stamp reviewed_at."""
        session = self.sessions[session_id]
        now = _now()
        changes: Dict[str, Any] = {"status": status, "updated_at": now}
        if status == "SUBMITTED":
            changes["submitted_at"] = now
        elif status in ("VERIFIED", "REJECTED"):
            changes["reviewed_at"] = now
        self.sessions[session_id] = session.model_copy(update=changes)
        return self.sessions[session_id].model_copy(deep=True)

    def create_identity_document(
        self,
        session_id: str,
        document_type: str,
        object_key: Optional[str] = None,
        verified_at: Optional[datetime] = None,
    ) -> IdentityDocument:
        if session_id not in self.sessions:
            raise KeyError(f"kyc session {session_id} does not exist")
        document = IdentityDocument(
            id=str(uuid4()),
            kyc_session_id=session_id,
            document_type=document_type,
            metadata={"objectKey": object_key} if object_key else {},
            created_at=_now(),
            verified_at=verified_at,
        )
        self.documents_by_session.setdefault(session_id, []).append(document)
        return document.model_copy(deep=True)
