"""
Profile Service - user profile, KYC progress and final verification requests.

Everything the profile screen shows is derived on every call from three
stored facts: the user record, the user's latest KYC session and the
identity documents uploaded to that session. Nothing derived is cached.

The one state transition is the final verification request. It is
idempotent: the first request is embedded in the session's provider
metadata under ``finalVerification`` and every later call returns that
same request with ``created=False``. Calls for one session are serialized
with an asyncio lock so two concurrent requests cannot both create one.

Store contract (all async, failures propagate unchanged):
    find_user_by_id(user_id)
    update_user_profile(user_id, **fields)            # full_name / avatar_url
    find_latest_kyc_session_by_user_id(user_id)
    list_identity_documents_by_session_id(session_id)
    update_kyc_session_provider_data(session_id, provider_ref, provider_metadata)
"""

import asyncio
import logging
import weakref
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
from uuid import uuid4

from placement_verify.core import validation
from placement_verify.core.errors import ProfileApiError, StoreConfigurationError
from placement_verify.models.identity import (
    FINAL_REQUEST_SOURCE_FALLBACK,
    FINAL_REQUEST_STATUS,
    FINAL_VERIFICATION_KEY,
    FinalVerificationRequest,
    IdentityDocument,
    KycSession,
)

logger = logging.getLogger(__name__)

REQUIRED_DOCUMENT_TYPES = ("PASSPORT", "SELFIE")
REQUIRED_STORE_METHODS = (
    "find_user_by_id",
    "update_user_profile",
    "find_latest_kyc_session_by_user_id",
    "list_identity_documents_by_session_id",
    "update_kyc_session_provider_data",
)

MAX_FULL_NAME_LENGTH = 120
MAX_AVATAR_URL_LENGTH = 500
MAX_SOURCE_LENGTH = 64
MAX_NOTE_LENGTH = 500

_ERR = {"error_cls": ProfileApiError}


class _Unset:
    """Marks an update field the caller did not send."""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()


# ============================================================
# DERIVATION HELPERS
# ============================================================

def normalize_user_id(user_id: Any) -> str:
    return validation.bounded_text(user_id, code="invalid_user_id", label="userId", **_ERR)


def normalize_document_type(document_type: Any) -> str:
    return validation.as_text(document_type).upper()


def normalize_session_status(status: Any) -> str:
    return validation.as_text(status).upper()


def map_verification_status(raw_status: Any) -> str:
    """Raw KYC session status -> status shown on the profile."""
    normalized = normalize_session_status(raw_status)
    if not normalized:
        return "NOT_STARTED"
    if normalized in ("MANUAL_REVIEW", "VERIFIED", "REJECTED"):
        return normalized
    return "IN_PROGRESS"


def map_trust_score_label(verification_status: str) -> str:
    return {
        "VERIFIED": "TRUSTED",
        "MANUAL_REVIEW": "UNDER_REVIEW",
        "REJECTED": "ACTION_REQUIRED",
        "IN_PROGRESS": "BUILDING_TRUST",
    }.get(verification_status, "UNVERIFIED")


def calculate_completion(user, session: Optional[KycSession], documents: List[IdentityDocument],
                         required_uploaded_count: int) -> int:
    score = 0
    if validation.as_text(user.full_name):
        score += 25
    if validation.as_text(user.email):
        score += 15
    if session is not None:
        score += 20
    if documents:
        score += 20
    if required_uploaded_count >= len(REQUIRED_DOCUMENT_TYPES):
        score += 10
    if session is not None and normalize_session_status(session.status) != "CREATED":
        score += 10
    return min(score, 100)


def to_session_summary(session: Optional[KycSession]) -> Optional[dict]:
    if session is None:
        return None
    return {
        "id": session.id,
        "status": session.status,
        "trustStatus": map_verification_status(session.status),
        "submittedAt": session.submitted_at,
        "reviewedAt": session.reviewed_at,
        "updatedAt": session.updated_at,
    }


def to_document_status(verification_status: Optional[str], document: Optional[IdentityDocument]) -> str:
    if document is None:
        return "MISSING"
    if document.verified_at or verification_status == "VERIFIED":
        return "VERIFIED"
    if verification_status == "REJECTED":
        return "REJECTED"
    return "PENDING"


def to_checklist_item(document_type: str, required: bool, verification_status: Optional[str],
                      document: Optional[IdentityDocument]) -> dict:
    return {
        "documentType": document_type,
        "status": to_document_status(verification_status, document),
        "required": required,
        "documentId": document.id if document else None,
        "objectKey": document.object_key if document else None,
        "uploadedAt": document.created_at if document else None,
        "reviewedAt": document.verified_at if document else None,
    }


def to_summary(items: Iterable[dict]) -> dict:
    required_items = [item for item in items if item["required"]]
    required_total = len(required_items)
    missing_required = sum(1 for item in required_items if item["status"] == "MISSING")
    return {
        "requiredTotal": required_total,
        "uploadedRequired": required_total - missing_required,
        "verifiedRequired": sum(1 for item in required_items if item["status"] == "VERIFIED"),
        "missingRequired": missing_required,
        "allRequiredUploaded": required_total > 0 and missing_required == 0,
    }


def normalize_final_request_source(source: Any) -> str:
    return validation.optional_text(
        source,
        code="invalid_source",
        label="source",
        max_length=MAX_SOURCE_LENGTH,
        default=FINAL_REQUEST_SOURCE_FALLBACK,
        **_ERR,
    )


def normalize_final_request_note(note: Any) -> Optional[str]:
    return validation.optional_text(note, code="invalid_note", label="note", max_length=MAX_NOTE_LENGTH, **_ERR)


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ============================================================
# SERVICE
# ============================================================

class ProfileService:
    """
    Derived profile views and the final verification request.

    Usage:
        service = ProfileService(store)
        profile = await service.get_profile(user_id)
    """

    def __init__(self, store: Any):
        missing = [name for name in REQUIRED_STORE_METHODS if not callable(getattr(store, name, None))]
        if store is None or missing:
            raise StoreConfigurationError(
                f"Profile store is missing required methods: {', '.join(missing or REQUIRED_STORE_METHODS)}"
            )
        self.store = store
        # Entries disappear once no caller holds the lock.
        self._session_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for_session(self, session_id: str) -> asyncio.Lock:
        lock = self._session_locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._session_locks[session_id] = lock
        return lock

    async def _load_session_documents(self, session: Optional[KycSession]) -> List[IdentityDocument]:
        if session is None:
            return []
        return list(await self.store.list_identity_documents_by_session_id(session.id))

    # -- Profile --------------------------------------------------------------

    async def get_profile(self, user_id: Any) -> dict:
        normalized_user_id = normalize_user_id(user_id)
        user = await self.store.find_user_by_id(normalized_user_id)
        if user is None:
            raise ProfileApiError(404, "user_not_found", "user not found")

        session = await self.store.find_latest_kyc_session_by_user_id(normalized_user_id)
        documents = await self._load_session_documents(session)

        final_request = FinalVerificationRequest.from_metadata(
            session.provider_metadata if session else None,
            session.id if session else None,
        )
        uploaded_types = {normalize_document_type(document.document_type) for document in documents}
        required_uploaded_count = sum(1 for document_type in REQUIRED_DOCUMENT_TYPES if document_type in uploaded_types)
        verification_status = map_verification_status(session.status if session else None)

        return {
            "profile": {
                "id": user.id,
                "fullName": user.full_name,
                "email": user.email,
                "avatarUrl": user.avatar_url,
                "profileCompletionPercent": calculate_completion(user, session, documents, required_uploaded_count),
                "trustScoreLabel": map_trust_score_label(verification_status),
                "verificationStatus": verification_status,
                "verification": {
                    "sessionId": session.id if session else None,
                    "sessionStatus": session.status if session else None,
                    "trustStatus": verification_status,
                    "documentsUploaded": len(documents),
                    "requiredDocuments": len(REQUIRED_DOCUMENT_TYPES),
                    "requiredDocumentsUploaded": required_uploaded_count,
                    "finalRequest": final_request.to_wire() if final_request else None,
                },
            }
        }

    async def update_profile(self, user_id: Any, full_name: Any = UNSET, avatar_url: Any = UNSET) -> dict:
        """
        Partial update. Omitted fields are untouched; ``avatar_url=None``
        clears the stored avatar. Returns a freshly derived profile.
        """
        normalized_user_id = normalize_user_id(user_id)
        changes: Dict[str, Any] = {}

        if full_name is not UNSET:
            changes["full_name"] = validation.bounded_text(
                full_name,
                code="invalid_full_name",
                label="fullName",
                min_length=2,
                max_length=MAX_FULL_NAME_LENGTH,
                **_ERR,
            )
        if avatar_url is not UNSET:
            changes["avatar_url"] = None if avatar_url is None else validation.http_url(
                avatar_url, code="invalid_avatar_url", max_length=MAX_AVATAR_URL_LENGTH, **_ERR
            )
        if not changes:
            raise ProfileApiError(400, "invalid_profile_update", "provide fullName or avatarUrl")

        updated = await self.store.update_user_profile(normalized_user_id, **changes)
        if updated is None:
            raise ProfileApiError(404, "user_not_found", "user not found")
        logger.info("Profile updated for user %s (%s)", normalized_user_id, ", ".join(sorted(changes)))
        return await self.get_profile(normalized_user_id)

    # -- Verification documents -------------------------------------------------

    async def list_verification_documents(self, user_id: Any) -> dict:
        normalized_user_id = normalize_user_id(user_id)
        session = await self.store.find_latest_kyc_session_by_user_id(normalized_user_id)
        if session is None:
            items = [to_checklist_item(document_type, True, None, None) for document_type in REQUIRED_DOCUMENT_TYPES]
            return {"session": None, "documents": items, "summary": to_summary(items)}

        documents = await self._load_session_documents(session)
        # Later uploads of the same type replace earlier ones.
        latest_by_type: Dict[str, IdentityDocument] = {}
        for document in documents:
            document_type = normalize_document_type(document.document_type)
            if document_type:
                latest_by_type[document_type] = document

        verification_status = map_verification_status(session.status)
        items = [
            to_checklist_item(document_type, True, verification_status, latest_by_type.get(document_type))
            for document_type in REQUIRED_DOCUMENT_TYPES
        ]
        items.extend(
            to_checklist_item(document_type, False, verification_status, latest_by_type[document_type])
            for document_type in sorted(latest_by_type)
            if document_type not in REQUIRED_DOCUMENT_TYPES
        )
        return {"session": to_session_summary(session), "documents": items, "summary": to_summary(items)}

    # -- Final verification request ---------------------------------------------

    async def request_final_verification(self, user_id: Any, source: Any = None, note: Any = None) -> dict:
        """
        Ask for a final review of the user's latest KYC session.

        Preconditions (409): a session exists, it has left CREATED, and at
        least one document is uploaded. An existing request is returned
        unchanged with ``created=False``.
        """
        normalized_user_id = normalize_user_id(user_id)
        session = await self.store.find_latest_kyc_session_by_user_id(normalized_user_id)
        if session is None:
            raise ProfileApiError(
                409,
                "verification_session_required",
                "cannot request final verification before starting a KYC session",
            )
        if normalize_session_status(session.status) == "CREATED":
            raise ProfileApiError(
                409,
                "kyc_session_not_submitted",
                "submit KYC session before requesting final verification",
            )

        documents = await self._load_session_documents(session)
        if not documents:
            raise ProfileApiError(
                409,
                "verification_documents_missing",
                "cannot request final verification without uploaded documents",
            )

        async with self._lock_for_session(session.id):
            # Re-read under the lock: a concurrent call may have just written.
            refreshed = await self.store.find_latest_kyc_session_by_user_id(normalized_user_id)
            if refreshed is not None and refreshed.id == session.id:
                session = refreshed

            existing = FinalVerificationRequest.from_metadata(session.provider_metadata, session.id)
            if existing is not None:
                return {"created": False, "request": existing.to_wire(), "session": to_session_summary(session)}

            request = FinalVerificationRequest(
                id=str(uuid4()),
                session_id=session.id,
                status=FINAL_REQUEST_STATUS,
                source=normalize_final_request_source(source),
                note=normalize_final_request_note(note),
                requested_at=_iso_now(),
                documents_count=len(documents),
            )
            metadata = dict(session.provider_metadata)
            metadata[FINAL_VERIFICATION_KEY] = request.to_wire()
            updated_session = await self.store.update_kyc_session_provider_data(
                session_id=session.id,
                provider_ref=session.provider_ref,
                provider_metadata=metadata,
            )

        logger.info(
            "Final verification %s requested for session %s (source=%s, documents=%d)",
            request.id, session.id, request.source, len(documents),
        )
        return {
            "created": True,
            "request": request.to_wire(),
            "session": to_session_summary(updated_session or session),
        }
