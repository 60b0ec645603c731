"""
Identity records read from the Store, plus the final verification request
that is embedded in a KYC session's provider metadata.
"""

import math
from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from placement_verify.core.validation import as_text

FINAL_VERIFICATION_KEY = "finalVerification"
FINAL_REQUEST_STATUS = "REQUESTED"
FINAL_REQUEST_SOURCE_FALLBACK = "UNKNOWN"


class KycSessionStatus(str, Enum):
    CREATED = "CREATED"
    SUBMITTED = "SUBMITTED"
    MANUAL_REVIEW = "MANUAL_REVIEW"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class UserProfile(BaseModel):
    id: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None


class KycSession(BaseModel):
    id: str
    user_id: Optional[str] = None
    # Kept as a plain string: the store may hold statuses this service
    # does not know about, and those map to IN_PROGRESS.
    status: Optional[str] = None
    provider_ref: Optional[str] = None
    provider_metadata: Dict[str, Any] = Field(default_factory=dict)
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("provider_metadata", mode="before")
    @classmethod
    def _metadata_or_empty(cls, value):
        return value if isinstance(value, Mapping) else {}


class IdentityDocument(BaseModel):
    id: str
    kyc_session_id: Optional[str] = None
    document_type: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata_or_empty(cls, value):
        return value if isinstance(value, Mapping) else {}

    @property
    def object_key(self) -> Optional[str]:
        # metadata comes from the upload flow as-is; objectKey may be any JSON value
        return as_text(self.metadata.get("objectKey")) or None


class FinalVerificationRequest(BaseModel):
    """
    A user's request for a final review of their KYC session.

    Stored under ``providerMetadata["finalVerification"]`` in camelCase.
    Use ``from_metadata`` to read it back: any shape the decoder does not
    recognise yields None instead of an exception.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    session_id: Optional[str] = Field(None, alias="sessionId")
    status: str = FINAL_REQUEST_STATUS
    source: str = FINAL_REQUEST_SOURCE_FALLBACK
    note: Optional[str] = None
    requested_at: str = Field(alias="requestedAt")
    documents_count: Optional[int] = Field(None, alias="documentsCount")

    @field_validator("id", "requested_at", mode="before")
    @classmethod
    def _required_text(cls, value):
        normalized = as_text(value)
        if not normalized:
            raise ValueError("must be a non-empty string")
        return normalized

    @field_validator("session_id", mode="before")
    @classmethod
    def _optional_text(cls, value):
        return as_text(value) or None

    @field_validator("status", mode="before")
    @classmethod
    def _status_or_default(cls, value):
        return as_text(value) or FINAL_REQUEST_STATUS

    @field_validator("source", mode="before")
    @classmethod
    def _source_or_default(cls, value):
        return as_text(value) or FINAL_REQUEST_SOURCE_FALLBACK

    @field_validator("note", mode="before")
    @classmethod
    def _note_or_none(cls, value):
        return as_text(value) or None

    @field_validator("documents_count", mode="before")
    @classmethod
    def _non_negative_count(cls, value):
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        if not math.isfinite(number) or number < 0:
            return None
        return math.floor(number)

    @classmethod
    def from_metadata(
        cls, metadata: Any, fallback_session_id: Optional[str] = None
    ) -> Optional["FinalVerificationRequest"]:
        if not isinstance(metadata, Mapping):
            return None
        candidate = metadata.get(FINAL_VERIFICATION_KEY)
        if not isinstance(candidate, Mapping):
            return None

        data = dict(candidate)
        if not as_text(data.get("sessionId")):
            data["sessionId"] = fallback_session_id
        try:
            return cls.model_validate(data)
        except ValidationError:
            return None

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)
