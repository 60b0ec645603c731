"""
Organization records owned by OrganizationsService.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


class OrgType(str, Enum):
    TSK = "TSK"
    LPK = "LPK"
    EMPLOYER = "EMPLOYER"


class OrgVerificationStatus(str, Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    MISMATCH = "MISMATCH"
    NOT_FOUND = "NOT_FOUND"
    REJECTED = "REJECTED"


class Organization(BaseModel):
    id: str = Field(default_factory=new_id)
    owner_user_id: str
    name: str
    org_type: OrgType
    country_code: str
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def to_public(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "orgType": self.org_type.value,
            "countryCode": self.country_code,
        }


class OrgVerification(BaseModel):
    """Registration verification; at most one per organization."""

    id: str = Field(default_factory=new_id)
    org_id: str
    status: OrgVerificationStatus = OrgVerificationStatus.PENDING
    reason_codes: List[str] = Field(default_factory=list)
    registration_number: str
    legal_name: str
    supporting_object_keys: List[str] = Field(default_factory=list)
    last_checked_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def to_public(self) -> dict:
        return {
            "id": self.id,
            "orgId": self.org_id,
            "status": self.status.value,
            "reasonCodes": list(self.reason_codes),
            "lastCheckedAt": self.last_checked_at,
        }
