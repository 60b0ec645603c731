"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.

Request bodies are deliberately loose (``Any``): the services own the
validation rules so that clients get the exact ``invalid_<field>`` codes.
Responses use camelCase on the wire.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional, List, Any
from datetime import datetime


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================
# ORGANIZATION SCHEMAS
# ============================================================

class OrganizationCreate(CamelModel):
    name: Any = None
    org_type: Any = None
    country_code: Any = None

class OrgVerificationSubmit(CamelModel):
    registration_number: Any = None
    legal_name: Any = None
    supporting_object_keys: Any = None

class OrgVerificationDecision(CamelModel):
    status: Any = None
    reason_codes: Any = None

class OrganizationResponse(CamelModel):
    id: str
    name: str
    org_type: str
    country_code: str

class OrgVerificationResponse(CamelModel):
    id: str
    org_id: str
    status: str
    reason_codes: List[str] = []
    last_checked_at: Optional[datetime] = None

class OrganizationOwner(CamelModel):
    id: str
    full_name: Optional[str] = None
    email: Optional[str] = None

class AdminOrganizationItem(CamelModel):
    organization: OrganizationResponse
    owner_user_id: str
    owner: Optional[OrganizationOwner] = None
    verification: Optional[OrgVerificationResponse] = None

class PageInfo(CamelModel):
    cursor: str
    next_cursor: Optional[str] = None
    limit: int
    total: int

class AdminOrganizationListResponse(CamelModel):
    items: List[AdminOrganizationItem]
    page_info: PageInfo


# ============================================================
# PROFILE SCHEMAS
# ============================================================

class ProfileUpdate(CamelModel):
    """Only the keys present in the body are applied; null clears avatarUrl."""
    full_name: Any = None
    avatar_url: Any = None

class FinalVerificationCreate(CamelModel):
    source: Any = None
    note: Any = None

class FinalRequestResponse(CamelModel):
    id: str
    session_id: Optional[str] = None
    status: str
    source: str
    note: Optional[str] = None
    requested_at: str
    documents_count: Optional[int] = None

class VerificationSummary(CamelModel):
    session_id: Optional[str] = None
    session_status: Optional[str] = None
    trust_status: str
    documents_uploaded: int
    required_documents: int
    required_documents_uploaded: int
    final_request: Optional[FinalRequestResponse] = None

class ProfileBody(CamelModel):
    id: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    profile_completion_percent: int
    trust_score_label: str
    verification_status: str
    verification: VerificationSummary

class ProfileResponse(CamelModel):
    profile: ProfileBody

class SessionSummary(CamelModel):
    id: str
    status: Optional[str] = None
    trust_status: str
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class ChecklistItem(CamelModel):
    document_type: str
    status: str
    required: bool
    document_id: Optional[str] = None
    object_key: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None

class ChecklistSummary(CamelModel):
    required_total: int
    uploaded_required: int
    verified_required: int
    missing_required: int
    all_required_uploaded: bool

class VerificationDocumentsResponse(CamelModel):
    session: Optional[SessionSummary] = None
    documents: List[ChecklistItem]
    summary: ChecklistSummary

class FinalVerificationResponse(CamelModel):
    created: bool
    request: FinalRequestResponse
    session: Optional[SessionSummary] = None


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class ErrorBody(BaseModel):
    code: str
    message: str

class ErrorResponse(BaseModel):
    error: ErrorBody

class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    store: str
