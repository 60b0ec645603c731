"""
Models module - domain records.

- Organization / OrgVerification: owned by OrganizationsService
- UserProfile / KycSession / IdentityDocument: read from the identity Store
- FinalVerificationRequest: embedded in a KYC session's provider metadata
"""

from placement_verify.models.identity import (
    FinalVerificationRequest,
    IdentityDocument,
    KycSession,
    KycSessionStatus,
    UserProfile,
)
from placement_verify.models.organization import (
    Organization,
    OrgType,
    OrgVerification,
    OrgVerificationStatus,
)

__all__ = [
    "FinalVerificationRequest",
    "IdentityDocument",
    "KycSession",
    "KycSessionStatus",
    "UserProfile",
    "Organization",
    "OrgType",
    "OrgVerification",
    "OrgVerificationStatus",
]
