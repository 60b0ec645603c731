"""
Organization Service - registration and registration verification.

Owners register an organization (TSK, LPK or EMPLOYER) and submit its
registration details for verification. Every submission puts the record
back into PENDING so an external reviewer looks at it again; the reviewer's
decision is recorded through the admin operations at the bottom.

Ownership is strict: an organization that belongs to someone else is
reported exactly like one that does not exist (404 org_not_found).

Storage is the OrganizationRepository owned by the service instance.
Only the owner lookup for the admin listing awaits; every operation that
writes is synchronous, so it is atomic with respect to other calls on the
same event loop.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from placement_verify.core.errors import OrganizationsApiError
from placement_verify.core import validation
from placement_verify.db.repository import OrganizationRepository
from placement_verify.models.organization import (
    Organization,
    OrgType,
    OrgVerification,
    OrgVerificationStatus,
    utcnow,
)

logger = logging.getLogger(__name__)

ALLOWED_ORG_TYPES = tuple(member.value for member in OrgType)
ALLOWED_VERIFICATION_STATUSES = tuple(member.value for member in OrgVerificationStatus)
COUNTRY_CODE_PATTERN = re.compile(r"[A-Z]{2}")

MAX_ORG_NAME_LENGTH = 180
MAX_REGISTRATION_NUMBER_LENGTH = 128
MAX_LEGAL_NAME_LENGTH = 180
MAX_SUPPORTING_OBJECT_KEYS = 20
MAX_OBJECT_KEY_LENGTH = 1024
MAX_REASON_CODES = 20
MAX_REASON_CODE_LENGTH = 64
DEFAULT_LIMIT = 20
MAX_LIMIT = 100

_ERR = {"error_cls": OrganizationsApiError}


# ============================================================
# FIELD NORMALIZERS
# ============================================================

def normalize_user_id(user_id: Any) -> str:
    return validation.bounded_text(user_id, code="invalid_user_id", label="userId", **_ERR)


def normalize_org_id(org_id: Any) -> str:
    return validation.bounded_text(org_id, code="invalid_org_id", label="orgId", **_ERR)


def normalize_org_name(name: Any) -> str:
    return validation.bounded_text(
        name, code="invalid_org_name", label="name", min_length=2, max_length=MAX_ORG_NAME_LENGTH, **_ERR
    )


def normalize_org_type(org_type: Any) -> str:
    return validation.one_of(org_type, ALLOWED_ORG_TYPES, code="invalid_org_type", label="orgType", **_ERR)


def normalize_optional_org_type(org_type: Any) -> Optional[str]:
    if validation.is_blank(org_type):
        return None
    return normalize_org_type(org_type)


def normalize_country_code(country_code: Any) -> str:
    return validation.matching(
        country_code,
        COUNTRY_CODE_PATTERN,
        code="invalid_country_code",
        message="countryCode must be 2 uppercase letters",
        upper=True,
        **_ERR,
    )


def normalize_registration_number(registration_number: Any) -> str:
    return validation.bounded_text(
        registration_number,
        code="invalid_registration_number",
        label="registrationNumber",
        max_length=MAX_REGISTRATION_NUMBER_LENGTH,
        **_ERR,
    )


def normalize_legal_name(legal_name: Any) -> str:
    return validation.bounded_text(
        legal_name,
        code="invalid_legal_name",
        label="legalName",
        min_length=2,
        max_length=MAX_LEGAL_NAME_LENGTH,
        **_ERR,
    )


def normalize_supporting_object_keys(supporting_object_keys: Any) -> List[str]:
    keys = validation.bounded_list(
        supporting_object_keys,
        code="invalid_supporting_object_keys",
        label="supportingObjectKeys",
        max_items=MAX_SUPPORTING_OBJECT_KEYS,
        **_ERR,
    )
    return [
        validation.safe_object_key(
            key, code="invalid_supporting_object_key", max_length=MAX_OBJECT_KEY_LENGTH, **_ERR
        )
        for key in keys
    ]


def normalize_verification_status(status: Any) -> str:
    return validation.one_of(
        status, ALLOWED_VERIFICATION_STATUSES, code="invalid_verification_status", label="status", **_ERR
    )


def normalize_optional_verification_status(status: Any) -> Optional[str]:
    if validation.is_blank(status):
        return None
    return normalize_verification_status(status)


def normalize_reason_codes(reason_codes: Any) -> List[str]:
    codes = validation.bounded_list(
        reason_codes, code="invalid_reason_codes", label="reasonCodes", max_items=MAX_REASON_CODES, **_ERR
    )
    return [
        validation.bounded_text(
            reason, code="invalid_reason_code", label="reason code", max_length=MAX_REASON_CODE_LENGTH, **_ERR
        )
        for reason in codes
    ]


def normalize_limit(limit: Any) -> int:
    return validation.bounded_int(
        limit,
        default=DEFAULT_LIMIT,
        minimum=1,
        maximum=MAX_LIMIT,
        code="invalid_limit",
        message=f"limit must be integer between 1 and {MAX_LIMIT}",
        **_ERR,
    )


def normalize_cursor(cursor: Any) -> int:
    return validation.bounded_int(
        cursor,
        default=0,
        minimum=0,
        code="invalid_cursor",
        message="cursor must be a non-negative integer",
        **_ERR,
    )


# ============================================================
# SERVICE
# ============================================================

class OrganizationsService:
    """
    Organization registration and verification submissions.

    Usage:
        service = OrganizationsService()
        org = service.create_organization(user_id, "Acme", "TSK", "jp")
        service.submit_verification(user_id, org["id"], "REG-1", "Acme KK", [])
    """

    def __init__(self, repository: Optional[OrganizationRepository] = None, identity_store: Any = None):
        self.repository = repository if repository is not None else OrganizationRepository()
        # Optional: only needs an async find_user_by_id, used to describe owners to reviewers.
        self.identity_store = identity_store

    def get_organization_for_owner_or_throw(self, org_id: Any, owner_user_id: Any) -> Organization:
        normalized_owner = normalize_user_id(owner_user_id)
        normalized_org_id = normalize_org_id(org_id)
        organization = self.repository.get_organization(normalized_org_id)
        if organization is None or organization.owner_user_id != normalized_owner:
            logger.debug("Organization %s not visible to user %s", normalized_org_id, normalized_owner)
            raise OrganizationsApiError(404, "org_not_found", "organization not found")
        return organization

    def create_organization(self, user_id: Any, name: Any, org_type: Any, country_code: Any) -> dict:
        organization = Organization(
            owner_user_id=normalize_user_id(user_id),
            name=normalize_org_name(name),
            org_type=normalize_org_type(org_type),
            country_code=normalize_country_code(country_code),
        )
        self.repository.add_organization(organization)
        logger.info("Organization %s created by user %s", organization.id, organization.owner_user_id)
        return organization.to_public()

    def submit_verification(
        self,
        user_id: Any,
        org_id: Any,
        registration_number: Any,
        legal_name: Any,
        supporting_object_keys: Any = None,
    ) -> dict:
        """
        Create or overwrite the organization's verification.

        Resubmission replaces the three content fields, forces PENDING and
        clears reason codes; the verification id and created_at are kept.
        """
        organization = self.get_organization_for_owner_or_throw(org_id, user_id)
        registration_number = normalize_registration_number(registration_number)
        legal_name = normalize_legal_name(legal_name)
        object_keys = normalize_supporting_object_keys(supporting_object_keys)

        now = utcnow()
        verification = self.repository.get_verification(organization.id)
        if verification is None:
            verification = OrgVerification(
                org_id=organization.id,
                registration_number=registration_number,
                legal_name=legal_name,
                supporting_object_keys=object_keys,
                last_checked_at=now,
                created_at=now,
                updated_at=now,
            )
        else:
            verification.registration_number = registration_number
            verification.legal_name = legal_name
            verification.supporting_object_keys = object_keys
            verification.status = OrgVerificationStatus.PENDING
            verification.reason_codes = []
            verification.last_checked_at = now
            verification.updated_at = now

        self.repository.save_verification(verification)
        logger.info("Verification %s submitted for organization %s", verification.id, organization.id)
        return verification.to_public()

    def get_verification_status(self, user_id: Any, org_id: Any) -> dict:
        organization = self.get_organization_for_owner_or_throw(org_id, user_id)
        verification = self.repository.get_verification(organization.id)
        if verification is None:
            raise OrganizationsApiError(404, "org_verification_not_found", "organization verification not found")
        return verification.to_public()

    # -- Admin / reviewer operations ------------------------------------------

    def list_organizations_for_admin(
        self,
        cursor: Any = None,
        limit: Any = None,
        org_type: Any = None,
        verification_status: Any = None,
    ) -> dict:
        """
        Offset-paginated listing for the admin console.

        Organizations without a verification never match a status filter.
        ``nextCursor`` is None on the last page.
        """
        offset = normalize_cursor(cursor)
        page_size = normalize_limit(limit)
        wanted_type = normalize_optional_org_type(org_type)
        wanted_status = normalize_optional_verification_status(verification_status)

        matched = []
        for organization in self.repository.list_organizations():
            if wanted_type and organization.org_type.value != wanted_type:
                continue
            verification = self.repository.get_verification(organization.id)
            if wanted_status and (verification is None or verification.status.value != wanted_status):
                continue
            matched.append({
                "organization": organization.to_public(),
                "ownerUserId": organization.owner_user_id,
                "verification": verification.to_public() if verification else None,
            })

        page = matched[offset:offset + page_size]
        next_offset = offset + len(page)
        return {
            "items": page,
            "pageInfo": {
                "cursor": str(offset),
                "nextCursor": str(next_offset) if next_offset < len(matched) else None,
                "limit": page_size,
                "total": len(matched),
            },
        }

    async def list_organizations_with_owners(
        self,
        cursor: Any = None,
        limit: Any = None,
        org_type: Any = None,
        verification_status: Any = None,
    ) -> dict:
        """
        Admin listing with each item's ``owner`` as ``{id, fullName, email}``.

        ``owner`` is None when the user is unknown to the identity store or
        no store is configured.
        """
        page = self.list_organizations_for_admin(cursor, limit, org_type, verification_status)
        owners: Dict[str, Optional[dict]] = {}
        for item in page["items"]:
            owner_id = item["ownerUserId"]
            if owner_id not in owners:
                owners[owner_id] = await self._describe_owner(owner_id)
            item["owner"] = owners[owner_id]
        return page

    async def _describe_owner(self, user_id: str) -> Optional[dict]:
        if self.identity_store is None:
            return None
        user = await self.identity_store.find_user_by_id(user_id)
        if user is None:
            return None
        return {"id": user.id, "fullName": user.full_name, "email": user.email}

    def admin_update_verification(self, org_id: Any, status: Any, reason_codes: Any = None) -> dict:
        """Record a reviewer decision; content fields are left as submitted."""
        normalized_org_id = normalize_org_id(org_id)
        normalized_status = normalize_verification_status(status)
        normalized_reason_codes = normalize_reason_codes(reason_codes)

        if self.repository.get_organization(normalized_org_id) is None:
            raise OrganizationsApiError(404, "org_not_found", "organization not found")
        verification = self.repository.get_verification(normalized_org_id)
        if verification is None:
            raise OrganizationsApiError(404, "org_verification_not_found", "organization verification not found")

        now = utcnow()
        verification.status = OrgVerificationStatus(normalized_status)
        verification.reason_codes = normalized_reason_codes
        verification.last_checked_at = now
        verification.updated_at = now
        self.repository.save_verification(verification)
        logger.info(
            "Verification %s for organization %s marked %s",
            verification.id, normalized_org_id, normalized_status,
        )
        return verification.to_public()
