"""
Organization Routes

POST /organizations - Register an organization
POST /organizations/{org_id}/verification - Submit (or resubmit) registration details
GET /organizations/{org_id}/verification/status - Current verification state
"""

from fastapi import APIRouter, Depends

from placement_verify.api.dependencies import get_organizations_service
from placement_verify.core.auth import get_current_user
from placement_verify.services.organization_service import OrganizationsService
from placement_verify.schemas.schemas import (
    OrganizationCreate, OrganizationResponse, OrgVerificationSubmit, OrgVerificationResponse
)

router = APIRouter(prefix="/organizations", tags=["Organizations"])


@router.post("", response_model=OrganizationResponse, status_code=201)
async def create_organization(
    data: OrganizationCreate,
    user: dict = Depends(get_current_user),
    service: OrganizationsService = Depends(get_organizations_service),
):
    """Register an organization owned by the caller."""
    return service.create_organization(user["user_id"], data.name, data.org_type, data.country_code)


@router.post("/{org_id}/verification", response_model=OrgVerificationResponse, status_code=202)
async def submit_verification(
    org_id: str,
    data: OrgVerificationSubmit,
    user: dict = Depends(get_current_user),
    service: OrganizationsService = Depends(get_organizations_service),
):
    """
    Submit registration details for review.

    Resubmitting overwrites the previous details and puts the verification
    back to PENDING.
    """
    return service.submit_verification(
        user["user_id"], org_id, data.registration_number, data.legal_name, data.supporting_object_keys
    )


@router.get("/{org_id}/verification/status", response_model=OrgVerificationResponse)
async def get_verification_status(
    org_id: str,
    user: dict = Depends(get_current_user),
    service: OrganizationsService = Depends(get_organizations_service),
):
    return service.get_verification_status(user["user_id"], org_id)
