"""
Admin Routes (reviewer console)

GET /admin/organizations - Paginated organizations with verification state
POST /admin/organizations/{org_id}/verification - Record a review decision
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from placement_verify.api.dependencies import get_organizations_service
from placement_verify.core.auth import get_current_admin
from placement_verify.services.organization_service import OrganizationsService
from placement_verify.schemas.schemas import (
    AdminOrganizationListResponse, OrgVerificationDecision, OrgVerificationResponse
)

router = APIRouter(prefix="/admin/organizations", tags=["Admin"])


@router.get("", response_model=AdminOrganizationListResponse)
async def list_organizations(
    cursor: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    org_type: Optional[str] = Query(None, alias="orgType"),
    verification_status: Optional[str] = Query(None, alias="verificationStatus"),
    admin: dict = Depends(get_current_admin),
    service: OrganizationsService = Depends(get_organizations_service),
):
    return await service.list_organizations_with_owners(
        cursor=cursor, limit=limit, org_type=org_type, verification_status=verification_status
    )


@router.post("/{org_id}/verification", response_model=OrgVerificationResponse)
async def update_verification(
    org_id: str,
    data: OrgVerificationDecision,
    admin: dict = Depends(get_current_admin),
    service: OrganizationsService = Depends(get_organizations_service),
):
    return service.admin_update_verification(org_id, data.status, data.reason_codes)
