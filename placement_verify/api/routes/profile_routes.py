"""
Profile Routes

GET /users/me/profile - Derived profile with KYC progress
PATCH /users/me/profile - Update full name and/or avatar
GET /users/me/verification-documents - Document checklist for the latest KYC session
POST /users/me/verification/final-request - Request final review (idempotent)
"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

from placement_verify.api.dependencies import get_profile_service
from placement_verify.core.auth import get_current_user
from placement_verify.services.profile_service import ProfileService, UNSET
from placement_verify.schemas.schemas import (
    ProfileUpdate, ProfileResponse, VerificationDocumentsResponse,
    FinalVerificationCreate, FinalVerificationResponse
)

router = APIRouter(prefix="/users/me", tags=["Profile"])


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    user: dict = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    return await service.get_profile(user["user_id"])


@router.patch("/profile", response_model=ProfileResponse)
async def update_profile(
    data: ProfileUpdate,
    user: dict = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    """Only fields present in the body change; ``"avatarUrl": null`` clears the avatar."""
    sent = data.model_fields_set
    return await service.update_profile(
        user["user_id"],
        full_name=data.full_name if "full_name" in sent else UNSET,
        avatar_url=data.avatar_url if "avatar_url" in sent else UNSET,
    )


@router.get("/verification-documents", response_model=VerificationDocumentsResponse)
async def list_verification_documents(
    user: dict = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    return await service.list_verification_documents(user["user_id"])


@router.post(
    "/verification/final-request",
    response_model=FinalVerificationResponse,
    status_code=201,
    responses={200: {"model": FinalVerificationResponse, "description": "Existing request returned"}},
)
async def request_final_verification(
    data: Optional[FinalVerificationCreate] = None,
    user: dict = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    """Returns 201 when a request is created, 200 when one already exists."""
    data = data or FinalVerificationCreate()
    result = await service.request_final_verification(user["user_id"], source=data.source, note=data.note)
    payload = FinalVerificationResponse.model_validate(result).model_dump(by_alias=True)
    return JSONResponse(status_code=201 if result["created"] else 200, content=jsonable_encoder(payload))
