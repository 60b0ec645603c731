"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from placement_verify.api.routes.organization_routes import router as organization_router
from placement_verify.api.routes.profile_routes import router as profile_router
from placement_verify.api.routes.admin_routes import router as admin_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(organization_router)
api_router.include_router(profile_router)
api_router.include_router(admin_router)
