"""
Service dependencies for route handlers.

The services are built once per application in ``create_app`` and hung off
``app.state``; these helpers hand them to handlers via ``Depends``.
"""

from fastapi import Request

from placement_verify.services.organization_service import OrganizationsService
from placement_verify.services.profile_service import ProfileService


def get_organizations_service(request: Request) -> OrganizationsService:
    return request.app.state.organizations_service


def get_profile_service(request: Request) -> ProfileService:
    return request.app.state.profile_service
