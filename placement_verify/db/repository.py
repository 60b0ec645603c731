"""
Organization repository - process-local keyed storage.

Each OrganizationsService owns one instance; nothing here is module-global,
so a persistent backend with the same methods can be dropped in later.
"""

from typing import Dict, List, Optional

from placement_verify.models.organization import Organization, OrgVerification


class OrganizationRepository:
    """Organizations keyed by id, verifications keyed by org id."""

    def __init__(self):
        self._organizations: Dict[str, Organization] = {}
        self._verifications: Dict[str, OrgVerification] = {}

    def add_organization(self, organization: Organization) -> Organization:
        if organization.id in self._organizations:
            raise KeyError(f"organization {organization.id} already exists")
        self._organizations[organization.id] = organization
        return organization

    def get_organization(self, org_id: str) -> Optional[Organization]:
        return self._organizations.get(org_id)

    def list_organizations(self) -> List[Organization]:
        """All organizations in creation order."""
        return list(self._organizations.values())

    def get_verification(self, org_id: str) -> Optional[OrgVerification]:
        return self._verifications.get(org_id)

    def save_verification(self, verification: OrgVerification) -> OrgVerification:
        """Insert or replace the verification for ``verification.org_id``."""
        self._verifications[verification.org_id] = verification
        return verification

    def __len__(self) -> int:
        return len(self._organizations)
