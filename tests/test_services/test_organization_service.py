"""
Tests for OrganizationsService.

Cover field normalization on create, owner scoping, the verification
upsert (every resubmission goes back to PENDING) and the reviewer
operations used by the admin console.
"""

import asyncio

import pytest

from placement_verify.core.errors import OrganizationsApiError
from placement_verify.db.memory_store import InMemoryIdentityStore
from placement_verify.db.repository import OrganizationRepository
from placement_verify.services.organization_service import OrganizationsService

OWNER = "user-owner"
OTHER = "user-other"


def _error_code(excinfo):
    return excinfo.value.code


class TestCreateOrganization:
    """Validation and normalization of new organizations."""

    def test_normalizes_fields(self, organizations_service):
        """Name is trimmed, org type and country code are upper-cased."""
        org = organizations_service.create_organization(OWNER, "  Acme Talent  ", "lpk", "id")
        assert org["id"]
        assert org["name"] == "Acme Talent"
        assert org["orgType"] == "LPK"
        assert org["countryCode"] == "ID"
        assert set(org) == {"id", "name", "orgType", "countryCode"}

    def test_country_code_lowercase_is_upper_cased(self, organizations_service):
        org = organizations_service.create_organization(OWNER, "Acme", "TSK", "us")
        assert org["countryCode"] == "US"

    @pytest.mark.parametrize("country_code", ["USA", "U", "", None, "1A"])
    def test_rejects_bad_country_code(self, organizations_service, country_code):
        with pytest.raises(OrganizationsApiError) as excinfo:
            organizations_service.create_organization(OWNER, "Acme", "TSK", country_code)
        assert excinfo.value.status == 400
        assert _error_code(excinfo) == "invalid_country_code"

    def test_rejects_unknown_org_type(self, organizations_service):
        with pytest.raises(OrganizationsApiError) as excinfo:
            organizations_service.create_organization(OWNER, "Acme", "UNKNOWN", "JP")
        assert _error_code(excinfo) == "invalid_org_type"

    @pytest.mark.parametrize("name", ["A", "  B  ", "x" * 181, None])
    def test_rejects_name_out_of_bounds(self, organizations_service, name):
        with pytest.raises(OrganizationsApiError) as excinfo:
            organizations_service.create_organization(OWNER, name, "TSK", "JP")
        assert _error_code(excinfo) == "invalid_org_name"

    def test_requires_user_id(self, organizations_service):
        with pytest.raises(OrganizationsApiError) as excinfo:
            organizations_service.create_organization("   ", "Acme", "TSK", "JP")
        assert _error_code(excinfo) == "invalid_user_id"

    def test_long_user_id_is_accepted(self, organizations_service):
        owner = "idp|" + "9" * 400
        org = organizations_service.create_organization(owner, "Acme", "TSK", "JP")
        assert organizations_service.get_organization_for_owner_or_throw(org["id"], owner).owner_user_id == owner

    def test_assigns_unique_ids(self, organizations_service):
        first = organizations_service.create_organization(OWNER, "Acme", "TSK", "JP")
        second = organizations_service.create_organization(OWNER, "Acme", "TSK", "JP")
        assert first["id"] != second["id"]
        assert len(organizations_service.repository) == 2

    def test_repository_is_per_instance(self):
        """Two services never share storage unless given the same repository."""
        first = OrganizationsService()
        second = OrganizationsService()
        first.create_organization(OWNER, "Acme", "TSK", "JP")
        assert len(second.repository) == 0

        shared = OrganizationRepository()
        OrganizationsService(shared).create_organization(OWNER, "Acme", "TSK", "JP")
        assert len(OrganizationsService(shared).repository) == 1


class TestOwnership:
    """Another owner's organization looks exactly like a missing one."""

    def test_other_owner_and_missing_org_are_indistinguishable(self, organizations_service):
        org = organizations_service.create_organization(OWNER, "Acme", "TSK", "JP")

        with pytest.raises(OrganizationsApiError) as foreign:
            organizations_service.get_organization_for_owner_or_throw(org["id"], OTHER)
        with pytest.raises(OrganizationsApiError) as missing:
            organizations_service.get_organization_for_owner_or_throw("no-such-org", OWNER)

        assert (foreign.value.status, foreign.value.code, foreign.value.message) == (
            missing.value.status, missing.value.code, missing.value.message
        )
        assert foreign.value.status == 404
        assert foreign.value.code == "org_not_found"

    def test_owner_resolves_org(self, organizations_service):
        org = organizations_service.create_organization(OWNER, "Acme", "TSK", "JP")
        record = organizations_service.get_organization_for_owner_or_throw(org["id"], OWNER)
        assert record.owner_user_id == OWNER

    def test_other_owner_cannot_submit(self, organizations_service):
        org = organizations_service.create_organization(OWNER, "Acme", "TSK", "JP")
        with pytest.raises(OrganizationsApiError) as excinfo:
            organizations_service.submit_verification(OTHER, org["id"], "REG-OTHER", "Other Legal")
        assert _error_code(excinfo) == "org_not_found"


class TestSubmitVerification:
    """The verification upsert."""

    @pytest.fixture(autouse=True)
    def _setup(self, organizations_service):
        self.service = organizations_service
        self.org = organizations_service.create_organization(OWNER, "Org Verify Co", "TSK", "JP")

    def test_status_before_submission_is_not_found(self):
        with pytest.raises(OrganizationsApiError) as excinfo:
            self.service.get_verification_status(OWNER, self.org["id"])
        assert excinfo.value.status == 404
        assert _error_code(excinfo) == "org_verification_not_found"

    def test_first_submission_is_pending(self):
        result = self.service.submit_verification(
            OWNER, self.org["id"], " REG-001 ", "Org Verify Co Legal", ["org/verify/npwp.pdf"]
        )
        assert result["orgId"] == self.org["id"]
        assert result["status"] == "PENDING"
        assert result["reasonCodes"] == []
        assert result["lastCheckedAt"] is not None

        stored = self.service.repository.get_verification(self.org["id"])
        assert stored.registration_number == "REG-001"
        assert stored.supporting_object_keys == ["org/verify/npwp.pdf"]

    def test_resubmission_overwrites_and_resets(self):
        first = self.service.submit_verification(OWNER, self.org["id"], "REG-001", "Legal One", ["a.pdf"])
        self.service.admin_update_verification(self.org["id"], "MISMATCH", ["NAME_MISMATCH"])

        second = self.service.submit_verification(OWNER, self.org["id"], "REG-002", "Legal Two", ["b.pdf"])

        assert second["id"] == first["id"]
        assert second["status"] == "PENDING"
        assert second["reasonCodes"] == []
        stored = self.service.repository.get_verification(self.org["id"])
        assert stored.registration_number == "REG-002"
        assert stored.legal_name == "Legal Two"
        assert stored.supporting_object_keys == ["b.pdf"]
        assert second["lastCheckedAt"] >= first["lastCheckedAt"]

        status = self.service.get_verification_status(OWNER, self.org["id"])
        assert status == second

    def test_missing_object_keys_default_to_empty(self):
        self.service.submit_verification(OWNER, self.org["id"], "REG-001", "Legal One")
        assert self.service.repository.get_verification(self.org["id"]).supporting_object_keys == []

    def test_missing_registration_number(self):
        with pytest.raises(OrganizationsApiError) as excinfo:
            self.service.submit_verification(OWNER, self.org["id"], None, "Legal One")
        assert _error_code(excinfo) == "invalid_registration_number"

    def test_registration_number_too_long(self):
        with pytest.raises(OrganizationsApiError) as excinfo:
            self.service.submit_verification(OWNER, self.org["id"], "R" * 129, "Legal One")
        assert _error_code(excinfo) == "invalid_registration_number"

    def test_legal_name_too_short(self):
        with pytest.raises(OrganizationsApiError) as excinfo:
            self.service.submit_verification(OWNER, self.org["id"], "REG-1", "L")
        assert _error_code(excinfo) == "invalid_legal_name"

    @pytest.mark.parametrize("key", ["../secret", "/etc/passwd", "docs/../../x", "", "   ", "k" * 1025])
    def test_rejects_unsafe_object_keys(self, key):
        with pytest.raises(OrganizationsApiError) as excinfo:
            self.service.submit_verification(OWNER, self.org["id"], "REG-1", "Legal One", ["ok.pdf", key])
        assert _error_code(excinfo) == "invalid_supporting_object_key"
        assert self.service.repository.get_verification(self.org["id"]) is None

    def test_rejects_too_many_object_keys(self):
        keys = [f"org/doc-{index}.pdf" for index in range(21)]
        with pytest.raises(OrganizationsApiError) as excinfo:
            self.service.submit_verification(OWNER, self.org["id"], "REG-1", "Legal One", keys)
        assert _error_code(excinfo) == "invalid_supporting_object_keys"

    def test_rejects_non_list_object_keys(self):
        with pytest.raises(OrganizationsApiError) as excinfo:
            self.service.submit_verification(OWNER, self.org["id"], "REG-1", "Legal One", "a.pdf")
        assert _error_code(excinfo) == "invalid_supporting_object_keys"

    def test_failed_resubmission_keeps_previous_record(self):
        self.service.submit_verification(OWNER, self.org["id"], "REG-001", "Legal One")
        with pytest.raises(OrganizationsApiError):
            self.service.submit_verification(OWNER, self.org["id"], "REG-002", "Legal Two", ["/abs"])
        assert self.service.repository.get_verification(self.org["id"]).registration_number == "REG-001"


class TestAdminOperations:
    """Review queue listing and decision recording."""

    @pytest.fixture(autouse=True)
    def _setup(self, organizations_service):
        self.service = organizations_service
        self.tsk = organizations_service.create_organization(OWNER, "Tsk Co", "TSK", "JP")
        self.lpk = organizations_service.create_organization(OWNER, "Lpk Co", "LPK", "ID")
        self.employer = organizations_service.create_organization(OTHER, "Employer Co", "EMPLOYER", "JP")
        organizations_service.submit_verification(OWNER, self.tsk["id"], "REG-TSK", "Tsk Legal")
        organizations_service.submit_verification(OTHER, self.employer["id"], "REG-EMP", "Employer Legal")

    def test_lists_all_in_creation_order(self):
        page = self.service.list_organizations_for_admin()
        ids = [item["organization"]["id"] for item in page["items"]]
        assert ids == [self.tsk["id"], self.lpk["id"], self.employer["id"]]
        assert page["pageInfo"] == {"cursor": "0", "nextCursor": None, "limit": 20, "total": 3}
        assert page["items"][1]["verification"] is None
        assert page["items"][2]["ownerUserId"] == OTHER

    def test_paginates(self):
        first = self.service.list_organizations_for_admin(limit=2)
        assert len(first["items"]) == 2
        assert first["pageInfo"]["nextCursor"] == "2"

        second = self.service.list_organizations_for_admin(cursor=first["pageInfo"]["nextCursor"], limit="2")
        assert [item["organization"]["id"] for item in second["items"]] == [self.employer["id"]]
        assert second["pageInfo"]["nextCursor"] is None

    def test_filters_by_type_and_status(self):
        by_type = self.service.list_organizations_for_admin(org_type="lpk")
        assert [item["organization"]["id"] for item in by_type["items"]] == [self.lpk["id"]]

        self.service.admin_update_verification(self.employer["id"], "verified")
        by_status = self.service.list_organizations_for_admin(verification_status="VERIFIED")
        assert [item["organization"]["id"] for item in by_status["items"]] == [self.employer["id"]]

        pending = self.service.list_organizations_for_admin(verification_status="PENDING")
        assert [item["organization"]["id"] for item in pending["items"]] == [self.tsk["id"]]

    @pytest.mark.parametrize(
        "kwargs, code",
        [
            ({"limit": 0}, "invalid_limit"),
            ({"limit": 101}, "invalid_limit"),
            ({"limit": "ten"}, "invalid_limit"),
            ({"cursor": -1}, "invalid_cursor"),
            ({"org_type": "AGENCY"}, "invalid_org_type"),
            ({"verification_status": "DONE"}, "invalid_verification_status"),
        ],
    )
    def test_rejects_bad_list_parameters(self, kwargs, code):
        with pytest.raises(OrganizationsApiError) as excinfo:
            self.service.list_organizations_for_admin(**kwargs)
        assert _error_code(excinfo) == code

    def test_decision_keeps_submitted_content(self):
        result = self.service.admin_update_verification(self.tsk["id"], "mismatch", [" NAME_MISMATCH "])
        assert result["status"] == "MISMATCH"
        assert result["reasonCodes"] == ["NAME_MISMATCH"]
        stored = self.service.repository.get_verification(self.tsk["id"])
        assert stored.registration_number == "REG-TSK"
        assert stored.legal_name == "Tsk Legal"

    def test_decision_requires_existing_verification(self):
        with pytest.raises(OrganizationsApiError) as excinfo:
            self.service.admin_update_verification(self.lpk["id"], "VERIFIED")
        assert _error_code(excinfo) == "org_verification_not_found"

        with pytest.raises(OrganizationsApiError) as excinfo:
            self.service.admin_update_verification("missing-org", "VERIFIED")
        assert _error_code(excinfo) == "org_not_found"

    def test_decision_rejects_bad_reason_codes(self):
        with pytest.raises(OrganizationsApiError) as excinfo:
            self.service.admin_update_verification(self.tsk["id"], "REJECTED", [""])
        assert _error_code(excinfo) == "invalid_reason_code"

        with pytest.raises(OrganizationsApiError) as excinfo:
            self.service.admin_update_verification(self.tsk["id"], "REJECTED", ["X"] * 21)
        assert _error_code(excinfo) == "invalid_reason_codes"


class TestAdminOwners:
    """Admin listing enriched with owner details from the identity store."""

    def test_owner_details_from_identity_store(self):
        store = InMemoryIdentityStore()
        owner = store.create_user("Sato Kenji", "kenji@example.jp")
        service = OrganizationsService(identity_store=store)
        known = service.create_organization(owner.id, "Tsk Co", "TSK", "JP")
        service.create_organization("someone-unknown", "Lpk Co", "LPK", "ID")

        page = asyncio.run(service.list_organizations_with_owners())

        first, second = page["items"]
        assert first["organization"]["id"] == known["id"]
        assert first["ownerUserId"] == owner.id
        assert first["owner"] == {"id": owner.id, "fullName": "Sato Kenji", "email": "kenji@example.jp"}
        assert second["owner"] is None
        assert page["pageInfo"]["total"] == 2

    def test_without_identity_store_owner_is_none(self, organizations_service):
        organizations_service.create_organization(OWNER, "Tsk Co", "TSK", "JP")
        page = asyncio.run(organizations_service.list_organizations_with_owners(limit="1"))
        assert page["items"][0]["owner"] is None
        assert page["pageInfo"]["limit"] == 1

    def test_filters_are_validated(self, organizations_service):
        with pytest.raises(OrganizationsApiError) as excinfo:
            asyncio.run(organizations_service.list_organizations_with_owners(limit="2.5"))
        assert excinfo.value.code == "invalid_limit"
