"""
Tests for the organization routes.
"""

OWNER = "user-owner"
OTHER = "user-other"


def _create_org(client, headers, **overrides):
    body = {"name": "Org Verify Co", "orgType": "TSK", "countryCode": "jp"}
    body.update(overrides)
    return client.post("/organizations", json=body, headers=headers)


class TestCreateOrganization:

    def test_create_returns_201(self, client, auth_headers):
        response = _create_org(client, auth_headers(OWNER))
        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Org Verify Co"
        assert data["orgType"] == "TSK"
        assert data["countryCode"] == "JP"
        assert data["id"]

    def test_validation_error_shape(self, client, auth_headers):
        response = _create_org(client, auth_headers(OWNER), countryCode="USA")
        assert response.status_code == 400
        assert response.json() == {
            "error": {"code": "invalid_country_code", "message": "countryCode must be 2 uppercase letters"}
        }

    def test_non_object_body(self, client, auth_headers):
        response = client.post("/organizations", json=["not", "an", "object"], headers=auth_headers(OWNER))
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid_request"

    def test_requires_token(self, client):
        response = client.post("/organizations", json={"name": "Org", "orgType": "TSK", "countryCode": "JP"})
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "missing_access_token"

    def test_rejects_bad_token(self, client):
        response = client.post(
            "/organizations",
            json={"name": "Org", "orgType": "TSK", "countryCode": "JP"},
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "invalid_access_token"

    def test_versioned_prefix(self, client, auth_headers):
        response = client.post(
            "/v1/organizations",
            json={"name": "Org Verify Co", "orgType": "lpk", "countryCode": "ID"},
            headers=auth_headers(OWNER),
        )
        assert response.status_code == 201
        assert response.json()["orgType"] == "LPK"


class TestOrganizationVerification:

    def test_submit_and_read_status(self, client, auth_headers):
        headers = auth_headers(OWNER)
        org_id = _create_org(client, headers).json()["id"]

        missing = client.get(f"/organizations/{org_id}/verification/status", headers=headers)
        assert missing.status_code == 404
        assert missing.json()["error"]["code"] == "org_verification_not_found"

        submitted = client.post(
            f"/organizations/{org_id}/verification",
            json={
                "registrationNumber": "REG-001",
                "legalName": "Org Verify Co Legal",
                "supportingObjectKeys": ["org/verify/npwp.pdf"],
            },
            headers=headers,
        )
        assert submitted.status_code == 202
        body = submitted.json()
        assert body["orgId"] == org_id
        assert body["status"] == "PENDING"
        assert body["reasonCodes"] == []
        assert body["lastCheckedAt"]

        status = client.get(f"/v1/organizations/{org_id}/verification/status", headers=headers)
        assert status.status_code == 200
        assert status.json() == body

    def test_rejects_unsafe_object_key(self, client, auth_headers):
        headers = auth_headers(OWNER)
        org_id = _create_org(client, headers).json()["id"]
        response = client.post(
            f"/organizations/{org_id}/verification",
            json={"registrationNumber": "REG-001", "legalName": "Legal", "supportingObjectKeys": ["../secret"]},
            headers=headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid_supporting_object_key"

    def test_other_owner_sees_not_found(self, client, auth_headers):
        org_id = _create_org(client, auth_headers(OWNER)).json()["id"]

        foreign = client.get(f"/organizations/{org_id}/verification/status", headers=auth_headers(OTHER))
        missing = client.get("/organizations/does-not-exist/verification/status", headers=auth_headers(OWNER))

        assert foreign.status_code == missing.status_code == 404
        assert foreign.json() == missing.json()
