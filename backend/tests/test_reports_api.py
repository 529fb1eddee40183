"""End-to-end tests for the report endpoints."""

import uuid

import pytest

from conftest import report_payload


def submit(client, headers, **overrides):
    response = client.post("/api/reports", json=report_payload(**overrides), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["report"]


def my_id(client, headers) -> str:
    return client.get("/users/me", headers=headers).json()["id"]


# =============================================================================
# Submission and retrieval
# =============================================================================

class TestSubmitAndFetch:
    def test_round_trip(self, client, citizen_headers):
        """A submitted report reads back with its owner, seeded history and metadata."""
        response = client.post("/api/reports", json=report_payload(severity="High"), headers=citizen_headers)

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Report submitted successfully"

        created = body["report"]
        assert created["status"] == "Submitted"
        assert created["severity"] == "High"
        assert created["user"]["email"] == "asha@example.com"
        assert created["location"] == {"lat": 12.9716, "lng": 77.5946, "address": "MG Road, Bengaluru"}
        assert created["statusHistory"] == [
            {
                "status": "Submitted",
                "timestamp": created["statusHistory"][0]["timestamp"],
                "by": "system",
                "comment": "Report submitted by user",
            }
        ]
        assert created["comments"] == []
        assert created["department"] is None

        fetched = client.get(f"/api/reports/{created['id']}", headers=citizen_headers).json()["report"]

        assert fetched["id"] == created["id"]
        assert fetched["description"] == created["description"]
        assert fetched["canEdit"] is True
        assert fetched["isOwnReport"] is True
        assert fetched["timeSinceSubmission"] >= 0

    def test_severity_defaults_to_medium(self, client, citizen_headers):
        assert submit(client, citizen_headers)["severity"] == "Medium"

    def test_invalid_category_lists_valid_values(self, client, citizen_headers):
        response = client.post("/api/reports", json=report_payload(category="Potholes"), headers=citizen_headers)

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["message"] == "Invalid category"
        assert len(error["valid_values"]) == 9

    @pytest.mark.parametrize("lat,lng,accepted", [(90, 180, True), (-90, -180, True), (91, 0, False), (0, -180.01, False)])
    def test_coordinate_boundaries(self, client, citizen_headers, lat, lng, accepted):
        location = {"lat": lat, "lng": lng, "address": "Somewhere"}
        response = client.post("/api/reports", json=report_payload(location=location), headers=citizen_headers)

        assert response.status_code == (201 if accepted else 400)

    def test_missing_fields_rejected(self, client, citizen_headers):
        payload = report_payload()
        del payload["images"]

        response = client.post("/api/reports", json=payload, headers=citizen_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_unknown_fields_rejected(self, client, citizen_headers):
        response = client.post(
            "/api/reports",
            json=report_payload(status="Resolved"),
            headers=citizen_headers,
        )

        assert response.status_code == 400

    def test_nothing_written_on_validation_failure(self, client, citizen_headers):
        client.post("/api/reports", json=report_payload(images=[]), headers=citizen_headers)

        listing = client.get("/api/reports", headers=citizen_headers).json()
        assert listing["pagination"]["totalReports"] == 0


# =============================================================================
# Authorization
# =============================================================================

class TestOwnership:
    def test_other_citizen_gets_403(self, client, citizen_headers, other_citizen_headers):
        report = submit(client, citizen_headers)

        response = client.get(f"/api/reports/{report['id']}", headers=other_citizen_headers)

        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Access denied. You can only view your own reports."

    def test_admin_can_view_any_report(self, client, citizen_headers, admin_headers):
        report = submit(client, citizen_headers)

        response = client.get(f"/api/reports/{report['id']}", headers=admin_headers)

        assert response.status_code == 200
        fetched = response.json()["report"]
        assert fetched["canEdit"] is True
        assert fetched["isOwnReport"] is False

    def test_missing_token_is_401(self, client):
        response = client.get("/api/reports")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_bad_token_is_401(self, client):
        response = client.get("/api/reports", headers={"Authorization": "Bearer not-a-real-token"})

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid token"

    def test_malformed_id_is_400_unknown_id_is_404(self, client, citizen_headers):
        malformed = client.get("/api/reports/not-a-uuid", headers=citizen_headers)
        missing = client.get(f"/api/reports/{uuid.uuid4()}", headers=citizen_headers)

        assert malformed.status_code == 400
        assert malformed.json()["error"]["message"] == "Invalid report ID format"
        assert missing.status_code == 404


# =============================================================================
# Listing
# =============================================================================

class TestListing:
    def test_citizens_only_see_their_own(self, client, citizen_headers, other_citizen_headers, admin_headers):
        for _ in range(3):
            submit(client, citizen_headers)
        for _ in range(5):
            submit(client, other_citizen_headers)
        asha_id = my_id(client, citizen_headers)

        mine = client.get("/api/reports", headers=citizen_headers).json()
        assert mine["pagination"]["totalReports"] == 3
        assert {r["user"]["id"] for r in mine["reports"]} == {asha_id}

        # A citizen asking for someone else's reports still gets their own
        snooping = client.get("/api/reports", params={"userId": asha_id}, headers=other_citizen_headers).json()
        assert snooping["pagination"]["totalReports"] == 5
        assert asha_id not in {r["user"]["id"] for r in snooping["reports"]}

        everything = client.get("/api/reports", headers=admin_headers).json()
        assert everything["pagination"]["totalReports"] == 8

        narrowed = client.get("/api/reports", params={"userId": asha_id}, headers=admin_headers).json()
        assert narrowed["pagination"]["totalReports"] == 3
        assert narrowed["filters"]["userId"] == asha_id

    def test_pagination(self, client, citizen_headers):
        for i in range(25):
            submit(client, citizen_headers, description=f"Garbage pile number {i}")

        first = client.get("/api/reports", params={"limit": 10}, headers=citizen_headers).json()
        last = client.get("/api/reports", params={"limit": 10, "page": 3}, headers=citizen_headers).json()

        assert len(first["reports"]) == 10
        assert first["pagination"] == {
            "currentPage": 1,
            "totalPages": 3,
            "totalReports": 25,
            "hasNext": True,
            "hasPrev": False,
        }
        assert first["reports"][0]["description"] == "Garbage pile number 24"

        assert len(last["reports"]) == 5
        assert last["pagination"]["hasNext"] is False
        assert last["pagination"]["hasPrev"] is True
        assert last["reports"][-1]["description"] == "Garbage pile number 0"

    def test_page_past_the_end_is_empty(self, client, citizen_headers):
        submit(client, citizen_headers)

        body = client.get("/api/reports", params={"page": 5}, headers=citizen_headers).json()

        assert body["reports"] == []
        assert body["pagination"]["totalPages"] == 1
        assert body["pagination"]["hasNext"] is False

    def test_huge_page_number_is_empty(self, client, citizen_headers):
        submit(client, citizen_headers)

        response = client.get("/api/reports", params={"page": 10**19}, headers=citizen_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["reports"] == []
        assert body["pagination"]["totalReports"] == 1
        assert body["pagination"]["hasPrev"] is True

    def test_filters(self, client, citizen_headers):
        submit(client, citizen_headers)
        submit(client, citizen_headers, category="Electricity")

        body = client.get("/api/reports", params={"category": "Electricity"}, headers=citizen_headers).json()

        assert body["pagination"]["totalReports"] == 1
        assert body["reports"][0]["category"] == "Electricity"

    def test_invalid_status_filter_lists_valid_values(self, client, citizen_headers):
        response = client.get("/api/reports", params={"status": "Done"}, headers=citizen_headers)

        assert response.status_code == 400
        assert response.json()["error"]["valid_values"] == [
            "Submitted", "Acknowledged", "In Progress", "Resolved", "Closed",
        ]

    @pytest.mark.parametrize("params", [{"page": 0}, {"limit": 0}, {"limit": 1000}])
    def test_invalid_paging_rejected(self, client, citizen_headers, params):
        response = client.get("/api/reports", params=params, headers=citizen_headers)
        assert response.status_code == 400


# =============================================================================
# Status changes and comments
# =============================================================================

class TestTrails:
    def test_admin_changes_status(self, client, citizen_headers, admin_headers):
        report = submit(client, citizen_headers)
        admin_id = my_id(client, admin_headers)

        response = client.post(
            f"/api/reports/{report['id']}/status",
            json={"status": "In Progress", "comment": "Crew dispatched"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        updated = response.json()["report"]
        assert updated["status"] == "In Progress"
        assert [h["status"] for h in updated["statusHistory"]] == ["Submitted", "In Progress"]
        assert updated["statusHistory"][-1]["by"] == admin_id
        assert updated["statusHistory"][-1]["comment"] == "Crew dispatched"

    def test_citizen_cannot_change_status(self, client, citizen_headers):
        report = submit(client, citizen_headers)

        response = client.post(
            f"/api/reports/{report['id']}/status",
            json={"status": "Resolved"},
            headers=citizen_headers,
        )

        assert response.status_code == 403

    def test_unknown_status_rejected(self, client, citizen_headers, admin_headers):
        report = submit(client, citizen_headers)

        response = client.post(
            f"/api/reports/{report['id']}/status",
            json={"status": "Fixed"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert "valid_values" in response.json()["error"]

    def test_owner_and_admin_comment(self, client, citizen_headers, admin_headers):
        report = submit(client, citizen_headers)

        client.post(f"/api/reports/{report['id']}/comments", json={"text": "Still leaking"}, headers=citizen_headers)
        response = client.post(
            f"/api/reports/{report['id']}/comments",
            json={"text": "Scheduled for Monday"},
            headers=admin_headers,
        )

        assert response.status_code == 201
        comments = response.json()["report"]["comments"]
        assert [c["text"] for c in comments] == ["Still leaking", "Scheduled for Monday"]
        assert comments[0]["by"]["email"] == "asha@example.com"

    def test_stranger_cannot_comment(self, client, citizen_headers, other_citizen_headers):
        report = submit(client, citizen_headers)

        response = client.post(
            f"/api/reports/{report['id']}/comments",
            json={"text": "Not mine"},
            headers=other_citizen_headers,
        )

        assert response.status_code == 403


# =============================================================================
# Categories
# =============================================================================

class TestCategories:
    def test_list_is_public(self, client):
        response = client.get("/api/categories")

        assert response.status_code == 200
        assert len(response.json()["categories"]) == 9

    def test_suggest(self, client):
        response = client.post("/api/categories/suggest", json={"description": "Transformer sparking"})

        assert response.json() == {"category": "Electricity"}
