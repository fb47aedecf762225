"""API tests for the command center controller.

The endpoints carry no route dependencies; CommandCenterService guards
each action and the controller maps the result code to an HTTP status.
"""

from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from tests.conftest import make_mock_report

# ---------------------------------------------------------------------------
# GET /api/command-center/reports
# ---------------------------------------------------------------------------


class TestGetReports:
    def test_anonymous_is_401(self, client: TestClient) -> None:
        response = client.get("/api/command-center/reports")

        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "error": "Authentication required",
            "code": "UNAUTHORIZED",
        }

    def test_citizen_is_403(self, client: TestClient, sign_in_as) -> None:
        sign_in_as("citizen")

        response = client.get("/api/command-center/reports")

        assert response.status_code == 403
        assert response.json()["error"] == "One of roles 'volunteer', 'admin' required"

    def test_volunteer_gets_reports(
        self, client: TestClient, sign_in_as, report_repo: MagicMock
    ) -> None:
        sign_in_as("volunteer")
        report_repo.list_all_with_reporter.return_value = [
            (make_mock_report(report_id=2), "Amal", "a@x.y")
        ]

        response = client.get("/api/command-center/reports")

        assert response.status_code == 200
        row = response.json()["data"][0]
        assert row["id"] == 2
        assert row["status"] == "pending"
        assert row["user_name"] == "Amal"


# ---------------------------------------------------------------------------
# GET /api/command-center/inventory
# ---------------------------------------------------------------------------


class TestGetInventory:
    def test_admin_gets_inventory(self, client: TestClient, sign_in_as) -> None:
        sign_in_as("admin")

        response = client.get("/api/command-center/inventory")

        assert response.status_code == 200
        assert response.json()["data"][0]["center_location"] == "Centre Principal"

    def test_load_failure_is_500_with_message(
        self, client: TestClient, sign_in_as, inventory_repo: MagicMock
    ) -> None:
        sign_in_as("admin")
        inventory_repo.list_all.side_effect = RuntimeError("boom")

        response = client.get("/api/command-center/inventory")

        assert response.status_code == 500
        assert response.json()["error"] == "Could not load inventory."


# ---------------------------------------------------------------------------
# POST take-charge / resolve
# ---------------------------------------------------------------------------


class TestTakeCharge:
    def test_pending_report_is_taken(
        self, client: TestClient, sign_in_as, report_repo: MagicMock
    ) -> None:
        sign_in_as("volunteer")

        response = client.post("/api/command-center/reports/10/take-charge")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Report taken in charge!"
        assert body["data"]["status"] == "in_progress"
        report_repo.update_status.assert_awaited_once_with(10, "in_progress")

    def test_non_numeric_id_is_422(self, client: TestClient, sign_in_as) -> None:
        sign_in_as("admin")

        response = client.post("/api/command-center/reports/abc/take-charge")

        assert response.status_code == 422
        assert response.json()["error"] == "Invalid report ID."

    def test_unknown_report_is_404(
        self, client: TestClient, sign_in_as, report_repo: MagicMock
    ) -> None:
        sign_in_as("admin")
        report_repo.get_by_id.return_value = None

        response = client.post("/api/command-center/reports/99/take-charge")

        assert response.status_code == 404
        assert response.json()["error"] == "Report not found."

    def test_citizen_cannot_take_charge(
        self, client: TestClient, sign_in_as, report_repo: MagicMock
    ) -> None:
        sign_in_as("citizen")

        response = client.post("/api/command-center/reports/10/take-charge")

        assert response.status_code == 403
        report_repo.update_status.assert_not_awaited()


class TestResolve:
    def test_in_progress_report_is_resolved(
        self, client: TestClient, sign_in_as, report_repo: MagicMock
    ) -> None:
        sign_in_as("admin")
        report_repo.get_by_id.return_value = make_mock_report(status="in_progress")

        response = client.post("/api/command-center/reports/10/resolve")

        assert response.status_code == 200
        assert response.json()["message"] == "Report marked as resolved!"

    def test_pending_report_cannot_be_resolved(
        self, client: TestClient, sign_in_as
    ) -> None:
        sign_in_as("admin")

        response = client.post("/api/command-center/reports/10/resolve")

        assert response.status_code == 409
        assert response.json()["code"] == "INVALID_TRANSITION"
