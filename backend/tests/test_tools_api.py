"""HTTP layer: routing, aliases and error mapping."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from app.core.dependencies import get_service_catalog, get_square_client, get_tool_router
from app.core.errors import BookingRecoveryError, SquareAPIError, ToolArgumentError
from app.main import app
from fakes import HAIRCUT


@pytest.fixture
def client(tool_router, fake_square, catalog):
    app.dependency_overrides[get_tool_router] = lambda: tool_router
    app.dependency_overrides[get_square_client] = lambda: fake_square
    app.dependency_overrides[get_service_catalog] = lambda: catalog
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def failing_router():
    """Swap in a router whose execute raises the configured error."""
    router = AsyncMock()
    app.dependency_overrides[get_tool_router] = lambda: router
    yield router
    app.dependency_overrides.clear()


class TestToolEndpoints:
    def test_tool_under_tools_prefix(self, client):
        response = client.post("/tools/getCurrentDateTime", json={})

        assert response.status_code == 200
        assert response.json()["current"]["date"] == "2026-10-19"

    def test_legacy_path_without_prefix(self, client):
        response = client.post("/getCurrentDateTime")

        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_business_outcome_is_200(self, client, fake_square):
        fake_square.add_booking("2026-10-20T18:00:00Z", [HAIRCUT], booking_id="A")
        fake_square.add_booking("2026-10-20T18:15:00Z", [HAIRCUT], booking_id="B")

        response = client.post(
            "/tools/addServicesToBooking", json={"bookingId": "A", "serviceNames": ["Beard Trim"]}
        )

        assert response.status_code == 200
        assert response.json()["hasConflict"] is True

    def test_missing_arguments_are_400(self, client):
        response = client.post("/tools/createBooking", json={"customerName": "Jane"})

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "Missing required fields: customerPhone, startTime",
        }

    def test_invalid_service_name_is_400(self, client, fake_square):
        fake_square.add_booking("2026-10-20T18:00:00Z", [HAIRCUT], booking_id="A")

        response = client.post(
            "/addServicesToBooking", json={"bookingId": "A", "serviceNames": "Hot Towel"}
        )

        assert response.status_code == 400
        assert "Valid names are" in response.json()["error"]

    def test_malformed_json_is_400(self, client):
        response = client.post(
            "/tools/cancelBooking", content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid JSON in tool arguments"

    def test_non_object_body_is_400(self, client):
        response = client.post("/tools/cancelBooking", json=["A"])

        assert response.status_code == 400


class TestErrorMapping:
    def test_square_rejection_is_500_with_details(self, failing_router):
        errors = [{"code": "NOT_FOUND", "detail": "Booking not found"}]
        failing_router.execute.side_effect = SquareAPIError(
            "Booking not found", status_code=404, errors=errors
        )

        response = TestClient(app).post("/tools/cancelBooking", json={"bookingId": "X"})

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Booking not found", "details": errors}

    def test_unreachable_square_is_502(self, failing_router):
        failing_router.execute.side_effect = SquareAPIError("Square request failed: timeout")

        response = TestClient(app).post("/tools/lookupBooking", json={"customerPhone": "5715276016"})

        assert response.status_code == 502

    def test_argument_error_from_router(self, failing_router):
        failing_router.execute.side_effect = ToolArgumentError("Invalid date/time: soon")

        response = TestClient(app).post("/tools/getAvailability", json={"datetime": "soon"})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid date/time: soon"

    def test_unrecovered_booking_needs_manual_reconciliation(self, failing_router):
        failing_router.execute.side_effect = BookingRecoveryError(
            "Could not add services", booking_id="A", rolled_back=False
        )

        response = TestClient(app).post(
            "/tools/addServicesToBooking", json={"bookingId": "A", "serviceNames": ["Beard Trim"]}
        )

        assert response.status_code == 500
        body = response.json()
        assert body["requiresManualReconciliation"] is True
        assert body["bookingId"] == "A"
        assert body["restoredBookingId"] is None

    def test_restored_booking_is_reported(self, failing_router):
        failing_router.execute.side_effect = BookingRecoveryError(
            "Could not add services", booking_id="A", rolled_back=True, restored_booking_id="BK9"
        )

        response = TestClient(app).post(
            "/tools/addServicesToBooking", json={"bookingId": "A", "serviceNames": ["Beard Trim"]}
        )

        body = response.json()
        assert body["requiresManualReconciliation"] is False
        assert body["restoredBookingId"] == "BK9"


class TestServiceEndpoints:
    def test_health(self, client):
        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert "POST /tools/createBooking" in body["endpoints"]["serverTools"]
        assert body["bookingSources"]["PHONE"] == "Phone Booking (ElevenLabs AI)"
        assert "Regular Haircut" in body["availableServices"]

    def test_tool_definitions(self, client):
        names = [tool["function"]["name"] for tool in client.get("/tools").json()["tools"]]

        assert names == [
            "getCurrentDateTime",
            "getAvailability",
            "createBooking",
            "addServicesToBooking",
            "rescheduleBooking",
            "cancelBooking",
            "lookupBooking",
            "lookupCustomer",
            "generalInquiry",
        ]

    def test_booking_source_analytics(self, client, fake_square):
        yesterday = datetime.now(timezone.utc) - timedelta(days=1)
        stamp = yesterday.strftime("%Y-%m-%dT%H:%M:%SZ")
        fake_square.add_booking(stamp, [HAIRCUT], note="Phone Booking (ElevenLabs AI)")
        fake_square.add_booking(stamp, [HAIRCUT], note="Website Booking")
        fake_square.add_booking(stamp, [HAIRCUT], note=None)
        fake_square.add_booking("2020-01-01T12:00:00Z", [HAIRCUT], note="Manual Booking")

        body = client.get("/analytics/sources").json()

        assert body["totalBookings"] == 3
        assert body["sources"] == {"phone": 1, "website": 1, "inStore": 0, "manual": 0, "unknown": 1}

    def test_root(self, client):
        assert client.get("/").json()["status"] == "running"
