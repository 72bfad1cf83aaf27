"""Tool dispatch and argument handling."""

import pytest

from app.core.errors import ToolArgumentError
from fakes import BEARD_TRIM, HAIRCUT, STAFF_ID


class TestDispatch:
    @pytest.mark.asyncio
    async def test_unknown_tool(self, tool_router):
        with pytest.raises(ToolArgumentError, match="Unknown tool"):
            await tool_router.execute("bookTable", {})

    @pytest.mark.asyncio
    async def test_current_date_time(self, tool_router):
        result = await tool_router.execute("getCurrentDateTime", {})

        assert result["success"] is True
        assert result["current"]["date"] == "2026-10-19"

    @pytest.mark.asyncio
    async def test_availability_accepts_datetime_alias(self, fake_square, tool_router):
        fake_square.slot_starts = ["2026-10-20T18:00:00Z"]

        result = await tool_router.execute("getAvailability", {"datetime": "2026-10-20T14:00:00-04:00"})

        assert result["isAvailable"] is True

    @pytest.mark.asyncio
    async def test_extra_arguments_ignored(self, tool_router):
        result = await tool_router.execute("getCurrentDateTime", {"conversation_id": "abc"})

        assert result["success"] is True


class TestCreateBooking:
    ARGS = {
        "customerName": "Jane Doe",
        "customerPhone": "(571) 527-6016",
        "startTime": "2026-10-20T14:00:00-04:00",
    }

    @pytest.mark.asyncio
    async def test_missing_fields_are_named(self, tool_router):
        with pytest.raises(ToolArgumentError) as exc_info:
            await tool_router.execute("createBooking", {"customerName": "Jane Doe"})
        assert str(exc_info.value) == "Missing required fields: customerPhone, startTime"

    @pytest.mark.asyncio
    async def test_requires_a_service(self, tool_router):
        with pytest.raises(ToolArgumentError, match="serviceVariationId"):
            await tool_router.execute("createBooking", self.ARGS)

    @pytest.mark.asyncio
    async def test_new_customer_with_comma_separated_services(self, fake_square, tool_router):
        result = await tool_router.execute(
            "createBooking", {**self.ARGS, "serviceVariationIds": f"{HAIRCUT}, {BEARD_TRIM}"}
        )

        assert result["success"] is True
        assert result["newCustomer"] is True
        assert result["service_count"] == 2
        assert result["duration_minutes"] == 60
        assert result["services"] == ["Regular Haircut", "Beard Trim"]
        assert result["message"] == (
            "Appointment created successfully for Jane Doe. "
            "Total duration: 60 minutes (Regular Haircut, Beard Trim)"
        )
        [call] = fake_square.calls_to("create_booking")
        segments = call["booking"]["appointment_segments"]
        assert {s["team_member_id"] for s in segments} == {STAFF_ID}

    @pytest.mark.asyncio
    async def test_existing_customer_with_single_service(self, fake_square, tool_router):
        fake_square.add_customer("CUST1", "+15715276016")

        result = await tool_router.execute(
            "createBooking", {**self.ARGS, "serviceVariationId": HAIRCUT, "teamMemberId": "TM-2"}
        )

        assert result["newCustomer"] is False
        assert result["booking"]["customerId"] == "CUST1"
        assert result["booking"]["appointmentSegments"][0]["teamMemberId"] == "TM-2"

    @pytest.mark.asyncio
    async def test_service_array(self, tool_router):
        result = await tool_router.execute(
            "createBooking", {**self.ARGS, "serviceVariationIds": [HAIRCUT, BEARD_TRIM]}
        )

        assert result["service_count"] == 2


class TestOtherTools:
    @pytest.mark.asyncio
    async def test_add_services_requires_names(self, tool_router):
        with pytest.raises(ToolArgumentError, match="serviceNames"):
            await tool_router.execute("addServicesToBooking", {"bookingId": "A", "serviceNames": " , "})

    @pytest.mark.asyncio
    async def test_add_services_accepts_comma_string(self, fake_square, tool_router):
        fake_square.add_booking("2026-10-20T18:00:00Z", [HAIRCUT], booking_id="A")

        result = await tool_router.execute(
            "addServicesToBooking", {"bookingId": "A", "serviceNames": "Beard Trim, Ear Waxing"}
        )

        assert result["success"] is True
        assert result["servicesAdded"] == ["Beard Trim", "Ear Waxing"]
        assert result["durationMinutes"] == 70

    @pytest.mark.asyncio
    async def test_reschedule_requires_new_time(self, tool_router):
        with pytest.raises(ToolArgumentError, match="newStartTime"):
            await tool_router.execute("rescheduleBooking", {"bookingId": "A"})

    @pytest.mark.asyncio
    async def test_cancel_requires_booking_id(self, tool_router):
        with pytest.raises(ToolArgumentError, match="bookingId"):
            await tool_router.execute("cancelBooking", {})

    @pytest.mark.asyncio
    async def test_general_inquiry(self, fake_square, tool_router):
        fake_square.location = {"name": "Downtown Barbers"}

        result = await tool_router.execute("generalInquiry", {"inquiryType": "hours"})

        assert result["locationName"] == "Downtown Barbers"


class TestLookups:
    @pytest.mark.asyncio
    async def test_lookup_booking_hides_cancelled(self, fake_square, tool_router):
        fake_square.add_customer("CUST1", "+15715276016")
        fake_square.add_booking("2026-10-25T18:00:00Z", [HAIRCUT])
        fake_square.add_booking("2026-10-26T18:00:00Z", [HAIRCUT], status="CANCELLED_BY_SELLER")

        result = await tool_router.execute("lookupBooking", {"customerPhone": "571-527-6016"})

        assert result["found"] is True
        assert result["activeCount"] == 1
        assert result["totalBookings"] == 1
        assert "cancelledBookings" not in result
        assert result["customer"]["fullName"] == "Jane Doe"

    @pytest.mark.asyncio
    async def test_lookup_booking_unknown_caller(self, tool_router):
        result = await tool_router.execute("lookupBooking", {"customerPhone": "571-527-6016"})

        assert result == {
            "success": True,
            "found": False,
            "message": "No customer found with that phone number",
        }

    @pytest.mark.asyncio
    async def test_lookup_customer(self, fake_square, tool_router):
        fake_square.add_customer("CUST1", "+15715276016")

        found = await tool_router.execute("lookupCustomer", {"customerPhone": "5715276016"})
        missing = await tool_router.execute("lookupCustomer", {"customerPhone": "2025550100"})

        assert found["found"] is True
        assert found["customer"]["id"] == "CUST1"
        assert missing == {"success": True, "found": False}

    @pytest.mark.asyncio
    async def test_lookup_requires_phone(self, tool_router):
        with pytest.raises(ToolArgumentError, match="customerPhone"):
            await tool_router.execute("lookupCustomer", {})
