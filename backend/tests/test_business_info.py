import pytest

from app.core.errors import SquareAPIError
from app.services.business_info import BusinessInfoService
from fakes import HAIRCUT, LOCATION_ID


@pytest.fixture
def shop(fake_square):
    fake_square.location = {
        "id": LOCATION_ID,
        "name": "Downtown Barbers",
        "timezone": "America/New_York",
        "phone_number": "+1 571-527-6016",
        "address": {"address_line_1": "1 Main St", "locality": "Fairfax"},
        "business_hours": {
            "periods": [{"day_of_week": "MON", "start_local_time": "09:00", "end_local_time": "18:00"}]
        },
    }
    fake_square.catalog_items = [
        {
            "type": "ITEM",
            "id": "ITEM1",
            "item_data": {
                "name": "Regular Haircut",
                "description": "Classic cut",
                "variations": [
                    {
                        "id": HAIRCUT,
                        "item_variation_data": {
                            "name": "Regular",
                            "price_money": {"amount": 3500, "currency": "USD"},
                            "service_duration": 1800000,
                        },
                    }
                ],
            },
        }
    ]
    fake_square.team_members = [
        {"id": "TM1", "given_name": "Sam", "family_name": "Lee", "is_owner": True}
    ]
    return fake_square


class TestSections:
    @pytest.mark.asyncio
    async def test_hours(self, shop, business_info):
        result = await business_info.general_inquiry("hours")

        assert result["success"] is True
        assert result["locationName"] == "Downtown Barbers"
        assert result["businessHours"]["periods"][0]["day_of_week"] == "MON"
        assert "services" not in result
        assert shop.call_names() == ["retrieve_location"]

    @pytest.mark.asyncio
    async def test_pricing(self, shop, business_info):
        result = await business_info.general_inquiry("pricing")

        [service] = result["services"]
        assert result["servicesCount"] == 1
        assert service["name"] == "Regular Haircut"
        assert service["variations"] == [
            {"id": HAIRCUT, "name": "Regular", "price": "35.00", "currency": "USD", "durationMinutes": 30}
        ]

    @pytest.mark.asyncio
    async def test_barbers(self, shop, business_info):
        result = await business_info.general_inquiry("Barbers")

        assert result["teamMembersCount"] == 1
        assert result["teamMembers"][0]["fullName"] == "Sam Lee"
        assert result["teamMembers"][0]["isOwner"] is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("inquiry_type", [None, "", "parking"])
    async def test_unspecified_or_unknown_returns_everything(self, shop, business_info, inquiry_type):
        result = await business_info.general_inquiry(inquiry_type)

        assert {"businessHours", "services", "teamMembers"} <= result.keys()

    @pytest.mark.asyncio
    async def test_failing_section_does_not_hide_the_rest(self, shop, business_info):
        shop.failures["list_catalog"] = [SquareAPIError("Catalog unavailable", status_code=500)]

        result = await business_info.general_inquiry()

        assert result["success"] is True
        assert result["servicesError"] == "Catalog unavailable"
        assert "services" not in result
        assert result["locationName"] == "Downtown Barbers"
        assert result["teamMembersCount"] == 1


class TestCaching:
    @pytest.mark.asyncio
    async def test_sections_cached_until_ttl_expires(self, shop):
        now = [1000.0]
        service = BusinessInfoService(
            shop,
            location_id=LOCATION_ID,
            timezone_name="America/New_York",
            ttl_seconds=300,
            monotonic=lambda: now[0],
        )

        await service.general_inquiry("hours")
        now[0] += 299
        await service.general_inquiry("location")
        assert shop.call_names().count("retrieve_location") == 1

        now[0] += 2
        await service.general_inquiry("hours")
        assert shop.call_names().count("retrieve_location") == 2

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self, shop, business_info):
        shop.failures["retrieve_location"] = [SquareAPIError("Timeout")]

        first = await business_info.general_inquiry("hours")
        second = await business_info.general_inquiry("hours")

        assert first["businessHoursError"] == "Timeout"
        assert second["locationName"] == "Downtown Barbers"
