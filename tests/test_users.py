"""
Unit Tests for hr_mobile.services.users.
"""

import httpx
import pytest

from hr_mobile.frappe import FrappeClient, FrappeConfigurationError
from hr_mobile.services import UserService

from .conftest import FakeERP, frappe_data, frappe_error


class TestGetUserByEmail:
    async def test_direct_get(self, client, erp):
        erp.resource("GET", "User", frappe_data({"name": "asha@corp.test"}), name="asha@corp.test")

        user = await UserService(client).get_user_by_email(" asha@corp.test ")

        assert user == {"name": "asha@corp.test"}

    async def test_list_by_email_fallback(self, client, erp):
        def by_filter(request):
            filters = FakeERP.params(request)["filters"]
            if filters[0][0] == "email":
                return frappe_data([{"name": "U-1", "email": "asha@corp.test"}])
            return frappe_data([])

        erp.resource("GET", "User", frappe_error(403), name="asha@corp.test")
        erp.resource("GET", "User", by_filter)

        user = await UserService(client).get_user_by_email("asha@corp.test")

        assert user["name"] == "U-1"
        assert len(erp.requests) == 3

    async def test_not_found(self, client, erp):
        assert await UserService(client).get_user_by_email("ghost@corp.test") is None

    async def test_unconfigured_raises(self, unconfigured_settings):
        client = FrappeClient(unconfigured_settings, transport=httpx.MockTransport(FakeERP()))

        with pytest.raises(FrappeConfigurationError):
            await UserService(client).get_user_by_email("asha@corp.test")

    async def test_update_user_default(self, client, erp):
        assert await UserService(client).update_user("asha@corp.test", {"enabled": 1}) is None


class TestEmployeeByEmail:
    """Lookup order: user_id, company_email, personal_email."""

    async def test_lookup_order(self, client, erp):
        seen = []

        def by_filter(request):
            field = FakeERP.params(request)["filters"][0][0]
            seen.append(field)
            if field == "personal_email":
                return frappe_data([{"name": "HR-EMP-3"}])
            return frappe_data([])

        erp.resource("GET", "Employee", by_filter)

        employee_id = await UserService(client).get_employee_id_by_email("a@home.test")

        assert employee_id == "HR-EMP-3"
        assert seen == ["user_id", "company_email", "personal_email"]

    async def test_none_when_missing(self, client, erp):
        erp.resource("GET", "Employee", frappe_data([]))

        assert await UserService(client).get_employee_by_email("a@home.test") is None
