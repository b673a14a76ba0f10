"""
Unit Tests for hr_mobile.services.profile.
"""

from hr_mobile.services import ProfileService

from .conftest import FakeERP, frappe_data, frappe_error, frappe_message

EMPLOYEE = {
    "name": "HR-EMP-1",
    "full_name": "Asha Rao",
    "company_email": "asha@corp.test",
    "image": "/files/asha.png",
    "expense_approver": "boss@corp.test",
    "reports_to": "HR-EMP-0",
}


class TestFetchEmployeeProfile:
    """Tests for ProfileService.fetch_employee_profile()."""

    async def test_resource_get(self, client, erp):
        erp.resource("GET", "Employee", frappe_data(EMPLOYEE), name="HR-EMP-1")

        profile = await ProfileService(client).fetch_employee_profile("HR-EMP-1")

        assert profile.name == "Asha Rao"
        assert profile.image == "https://erp.test/files/asha.png"
        assert len(erp.requests) == 1

    async def test_falls_back_to_list(self, client, erp):
        erp.resource("GET", "Employee", frappe_error(403, "PermissionError"), name="HR-EMP-1")
        erp.resource("GET", "Employee", frappe_data([EMPLOYEE]))

        profile = await ProfileService(client).fetch_employee_profile("HR-EMP-1")

        list_request = erp.requests[1]
        assert profile.email == "asha@corp.test"
        assert FakeERP.params(list_request)["filters"] == [["name", "=", "HR-EMP-1"]]
        assert FakeERP.params(list_request)["limit_page_length"] == "1"

    async def test_empty_list_falls_back_to_method(self, client, erp):
        erp.resource("GET", "Employee", frappe_error(500), name="HR-EMP-1")
        erp.resource("GET", "Employee", frappe_data([]))
        erp.method("GET", "frappe.client.get", frappe_message(EMPLOYEE))

        profile = await ProfileService(client).fetch_employee_profile("HR-EMP-1")

        assert profile.employee_id == "HR-EMP-1"
        assert erp.paths()[-1] == ("GET", "/api/method/frappe.client.get")
        assert FakeERP.params(erp.requests[-1]) == {"doctype": "Employee", "name": "HR-EMP-1"}

    async def test_all_fail_returns_none(self, client, erp):
        erp.resource("GET", "Employee", frappe_error(500), name="HR-EMP-1")
        erp.resource("GET", "Employee", frappe_error(500))
        erp.method("GET", "frappe.client.get", frappe_error(500))

        profile = await ProfileService(client).fetch_employee_profile("HR-EMP-1")

        assert profile is None
        assert len(erp.requests) == 3

    async def test_blank_id_skips_io(self, client, erp):
        assert await ProfileService(client).fetch_employee_profile("  ") is None
        assert erp.requests == []


class TestGetEmployeeApprover:
    async def test_expense_approver_first(self, client, erp):
        erp.resource("GET", "Employee", frappe_data(EMPLOYEE), name="HR-EMP-1")

        assert await ProfileService(client).get_employee_approver("HR-EMP-1") == "boss@corp.test"

    async def test_reports_to_fallback(self, client, erp):
        erp.resource(
            "GET", "Employee", frappe_data({"name": "HR-EMP-1", "reports_to": "HR-EMP-0"}),
            name="HR-EMP-1",
        )

        assert await ProfileService(client).get_employee_approver("HR-EMP-1") == "HR-EMP-0"

    async def test_error_returns_none(self, client, erp):
        assert await ProfileService(client).get_employee_approver("HR-EMP-404") is None
