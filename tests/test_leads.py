"""
Unit Tests for hr_mobile.services.leads and timesheets.
"""

import pytest

from hr_mobile.frappe import FrappeError, Lead
from hr_mobile.services import LeadService, TimesheetService, to_list_item
from hr_mobile.services.leads import build_lead_filters

from .conftest import FakeERP, frappe_data, frappe_error


class TestBuildLeadFilters:
    def test_email_search(self):
        assert build_lead_filters("asha@corp") == [["email_id", "like", "%asha@corp%"]]

    def test_phone_search(self):
        assert build_lead_filters("98450") == [["mobile_no", "like", "%98450%"]]

    def test_name_search_with_status_and_source(self):
        filters = build_lead_filters("Acme", status="Open", source="Website")

        assert filters == [
            ["status", "=", "Open"],
            ["source", "=", "Website"],
            ["lead_name", "like", "%Acme%"],
        ]

    def test_empty(self):
        assert build_lead_filters() == []


class TestListLeads:
    """Tests for LeadService.list_leads() and list_all_leads()."""

    async def test_paging_params(self, client, erp):
        erp.resource("GET", "Lead", frappe_data([{"name": "L-1"}, {"lead_name": "no name"}]))

        leads = await LeadService(client).list_leads(limit=20, page=3)

        params = FakeERP.params(erp.requests[0])
        assert [lead.name for lead in leads] == ["L-1"]
        assert params["limit_page_length"] == "20"
        assert params["limit_start"] == "40"
        assert params["order_by"] == "modified desc"

    async def test_limit_clamped(self, client, erp):
        erp.resource("GET", "Lead", frappe_data([]))
        service = LeadService(client)

        await service.list_leads(limit=1000, page=0)
        await service.list_leads(limit=0)

        first, second = (FakeERP.params(r) for r in erp.requests)
        assert first["limit_page_length"] == "200"
        assert "limit_start" not in first
        assert second["limit_page_length"] == "1"

    async def test_failure_returns_empty(self, client, erp):
        erp.resource("GET", "Lead", frappe_error(500))

        assert await LeadService(client).list_leads() == []

    async def test_list_all_stops_on_short_page(self, client, erp):
        erp.resource(
            "GET",
            "Lead",
            frappe_data([{"name": "L-1"}, {"name": "L-2"}]),
            frappe_data([{"name": "L-3"}]),
        )

        leads = await LeadService(client).list_all_leads(page_size=2, status="Open")

        assert [lead.name for lead in leads] == ["L-1", "L-2", "L-3"]
        assert len(erp.requests) == 2
        assert FakeERP.params(erp.requests[1])["filters"] == [["status", "=", "Open"]]

    async def test_list_all_respects_cap(self, client, erp):
        erp.resource("GET", "Lead", frappe_data([{"name": "L"}, {"name": "L"}]))

        leads = await LeadService(client).list_all_leads(page_size=2, hard_cap=4)

        assert len(leads) == 4
        assert len(erp.requests) == 2


class TestLeadDocuments:
    async def test_get_lead(self, client, erp):
        erp.resource("GET", "Lead", frappe_data({"name": "L-1", "lead_name": "Acme"}), name="L-1")

        lead = await LeadService(client).get_lead("L-1")

        assert lead.lead_name == "Acme"

    async def test_get_missing_lead(self, client, erp):
        service = LeadService(client)

        assert await service.get_lead("L-404") is None
        assert await service.get_lead(" ") is None

    async def test_change_status(self, client, erp):
        erp.resource("PUT", "Lead", frappe_data({"status": "Converted"}), name="L-1")

        lead = await LeadService(client).change_lead_status("L-1", "Converted")

        assert lead.name == "L-1"
        assert lead.status == "Converted"
        assert FakeERP.body(erp.requests[0]) == {"status": "Converted"}

    async def test_update_failure(self, client, erp):
        erp.resource("PUT", "Lead", frappe_error(417), name="L-1")

        assert await LeadService(client).update_lead("L-1", {"status": "Open"}) is None

    async def test_create_lead(self, client, erp):
        erp.resource("POST", "Lead", frappe_data({"name": "L-9", "lead_name": "Acme"}))

        lead = await LeadService(client).create_lead({"lead_name": "Acme"})

        assert lead.name == "L-9"

    async def test_delete_lead(self, client, erp):
        erp.resource("DELETE", "Lead", frappe_data("ok"), name="L-1")
        service = LeadService(client)

        assert await service.delete_lead("L-1") is True
        assert await service.delete_lead("L-2") is False


class TestToListItem:
    def test_prefers_company_name(self):
        item = to_list_item(
            Lead(name="L-1", lead_name="Ravi", company_name="Acme", status="Open", source="Web")
        )

        assert item.id == "L-1"
        assert item.title == "Acme"
        assert item.subtitle == "Ravi"
        assert item.status == "Open"
        assert item.value == "Web"

    def test_falls_back_to_name(self):
        item = to_list_item(Lead(name="L-2"))

        assert item.title == "L-2"
        assert item.subtitle == ""


class TestTimesheets:
    """Timesheet operations propagate ERP errors."""

    async def test_get_timesheets(self, client, erp):
        erp.resource("GET", "Timesheet", frappe_data([{"name": "TS-1"}]))

        rows = await TimesheetService(client).get_timesheets("E1")

        params = FakeERP.params(erp.requests[0])
        assert rows == [{"name": "TS-1"}]
        assert params["filters"] == [["employee", "=", "E1"]]
        assert params["order_by"] == "start_date desc"

    async def test_create_timesheet(self, client, erp):
        erp.resource("POST", "Timesheet", frappe_data({"name": "TS-2"}))

        doc = await TimesheetService(client).create_timesheet({"employee": "E1"})

        assert doc["name"] == "TS-2"

    async def test_update_raises(self, client, erp):
        erp.resource("PUT", "Timesheet", frappe_error(417), name="TS-1")

        with pytest.raises(FrappeError):
            await TimesheetService(client).update_timesheet("TS-1", {"note": "x"})
