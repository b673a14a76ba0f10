"""
Unit Tests for hr_mobile.frappe.client.

Tests the transport wrapper, envelope handling and the fallback runner.
"""

import logging

import httpx
import pytest

from hr_mobile.frappe import FrappeClient, FrappeConfigurationError, FrappeError, run_fallbacks
from hr_mobile.frappe.client import extract_error_message

from .conftest import FakeERP, frappe_data, frappe_error, frappe_message


class TestExtractErrorMessage:
    """Tests for extract_error_message()."""

    def test_key_priority(self):
        body = {"exception": "frappe.exceptions.PermissionError", "exc_type": "PermissionError"}

        assert extract_error_message(body, "x") == "frappe.exceptions.PermissionError"

    def test_message_first(self):
        assert extract_error_message({"message": "Nope", "exc_type": "E"}, "x") == "Nope"

    def test_server_messages(self):
        body = {"_server_messages": '["Not permitted"]'}

        assert extract_error_message(body, "x") == '["Not permitted"]'

    def test_default(self):
        assert extract_error_message(None, "HTTP 500") == "HTTP 500"
        assert extract_error_message({}, "HTTP 500") == "HTTP 500"

    def test_plain_text(self):
        assert extract_error_message("  Bad Gateway  ", "x") == "Bad Gateway"


class TestFrappeClient:
    """Tests for FrappeClient requests."""

    async def test_auth_and_accept_headers(self, client, erp):
        erp.resource("GET", "Employee", frappe_data({"name": "HR-EMP-1"}), name="HR-EMP-1")

        doc = await client.get_doc("Employee", "HR-EMP-1")

        request = erp.requests[0]
        assert doc == {"name": "HR-EMP-1"}
        assert request.headers["Authorization"] == "token key123:secret456"
        assert request.headers["Accept"] == "application/json"

    async def test_unconfigured_fails_before_io(self, unconfigured_settings):
        erp = FakeERP()
        client = FrappeClient(unconfigured_settings, transport=httpx.MockTransport(erp))

        with pytest.raises(FrappeConfigurationError):
            await client.get_list("Employee")
        assert erp.requests == []

    async def test_get_list_params(self, client, erp):
        erp.resource("GET", "Leave Allocation", frappe_data([{"name": "LA-1"}]))

        rows = await client.get_list(
            "Leave Allocation",
            filters=[["employee", "=", "E1"]],
            fields=["name"],
            order_by="creation desc",
            limit=20,
            start=40,
        )

        params = FakeERP.params(erp.requests[0])
        assert rows == [{"name": "LA-1"}]
        assert params == {
            "filters": [["employee", "=", "E1"]],
            "fields": ["name"],
            "order_by": "creation desc",
            "limit_page_length": "20",
            "limit_start": "40",
        }

    async def test_get_list_without_data_is_empty(self, client, erp):
        erp.resource("GET", "Lead", httpx.Response(200, json={"data": None}))

        assert await client.get_list("Lead") == []

    async def test_non_2xx_raises_with_details(self, client, erp):
        erp.resource(
            "GET", "Employee", frappe_error(403, "PermissionError", message="Not permitted"),
            name="X",
        )

        with pytest.raises(FrappeError) as exc_info:
            await client.get_doc("Employee", "X")

        error = exc_info.value
        assert error.status_code == 403
        assert error.message == "Not permitted"
        assert error.details["exc_type"] == "PermissionError"
        assert str(error) == "Not permitted (HTTP 403)"

    async def test_transport_error_raises(self, settings):
        def fail(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = FrappeClient(settings, transport=httpx.MockTransport(fail))

        with pytest.raises(FrappeError) as exc_info:
            await client.get_list("Employee")
        assert exc_info.value.status_code is None

    async def test_method_get_list_passes_doctype(self, client, erp):
        erp.method("GET", "frappe.client.get_list", frappe_message([{"name": "A"}]))

        rows = await client.method_get_list("Leave Type", fields=["name"], limit=0)

        params = FakeERP.params(erp.requests[0])
        assert rows == [{"name": "A"}]
        assert params["doctype"] == "Leave Type"
        assert params["limit_page_length"] == "0"

    async def test_method_insert_wraps_doc(self, client, erp):
        erp.method("POST", "frappe.client.insert", frappe_message({"name": "EXP-1"}))

        doc = await client.method_insert("Expense Claim", {"employee": "E1"})

        assert doc == {"name": "EXP-1"}
        assert FakeERP.body(erp.requests[0]) == {
            "doc": {"doctype": "Expense Claim", "employee": "E1"}
        }

    async def test_update_and_delete(self, client, erp):
        erp.resource("PUT", "Lead", frappe_data({"name": "L1", "status": "Open"}), name="L1")
        erp.resource("DELETE", "Lead", httpx.Response(202, json={"message": "ok"}), name="L1")

        updated = await client.update("Lead", "L1", {"status": "Open"})
        deleted = await client.delete("Lead", "L1")

        assert updated["status"] == "Open"
        assert deleted is True

    async def test_upload_file(self, client, erp):
        erp.method("POST", "upload_file", frappe_message({"file_url": "/files/r.png"}))

        url = await client.upload_file("r.png", b"png", "image/png")

        request = erp.requests[0]
        assert url == "/files/r.png"
        assert b'name="is_private"' in request.content
        assert b"Home/Attachments" in request.content

    def test_resource_path_encodes_names(self, client):
        path = client.resource_path("Expense Claim", "HR-EXP/2024")

        assert path == "https://erp.test/api/resource/Expense%20Claim/HR-EXP%2F2024"


class TestRunFallbacks:
    """Tests for run_fallbacks()."""

    async def test_first_success_stops_chain(self):
        calls = []

        async def first():
            calls.append("first")
            return ["ok"]

        async def second():
            calls.append("second")
            return ["other"]

        result = await run_fallbacks("Op", [("a", first), ("b", second)])

        assert result == ["ok"]
        assert calls == ["first"]

    async def test_error_moves_to_next_attempt(self, caplog):
        async def broken():
            raise FrappeError("boom", status_code=500, details={"exc_type": "E"})

        async def works():
            return {"name": "X"}

        with caplog.at_level(logging.WARNING):
            result = await run_fallbacks("Op", [("a", broken), ("b", works)])

        assert result == {"name": "X"}
        assert any(r.levelno == logging.WARNING and "attempt 1" in r.message for r in caplog.records)

    async def test_none_counts_as_miss(self):
        async def empty():
            return None

        async def works():
            return 3

        assert await run_fallbacks("Op", [("a", empty), ("b", works)]) == 3

    async def test_last_error_raised(self):
        async def fail_one():
            raise FrappeError("first")

        async def fail_two():
            raise FrappeError("second")

        with pytest.raises(FrappeError, match="second"):
            await run_fallbacks("Op", [("a", fail_one), ("b", fail_two)])

    async def test_all_missing_returns_none(self):
        async def empty():
            return None

        assert await run_fallbacks("Op", [("a", empty), ("b", empty)]) is None

    async def test_other_exceptions_propagate(self):
        async def bug():
            raise KeyError("x")

        async def never():
            return 1

        with pytest.raises(KeyError):
            await run_fallbacks("Op", [("a", bug), ("b", never)])
