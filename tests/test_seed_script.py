"""
Unit Tests for scripts/seed_expense_types.py.
"""

import runpy
from pathlib import Path

import pytest

from .conftest import FakeERP, frappe_data, frappe_error, frappe_message

SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "seed_expense_types.py"


@pytest.fixture(scope="module")
def seed_expense_types():
    return runpy.run_path(str(SCRIPT))["seed_expense_types"]


async def test_skips_existing_and_falls_back(client, erp, seed_expense_types):
    def existing(request):
        name = FakeERP.params(request)["filters"][0][2]
        return frappe_data([{"name": name}] if name == "Travel" else [])

    erp.resource("GET", "Expense Claim Type", existing)
    erp.resource("POST", "Expense Claim Type", frappe_error(403))
    erp.method("POST", "frappe.client.insert", frappe_message({"name": "ok"}))

    created = await seed_expense_types(client)

    assert created == 3
    inserted = [
        FakeERP.body(r)["doc"]["expense_type"]
        for r in erp.requests
        if r.url.path.endswith("frappe.client.insert")
    ]
    assert inserted == ["Food", "Office Supplies", "Others"]
