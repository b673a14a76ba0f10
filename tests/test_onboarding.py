"""
Unit Tests for hr_mobile.services.onboarding.
"""

import pytest

from hr_mobile.frappe import CompanyPayload, FrappeError
from hr_mobile.services import OnboardingService

from .conftest import FakeERP, frappe_data, frappe_error

PAYLOAD = CompanyPayload(company_name="Acme", company_url="https://acme.test")


class TestCompanyLookups:
    async def test_get_company_by_name(self, client, erp):
        erp.resource(
            "GET", "Company",
            frappe_data({"name": "Acme", "company_name": "Acme", "abbr": "AC"}),
            name="Acme",
        )

        company = await OnboardingService(client).get_company_by_name("Acme")

        assert company.company_name == "Acme"
        assert company.company_url is None

    async def test_missing_company_is_none(self, client, erp):
        assert await OnboardingService(client).get_company_by_name("Nope") is None

    async def test_employee_company(self, client, erp):
        erp.resource("GET", "Employee", frappe_data({"name": "E1", "company": "Acme"}), name="E1")

        assert await OnboardingService(client).get_employee_company("E1") == "Acme"

    async def test_employee_company_default(self, client, erp):
        assert await OnboardingService(client).get_employee_company("E1") is None


class TestSaveCompany:
    """Tests for OnboardingService.save_company()."""

    async def test_creates_when_employee_has_no_company(self, client, erp):
        erp.resource("GET", "Employee", frappe_data({"name": "E1", "company": None}), name="E1")
        erp.resource("POST", "Company", frappe_data({"name": "Acme", "company_name": "Acme"}))

        company = await OnboardingService(client).save_company("E1", PAYLOAD)

        assert company.name == "Acme"
        assert company.company_url == "https://acme.test"
        assert FakeERP.body(erp.requests[1]) == PAYLOAD.model_dump()

    async def test_updates_existing_company(self, client, erp):
        erp.resource("GET", "Employee", frappe_data({"name": "E1", "company": "Old Co"}), name="E1")
        erp.resource("PUT", "Company", frappe_data({"company_name": "Acme"}), name="Old Co")

        company = await OnboardingService(client).save_company("E1", PAYLOAD)

        assert company.name == "Old Co"
        assert erp.paths()[-1] == ("PUT", "/api/resource/Company/Old Co")

    async def test_blank_fields_rejected(self, client, erp):
        with pytest.raises(ValueError):
            await OnboardingService(client).save_company(
                "E1", CompanyPayload(company_name=" ", company_url="https://acme.test")
            )
        assert erp.requests == []

    async def test_create_failure_raises(self, client, erp):
        erp.resource("POST", "Company", frappe_error(409, "DuplicateEntryError"))

        with pytest.raises(FrappeError):
            await OnboardingService(client).create_company(PAYLOAD)
