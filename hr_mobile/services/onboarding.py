"""Company onboarding for a newly registered employee."""

import logging
from typing import Optional

from hr_mobile.frappe import CompanyDoc, CompanyPayload, FrappeClient, FrappeError
from hr_mobile.utils.validators import is_blank

logger = logging.getLogger(__name__)


class OnboardingService:
    """Create or update the company an employee belongs to."""

    COMPANY = "Company"
    EMPLOYEE = "Employee"

    def __init__(self, client: Optional[FrappeClient] = None):
        self.client = client or FrappeClient()

    async def get_company_by_name(self, name: str) -> Optional[CompanyDoc]:
        try:
            doc = await self.client.get_doc(self.COMPANY, name)
        except FrappeError as e:
            logger.warning(f"Company {name} not found: {e}")
            return None
        return CompanyDoc.model_validate(doc) if isinstance(doc, dict) else None

    async def create_company(self, payload: CompanyPayload) -> CompanyDoc:
        """
        Create a Company.

        Raises:
            FrappeError: If the server rejects the document
        """
        doc = await self.client.insert(self.COMPANY, payload.model_dump())
        logger.info(f"Created company {doc.get('name')}")
        return CompanyDoc.model_validate({**payload.model_dump(), **doc})

    async def update_company(self, company_id: str, payload: CompanyPayload) -> CompanyDoc:
        """
        Update an existing Company.

        Raises:
            FrappeError: If the server rejects the update
        """
        doc = await self.client.update(self.COMPANY, company_id, payload.model_dump())
        logger.info(f"Updated company {company_id}")
        return CompanyDoc.model_validate({"name": company_id, **payload.model_dump(), **doc})

    async def get_employee_company(self, employee_id: str) -> Optional[str]:
        """Return the employee's company ID, if one is linked."""
        try:
            doc = await self.client.get_doc(self.EMPLOYEE, employee_id)
        except FrappeError as e:
            logger.warning(f"Could not read company for {employee_id}: {e}")
            return None
        if not isinstance(doc, dict):
            return None
        return doc.get("company") or None

    async def save_company(self, employee_id: str, payload: CompanyPayload) -> CompanyDoc:
        """
        Save the onboarding form.

        Updates the employee's linked company when there is one,
        otherwise creates a new company.

        Raises:
            ValueError: If a field is blank
            FrappeError: If the create or update fails
        """
        if is_blank(payload.company_name) or is_blank(payload.company_url):
            raise ValueError("Company name and URL are required")

        payload = CompanyPayload(
            company_name=payload.company_name.strip(),
            company_url=payload.company_url.strip(),
        )
        existing = await self.get_employee_company(employee_id)
        if existing:
            return await self.update_company(existing, payload)
        return await self.create_company(payload)
