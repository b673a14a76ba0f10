"""
User and employee lookups by email.
"""

import logging
from typing import Any, Optional

from hr_mobile.frappe import FrappeClient, FrappeConfigurationError, FrappeError, run_fallbacks
from hr_mobile.frappe.schema import PROFILE_FIELDS

logger = logging.getLogger(__name__)

# Employee fields that may hold the login email, in lookup order
EMPLOYEE_EMAIL_FIELDS = ("user_id", "company_email", "personal_email")


class UserService:
    """Resolve ERP users and their employee records."""

    USER = "User"
    EMPLOYEE = "Employee"

    def __init__(self, client: Optional[FrappeClient] = None):
        self.client = client or FrappeClient()

    async def get_user_by_email(self, email: str) -> Optional[dict[str, Any]]:
        """
        Find a User by ID, then by `name`, then by `email`.

        Returns:
            The user document, or None when not found

        Raises:
            FrappeConfigurationError: If the ERP connection is not configured
        """
        email = str(email or "").strip()
        if not email:
            return None
        if not self.client.settings.is_erp_configured:
            raise FrappeConfigurationError(
                "ERP credentials or URL are not configured. Check .env and restart."
            )

        async def by_id():
            doc = await self.client.get_doc(self.USER, email)
            return doc if isinstance(doc, dict) else None

        def by_field(field: str):
            async def query():
                rows = await self.client.get_list(
                    self.USER, filters=[[field, "=", email]], limit=1
                )
                return rows[0] if rows else None
            return query

        try:
            return await run_fallbacks(
                "User lookup",
                [
                    ("resource get", by_id),
                    ("list by name", by_field("name")),
                    ("list by email", by_field("email")),
                ],
            )
        except FrappeError as e:
            logger.warning(f"User {email} not found: {e}")
            return None

    async def update_user(self, email: str, fields: dict[str, Any]) -> Optional[dict[str, Any]]:
        """Update a User document; returns None on failure."""
        try:
            return await self.client.update(self.USER, email, fields)
        except FrappeError as e:
            logger.error(f"Error updating user {email}: {e}")
            return None

    async def get_employee_by_email(self, email: str) -> Optional[dict[str, Any]]:
        """Find the Employee linked to an email address."""
        email = str(email or "").strip()
        if not email:
            return None

        def by_field(field: str):
            async def query():
                rows = await self.client.get_list(
                    self.EMPLOYEE,
                    filters=[[field, "=", email]],
                    fields=PROFILE_FIELDS,
                    limit=1,
                )
                return rows[0] if rows else None
            return query

        try:
            return await run_fallbacks(
                "Employee by email",
                [(field, by_field(field)) for field in EMPLOYEE_EMAIL_FIELDS],
            )
        except FrappeError as e:
            logger.warning(f"No employee found for {email}: {e}")
            return None

    async def get_employee_id_by_email(self, email: str) -> Optional[str]:
        employee = await self.get_employee_by_email(email)
        if employee and employee.get("name"):
            return str(employee["name"])
        return None
