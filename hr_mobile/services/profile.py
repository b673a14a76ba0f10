"""
Employee profile lookups.

Resolves an Employee document through three endpoint styles and maps it
to the profile view used by the profile screen.
"""

import logging
from typing import Optional

from hr_mobile.frappe import FrappeClient, FrappeError, ProfileView, run_fallbacks
from hr_mobile.frappe.normalize import to_profile_view
from hr_mobile.frappe.schema import PROFILE_FIELDS

logger = logging.getLogger(__name__)


class ProfileService:
    """Profile and reporting-line queries for an employee."""

    EMPLOYEE = "Employee"

    def __init__(self, client: Optional[FrappeClient] = None):
        self.client = client or FrappeClient()

    async def fetch_employee_profile(self, employee_id: str) -> Optional[ProfileView]:
        """
        Fetch an employee's profile.

        Tries the document endpoint, then a filtered list query,
        then `frappe.client.get`.

        Args:
            employee_id: Employee document name (e.g., "HR-EMP-00001")

        Returns:
            ProfileView if any endpoint returned the document, None otherwise
        """
        employee_id = str(employee_id or "").strip()
        if not employee_id:
            return None

        async def by_name():
            doc = await self.client.get_doc(self.EMPLOYEE, employee_id)
            return doc if isinstance(doc, dict) else None

        async def by_list():
            rows = await self.client.get_list(
                self.EMPLOYEE,
                filters=[["name", "=", employee_id]],
                fields=PROFILE_FIELDS,
                limit=1,
            )
            return rows[0] if rows else None

        async def by_method():
            return await self.client.method_get(self.EMPLOYEE, employee_id)

        try:
            doc = await run_fallbacks(
                "Employee profile",
                [
                    ("resource get", by_name),
                    ("resource list", by_list),
                    ("frappe.client.get", by_method),
                ],
            )
        except FrappeError as e:
            logger.error(f"Failed to fetch profile for {employee_id}: {e}")
            return None

        if doc is None:
            return None
        return to_profile_view(doc, self.client.host, fallback_id=employee_id)

    async def get_employee_approver(self, employee_id: str) -> Optional[str]:
        """
        Get the user who approves an employee's expense claims.

        Returns:
            The expense approver, else the reporting manager, else None
        """
        try:
            employee = await self.client.get_doc(self.EMPLOYEE, employee_id)
        except FrappeError as e:
            logger.error(f"Error fetching approver for {employee_id}: {e}")
            return None

        if not isinstance(employee, dict):
            return None
        return employee.get("expense_approver") or employee.get("reports_to") or None
