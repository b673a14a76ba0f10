"""Timesheet queries and edits."""

import logging
from typing import Any, Optional

from hr_mobile.frappe import FrappeClient

logger = logging.getLogger(__name__)


class TimesheetService:
    """Timesheets for an employee. Errors propagate to the caller."""

    TIMESHEET = "Timesheet"

    def __init__(self, client: Optional[FrappeClient] = None):
        self.client = client or FrappeClient()

    async def get_timesheets(self, employee: str) -> list[dict[str, Any]]:
        return await self.client.get_list(
            self.TIMESHEET,
            filters=[["employee", "=", employee]],
            fields=["name", "employee", "start_date", "end_date", "total_hours", "status"],
            order_by="start_date desc",
        )

    async def create_timesheet(self, data: dict[str, Any]) -> dict[str, Any]:
        doc = await self.client.insert(self.TIMESHEET, data)
        logger.info(f"Created timesheet {doc.get('name')}")
        return doc

    async def update_timesheet(self, name: str, data: dict[str, Any]) -> dict[str, Any]:
        return await self.client.update(self.TIMESHEET, name, data)
