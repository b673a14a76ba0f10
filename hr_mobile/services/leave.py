"""
Leave allocations, applications and balances.

Allocation queries walk three endpoint shapes because some deployments
reject explicit field lists or list-style filters on Leave Allocation.
"""

import logging
from collections import defaultdict
from datetime import date
from typing import Optional

from hr_mobile.frappe import (
    FrappeClient,
    FrappeError,
    LeaveAllocation,
    LeaveApplication,
    LeaveApplicationInput,
    LeaveBalance,
    run_fallbacks,
)
from hr_mobile.frappe.normalize import normalize_allocations, normalize_leave_application
from hr_mobile.utils.dates import validate_leave_range

logger = logging.getLogger(__name__)

# leaves_allocated is not permitted for most roles, so it is never requested
ALLOCATION_FIELDS = [
    "name",
    "employee",
    "leave_type",
    "from_date",
    "to_date",
    "total_leaves_allocated",
    "new_leaves_allocated",
]

APPLICATION_FIELDS = [
    "name",
    "employee",
    "leave_type",
    "from_date",
    "to_date",
    "total_leave_days",
    "status",
    "docstatus",
    "description",
    "posting_date",
    "half_day",
]


class LeaveService:
    """Leave queries and submissions for an employee."""

    LEAVE_ALLOCATION = "Leave Allocation"
    LEAVE_APPLICATION = "Leave Application"
    LEAVE_TYPE = "Leave Type"

    PAGE_LENGTH = 100

    def __init__(self, client: Optional[FrappeClient] = None):
        self.client = client or FrappeClient()

    # =========================================================================
    # Allocations
    # =========================================================================

    async def fetch_leave_allocations(self, employee_id: str) -> list[LeaveAllocation]:
        """
        Get leave allocations for an employee.

        Raises:
            FrappeError: The last attempt's error when every endpoint fails
        """
        list_filters = [["employee", "=", employee_id]]

        async def with_fields():
            return await self.client.get_list(
                self.LEAVE_ALLOCATION,
                filters=list_filters,
                fields=ALLOCATION_FIELDS,
                limit=self.PAGE_LENGTH,
            )

        async def dict_filters():
            return await self.client.get_list(
                self.LEAVE_ALLOCATION,
                filters={"employee": employee_id},
                limit=self.PAGE_LENGTH,
            )

        async def by_method():
            return await self.client.method_get_list(
                self.LEAVE_ALLOCATION,
                filters=list_filters,
                fields=ALLOCATION_FIELDS,
                limit=self.PAGE_LENGTH,
            )

        rows = await run_fallbacks(
            "Leave Allocation",
            [
                ("resource list", with_fields),
                ("resource list, dict filters", dict_filters),
                ("frappe.client.get_list", by_method),
            ],
        )
        allocations = normalize_allocations(rows)
        logger.debug(f"Loaded {len(allocations)} leave allocations for {employee_id}")
        return allocations

    # =========================================================================
    # Applications
    # =========================================================================

    async def fetch_leave_applications(
        self,
        employee_id: str,
        status: Optional[str] = None,
        limit: int = 50,
    ) -> list[LeaveApplication]:
        """
        Get leave applications for an employee, newest first.

        Args:
            employee_id: Employee document name
            status: Optional status filter (Open, Approved, Rejected, Cancelled)
            limit: Maximum rows to return

        Returns:
            List of applications ([] when every endpoint fails)
        """
        filters = [["employee", "=", employee_id]]
        if status:
            filters.append(["status", "=", status])

        async def by_resource():
            return await self.client.get_list(
                self.LEAVE_APPLICATION,
                filters=filters,
                fields=APPLICATION_FIELDS,
                order_by="from_date desc",
                limit=limit,
            )

        async def by_method():
            return await self.client.method_get_list(
                self.LEAVE_APPLICATION,
                filters=filters,
                fields=APPLICATION_FIELDS,
                order_by="from_date desc",
                limit=limit,
            )

        try:
            rows = await run_fallbacks(
                "Leave Application",
                [("resource list", by_resource), ("frappe.client.get_list", by_method)],
            )
        except FrappeError as e:
            logger.error(f"Failed to get leave applications for {employee_id}: {e}")
            return []

        return [normalize_leave_application(r) for r in rows or []]

    async def fetch_leave_types(self) -> list[str]:
        """Get the names of configured leave types ([] on failure)."""

        async def by_resource():
            return await self.client.get_list(self.LEAVE_TYPE, fields=["name"], limit=0)

        async def by_method():
            return await self.client.method_get_list(self.LEAVE_TYPE, fields=["name"], limit=0)

        try:
            rows = await run_fallbacks(
                "Leave Type",
                [("resource list", by_resource), ("frappe.client.get_list", by_method)],
            )
        except FrappeError as e:
            logger.error(f"Failed to get leave types: {e}")
            return []

        return [r["name"] for r in rows or [] if r.get("name")]

    async def submit_leave_application(self, application: LeaveApplicationInput) -> LeaveApplication:
        """
        Submit a new leave application in Open status.

        Raises:
            ValueError: If the dates or required fields are invalid
            FrappeError: The last attempt's error when every endpoint fails
        """
        if not application.employee.strip():
            raise ValueError("Employee ID is required")
        if not application.leave_type.strip():
            raise ValueError("Leave type is required")
        error = validate_leave_range(
            application.from_date.isoformat(), application.to_date.isoformat()
        )
        if error:
            raise ValueError(error)

        data = application.to_frappe_dict()

        async def by_resource():
            return await self.client.insert(self.LEAVE_APPLICATION, data)

        async def by_method():
            return await self.client.method_insert(self.LEAVE_APPLICATION, data)

        created = await run_fallbacks(
            "Leave Application insert",
            [("resource insert", by_resource), ("frappe.client.insert", by_method)],
        )
        result = normalize_leave_application(
            {**data, "total_leave_days": application.total_leave_days, **(created or {})}
        )
        logger.info(f"Created leave application {result.name} for {application.employee}")
        return result

    # =========================================================================
    # Balances
    # =========================================================================

    async def compute_leave_balances(
        self,
        employee_id: str,
        on: Optional[date] = None,
    ) -> list[LeaveBalance]:
        """
        Compute per leave type balances.

        Allocations active on the reference date are summed by leave type;
        approved applications inside each allocation period count as used.

        Args:
            employee_id: Employee document name
            on: Reference date (defaults to today)

        Raises:
            FrappeError: When allocations cannot be loaded
        """
        on = on or date.today()
        allocations = [a for a in await self.fetch_leave_allocations(employee_id) if a.covers(on)]
        if not allocations:
            return []

        applications = [
            a for a in await self.fetch_leave_applications(employee_id, status="Approved", limit=0)
            if a.is_approved
        ]

        allocated: dict[str, float] = defaultdict(float)
        for allocation in allocations:
            allocated[allocation.leave_type or "Leave"] += allocation.total_leaves_allocated

        used: dict[str, float] = defaultdict(float)
        for application in applications:
            if application.from_date is None:
                continue
            in_period = any(
                (a.leave_type or "Leave") == application.leave_type and a.covers(application.from_date)
                for a in allocations
            )
            if in_period:
                used[application.leave_type] += application.total_leave_days

        return [
            LeaveBalance(leave_type=leave_type, allocated=total, used=used[leave_type])
            for leave_type, total in allocated.items()
        ]
