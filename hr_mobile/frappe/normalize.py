"""
Response-shape normalization.

The resource and method endpoints, and different ERPNext deployments,
report the same quantity under different field names. These helpers
reconcile them by fixed priority order.
"""

import re
from typing import Any, Optional

from hr_mobile.utils.dates import format_display_date

from .schema import (
    ClaimStatus,
    DocStatus,
    EmployeeProfile,
    ExpenseClaimItem,
    ExpenseHistoryItem,
    LeaveAllocation,
    LeaveApplication,
    ProfileView,
)

NEW_ALLOCATED_KEYS = ("new_leaves_allocated", "total_leaves_allocated", "leaves_allocated")
LEAVES_ALLOCATED_KEYS = ("leaves_allocated", "total_leaves_allocated", "new_leaves_allocated")
TOTAL_ALLOCATED_KEYS = ("total_leaves_allocated", "new_leaves_allocated", "leaves_allocated")


def first_present(record: dict[str, Any], keys: tuple[str, ...], default: Any = None) -> Any:
    """
    Return the first value that is present and not None.

    Zero and empty strings count as present.
    """
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return default


def first_truthy(record: dict[str, Any], keys: tuple[str, ...]) -> Optional[Any]:
    """Return the first truthy value, or None."""
    for key in keys:
        value = record.get(key)
        if value:
            return value
    return None


def as_number(value: Any, default: float = 0) -> float:
    """Coerce a numeric field, falling back to the default."""
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def normalize_allocation(row: dict[str, Any]) -> LeaveAllocation:
    """Build a LeaveAllocation from any allocation row shape."""
    return LeaveAllocation(
        name=row.get("name") or "",
        employee=row.get("employee"),
        leave_type=row.get("leave_type"),
        new_leaves_allocated=as_number(first_present(row, NEW_ALLOCATED_KEYS, 0)),
        from_date=row.get("from_date") or None,
        to_date=row.get("to_date") or None,
        leaves_allocated=as_number(first_present(row, LEAVES_ALLOCATED_KEYS, 0)),
        total_leaves_allocated=as_number(first_present(row, TOTAL_ALLOCATED_KEYS, 0)),
    )


def normalize_allocations(rows: Optional[list[dict[str, Any]]]) -> list[LeaveAllocation]:
    return [normalize_allocation(r) for r in rows or []]


def normalize_leave_application(row: dict[str, Any]) -> LeaveApplication:
    """Build a LeaveApplication, tolerating missing numeric fields."""
    return LeaveApplication(
        name=row.get("name") or "",
        employee=row.get("employee"),
        leave_type=row.get("leave_type"),
        from_date=row.get("from_date") or None,
        to_date=row.get("to_date") or None,
        total_leave_days=as_number(first_present(row, ("total_leave_days", "leave_days"), 0)),
        status=row.get("status"),
        docstatus=int(as_number(row.get("docstatus"))),
        description=row.get("description"),
        posting_date=row.get("posting_date") or None,
        half_day=bool(as_number(row.get("half_day"))),
    )


def absolutize_file_url(path: Optional[str], host: str) -> Optional[str]:
    """Turn a Frappe file path into an absolute URL on the ERP host."""
    if not path:
        return None
    if re.match(r"^https?://", path, flags=re.IGNORECASE):
        return path
    if path.startswith("/"):
        return host + path
    return f"{host}/{path}"


def to_profile_view(doc: dict[str, Any], host: str, fallback_id: Optional[str] = None) -> ProfileView:
    """
    Map an Employee document to the profile view.

    Args:
        doc: Employee document from any endpoint
        host: ERP site root for relative image paths
        fallback_id: Employee ID to use when the document omits `name`
    """
    employee = EmployeeProfile.model_validate({**doc, "name": doc.get("name") or fallback_id or ""})
    data = employee.model_dump()
    return ProfileView(
        name=first_truthy(data, ("full_name", "name")),
        email=first_truthy(data, ("company_email", "personal_email", "email")),
        employee_id=employee.name or None,
        image=absolutize_file_url(employee.image, host),
        phone=employee.mobile_no or None,
        department=employee.department or None,
        join_date=employee.date_of_joining or None,
        location=employee.branch or None,
        role=employee.designation or None,
        company=employee.company or None,
        reports_to=employee.reports_to or None,
        employment_type=employee.employment_type or None,
        grade=employee.grade or None,
    )


def map_claim_status(docstatus: int, approval_status: Optional[str]) -> ClaimStatus:
    """Collapse docstatus plus approval status into the display status."""
    if docstatus == DocStatus.CANCELLED:
        return ClaimStatus.REJECTED
    if docstatus == DocStatus.SUBMITTED and approval_status == "Approved":
        return ClaimStatus.APPROVED
    if approval_status == "Rejected":
        return ClaimStatus.REJECTED
    return ClaimStatus.PENDING


def to_expense_history_item(row: dict[str, Any]) -> ExpenseHistoryItem:
    """Map an Expense Claim row to a history item."""
    claim = ExpenseClaimItem.model_validate(
        {
            **row,
            "total_claimed_amount": as_number(row.get("total_claimed_amount")),
            "total_sanctioned_amount": as_number(row.get("total_sanctioned_amount")),
            "docstatus": int(as_number(row.get("docstatus"))),
        }
    )
    status = map_claim_status(claim.docstatus, claim.approval_status or claim.status)
    return ExpenseHistoryItem(
        id=claim.name,
        date=format_display_date(claim.posting_date or ""),
        amount=f"${claim.total_claimed_amount:.2f}",
        status=status,
        title=claim.name,
        description=claim.name,
    )
