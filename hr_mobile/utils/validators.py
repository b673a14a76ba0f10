"""Form validators for login and expense input."""

import re
from typing import TYPE_CHECKING, Optional

from .dates import is_valid_dmy_date

if TYPE_CHECKING:
    from hr_mobile.frappe.schema import ExpenseClaimInput

EMAIL_REGEX = re.compile(r"^[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}$", re.IGNORECASE)
INVALID_FILE_CHARS = re.compile(r'[<>:"/\\|?*]')

MAX_DESCRIPTION_LENGTH = 500
MAX_FILE_NAME_LENGTH = 255


def is_blank(value: Optional[str]) -> bool:
    return not value or not str(value).strip()


def is_valid_email(email: Optional[str]) -> bool:
    if is_blank(email):
        return False
    return bool(EMAIL_REGEX.match(str(email).strip()))


def validate_email(email: Optional[str]) -> Optional[str]:
    """Return an error message for the email field, or None if valid."""
    value = str(email or "").strip()
    if not value:
        return "Email is required"
    if not is_valid_email(value):
        return "Enter a valid email address"
    return None


def is_valid_file_name(file_name: str) -> bool:
    return not INVALID_FILE_CHARS.search(file_name) and len(file_name) <= MAX_FILE_NAME_LENGTH


def validate_expense_claim(claim: "ExpenseClaimInput") -> Optional[str]:
    """
    Validate an expense claim before anything is sent to the ERP.

    Returns:
        The first validation error message, or None when valid
    """
    if is_blank(claim.employee_id):
        return "Employee ID is required"
    if is_blank(claim.category):
        return "Category is required"

    try:
        amount = float(claim.amount)
    except (TypeError, ValueError):
        amount = 0
    if not amount > 0:
        return "Valid amount is required"

    if not claim.expense_date:
        return "Expense date is required"
    if not is_valid_dmy_date(claim.expense_date):
        return "Date must be in DD/MM/YYYY format"

    if is_blank(claim.description):
        return "Description is required"
    if len(claim.description) > MAX_DESCRIPTION_LENGTH:
        return f"Description too long (max {MAX_DESCRIPTION_LENGTH} characters)"

    return None
