"""Date helpers and form validators shared by the services."""

from .dates import (
    format_display_date,
    format_erp_datetime,
    parse_iso_date,
    to_erp_date,
    validate_leave_range,
)
from .validators import (
    is_valid_email,
    is_valid_file_name,
    validate_email,
    validate_expense_claim,
)

__all__ = [
    "format_display_date",
    "format_erp_datetime",
    "parse_iso_date",
    "to_erp_date",
    "validate_leave_range",
    "is_valid_email",
    "is_valid_file_name",
    "validate_email",
    "validate_expense_claim",
]
