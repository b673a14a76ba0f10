"""
Date helpers for ERP payloads and form input.

ERPNext stores dates as `YYYY-MM-DD` and datetimes as
`YYYY-MM-DD HH:MM:SS`; the mobile forms use `DD/MM/YYYY`.
"""

import re
from datetime import date, datetime
from typing import Optional

_DMY_PATTERN = re.compile(r"^\d{2}/\d{2}/\d{4}$")


def format_erp_datetime(value: datetime) -> str:
    """Format a datetime the way ERPNext expects it (seconds precision)."""
    return value.strftime("%Y-%m-%d %H:%M:%S")


def parse_erp_datetime(value: str) -> Optional[datetime]:
    """Parse an ERPNext timestamp, returning None when malformed."""
    try:
        return datetime.fromisoformat(str(value).strip())
    except ValueError:
        return None


def format_clock_time(value: datetime) -> str:
    """Format a time as `hh:mm AM/PM`."""
    return value.strftime("%I:%M %p")


def is_valid_dmy_date(value: str) -> bool:
    """Check for `DD/MM/YYYY` that names a real calendar day."""
    if not value or not _DMY_PATTERN.match(value):
        return False
    try:
        datetime.strptime(value, "%d/%m/%Y")
    except ValueError:
        return False
    return True


def to_erp_date(value: str) -> str:
    """
    Convert `DD/MM/YYYY` to `YYYY-MM-DD`.

    Raises:
        ValueError: If the value is not three slash-separated parts
    """
    parts = value.split("/")
    if len(parts) != 3:
        raise ValueError("Invalid date format")
    day, month, year = parts
    return f"{year}-{month.zfill(2)}-{day.zfill(2)}"


def format_display_date(value: str) -> str:
    """Convert `YYYY-MM-DD` to `DD/MM/YYYY`; other input is returned as-is."""
    parts = value.split("-")
    if len(parts) == 3:
        year, month, day = parts
        return f"{day}/{month}/{year}"
    return value


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Parse `YYYY-MM-DD` (a time part is ignored), returning None when invalid."""
    if not value:
        return None
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def validate_leave_range(
    from_date: Optional[str],
    to_date: Optional[str],
    today: Optional[date] = None,
) -> Optional[str]:
    """
    Validate a leave date range from the apply form.

    Returns:
        An error message, or None when the range is acceptable
    """
    today = today or date.today()
    if not from_date or not to_date:
        return "Please fill From and To dates."
    start = parse_iso_date(from_date)
    end = parse_iso_date(to_date)
    if start is None or end is None:
        return "Please pick valid From and To dates."
    if start < today or end < today:
        return "Dates cannot be in the past."
    if end < start:
        return "To Date cannot be before From Date."
    return None
