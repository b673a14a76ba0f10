"""
Pydantic models for Frappe/ERPNext HR documents.

Raw document shapes mirror the ERPNext doctypes; view models are the
normalized shapes handed to the mobile UI.
"""

from datetime import date
from enum import Enum, IntEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


class DocStatus(IntEnum):
    """Frappe document lifecycle state."""
    DRAFT = 0
    SUBMITTED = 1
    CANCELLED = 2


class ClaimStatus(str, Enum):
    """Display status of an expense claim."""
    APPROVED = "Approved"
    PENDING = "Pending"
    REJECTED = "Rejected"


class LogType(str, Enum):
    """Employee Checkin log type."""
    IN = "IN"
    OUT = "OUT"


# =============================================================================
# Employee / Profile
# =============================================================================


class EmployeeProfile(BaseModel):
    """
    Employee document as returned by either endpoint style.

    Maps to: Employee in ERPNext
    """
    model_config = ConfigDict(extra="ignore")

    name: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    company_email: Optional[str] = None
    personal_email: Optional[str] = None
    mobile_no: Optional[str] = None
    department: Optional[str] = None
    date_of_joining: Optional[str] = None
    branch: Optional[str] = None
    designation: Optional[str] = None
    image: Optional[str] = None
    company: Optional[str] = None
    reports_to: Optional[str] = None
    employment_type: Optional[str] = None
    grade: Optional[str] = None


PROFILE_FIELDS = [
    "name",
    "full_name",
    "company_email",
    "personal_email",
    "mobile_no",
    "department",
    "date_of_joining",
    "branch",
    "designation",
    "image",
    "company",
    "reports_to",
    "employment_type",
    "grade",
]


class ProfileView(BaseModel):
    """Normalized profile shown on the profile screen."""

    name: Optional[str] = None
    email: Optional[str] = None
    employee_id: Optional[str] = None
    image: Optional[str] = None
    phone: Optional[str] = None
    department: Optional[str] = None
    join_date: Optional[str] = None
    location: Optional[str] = None
    role: Optional[str] = None
    company: Optional[str] = None
    reports_to: Optional[str] = None
    employment_type: Optional[str] = None
    grade: Optional[str] = None


# =============================================================================
# Leave
# =============================================================================


class LeaveAllocation(BaseModel):
    """
    Leave allocation with the allocated-days aliases reconciled.

    Maps to: Leave Allocation in ERPNext
    """
    name: str = ""
    employee: Optional[str] = None
    leave_type: Optional[str] = None
    new_leaves_allocated: float = 0
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    leaves_allocated: float = 0
    total_leaves_allocated: float = 0

    def covers(self, day: date) -> bool:
        """Check whether the allocation period contains a date."""
        if self.from_date and day < self.from_date:
            return False
        if self.to_date and day > self.to_date:
            return False
        return True


class LeaveApplication(BaseModel):
    """
    Leave application record.

    Maps to: Leave Application in ERPNext
    """
    name: str = ""
    employee: Optional[str] = None
    leave_type: Optional[str] = None
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    total_leave_days: float = 0
    status: Optional[str] = None
    docstatus: int = DocStatus.DRAFT
    description: Optional[str] = None
    posting_date: Optional[date] = None
    half_day: bool = False

    @property
    def is_approved(self) -> bool:
        """Approved and submitted (counts against the balance)."""
        return self.status == "Approved" and self.docstatus == DocStatus.SUBMITTED


class LeaveApplicationInput(BaseModel):
    """Leave application submitted from the apply form."""

    employee: str
    leave_type: str
    from_date: date
    to_date: date
    reason: str = ""
    half_day: bool = False
    leave_approver: Optional[str] = None

    @computed_field
    @property
    def total_leave_days(self) -> float:
        """Inclusive day count; a half-day request counts 0.5."""
        if self.half_day:
            return 0.5
        return float((self.to_date - self.from_date).days + 1)

    def to_frappe_dict(self) -> dict:
        """Convert to a Leave Application payload."""
        data = {
            "employee": self.employee,
            "leave_type": self.leave_type,
            "from_date": self.from_date.isoformat(),
            "to_date": self.to_date.isoformat(),
            "description": self.reason,
            "half_day": 1 if self.half_day else 0,
            "posting_date": date.today().isoformat(),
            "status": "Open",
        }
        if self.half_day:
            data["half_day_date"] = self.from_date.isoformat()
        if self.leave_approver:
            data["leave_approver"] = self.leave_approver
        return data


class LeaveBalance(BaseModel):
    """Per leave type balance shown on the leave screen."""

    leave_type: str
    allocated: float = 0
    used: float = 0

    @computed_field
    @property
    def remaining(self) -> float:
        """Allocated minus used, never negative."""
        return max(self.allocated - self.used, 0)


# =============================================================================
# Expense
# =============================================================================


class ExpenseClaimInput(BaseModel):
    """Expense claim as entered on the expense form."""

    employee_id: str
    category: str
    amount: str
    expense_date: str = Field(..., description="DD/MM/YYYY")
    description: str
    receipt_path: Optional[str] = None
    receipt_name: Optional[str] = None


class ExpenseClaimResponse(BaseModel):
    """Outcome of a claim submission or cancellation."""

    success: bool
    claim_id: Optional[str] = None
    message: str


class ExpenseClaimItem(BaseModel):
    """
    Expense claim list row.

    Maps to: Expense Claim in ERPNext
    """
    model_config = ConfigDict(extra="ignore")

    name: str
    posting_date: Optional[str] = None
    total_claimed_amount: float = 0
    total_sanctioned_amount: float = 0
    approval_status: Optional[str] = None
    docstatus: int = DocStatus.DRAFT
    status: Optional[str] = None


class ExpenseHistoryItem(BaseModel):
    """Normalized claim row shown in expense history."""

    id: str
    date: str
    amount: str
    status: ClaimStatus
    title: str
    description: str


# =============================================================================
# Company / Onboarding
# =============================================================================


class CompanyPayload(BaseModel):
    """Company fields captured during onboarding."""

    company_name: str
    company_url: str


class CompanyDoc(BaseModel):
    """
    Company document.

    Maps to: Company in ERPNext
    """
    model_config = ConfigDict(extra="ignore")

    name: str
    company_name: str
    company_url: Optional[str] = None


# =============================================================================
# Attendance
# =============================================================================


class AttendanceCheckin(BaseModel):
    """
    Employee check-in row.

    Maps to: Employee Checkin in ERPNext
    """
    model_config = ConfigDict(extra="ignore")

    name: str
    employee: Optional[str] = None
    log_type: LogType
    time: str
    location: Optional[str] = None


class AttendanceState(BaseModel):
    """Whether the employee is currently clocked in."""

    is_clocked_in: bool
    last_log: Optional[AttendanceCheckin] = None


class AttendanceSession(BaseModel):
    """An IN/OUT pair as shown in attendance history."""

    id: str
    date: str
    clock_in: str = ""
    clock_out: str = ""
    location_in: str = ""
    location_out: str = ""


# =============================================================================
# Leads
# =============================================================================


class Lead(BaseModel):
    """
    CRM lead with the commonly used fields typed.

    Maps to: Lead in ERPNext
    """
    model_config = ConfigDict(extra="allow")

    name: str
    lead_name: Optional[str] = None
    company_name: Optional[str] = None
    email_id: Optional[str] = None
    mobile_no: Optional[str] = None
    phone: Optional[str] = None
    status: Optional[str] = None
    source: Optional[str] = None
    territory: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None


class LeadListItem(BaseModel):
    """Compact lead row for list screens."""

    id: str
    title: str
    subtitle: str = ""
    status: str = ""
    value: str = ""
