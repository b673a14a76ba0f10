"""Feature services built on the Frappe client."""

from .attendance import AttendanceService, pair_sessions
from .expense import ExpenseService
from .leads import LeadService, to_list_item
from .leave import LeaveService
from .onboarding import OnboardingService
from .profile import ProfileService
from .timesheets import TimesheetService
from .users import UserService

__all__ = [
    "AttendanceService",
    "ExpenseService",
    "LeadService",
    "LeaveService",
    "OnboardingService",
    "ProfileService",
    "TimesheetService",
    "UserService",
    "pair_sessions",
    "to_list_item",
]
