"""Frappe/ERPNext integration module for HR documents."""

from .client import (
    FrappeClient,
    FrappeConfigurationError,
    FrappeError,
    run_fallbacks,
)
from .schema import (
    AttendanceCheckin,
    AttendanceSession,
    AttendanceState,
    ClaimStatus,
    CompanyDoc,
    CompanyPayload,
    DocStatus,
    ExpenseClaimInput,
    ExpenseClaimResponse,
    ExpenseHistoryItem,
    Lead,
    LeadListItem,
    LeaveAllocation,
    LeaveApplication,
    LeaveApplicationInput,
    LeaveBalance,
    LogType,
    ProfileView,
)

__all__ = [
    "FrappeClient",
    "FrappeConfigurationError",
    "FrappeError",
    "run_fallbacks",
    "AttendanceCheckin",
    "AttendanceSession",
    "AttendanceState",
    "ClaimStatus",
    "CompanyDoc",
    "CompanyPayload",
    "DocStatus",
    "ExpenseClaimInput",
    "ExpenseClaimResponse",
    "ExpenseHistoryItem",
    "Lead",
    "LeadListItem",
    "LeaveAllocation",
    "LeaveApplication",
    "LeaveApplicationInput",
    "LeaveBalance",
    "LogType",
    "ProfileView",
]
