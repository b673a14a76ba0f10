"""
HR Mobile backend client for Frappe/ERPNext

This package provides the service layer behind the HR mobile app:
- Frappe REST resource / RPC method client with fallback chains
- Profile, leave, expense, attendance and onboarding services
- Password and Microsoft sign-in with secure session storage
- Local PIN gate for app access
"""

__version__ = "1.0.0"
