"""Authentication: password login, Microsoft sign-in and logout events."""

from .password import PasswordAuth, PasswordLoginResult
from .session import CallerSession, SessionRegistry, add_logout_listener, request_logout
from .sso import AuthenticationError, MicrosoftLogin, UserIdentity, identity_from_claims

__all__ = [
    "AuthenticationError",
    "CallerSession",
    "MicrosoftLogin",
    "PasswordAuth",
    "PasswordLoginResult",
    "SessionRegistry",
    "UserIdentity",
    "add_logout_listener",
    "identity_from_claims",
    "request_logout",
]
