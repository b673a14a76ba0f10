"""
Username/password login against the ERP.

Logs in through the `login` method endpoint, keeps the returned session
cookie in the secure store and resolves the matching employee.
"""

import logging
import re
from typing import Any, Optional
from urllib.parse import unquote

import httpx
from pydantic import BaseModel

from hr_mobile.frappe import FrappeClient, FrappeError
from hr_mobile.services.users import UserService
from hr_mobile.storage import SecureStore

from .session import request_logout

logger = logging.getLogger(__name__)

_EMAIL_LIKE = re.compile(r".+@.+\..+")


class PasswordLoginResult(BaseModel):
    """Outcome of a password login."""

    ok: bool
    cookie: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None
    full_name: Optional[str] = None
    user_image: Optional[str] = None
    user_id: Optional[str] = None
    employee_id: Optional[str] = None
    employee: Optional[dict[str, Any]] = None


def _cookie(response: httpx.Response, name: str) -> Optional[str]:
    value = response.cookies.get(name)
    return unquote(value) if value else None


class PasswordAuth:
    """Password login and logout for the ERP session."""

    def __init__(
        self,
        client: Optional[FrappeClient] = None,
        secure_store: Optional[SecureStore] = None,
        users: Optional[UserService] = None,
    ):
        self.client = client or FrappeClient()
        self.secure_store = secure_store or SecureStore()
        self.users = users or UserService(self.client)

    @property
    def is_configured(self) -> bool:
        return bool(self.client.method_url)

    async def login_with_password(self, usr: str, pwd: str) -> PasswordLoginResult:
        """
        Log in with a username or email and password.

        Returns:
            PasswordLoginResult; failures set `ok=False` and `error`
        """
        if not self.is_configured:
            return PasswordLoginResult(ok=False, error="ERP method URL not configured")

        usr = str(usr or "").strip()
        logger.info(f"Password login for {usr}")

        try:
            response = await self.client.send(
                "POST",
                self.client.method_path("login"),
                authenticated=False,
                data={"usr": usr, "pwd": str(pwd or "")},
            )
        except FrappeError as e:
            logger.warning(f"Password login failed for {usr}: {e}")
            return PasswordLoginResult(ok=False, error=e.message or "Login failed")

        try:
            body = response.json()
        except ValueError:
            body = response.text
        message = body.get("message") if isinstance(body, dict) else body

        sid = _cookie(response, "sid")
        cookie = f"sid={sid}" if sid else None
        full_name = _cookie(response, "full_name")
        if not full_name and isinstance(body, dict) and body.get("full_name"):
            full_name = str(body["full_name"])
        user_id = _cookie(response, "user_id")
        if not user_id and _EMAIL_LIKE.match(usr):
            user_id = usr

        result = PasswordLoginResult(
            ok=True,
            cookie=cookie,
            message=str(message) if message else None,
            full_name=full_name,
            user_image=_cookie(response, "user_image"),
            user_id=user_id,
        )

        email = result.user_id or usr
        if email:
            try:
                employee = await self.users.get_employee_by_email(email)
            except FrappeError as e:
                logger.warning(f"Employee lookup after login failed for {email}: {e}")
                employee = None
            if employee:
                result.employee = employee
                result.employee_id = str(employee.get("name") or "") or None

        session_user = result.user_id or usr
        if cookie and not await self.secure_store.store_session(cookie, user=session_user):
            logger.warning(f"Session cookie for {session_user} could not be stored")

        logger.info(f"Logged in {session_user} (employee {result.employee_id})")
        return result

    async def logout_session(
        self,
        cookie: Optional[str] = None,
        user: Optional[str] = None,
    ) -> bool:
        """
        End an ERP session, clear its stored credential and notify listeners.

        Args:
            cookie: Session cookie to end (`sid=...`); read from the secure
                store for `user` when omitted
            user: Owner of the session; only this user's stored credential
                is read and cleared

        Returns:
            True if the server accepted the logout
        """
        ok = False
        cookie = cookie or await self.secure_store.get_session(user)
        if self.is_configured and cookie:
            try:
                await self.client.send(
                    "POST",
                    self.client.method_path("logout"),
                    authenticated=False,
                    headers={"Cookie": cookie},
                )
                ok = True
            except FrappeError as e:
                logger.warning(f"Logout request failed for {user or 'device session'}: {e}")

        await self.secure_store.clear_session(user)
        request_logout()
        return ok
