"""
Session logout broadcast and gateway caller sessions.

Components that hold per-user state subscribe here and are told when
the user logs out.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)

LogoutListener = Callable[[], None]

_listeners: list[LogoutListener] = []


def add_logout_listener(listener: LogoutListener) -> Callable[[], None]:
    """
    Register a logout listener.

    Returns:
        A function that unsubscribes the listener
    """
    _listeners.append(listener)

    def unsubscribe():
        if listener in _listeners:
            _listeners.remove(listener)

    return unsubscribe


def request_logout():
    """Notify every listener. A failing listener does not stop the others."""
    listeners = list(_listeners)
    logger.info(f"Logout broadcast to {len(listeners)} listener(s)")
    for listener in listeners:
        try:
            listener()
        except Exception as e:
            logger.error(f"Logout listener {listener!r} failed: {e}")


# =============================================================================
# Gateway caller sessions
# =============================================================================


@dataclass
class CallerSession:
    """An authenticated gateway caller."""

    user_id: str
    employee_id: Optional[str] = None
    cookie: Optional[str] = None  # ERP session cookie for password logins
    source: str = "password"


class SessionRegistry:
    """
    Password sessions issued by the gateway, keyed by ERP `sid`.

    Each caller presents its own `sid` as a bearer token.
    """

    def __init__(self):
        self._sessions: dict[str, CallerSession] = {}

    @staticmethod
    def token_for(cookie: Optional[str]) -> Optional[str]:
        """Bearer token for a `sid=...` cookie (the bare sid value)."""
        value = str(cookie or "").strip()
        if value.startswith("sid="):
            value = value[len("sid="):]
        return value or None

    def add(self, token: str, session: CallerSession):
        self._sessions[token] = session
        logger.info(f"Gateway session opened for {session.user_id}")

    def get(self, token: Optional[str]) -> Optional[CallerSession]:
        token = self.token_for(token)
        return self._sessions.get(token) if token else None

    def remove(self, token: Optional[str]) -> Optional[CallerSession]:
        token = self.token_for(token)
        session = self._sessions.pop(token, None) if token else None
        if session:
            logger.info(f"Gateway session closed for {session.user_id}")
        return session

    def __len__(self) -> int:
        return len(self._sessions)
