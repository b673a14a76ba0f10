"""
Session credential storage.

The ERP session cookie goes to the platform keychain through `keyring`.
When no usable keychain backend exists the value is kept in the
key-value store instead. Credentials are kept per user; calls without a
user use the single device slot (`sid`).
"""

import asyncio
import logging
from typing import Any, Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from hr_mobile.config import get_settings

from .kv_store import KeyValueStore

logger = logging.getLogger(__name__)

KEYCHAIN_USER = "sid"
FALLBACK_KEY = "secure:erp:sid"


def _account(user: Optional[str]) -> str:
    return str(user).strip() if user and str(user).strip() else KEYCHAIN_USER


def fallback_key(user: Optional[str] = None) -> str:
    """Key-value store key holding the credential of `user`."""
    account = _account(user)
    return FALLBACK_KEY if account == KEYCHAIN_USER else f"{FALLBACK_KEY}:{account}"


class SecureStore:
    """Store, read and clear session credentials."""

    def __init__(
        self,
        kv_store: Optional[KeyValueStore] = None,
        service: Optional[str] = None,
        backend: Any = None,
    ):
        """
        Args:
            kv_store: Fallback store when the keychain is unavailable
            service: Keychain service name (defaults to KEYCHAIN_SERVICE)
            backend: Object with the keyring get/set/delete_password API;
                the `keyring` module by default
        """
        self.kv_store = kv_store or KeyValueStore()
        self.service = service or get_settings().keychain_service
        self.backend = backend or keyring

    async def store_session(self, cookie: Optional[str], user: Optional[str] = None) -> bool:
        """
        Save the session credential of `user`.

        Returns:
            False for a blank value or when no storage accepted it
        """
        value = str(cookie or "").strip()
        if not value:
            return False

        try:
            await asyncio.to_thread(
                self.backend.set_password, self.service, _account(user), value
            )
            return True
        except KeyringError as e:
            logger.warning(f"Keychain unavailable, using fallback storage: {e}")

        try:
            await self.kv_store.set(fallback_key(user), value)
        except OSError as e:
            logger.error(f"Failed to store session credential: {e}")
            return False
        return True

    async def get_session(self, user: Optional[str] = None) -> Optional[str]:
        try:
            value = await asyncio.to_thread(
                self.backend.get_password, self.service, _account(user)
            )
            if value:
                return value
        except KeyringError as e:
            logger.warning(f"Keychain read failed: {e}")

        try:
            return await self.kv_store.get(fallback_key(user)) or None
        except OSError as e:
            logger.error(f"Failed to read session credential: {e}")
            return None

    async def clear_session(self, user: Optional[str] = None):
        """Remove the credential from the keychain, else from fallback storage."""
        try:
            await asyncio.to_thread(self.backend.delete_password, self.service, _account(user))
            return
        except PasswordDeleteError:
            # Nothing in the keychain; the value may be in fallback storage
            pass
        except KeyringError as e:
            logger.warning(f"Keychain clear failed: {e}")

        try:
            await self.kv_store.remove(fallback_key(user))
        except OSError as e:
            logger.error(f"Failed to clear session credential: {e}")
