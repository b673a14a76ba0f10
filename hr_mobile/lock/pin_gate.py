"""
PIN app lock.

Holds the verify/setup state machine behind the lock screen. The PIN
itself lives in the key-value store under `app_lock_pin`.
"""

import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from hr_mobile.config import Settings, get_settings
from hr_mobile.storage import KeyValueStore

logger = logging.getLogger(__name__)

PIN_STORAGE_KEY = "app_lock_pin"


class PinMode(str, Enum):
    VERIFY = "verify"
    SETUP = "setup"


class SetupStep(str, Enum):
    ENTER = "enter"
    CONFIRM = "confirm"


class PinGateState(BaseModel):
    """What the lock screen should show."""

    unlocked: bool = False
    mode: PinMode = PinMode.SETUP
    step: SetupStep = SetupStep.ENTER
    pin_length: int = 4
    error: Optional[str] = None


class PinGate:
    """
    Local PIN gate shown before the app opens.

    When the lock is disabled `start()` reports unlocked straight away.
    """

    def __init__(
        self,
        kv_store: Optional[KeyValueStore] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.kv_store = kv_store or KeyValueStore()
        self.min_length = self.settings.app_lock_min_length
        self._stored_pin: Optional[str] = None
        self._first_pin: Optional[str] = None
        self.state = PinGateState(pin_length=self.min_length)

    @property
    def enabled(self) -> bool:
        return self.settings.app_lock_enabled

    async def start(self) -> PinGateState:
        """Load the stored PIN and pick verify or setup mode."""
        if not self.enabled:
            self.state = PinGateState(unlocked=True, mode=PinMode.VERIFY)
            return self.state

        self._stored_pin = await self.kv_store.get(PIN_STORAGE_KEY)
        self._first_pin = None
        if self._stored_pin:
            self.state = PinGateState(mode=PinMode.VERIFY, pin_length=len(self._stored_pin))
        else:
            self.state = PinGateState(mode=PinMode.SETUP, pin_length=self.min_length)
        return self.state

    async def submit(self, pin: str) -> PinGateState:
        """
        Handle a PIN entered on the current screen.

        Verify unlocks on a match. Setup takes the new PIN, then asks for
        it again and saves it once both entries match.
        """
        if self.state.unlocked:
            return self.state

        pin = str(pin or "")
        if not (pin.isascii() and pin.isdecimal()):
            return self._fail("PIN must contain digits only")

        if self.state.mode == PinMode.VERIFY:
            if pin == self._stored_pin:
                self.state = self.state.model_copy(update={"unlocked": True, "error": None})
                logger.info("App unlocked")
                return self.state
            return self._fail("Incorrect PIN")

        if self.state.step == SetupStep.ENTER:
            if len(pin) < self.min_length:
                return self._fail(f"PIN must be at least {self.min_length} digits")
            self._first_pin = pin
            self.state = self.state.model_copy(
                update={"step": SetupStep.CONFIRM, "pin_length": len(pin), "error": None}
            )
            return self.state

        if pin != self._first_pin:
            return self._fail("PINs do not match")

        try:
            await self.kv_store.set(PIN_STORAGE_KEY, pin)
        except OSError as e:
            logger.error(f"Failed to save PIN: {e}")
            return self._fail("Failed to save PIN")

        self._stored_pin = pin
        self._first_pin = None
        self.state = PinGateState(
            unlocked=True, mode=PinMode.VERIFY, pin_length=len(pin)
        )
        logger.info("App lock PIN set")
        return self.state

    async def reset(self) -> PinGateState:
        """Forget the stored PIN and return to setup."""
        await self.kv_store.remove(PIN_STORAGE_KEY)
        self._stored_pin = None
        self._first_pin = None
        self.state = PinGateState(mode=PinMode.SETUP, pin_length=self.min_length)
        logger.info("App lock PIN cleared")
        return self.state

    def _fail(self, message: str) -> PinGateState:
        self.state = self.state.model_copy(update={"error": message})
        return self.state
