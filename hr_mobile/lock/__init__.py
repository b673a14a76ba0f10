"""App lock."""

from .pin_gate import PIN_STORAGE_KEY, PinGate, PinGateState, PinMode, SetupStep

__all__ = ["PIN_STORAGE_KEY", "PinGate", "PinGateState", "PinMode", "SetupStep"]
