"""On-device storage for app data and the session credential."""

from .kv_store import KeyValueStore
from .secure_store import SecureStore

__all__ = ["KeyValueStore", "SecureStore"]
