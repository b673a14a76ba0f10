"""Configuration module for the HR mobile backend."""

from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
