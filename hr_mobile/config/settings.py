"""
Application settings management using Pydantic Settings.

Loads configuration from environment variables with type validation.
Most ERP settings accept more than one environment name so that existing
mobile `.env` files keep working unchanged.
"""

import re
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # =========================================================================
    # Frappe / ERPNext
    # =========================================================================
    erp_url_resource: str = Field(
        default="",
        validation_alias=AliasChoices("erp_url_resource", "erp_url"),
        description="Resource endpoint base (e.g., https://erp.example.com/api/resource)",
    )
    erp_url_method: str = Field(
        default="",
        validation_alias=AliasChoices("erp_url_method", "erp_method_url"),
        description="Method endpoint base; derived from the resource base when empty",
    )
    erp_api_key: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("erp_apikey", "erp_api_key"),
        description="ERPNext API key",
    )
    erp_api_secret: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("erp_secret", "erp_api_secret"),
        description="ERPNext API secret",
    )
    erp_device_id: str = Field(
        default="MobileApp", description="Device label stamped on employee check-ins"
    )
    erp_timeout: float = Field(default=30.0, description="ERP request timeout in seconds")

    # =========================================================================
    # Microsoft identity platform (secondary login path)
    # =========================================================================
    microsoft_client_id: str = Field(
        default="", description="Public client ID registered for the mobile app"
    )
    microsoft_authority: str = Field(
        default="https://login.microsoftonline.com/common",
        description="Authority used for the authorization-code flow",
    )
    microsoft_redirect_uri: str = Field(
        default="msauth://com.hr_addons", description="Redirect URI for the PKCE flow"
    )

    # =========================================================================
    # Device storage and app lock
    # =========================================================================
    storage_path: Path = Field(
        default=Path.home() / ".hr_mobile" / "storage.json",
        description="Key-value store file used for app data and credential fallback",
    )
    keychain_service: str = Field(
        default="erp.session", description="Keychain service name for the session credential"
    )
    app_lock_enabled: bool = Field(
        default=False, description="Require a PIN before the app unlocks"
    )
    app_lock_min_length: int = Field(default=4, description="Minimum PIN length")

    # =========================================================================
    # Location stamping
    # =========================================================================
    geocoder_url: str = Field(
        default="https://nominatim.openstreetmap.org/reverse",
        description="Nominatim-compatible reverse geocoding endpoint",
    )
    geocoder_user_agent: str = Field(
        default="hr-mobile/1.0", description="User-Agent sent to the geocoder"
    )

    # =========================================================================
    # Application Settings
    # =========================================================================
    expense_category_cache_ttl: int = Field(
        default=300, description="Expense category cache lifetime in seconds"
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Application environment"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )
    host: str = Field(default="0.0.0.0", description="Gateway host")
    port: int = Field(default=8080, description="Gateway port")

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def resource_url(self) -> str:
        """Resource endpoint base without trailing slash."""
        return self.erp_url_resource.strip().rstrip("/")

    @property
    def method_url(self) -> str:
        """
        Method endpoint base without trailing slash.

        Falls back to the resource base with `/api/resource` swapped
        for `/api/method`.
        """
        method = self.erp_url_method.strip().rstrip("/")
        if method:
            return method
        resource = self.resource_url
        if resource:
            return re.sub(r"/api/resource$", "/api/method", resource, flags=re.IGNORECASE)
        return ""

    @property
    def erp_host(self) -> str:
        """Site root used to absolutize relative file URLs."""
        source = self.method_url or self.resource_url
        return re.sub(r"/api/(resource|method)$", "", source, flags=re.IGNORECASE)

    @property
    def is_erp_configured(self) -> bool:
        """True when the resource base and the API key pair are all set."""
        return bool(
            self.resource_url
            and self.erp_api_key.get_secret_value()
            and self.erp_api_secret.get_secret_value()
        )

    @property
    def erp_authorization(self) -> str:
        """Value of the Authorization header for token auth."""
        key = self.erp_api_key.get_secret_value()
        secret = self.erp_api_secret.get_secret_value()
        return f"token {key}:{secret}"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration instance
    """
    return Settings()
