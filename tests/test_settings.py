"""
Unit Tests for hr_mobile.config.settings.
"""

import pytest

from hr_mobile.config import Settings


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "ERP_URL_RESOURCE",
        "ERP_URL",
        "ERP_URL_METHOD",
        "ERP_METHOD_URL",
        "ERP_APIKEY",
        "ERP_API_KEY",
        "ERP_SECRET",
        "ERP_API_SECRET",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestDerivedUrls:
    """Tests for URL properties."""

    def test_resource_url_strips_trailing_slash(self, settings):
        assert settings.resource_url == "https://erp.test/api/resource"

    def test_method_url_derived_from_resource(self, settings):
        assert settings.method_url == "https://erp.test/api/method"

    def test_explicit_method_url_wins(self, settings):
        custom = settings.model_copy(update={"erp_url_method": "https://rpc.test/api/method/"})

        assert custom.method_url == "https://rpc.test/api/method"
        assert custom.erp_host == "https://rpc.test"

    def test_erp_host(self, settings):
        assert settings.erp_host == "https://erp.test"

    def test_authorization_header(self, settings):
        assert settings.erp_authorization == "token key123:secret456"

    def test_is_configured(self, settings, unconfigured_settings):
        assert settings.is_erp_configured is True
        assert unconfigured_settings.is_erp_configured is False
        assert unconfigured_settings.method_url == ""


class TestEnvironmentAliases:
    """Tests for alternate environment variable names."""

    def test_legacy_names(self, clean_env):
        clean_env.setenv("ERP_URL", "https://legacy.test/api/resource")
        clean_env.setenv("ERP_APIKEY", "k")
        clean_env.setenv("ERP_SECRET", "s")

        settings = Settings(_env_file=None)

        assert settings.resource_url == "https://legacy.test/api/resource"
        assert settings.erp_authorization == "token k:s"

    def test_primary_names(self, clean_env):
        clean_env.setenv("ERP_URL_RESOURCE", "https://primary.test/api/resource")
        clean_env.setenv("ERP_METHOD_URL", "https://primary.test/api/method")
        clean_env.setenv("ERP_API_KEY", "k2")
        clean_env.setenv("ERP_API_SECRET", "s2")

        settings = Settings(_env_file=None)

        assert settings.method_url == "https://primary.test/api/method"
        assert settings.is_erp_configured is True

    def test_defaults(self, clean_env):
        settings = Settings(_env_file=None)

        assert settings.erp_device_id == "MobileApp"
        assert settings.app_lock_enabled is False
        assert settings.expense_category_cache_ttl == 300
        assert settings.keychain_service == "erp.session"
