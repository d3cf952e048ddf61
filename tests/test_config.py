"""
Unit tests for settings validation.
"""
import pytest
from pydantic import ValidationError

from conftest import make_settings


class TestCustomSettings:
    """Tests for configuration validation."""

    def test_defaults(self):
        settings = make_settings()
        assert settings.epg_enabled is True
        assert settings.directory_ttl_sec == 6 * 3600
        assert settings.max_guide_size_bytes == 50 * 1024 * 1024
        assert settings.log_level == "INFO"

    def test_trailing_slash_is_stripped(self):
        settings = make_settings(guide_base_url="https://guides.test/files/")
        assert settings.guide_base_url == "https://guides.test/files"

    def test_non_http_url_is_rejected(self):
        with pytest.raises(ValidationError):
            make_settings(directory_api_base="ftp://directory.test")

    @pytest.mark.parametrize("field", ["directory_timeout_sec", "guide_timeout_sec", "directory_ttl_sec"])
    def test_non_positive_values_are_rejected(self, field):
        with pytest.raises(ValidationError):
            make_settings(**{field: 0})

    def test_zero_parse_timeout_disables(self):
        assert make_settings(guide_parse_timeout_sec=0).guide_parse_timeout_sec == 0

    def test_invalid_cron_is_rejected(self):
        with pytest.raises(ValidationError):
            make_settings(directory_refresh_cron="every six hours")

    def test_log_level_is_normalized(self):
        assert make_settings(log_level="debug").log_level == "DEBUG"
        with pytest.raises(ValidationError):
            make_settings(log_level="chatty")

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("EPG_ENABLED", "false")
        monkeypatch.setenv("DIRECTORY_TTL_SEC", "60")
        settings = make_settings()

        assert settings.epg_enabled is False
        assert settings.directory_ttl_sec == 60
