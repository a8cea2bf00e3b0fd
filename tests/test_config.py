"""Tests for configuration loading."""
from pathlib import Path

import pytest

from packscan.core.config import Settings, get_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("AI_GATEWAY_API_KEY", "LOVABLE_API_KEY", "CORS_ORIGINS", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.app_name == "PackScan"
        assert settings.ai_gateway_api_key is None
        assert settings.ai_gateway_url == "https://ai.gateway.lovable.dev/v1"
        assert settings.analysis_model == "google/gemini-2.5-flash"
        assert settings.image_model == "google/gemini-2.5-flash-image-preview"
        assert settings.generate_structure_images is True
        assert settings.get_cors_origins_list() == ["*"]
        assert settings.get_cors_methods_list() == ["*"]
        assert "authorization" in settings.get_cors_headers_list()

    @pytest.mark.parametrize("env_name", ["AI_GATEWAY_API_KEY", "LOVABLE_API_KEY"])
    def test_api_key_from_env(self, monkeypatch, env_name):
        monkeypatch.setenv(env_name, "sk-from-env")
        assert Settings(_env_file=None).ai_gateway_api_key == "sk-from-env"

    def test_blank_api_key_is_missing(self, monkeypatch):
        monkeypatch.setenv("AI_GATEWAY_API_KEY", "   ")
        assert Settings(_env_file=None).ai_gateway_api_key is None

    @pytest.mark.parametrize("value, expected", [
        ("https://a.test, https://b.test", ["https://a.test", "https://b.test"]),
        ('["https://a.test"]', ["https://a.test"]),
        ("*", ["*"]),
    ])
    def test_cors_origins(self, monkeypatch, value, expected):
        monkeypatch.setenv("CORS_ORIGINS", value)
        assert Settings(_env_file=None).get_cors_origins_list() == expected

    def test_log_level_validation(self, monkeypatch):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"
        with pytest.raises(ValueError):
            Settings(_env_file=None, log_level="chatty")

    def test_bucket_path(self):
        settings = Settings(_env_file=None, storage_dir="/srv/packscan", storage_bucket="analyses")
        assert settings.bucket_path == Path("/srv/packscan/analyses")

    def test_get_settings_cached(self):
        assert get_settings() is get_settings()
