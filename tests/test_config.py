"""
Tests for settings defaults and environment overrides.
"""
from voicelead.config import Settings, get_settings


class TestSettings:
    def test_defaults(self, settings):
        assert settings.analysis_source == "elevenlabs"
        assert settings.analysis_container_keys == ["default", "Basic CTA", "main", "primary"]
        assert settings.fallback_conversation_prefix == "fallback_"
        assert settings.fallback_agent_id == "unknown_agent"
        assert settings.default_caller_id == "internal"
        assert settings.blob_preview_chars == 200

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("FALLBACK_AGENT_ID", "")
        monkeypatch.setenv("ANALYSIS_CONTAINER_KEYS", '["Lead Scoring", "default"]')
        monkeypatch.setenv("BLOB_PREVIEW_CHARS", "50")

        settings = Settings(_env_file=None)
        assert settings.fallback_agent_id == ""
        assert settings.analysis_container_keys == ["Lead Scoring", "default"]
        assert settings.blob_preview_chars == 50

    def test_get_settings_is_cached(self):
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()
