"""Tests for settings loading and boot-time validation."""

import pytest

from chainbot.config import load_settings
from chainbot.errors import ConfigError


class TestLoadSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123456:ABC")

        settings = load_settings()

        assert settings.ingest_mode == "poll"
        assert settings.poll_timeout_seconds == 25
        assert settings.initial_cursor is None
        assert settings.bot_id == 123456

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "42:XYZ")
        monkeypatch.setenv("INGEST_MODE", "webhook")
        monkeypatch.setenv("WEBHOOK_PATH", "/tg")
        monkeypatch.setenv("INITIAL_CURSOR", "1000")

        settings = load_settings()

        assert settings.ingest_mode == "webhook"
        assert settings.webhook_path == "/tg"
        assert settings.initial_cursor == 1000

    def test_missing_token_is_fatal(self, monkeypatch):
        monkeypatch.delenv("TELEGRAM_BOT_TOKEN", raising=False)

        with pytest.raises(ConfigError):
            load_settings(_env_file=None)

    def test_malformed_token_is_fatal(self):
        with pytest.raises(ConfigError, match="malformed"):
            load_settings(telegram_bot_token="no-colon")

    @pytest.mark.parametrize("token", ["abc:def", ":def", "123:", "12a4:xyz"])
    def test_token_needs_numeric_bot_id_and_secret(self, token):
        with pytest.raises(ConfigError, match="malformed"):
            load_settings(telegram_bot_token=token)

    def test_invalid_mode_is_fatal(self):
        with pytest.raises(ConfigError):
            load_settings(telegram_bot_token="1:A", ingest_mode="carrier-pigeon")

    def test_webhook_path_must_be_absolute(self):
        with pytest.raises(ConfigError, match="WEBHOOK_PATH"):
            load_settings(telegram_bot_token="1:A", ingest_mode="webhook", webhook_path="tg")
