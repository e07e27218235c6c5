"""Tests for environment configuration."""

import pytest

from listingwatch.config import REPOSITORIES, ConfigError, Settings

ENV = {
    "CRON_PATTERN": "*/5 * * * *",
    "INTERNSHIP_WEBHOOK_URL": "https://discord.com/api/webhooks/1/a",
    "NEW_GRAD_WEBHOOK_URL": "https://discord.com/api/webhooks/2/b",
}


class TestSettings:
    def test_required_only(self):
        settings = Settings.from_env(ENV)
        assert settings.cron_pattern == "*/5 * * * *"
        assert [c.name for c in settings.categories] == ["internship", "new_grad"]
        assert settings.categories[0].discord.role_id is None
        assert settings.categories[1].repositories == REPOSITORIES["new_grad"]
        assert settings.update_queue_interval == 1.0

    def test_optional_values(self):
        env = {
            **ENV,
            "INTERNSHIP_ROLE_ID": "123",
            "UPDATE_QUEUE_INTERVAL": "2.5",
            "MAX_POST_AGE": "3600",
            "LISTINGWATCH_DB": "/tmp/state.db",
        }
        settings = Settings.from_env(env)
        assert settings.categories[0].discord.role_id == "123"
        assert settings.update_queue_interval == 2.5
        assert settings.max_post_age == 3600
        assert settings.db_path == "/tmp/state.db"

    def test_missing_required(self):
        env = dict(ENV)
        del env["NEW_GRAD_WEBHOOK_URL"]
        with pytest.raises(ConfigError, match="NEW_GRAD_WEBHOOK_URL"):
            Settings.from_env(env)

    def test_empty_string_is_missing(self):
        with pytest.raises(ConfigError, match="CRON_PATTERN"):
            Settings.from_env({**ENV, "CRON_PATTERN": ""})

    def test_empty_role_is_none(self):
        settings = Settings.from_env({**ENV, "NEW_GRAD_ROLE_ID": ""})
        assert settings.categories[1].discord.role_id is None

    def test_invalid_webhook(self):
        with pytest.raises(ConfigError):
            Settings.from_env({**ENV, "INTERNSHIP_WEBHOOK_URL": "not a url"})

    def test_invalid_cron(self):
        with pytest.raises(ConfigError):
            Settings.from_env({**ENV, "CRON_PATTERN": "every five minutes"})
