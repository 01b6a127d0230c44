"""Tests for environment-driven settings."""

import logging

import pytest

from tally.config import Settings
from tally.domain.account import AccountDeletionPolicy
from tally.domain.errors import ValidationError


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    monkeypatch.setenv("TALLY_DB_PATH", str(tmp_path / "env.db"))
    monkeypatch.delenv("TALLY_LOG_LEVEL", raising=False)
    monkeypatch.delenv("TALLY_ACCOUNT_DELETE_POLICY", raising=False)
    return tmp_path


class TestSettings:
    """Tests for Settings.from_environment."""

    def test_defaults(self, clean_env):
        settings = Settings.from_environment()
        assert settings.database_path == str(clean_env / "env.db")
        assert settings.log_level == "WARNING"
        assert settings.account_delete_policy is AccountDeletionPolicy.REFUSE

    def test_explicit_path_wins(self, clean_env):
        assert Settings.from_environment("/tmp/other.db").database_path == "/tmp/other.db"

    def test_environment_overrides(self, clean_env, monkeypatch):
        monkeypatch.setenv("TALLY_LOG_LEVEL", "info")
        monkeypatch.setenv("TALLY_ACCOUNT_DELETE_POLICY", "cascade")

        settings = Settings.from_environment()

        assert settings.log_level == "INFO"
        assert settings.account_delete_policy is AccountDeletionPolicy.CASCADE

    def test_invalid_policy(self, clean_env, monkeypatch):
        monkeypatch.setenv("TALLY_ACCOUNT_DELETE_POLICY", "shred")
        with pytest.raises(ValidationError):
            Settings.from_environment()

    def test_debug_logging(self, clean_env):
        logger = logging.getLogger("tally")
        previous = logger.level
        try:
            Settings.from_environment().setup_logging(debug=True)
            assert logger.level == logging.DEBUG
        finally:
            logger.setLevel(previous)
