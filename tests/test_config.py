"""
Tests for Settings defaults.

conftest shortens the status delays for every other test, so these build
Settings with the relevant environment variables removed.
"""

import pytest

from rallychat.config import Settings


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("LOG_LEVEL", "DELIVERY_DELAY_MS", "READ_DELAY_MS", "LOCAL_SENDER_NAME", "SEED_MOCK_DATA"):
        monkeypatch.delenv(name, raising=False)


class TestSettingsDefaults:
    def test_status_delays(self, clean_env):
        """Delivered after one second, read after two, both from send time."""
        settings = Settings(_env_file=None)

        assert settings.DELIVERY_DELAY_MS == 1000
        assert settings.READ_DELAY_MS == 2000

    def test_session_defaults(self, clean_env):
        settings = Settings(_env_file=None)

        assert settings.LOG_LEVEL == "INFO"
        assert settings.LOCAL_SENDER_NAME == "You"
        assert settings.SEED_MOCK_DATA is True

    def test_delays_from_environment(self, monkeypatch):
        monkeypatch.setenv("DELIVERY_DELAY_MS", "250")
        monkeypatch.setenv("READ_DELAY_MS", "500")

        settings = Settings(_env_file=None)

        assert settings.DELIVERY_DELAY_MS == 250
        assert settings.READ_DELAY_MS == 500
