import pytest
from pydantic import ValidationError

from clubstatus.config.settings import Settings

SETTINGS_ENV = (
    "DATABASE_URL",
    "API_HOST",
    "API_PORT",
    "API_PASSWORD",
    "PRESENCE_CYCLE_SECONDS",
    "PRESENCE_TIMEOUT_SECONDS",
    "PRESENCE_INBOX_SIZE",
    "NOTIFICATION_QUEUE_SIZE",
    "LOG_LEVEL",
)


def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in SETTINGS_ENV:
        monkeypatch.delenv(key, raising=False)


def test_defaults_are_deterministic(monkeypatch: pytest.MonkeyPatch) -> None:
    _clear_env(monkeypatch)

    settings = Settings(_env_file=None)

    assert settings.database_url == "sqlite+aiosqlite:///./clubstatus.db"
    assert settings.api_host == "localhost"
    assert settings.api_port == 8000
    assert settings.api_password is None
    assert settings.presence_cycle_seconds == 20.0
    assert settings.presence_timeout_seconds == 900.0
    assert settings.presence_inbox_size == 256
    assert settings.notification_queue_size is None
    assert settings.log_level == "INFO"


def test_values_are_read_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:////var/lib/clubstatus/log.db")
    monkeypatch.setenv("API_PASSWORD", "hunter2")
    monkeypatch.setenv("API_PORT", "9090")
    monkeypatch.setenv("PRESENCE_TIMEOUT_SECONDS", "60")
    monkeypatch.setenv("NOTIFICATION_QUEUE_SIZE", "32")

    settings = Settings(_env_file=None)

    assert settings.database_url == "sqlite+aiosqlite:////var/lib/clubstatus/log.db"
    assert settings.api_password == "hunter2"
    assert settings.api_port == 9090
    assert settings.presence_timeout_seconds == 60.0
    assert settings.notification_queue_size == 32


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("API_PORT", "0"),
        ("API_PORT", "70000"),
        ("PRESENCE_CYCLE_SECONDS", "0"),
        ("PRESENCE_INBOX_SIZE", "-1"),
        ("DATABASE_URL", ""),
    ],
)
def test_invalid_values_raise_validation_error(
    monkeypatch: pytest.MonkeyPatch,
    key: str,
    value: str,
) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv(key, value)

    with pytest.raises(ValidationError):
        Settings(_env_file=None)
