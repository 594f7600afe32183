from pathlib import Path

import pytest

from errors import ConfigError
from settings import LOGIN_URL, TARGET_SESSION, load_settings

REQUIRED = {"WEBHOOK": "https://hook", "ROLL_NO": "BSCS-F22-001", "PASSWORD": "secret"}


def test_missing_variables_are_all_named():
    with pytest.raises(ConfigError) as excinfo:
        load_settings({"WEBHOOK": "https://hook", "PASSWORD": "  "})

    assert "ROLL_NO" in str(excinfo.value)
    assert "PASSWORD" in str(excinfo.value)
    assert "WEBHOOK" not in str(excinfo.value)


def test_defaults():
    settings = load_settings(dict(REQUIRED))

    assert settings.webhook_url == "https://hook"
    assert settings.username == "BSCS-F22-001"
    assert settings.target_session == TARGET_SESSION
    assert settings.login_url == LOGIN_URL
    assert settings.navigation_timeout_ms == 600_000
    assert settings.headless is True
    assert settings.browser == "chromium"
    assert settings.max_attempts == 5
    assert settings.gcs_bucket_name == ""
    assert settings.baseline_path is None


def test_overrides():
    env = dict(
        REQUIRED,
        TARGET_SESSION="SPRING 2026",
        NAVIGATION_TIMEOUT_MS="30000",
        RUN_HEADFUL="yes",
        PLAYWRIGHT_BROWSER="Firefox",
        MAX_ATTEMPTS="2",
        RETRY_BACKOFF_SECONDS="0.5",
        STATE_FILE="/var/lib/grades/state.json",
        BASELINE_FILE="baseline.json",
    )

    settings = load_settings(env)

    assert settings.target_session == "SPRING 2026"
    assert settings.navigation_timeout_ms == 30000
    assert settings.headless is False
    assert settings.browser == "firefox"
    assert settings.max_attempts == 2
    assert settings.retry_backoff_seconds == 0.5
    assert settings.state_file == Path("/var/lib/grades/state.json")
    assert settings.baseline_path == Path("baseline.json")


@pytest.mark.parametrize(
    "name, value",
    [
        ("NAVIGATION_TIMEOUT_MS", "ten minutes"),
        ("MAX_ATTEMPTS", "0"),
        ("RETRY_BACKOFF_SECONDS", "soon"),
        ("PLAYWRIGHT_BROWSER", "netscape"),
    ],
)
def test_malformed_values(name, value):
    with pytest.raises(ConfigError, match=name):
        load_settings(dict(REQUIRED, **{name: value}))
