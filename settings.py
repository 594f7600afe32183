from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional

from errors import ConfigError

LOGIN_URL = "https://erp.superior.edu.pk/web/login"
RESULTS_URL_PREFIX = "https://erp.superior.edu.pk/student/results/id/"
TARGET_SESSION = "FALL 2025"

DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36"
)

REQUIRED_VARIABLES = ("WEBHOOK", "ROLL_NO", "PASSWORD")


def _is_truthy(value: str) -> bool:
    return value.lower() in {"1", "true", "yes", "on"} if value else False


def _int_from_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _float_from_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    webhook_url: str
    username: str
    password: str
    target_session: str = TARGET_SESSION
    login_url: str = LOGIN_URL
    results_url_prefix: str = RESULTS_URL_PREFIX
    navigation_timeout_ms: int = 600_000
    settle_delay_ms: int = 3_000
    headless: bool = True
    browser: str = "chromium"
    viewport: Dict[str, int] = field(default_factory=lambda: {"width": 1600, "height": 900})
    user_agent: str = DESKTOP_USER_AGENT
    max_attempts: int = 5
    retry_backoff_seconds: float = 5.0
    state_file: Path = Path(tempfile.gettempdir()) / "grade_state.json"
    gcs_bucket_name: str = ""
    state_blob_name: str = "grade_state.json"
    baseline_path: Optional[Path] = None


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from the environment, failing fast on missing credentials.

    Call ``load_dotenv()`` first so values from a local ``.env`` are visible.
    """
    if env is None:
        env = os.environ

    missing = [name for name in REQUIRED_VARIABLES if not env.get(name, "").strip()]
    if missing:
        raise ConfigError(f"Missing required environment variable(s): {', '.join(missing)}")

    browser = env.get("PLAYWRIGHT_BROWSER", "chromium").strip().lower() or "chromium"
    if browser not in {"chromium", "firefox", "webkit"}:
        raise ConfigError(f"PLAYWRIGHT_BROWSER must be chromium, firefox or webkit, got {browser!r}")

    max_attempts = _int_from_env(env, "MAX_ATTEMPTS", 5)
    if max_attempts < 1:
        raise ConfigError("MAX_ATTEMPTS must be at least 1")

    temp_root = Path(env.get("GRADE_NOTIFIER_TEMP", tempfile.gettempdir()))
    baseline = env.get("BASELINE_FILE", "").strip()

    return Settings(
        webhook_url=env["WEBHOOK"].strip(),
        username=env["ROLL_NO"].strip(),
        password=env["PASSWORD"],
        target_session=env.get("TARGET_SESSION", "").strip() or TARGET_SESSION,
        login_url=env.get("ERP_LOGIN_URL", "").strip() or LOGIN_URL,
        results_url_prefix=env.get("ERP_RESULTS_URL_PREFIX", "").strip() or RESULTS_URL_PREFIX,
        navigation_timeout_ms=_int_from_env(env, "NAVIGATION_TIMEOUT_MS", 600_000),
        settle_delay_ms=_int_from_env(env, "SETTLE_DELAY_MS", 3_000),
        headless=not _is_truthy(env.get("RUN_HEADFUL", "")),
        browser=browser,
        viewport={
            "width": _int_from_env(env, "PLAYWRIGHT_VIEWPORT_WIDTH", 1600),
            "height": _int_from_env(env, "PLAYWRIGHT_VIEWPORT_HEIGHT", 900),
        },
        user_agent=env.get("PLAYWRIGHT_DESKTOP_UA", "").strip() or DESKTOP_USER_AGENT,
        max_attempts=max_attempts,
        retry_backoff_seconds=_float_from_env(env, "RETRY_BACKOFF_SECONDS", 5.0),
        state_file=Path(env.get("STATE_FILE", "").strip() or temp_root / "grade_state.json"),
        gcs_bucket_name=env.get("GCS_BUCKET_NAME", "").strip(),
        state_blob_name=env.get("STATE_BLOB_NAME", "").strip() or "grade_state.json",
        baseline_path=Path(baseline) if baseline else None,
    )
