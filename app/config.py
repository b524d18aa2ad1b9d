"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

DEFAULT_BACKEND_BASE_URL = "http://localhost:8000/api"
DEFAULT_TIMEOUT_SECONDS = 30.0


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


@dataclass(frozen=True)
class BackendAPISettings:
    """
    Connection settings for the AdSense reporting backend.
    """

    base_url: str = DEFAULT_BACKEND_BASE_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    max_retries: int = 2
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0

    @property
    def retry_budget_seconds(self) -> float:
        """
        Worst-case wall time of one call: every attempt timing out plus all backoff waits.
        """

        backoff = sum(
            self.backoff_initial_seconds * (self.backoff_multiplier**attempt)
            for attempt in range(self.max_retries)
        )
        return self.timeout_seconds * (self.max_retries + 1) + backoff


@dataclass(frozen=True)
class DashboardSettings:
    """
    Runtime settings for multi-account dashboard views.
    """

    fetch_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    all_accounts_key: str = "all"


@lru_cache(maxsize=1)
def get_backend_api_settings() -> BackendAPISettings:
    """
    Return cached backend connection settings from environment variables.
    """

    return BackendAPISettings(
        base_url=_get_str_env("ADSENSE_API_BASE_URL", DEFAULT_BACKEND_BASE_URL),
        timeout_seconds=max(1.0, _get_float_env("ADSENSE_API_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)),
        max_retries=max(0, _get_int_env("ADSENSE_API_MAX_RETRIES", 2)),
        backoff_initial_seconds=max(0.1, _get_float_env("ADSENSE_API_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, _get_float_env("ADSENSE_API_BACKOFF_MULTIPLIER", 2.0)),
    )


@lru_cache(maxsize=1)
def get_dashboard_settings() -> DashboardSettings:
    """
    Return cached dashboard settings from environment variables.
    """

    return DashboardSettings(
        fetch_timeout_seconds=max(
            1.0,
            _get_float_env("DASHBOARD_FETCH_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
        ),
        all_accounts_key=_get_str_env("DASHBOARD_ALL_ACCOUNTS_KEY", "all"),
    )
