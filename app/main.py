from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI

from app.config import get_backend_api_settings, get_dashboard_settings, load_env_files


def _validate_env() -> None:
    """
    Validate configuration environment variables at startup.

    Raises RuntimeError listing every invalid variable so the operator can
    fix all problems in one restart cycle.

    Rules:
    - ADSENSE_API_BASE_URL, when set, must be an http(s) URL.
    - DASHBOARD_ALL_ACCOUNTS_KEY, when set, must not be empty.
    """

    load_env_files()

    errors: list[str] = []

    base_url = os.getenv("ADSENSE_API_BASE_URL")
    if base_url is not None and not base_url.strip().lower().startswith(("http://", "https://")):
        errors.append(
            f"ADSENSE_API_BASE_URL='{base_url}' is not valid. It must start with http:// or https://."
        )

    all_key = os.getenv("DASHBOARD_ALL_ACCOUNTS_KEY")
    if all_key is not None and not all_key.strip():
        errors.append("DASHBOARD_ALL_ACCOUNTS_KEY is set but empty.")

    if errors:
        raise RuntimeError(
            "Startup validation failed - invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Log the backend the dashboard will aggregate from."""
    backend = get_backend_api_settings()
    dashboard = get_dashboard_settings()
    logging.getLogger(__name__).info(
        "Dashboard started backend=%s request_timeout=%.1fs fetch_timeout=%.1fs",
        backend.base_url,
        backend.timeout_seconds,
        dashboard.fetch_timeout_seconds,
    )
    yield
    logging.getLogger(__name__).info("Dashboard shut down")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="AdSense Dashboard API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import dashboard_router

    application.include_router(dashboard_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
