"""
app/connectors/base.py

Shared HTTP mechanics for talking to the reporting backend.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

from app.config import BackendAPISettings

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class BackendRequestError(RuntimeError):
    """
    Raised when the backend cannot be reached or rejects a request.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class BackendPayloadError(BackendRequestError):
    """
    Raised when a backend response does not have the expected shape.
    """


class BaseBackendClient:
    """
    HTTP client base with timeout, retry and exponential backoff.

    The base URL and timeout come from explicit settings passed at
    construction; there is no module-level client.
    """

    source = "backend"

    def __init__(
        self,
        *,
        http_settings: BackendAPISettings,
        session: requests.Session | None = None,
    ) -> None:
        self._session = session or requests.Session()
        self._base_url = http_settings.base_url.rstrip("/")
        self._timeout_seconds = http_settings.timeout_seconds
        self._max_retries = http_settings.max_retries
        self._backoff_initial_seconds = http_settings.backoff_initial_seconds
        self._backoff_multiplier = http_settings.backoff_multiplier

    @property
    def base_url(self) -> str:
        return self._base_url

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    def _request_json(
        self,
        *,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        retry: bool = True,
    ) -> Any:
        """
        Execute an HTTP request and return parsed JSON.
        """

        response = self._request(
            method=method,
            path=path,
            params=params,
            data=data,
            files=files,
            retry=retry,
        )
        try:
            return response.json()
        except ValueError as exc:
            raise BackendPayloadError(
                f"{self.source}: response from {path} was not valid JSON.",
                status_code=response.status_code,
            ) from exc

    def _request(
        self,
        *,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        retry: bool = True,
    ) -> requests.Response:
        """
        Execute an HTTP request with exponential backoff on transient errors.
        """

        url = self._url(path)
        max_retries = self._max_retries if retry else 0
        last_error: Exception | None = None
        last_status: int | None = None
        for attempt in range(max_retries + 1):
            try:
                response = self._session.request(
                    method=method,
                    url=url,
                    params=params,
                    data=data,
                    files=files,
                    timeout=self._timeout_seconds,
                )
                if response.status_code in RETRYABLE_STATUS_CODES:
                    raise requests.HTTPError(
                        f"Retryable HTTP status code: {response.status_code}",
                        response=response,
                    )
                response.raise_for_status()
                return response
            except requests.HTTPError as exc:
                last_error = exc
                last_status = exc.response.status_code if exc.response is not None else None
                if last_status not in RETRYABLE_STATUS_CODES:
                    logger.error(
                        "Backend request failed method=%s status=%s url=%s error=%s",
                        method,
                        last_status,
                        url,
                        exc,
                    )
                    raise BackendRequestError(
                        f"{self.source}: {method} {path} failed with status {last_status}.",
                        status_code=last_status,
                    ) from exc
            except (requests.Timeout, requests.ConnectionError) as exc:
                last_error = exc
                last_status = None

            if attempt >= max_retries:
                break

            backoff_seconds = self._backoff_initial_seconds * (self._backoff_multiplier**attempt)
            logger.warning(
                "Backend request retry method=%s attempt=%s/%s wait_seconds=%.2f url=%s",
                method,
                attempt + 1,
                max_retries,
                backoff_seconds,
                url,
            )
            time.sleep(backoff_seconds)

        logger.error(
            "Backend request exhausted retries method=%s url=%s error=%s",
            method,
            url,
            last_error,
        )
        raise BackendRequestError(
            f"{self.source}: {method} {path} failed after retries.",
            status_code=last_status,
        ) from last_error
