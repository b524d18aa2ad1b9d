"""
app/services/fan_out.py

Concurrent per-account fetching that tolerates partial failure.

Every key gets its own fetch and its own timeout. A failing fetch is
recorded as data and never cancels its siblings.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Sequence, TypeVar

from app.connectors.base import BackendPayloadError, BackendRequestError
from app.domain.metrics import FanOutResult, FetchFailure, FetchFailureKind

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def fan_out_with_partial_tolerance(
    keys: Sequence[str],
    fetch: Callable[[str], Awaitable[T]],
    *,
    timeout_seconds: float,
) -> FanOutResult[T]:
    """
    Run ``fetch(key)`` for every key concurrently.

    Successes are returned in the order of *keys*, independent of completion
    order, so downstream aggregation is reproducible.
    """

    outcomes = await asyncio.gather(
        *(_guarded_fetch(key, fetch, timeout_seconds) for key in keys)
    )

    successes: list[T] = []
    failures: list[FetchFailure] = []
    for outcome in outcomes:
        if isinstance(outcome, FetchFailure):
            failures.append(outcome)
        else:
            successes.append(outcome)

    if failures:
        logger.warning(
            "Fan-out completed with partial failure succeeded=%d failed=%d keys=%s",
            len(successes),
            len(failures),
            ",".join(failure.key for failure in failures),
        )
    return FanOutResult(successes=successes, failures=failures)


async def _guarded_fetch(
    key: str,
    fetch: Callable[[str], Awaitable[T]],
    timeout_seconds: float,
) -> T | FetchFailure:
    try:
        return await asyncio.wait_for(fetch(key), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        failure = FetchFailure(
            key=key,
            kind=FetchFailureKind.TIMEOUT,
            message=f"Fetch timed out after {timeout_seconds:.1f}s.",
        )
    except BackendPayloadError as exc:
        failure = FetchFailure(key=key, kind=FetchFailureKind.PAYLOAD, message=str(exc))
    except BackendRequestError as exc:
        failure = FetchFailure(key=key, kind=FetchFailureKind.REQUEST, message=str(exc))
    except Exception as exc:
        logger.exception("Unhandled fetch failure key=%s error=%s", key, exc)
        failure = FetchFailure(key=key, kind=FetchFailureKind.UNEXPECTED, message=str(exc))

    logger.warning(
        "Fetch failed key=%s kind=%s error=%s",
        failure.key,
        failure.kind,
        failure.message,
    )
    return failure
