from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Mapping

from vid2tune.errors import JobFailedError, JobTimeoutError, ProviderRequestError, UnexpectedStatusError
from vid2tune.types import JobSnapshot, JobState

logger = logging.getLogger(__name__)

StatusFetcher = Callable[[], Awaitable[JobSnapshot]]
Sleeper = Callable[[float], Awaitable[Any]]


async def await_completion(
    fetch_status: StatusFetcher,
    *,
    interval_seconds: float = 3.0,
    max_wait_seconds: float | None = None,
    max_attempts: int | None = None,
    max_consecutive_errors: int = 0,
    sleep: Sleeper = asyncio.sleep,
) -> dict[str, Any]:
    """Poll ``fetch_status`` until the job reaches a terminal state.

    Returns the payload of the first ``finished`` snapshot. An ``error``
    snapshot raises :class:`JobFailedError`. Leaving ``max_wait_seconds`` and
    ``max_attempts`` unset polls forever; exceeding either raises
    :class:`JobTimeoutError`.

    A :class:`ProviderRequestError` from ``fetch_status`` aborts polling unless
    ``max_consecutive_errors`` allows it; the counter resets after every
    successful fetch. :class:`UnexpectedStatusError` always aborts.
    """
    started = time.monotonic()
    attempts = 0
    consecutive_errors = 0
    while True:
        attempts += 1
        try:
            snapshot = await fetch_status()
        except UnexpectedStatusError:
            raise
        except ProviderRequestError as exc:
            consecutive_errors += 1
            if consecutive_errors > max_consecutive_errors:
                raise
            logger.warning(
                "Status poll failed (%s/%s): %s",
                consecutive_errors,
                max_consecutive_errors,
                exc,
            )
        else:
            consecutive_errors = 0
            if snapshot.state == "finished":
                return snapshot.payload
            if snapshot.state == "error":
                raise JobFailedError(snapshot.message or "Job failed")
            logger.debug("Job still pending after %s attempt(s)", attempts)

        if max_attempts is not None and attempts >= max_attempts:
            raise JobTimeoutError(f"Job did not finish after {attempts} attempts")
        if max_wait_seconds is not None and time.monotonic() - started >= max_wait_seconds:
            raise JobTimeoutError(f"Job did not finish within {max_wait_seconds:g} seconds")

        await sleep(interval_seconds)


def classify_status(provider: str, status_map: Mapping[str, JobState], status: object) -> JobState:
    """Map a provider status string onto a :data:`JobState`.

    A missing status counts as pending so the poller asks again; an
    unrecognized one raises :class:`UnexpectedStatusError`.
    """
    if status is None or status == "":
        return "pending"
    key = str(status).lower()
    if key not in status_map:
        raise UnexpectedStatusError(provider, key)
    return status_map[key]
