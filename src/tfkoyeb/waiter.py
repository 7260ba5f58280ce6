"""
Status polling for Koyeb resources.

Used to confirm that a resource reached a ready state after create or
update, and that it is gone after delete.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, Iterable, Optional

import structlog

from tfkoyeb.clients.base import NotFoundHTTPError
from tfkoyeb.core.errors import ResourceNotFoundError, WaitTimeoutError

logger = structlog.get_logger()

DEFAULT_POLL_INTERVAL = 5.0

Fetch = Callable[[], Awaitable[Any]]
StatusExtractor = Callable[[Any], Optional[str]]


def default_status(resource: Any) -> str | None:
    """Read the ``status`` field of a fetched resource dict."""
    status = resource.get("status")
    return None if status is None else str(status)


service_status = default_status
deployment_status = default_status
domain_status = default_status


async def wait_for_status(
    fetch: Fetch,
    label: str,
    target_statuses: Iterable[str],
    *,
    timeout: float,
    not_found_is_error: bool,
    status_of: StatusExtractor = default_status,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> None:
    """
    Poll ``fetch`` until the resource status is one of ``target_statuses``.

    Args:
        fetch: Zero-argument coroutine function bound to one resource ID
        label: Resource label used in errors and logs
        target_statuses: Acceptable terminal statuses
        timeout: Seconds before giving up; no poll starts after the deadline
        not_found_is_error: When False a 404 counts as success (deletion);
            when True it raises ResourceNotFoundError
        status_of: Extracts the status string from a fetched resource
        poll_interval: Seconds to sleep between polls

    Raises:
        ResourceNotFoundError: Resource is gone and absence was not awaited
        WaitTimeoutError: Deadline reached without a target status
        UpstreamError: Any other fetch failure, unchanged
    """
    targets = list(target_statuses)
    deadline = clock() + timeout
    status: str | None = None
    attempt = 0

    while True:
        attempt += 1
        try:
            resource = await fetch()
        except NotFoundHTTPError as exc:
            if not not_found_is_error:
                logger.debug("status_wait_gone", label=label, attempts=attempt)
                return
            raise ResourceNotFoundError(label) from exc

        status = status_of(resource)
        logger.debug("status_wait_poll", label=label, status=status, attempt=attempt)
        if status in targets:
            return

        remaining = deadline - clock()
        if remaining <= 0:
            break
        await sleep(min(poll_interval, remaining))
        if clock() >= deadline:
            break

    logger.warning("status_wait_timeout", label=label, status=status, targets=targets)
    raise WaitTimeoutError(label, targets, timeout, status)
