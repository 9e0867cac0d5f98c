"""Retry policy for outbound feed requests, built on tenacity."""

from __future__ import annotations

import asyncio
import logging

from aiohttp import ClientConnectorError, ClientError, ServerDisconnectedError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from core.exceptions import (
    AuthenticationException,
    ExternalServiceException,
    RateLimitException,
)

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    ClientConnectorError,
    ServerDisconnectedError,
    ClientError,
    asyncio.TimeoutError,
)


def _is_retryable(exc: BaseException) -> bool:
    # Rate limits get their own backoff in the callers; bad credentials never heal.
    if isinstance(exc, RateLimitException | AuthenticationException):
        return False
    if isinstance(exc, ExternalServiceException):
        status = exc.details.get("status")
        return status is None or int(status) >= 500
    return isinstance(exc, TRANSIENT_ERRORS)


def retry_async(
    max_retries: int = 3,
    retry_delay: float = 1.0,
    backoff_factor: float = 2.0,
):
    """Return a tenacity decorator retrying transient upstream failures.

    ``max_retries`` counts retries after the first attempt. The delay grows
    as ``retry_delay * backoff_factor ** attempt``. The final exception is
    re-raised once attempts run out.
    """
    return retry(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=retry_delay, exp_base=backoff_factor),
        retry=retry_if_exception(_is_retryable),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
