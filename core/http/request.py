"""
JSON requests against upstream feeds.

Both the GBFS station feed and the ride-history API go through
:func:`request_json`, so a given HTTP status always surfaces as the same
application exception.
"""

from __future__ import annotations

import logging
from typing import Any

from core.casting import safe_int
from core.exceptions import (
    AuthenticationException,
    ExternalServiceException,
    RateLimitException,
)

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER_SECONDS = 5


async def raise_for_upstream_status(response: Any, service_name: str) -> None:
    """Translate a non-2xx upstream response into an application error."""
    status = response.status
    if 200 <= status < 300:
        return

    url = str(getattr(response, "url", "") or "")
    if status == 429:
        retry_after = safe_int(
            response.headers.get("Retry-After"), DEFAULT_RETRY_AFTER_SECONDS
        )
        msg = f"{service_name} rate limited"
        raise RateLimitException(
            msg, {"status": status, "retry_after": retry_after, "url": url}
        )
    if status in (401, 403):
        msg = f"{service_name} rejected credentials ({status})"
        raise AuthenticationException(msg, {"status": status})

    body = await response.text()
    logger.debug("%s returned %s: %s", service_name, status, body[:200])
    msg = f"{service_name} returned HTTP {status}"
    raise ExternalServiceException(msg, {"status": status, "body": body, "url": url})


async def request_json(
    method: str,
    url: str,
    *,
    session: Any,
    service_name: str,
    params: dict[str, Any] | None = None,
    json: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout: Any | None = None,
) -> Any:
    """Send one request and return the decoded JSON body."""
    kwargs: dict[str, Any] = {"params": params, "json": json, "headers": headers}
    if timeout is not None:
        kwargs["timeout"] = timeout

    send = session.post if method.upper() == "POST" else session.get
    async with send(url, **kwargs) as response:
        await raise_for_upstream_status(response, service_name)
        return await response.json()
