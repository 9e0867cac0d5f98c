"""Shared aiohttp session for outbound feed requests.

One session per process and event loop; forked workers and test loops get
a fresh one instead of reusing a session bound to a dead loop.
"""

from __future__ import annotations

import asyncio
import logging
import os

import aiohttp

from core.constants import (
    HTTP_CONNECTION_LIMIT,
    HTTP_TIMEOUT_CONNECT,
    HTTP_TIMEOUT_SOCK_READ,
    HTTP_TIMEOUT_TOTAL,
)

logger = logging.getLogger(__name__)

USER_AGENT = "BikeshareEconomics/1.0"


class SessionState:
    """Holder for the process-wide session."""

    session: aiohttp.ClientSession | None = None
    owner_pid: int | None = None
    loop: asyncio.AbstractEventLoop | None = None


def _is_stale(current_pid: int, current_loop: asyncio.AbstractEventLoop) -> bool:
    session = SessionState.session
    if session is None or session.closed:
        return True
    if SessionState.owner_pid != current_pid:
        logger.debug(
            "Dropping session inherited from process %s",
            SessionState.owner_pid,
        )
        return True
    return SessionState.loop is not current_loop or current_loop.is_closed()


async def get_session() -> aiohttp.ClientSession:
    """Return the shared ClientSession, creating it when needed."""
    current_pid = os.getpid()
    current_loop = asyncio.get_running_loop()

    if not _is_stale(current_pid, current_loop):
        return SessionState.session  # type: ignore[return-value]

    stale = SessionState.session
    if (
        stale is not None
        and not stale.closed
        and SessionState.owner_pid == current_pid
        and SessionState.loop is not None
        and not SessionState.loop.is_closed()
        and SessionState.loop is current_loop
    ):
        await stale.close()

    timeout = aiohttp.ClientTimeout(
        total=HTTP_TIMEOUT_TOTAL,
        connect=HTTP_TIMEOUT_CONNECT,
        sock_read=HTTP_TIMEOUT_SOCK_READ,
    )
    SessionState.session = aiohttp.ClientSession(
        timeout=timeout,
        headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        connector=aiohttp.TCPConnector(limit=HTTP_CONNECTION_LIMIT),
    )
    SessionState.owner_pid = current_pid
    SessionState.loop = current_loop
    logger.debug("Created aiohttp session for process %s", current_pid)
    return SessionState.session


async def cleanup_session() -> None:
    """Close the shared session (call during app shutdown)."""
    session = SessionState.session
    if session is not None and not session.closed:
        try:
            await session.close()
        except (aiohttp.ClientError, RuntimeError) as e:
            logger.warning("Error closing session: %s", e)
        else:
            logger.info("Closed aiohttp session for process %s", os.getpid())

    SessionState.session = None
    SessionState.owner_pid = None
    SessionState.loop = None
