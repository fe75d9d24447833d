"""Shared aiohttp client session for outbound OSRM calls.

One session per process and event loop. A session inherited through a fork
or created on another loop is replaced on next use.
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

USER_AGENT = "DriverRouteTracker/1.0"


class SessionState:
    """Holder for the process-wide session."""

    session: aiohttp.ClientSession | None = None
    owner_pid: int | None = None


def _is_reusable(session: aiohttp.ClientSession) -> bool:
    if session.closed or SessionState.owner_pid != os.getpid():
        return False
    try:
        return session.loop is asyncio.get_running_loop()
    except RuntimeError:
        return not session.loop.is_closed()


def _new_session() -> aiohttp.ClientSession:
    return aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(
            total=HTTP_TIMEOUT_TOTAL,
            connect=HTTP_TIMEOUT_CONNECT,
            sock_read=HTTP_TIMEOUT_SOCK_READ,
        ),
        headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        connector=aiohttp.TCPConnector(limit=HTTP_CONNECTION_LIMIT),
    )


async def get_session() -> aiohttp.ClientSession:
    """Return the shared session, creating it when missing or stale."""
    current = SessionState.session
    if current is not None and _is_reusable(current):
        return current

    if current is not None and SessionState.owner_pid == os.getpid():
        # Same process, different loop: close what we can before replacing.
        if not current.closed and not current.loop.is_closed():
            try:
                await current.close()
            except (aiohttp.ClientError, RuntimeError) as exc:
                logger.warning("Error closing stale HTTP session: %s", exc)

    SessionState.session = _new_session()
    SessionState.owner_pid = os.getpid()
    logger.debug("Created HTTP session for process %s", SessionState.owner_pid)
    return SessionState.session


async def cleanup_session() -> None:
    """Close the shared session on shutdown."""
    session = SessionState.session
    SessionState.session = None
    SessionState.owner_pid = None
    if session is not None and not session.closed:
        await session.close()
        logger.info("Closed HTTP session for process %s", os.getpid())
