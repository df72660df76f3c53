"""Periodic cleanup of expired sessions.

Expired sessions are kept for a retention window so they report
SessionExpired; this task forgets them once that window has passed.
"""

import asyncio

import structlog

from rolegraph.core.auth.sessions import SessionManager
from rolegraph.core.errors import StorageError


log = structlog.get_logger()


async def purge_expired_sessions(sessions: SessionManager, interval_seconds: int) -> None:
    """Purge expired sessions every ``interval_seconds`` until cancelled.

    A storage failure is logged and retried on the next tick.

    Args:
        sessions: The session manager to purge
        interval_seconds: Pause between runs
    """
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            removed = await sessions.purge_expired()
        except StorageError as exc:
            log.warning("session_purge_failed", error=exc.message)
            continue
        log.debug("session_purge_complete", removed=removed)
