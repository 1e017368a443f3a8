"""Lifecycle logging and access-pattern callbacks for the session manager."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from mcp_milvus.session.state import SessionEvent, SessionState, utcnow

if TYPE_CHECKING:
    from mcp_milvus.session.manager import SessionManager

logger = logging.getLogger(__name__)

ACCESS_LOG_EVERY = 10
HIGH_FREQUENCY_MIN_ACCESSES = 100
HIGH_FREQUENCY_RATE_PER_MINUTE = 10.0


def _age_seconds(state: SessionState) -> float:
    return (utcnow() - state.created_at).total_seconds()


def log_session_event(event: SessionEvent, session_id: str, state: SessionState) -> None:
    """Log one lifecycle transition at a level matching its importance."""
    if event is SessionEvent.CREATED:
        logger.info(
            f"Session created: session_id={session_id} "
            f"address={state.config.address} database={state.current_database}"
        )
    elif event is SessionEvent.REMOVED:
        logger.info(
            f"Session removed: session_id={session_id} "
            f"database={state.current_database} access_count={state.access_count} "
            f"duration={_age_seconds(state):.1f}s"
        )
    elif event is SessionEvent.ACCESSED:
        if state.access_count % ACCESS_LOG_EVERY == 0:
            logger.debug(
                f"Session accessed: session_id={session_id} "
                f"access_count={state.access_count} last_access={state.last_accessed.isoformat()}"
            )
    elif event is SessionEvent.EXPIRED:
        logger.warning(
            f"Session expired: session_id={session_id} "
            f"database={state.current_database} access_count={state.access_count} "
            f"duration={_age_seconds(state):.1f}s"
        )


def access_rate_per_minute(state: SessionState) -> float:
    minutes = _age_seconds(state) / 60.0
    if minutes <= 0:
        return float("inf")
    return state.access_count / minutes


def detect_high_frequency_access(event: SessionEvent, session_id: str, state: SessionState) -> None:
    """Warn when a busy session is being hit faster than the expected rate."""
    if event is not SessionEvent.ACCESSED or state.access_count <= HIGH_FREQUENCY_MIN_ACCESSES:
        return

    rate = access_rate_per_minute(state)
    if rate > HIGH_FREQUENCY_RATE_PER_MINUTE:
        logger.warning(
            f"High frequency access pattern detected: session_id={session_id} "
            f"access_rate={rate:.1f}/min access_count={state.access_count} "
            f"duration={_age_seconds(state):.1f}s"
        )


def register_session_event_callbacks(manager: SessionManager) -> None:
    """Install the lifecycle logger and the high-frequency detector."""
    manager.add_event_callback(log_session_event)
    manager.add_event_callback(detect_high_frequency_access)


__all__ = [
    "access_rate_per_minute",
    "detect_high_frequency_access",
    "log_session_event",
    "register_session_event_callbacks",
]
