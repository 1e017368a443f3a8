"""
Session manager for per-caller Milvus connections.

The manager binds opaque session identifiers to live backend clients. State is
held in a bounded TTL cache as immutable ``SessionState`` values that are
replaced as a whole on every update. Lifecycle events are dispatched to
registered callbacks on a worker pool so callers never wait on them.

Example usage:
    >>> with SessionManager(backend, max_sessions=10) as sessions:
    ...     sessions.set("abc", ConnectionConfig(address="http://localhost:19530"))
    ...     client = sessions.get("abc")
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from mcp_milvus.session.backend import ClientBackend, MilvusBackend
from mcp_milvus.session.cache import EvictionReason, SessionCache
from mcp_milvus.session.config import ConnectionConfig
from mcp_milvus.session.errors import (
    SessionError,
    SessionLimitError,
    SessionNotFoundError,
    SessionValidationError,
)
from mcp_milvus.session.state import SessionEvent, SessionEventCallback, SessionState
from mcp_milvus.telemetry import decrement_gauge, increment_gauge, record_counter, record_gauge

logger = logging.getLogger(__name__)

DEFAULT_MAX_SESSIONS = 100
DEFAULT_TTL = 3600.0
DEFAULT_MONITOR_INTERVAL = 900.0

ACTIVE_SESSIONS_GAUGE = "mcp_milvus.sessions.active"


class SessionManager:
    """Thread-safe registry of live backend sessions.

    Args:
        backend: Opens and closes clients; defaults to ``MilvusBackend``
        max_sessions: Soft cap on concurrently live sessions
        default_ttl: Seconds a session survives without being touched
        monitor_interval: Seconds between session-count log lines (0 disables)
        event_workers: Size of the lifecycle callback worker pool
        clock: Monotonic time source used for expiry
    """

    def __init__(
        self,
        backend: ClientBackend | None = None,
        *,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
        default_ttl: float = DEFAULT_TTL,
        monitor_interval: float = DEFAULT_MONITOR_INTERVAL,
        event_workers: int = 4,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_sessions <= 0:
            raise ValueError("max_sessions must be positive")

        self._backend = backend if backend is not None else MilvusBackend()
        self.max_sessions = max_sessions
        self.default_ttl = default_ttl
        self._cache: SessionCache[SessionState] = SessionCache(
            max_sessions, default_ttl, on_evict=self._on_evict, clock=clock
        )

        self._count = 0
        self._count_lock = threading.Lock()
        self._callbacks: list[SessionEventCallback] = []
        self._callbacks_lock = threading.Lock()
        self._executor = ThreadPoolExecutor(
            max_workers=event_workers, thread_name_prefix="session-events"
        )

        self._closed = False
        self._close_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._monitor_thread: threading.Thread | None = None
        if monitor_interval > 0:
            self._start_monitor(monitor_interval)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def set(self, session_id: str, config: ConnectionConfig | None) -> None:
        """Bind ``session_id`` to a new backend connection.

        An existing session with the same id is replaced: its connection is
        closed before the new one is opened. The token is parsed before any
        connection is touched. When two calls for one id overlap, the last
        write wins and the other connection is closed.

        Raises:
            SessionValidationError: Empty id or missing config
            ConnectionConfigError: Malformed credential token
            SessionLimitError: Too many live sessions and ``session_id`` is new
            BackendConnectionError: The backend refused the connection
        """
        if self._closed:
            raise SessionError("session manager is closed")
        if not session_id:
            raise SessionValidationError("session ID cannot be empty")
        if config is None:
            raise SessionValidationError("config cannot be None")

        config.to_client_kwargs()

        self._cache.sweep()
        previous = self._cache.pop(session_id)
        if previous is None and self.size() >= self.max_sessions:
            raise SessionLimitError(self.max_sessions)

        if previous is not None:
            logger.info(f"Replacing existing session {session_id}")
            self._close_client(session_id, previous.client)

        try:
            client = self._backend.connect(config)
        except Exception:
            if previous is not None:
                self._decrement()
                self._fire(SessionEvent.REMOVED, session_id, previous)
            raise

        state = SessionState(session_id=session_id, config=config, client=client)
        displaced = self._cache.set(session_id, state)
        if displaced is not None:
            # A concurrent set() for the same id stored its session while we were connecting.
            logger.info(f"Discarding concurrently created session {session_id}")
            self._close_client(session_id, displaced.client)
            if previous is not None:
                self._decrement()
        elif previous is None:
            self._increment()

        logger.debug(f"Session {session_id} connected to {config.address} (db={config.db_name})")
        self._fire(SessionEvent.CREATED, session_id, state)

    def get(self, session_id: str) -> Any:
        """Return the client for ``session_id`` and record the access.

        Raises:
            SessionValidationError: Empty id
            SessionNotFoundError: No live session with that id
        """
        if not session_id:
            raise SessionValidationError("session ID cannot be empty")

        updated = self._cache.update(session_id, SessionState.touched)
        if updated is None:
            raise SessionNotFoundError(session_id)

        _, state = updated
        self._fire(SessionEvent.ACCESSED, session_id, state)
        return state.client

    def get_state(self, session_id: str) -> SessionState:
        """Return a copy of the session state without counting an access."""
        return self._lookup(session_id).snapshot()

    def remove(self, session_id: str) -> None:
        """Close and forget one session."""
        if not session_id:
            raise SessionValidationError("session ID cannot be empty")

        state = self._cache.pop(session_id)
        if state is None:
            raise SessionNotFoundError(session_id)

        self._close_client(session_id, state.client)
        self._decrement()
        logger.debug(f"Session {session_id} removed")
        self._fire(SessionEvent.REMOVED, session_id, state)

    def clear(self) -> None:
        """Close every session's connection and drop all entries."""
        dropped = self._cache.clear()
        for session_id, state in dropped:
            self._close_client(session_id, state.client)

        with self._count_lock:
            removed, self._count = self._count, 0
        if removed:
            record_gauge(ACTIVE_SESSIONS_GAUGE, -removed, description="Live backend sessions")
        logger.info(f"Cleared {len(dropped)} sessions")

    def size(self) -> int:
        with self._count_lock:
            return self._count

    def __len__(self) -> int:
        return self.size()

    def set_session_metadata(self, session_id: str, key: str, value: Any) -> None:
        if not session_id:
            raise SessionValidationError("session ID cannot be empty")

        updated = self._cache.update(session_id, lambda state: state.with_metadata(key, value))
        if updated is None:
            raise SessionNotFoundError(session_id)

    def get_session_metadata(self, session_id: str) -> dict[str, Any]:
        return dict(self._lookup(session_id).metadata)

    def add_event_callback(self, callback: SessionEventCallback) -> None:
        """Register ``callback(event, session_id, state)`` for every lifecycle event."""
        with self._callbacks_lock:
            self._callbacks.append(callback)

    def close(self) -> None:
        """Stop monitoring, close all sessions and release the worker pool.

        Safe to call more than once.
        """
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        self._stop_event.set()
        if self._monitor_thread is not None:
            self._monitor_thread.join(timeout=5.0)
            self._monitor_thread = None

        self.clear()
        self._executor.shutdown(wait=True)
        logger.info("Session manager closed")

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> SessionManager:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lookup(self, session_id: str) -> SessionState:
        if not session_id:
            raise SessionValidationError("session ID cannot be empty")
        state = self._cache.get(session_id)
        if state is None:
            raise SessionNotFoundError(session_id)
        return state

    def _on_evict(self, session_id: str, state: SessionState, reason: EvictionReason) -> None:
        self._close_client(session_id, state.client)
        self._decrement()
        logger.debug(f"Session {session_id} evicted ({reason.value})")
        self._fire(SessionEvent.EXPIRED, session_id, state)

    def _close_client(self, session_id: str, client: Any) -> None:
        try:
            self._backend.close(client)
        except Exception as e:
            logger.warning(f"Failed to close client for session {session_id}: {e}")

    def _increment(self) -> None:
        with self._count_lock:
            self._count += 1
        increment_gauge(ACTIVE_SESSIONS_GAUGE, description="Live backend sessions")

    def _decrement(self) -> None:
        with self._count_lock:
            if self._count == 0:
                return
            self._count -= 1
        decrement_gauge(ACTIVE_SESSIONS_GAUGE, description="Live backend sessions")

    def _fire(self, event: SessionEvent, session_id: str, state: SessionState) -> None:
        with self._callbacks_lock:
            callbacks = list(self._callbacks)
        if not callbacks:
            return

        record_counter("mcp_milvus.sessions.events_total", attributes={"event": event.value})
        for callback in callbacks:
            try:
                self._executor.submit(self._run_callback, callback, event, session_id, state.snapshot())
            except RuntimeError:
                logger.debug(f"Dropping {event.value} event for {session_id}: worker pool is shut down")
                return

    @staticmethod
    def _run_callback(
        callback: SessionEventCallback, event: SessionEvent, session_id: str, state: SessionState
    ) -> None:
        try:
            callback(event, session_id, state)
        except Exception:
            logger.exception(f"Session event callback failed for {event.value} on {session_id}")

    def _start_monitor(self, interval: float) -> None:
        self._monitor_thread = threading.Thread(
            target=self._monitor_loop, args=(interval,), name="session-monitor", daemon=True
        )
        self._monitor_thread.start()
        logger.debug("Session monitor thread started")

    def _monitor_loop(self, interval: float) -> None:
        while not self._stop_event.wait(interval):
            logger.debug(f"Session cache stats: active_sessions={self.size()}")
        logger.debug("Session monitor thread stopped")


__all__ = ["SessionManager"]
