import threading

import pytest

from mcp_milvus.session import (
    BackendConnectionError,
    ConnectionConfig,
    ConnectionConfigError,
    SessionError,
    SessionEvent,
    SessionLimitError,
    SessionManager,
    SessionNotFoundError,
    SessionState,
    SessionValidationError,
)

CONFIG = ConnectionConfig(address="http://localhost:19530")


class EventLog:
    def __init__(self) -> None:
        self.events: list[tuple[SessionEvent, str, SessionState]] = []
        self._lock = threading.Lock()

    def __call__(self, event: SessionEvent, session_id: str, state: SessionState) -> None:
        with self._lock:
            self.events.append((event, session_id, state))

    def of(self, event: SessionEvent) -> list[tuple[SessionEvent, str, SessionState]]:
        with self._lock:
            return [entry for entry in self.events if entry[0] is event]


@pytest.fixture
def events(sessions: SessionManager) -> EventLog:
    log = EventLog()
    sessions.add_event_callback(log)
    return log


def test_set_and_get(sessions: SessionManager, backend) -> None:
    sessions.set("s1", CONFIG)
    client = sessions.get("s1")
    assert client is backend.clients[0]
    assert client.config == CONFIG
    assert sessions.size() == 1
    assert len(sessions) == 1


def test_set_validates_arguments(sessions: SessionManager, backend) -> None:
    with pytest.raises(SessionValidationError, match="session ID cannot be empty"):
        sessions.set("", CONFIG)
    with pytest.raises(SessionValidationError, match="config cannot be None"):
        sessions.set("s1", None)
    assert backend.clients == []


def test_malformed_token_fails_before_connecting(sessions: SessionManager, backend) -> None:
    sessions.set("s1", CONFIG)
    bad = ConnectionConfig(address="http://localhost:19530", token="no-colon")
    with pytest.raises(ConnectionConfigError):
        sessions.set("s1", bad)
    # The existing session is left untouched.
    assert len(backend.clients) == 1
    assert backend.closed == []
    assert sessions.get("s1") is backend.clients[0]


def test_get_unknown_session(sessions: SessionManager) -> None:
    with pytest.raises(SessionNotFoundError, match="session not found: nope"):
        sessions.get("nope")
    with pytest.raises(SessionValidationError):
        sessions.get("")


def test_get_counts_accesses(sessions: SessionManager) -> None:
    sessions.set("s1", CONFIG)
    assert sessions.get_state("s1").access_count == 0
    for _ in range(3):
        sessions.get("s1")
    state = sessions.get_state("s1")
    assert state.access_count == 3
    assert state.last_accessed >= state.created_at


def test_get_state_does_not_count_access(sessions: SessionManager) -> None:
    sessions.set("s1", CONFIG)
    sessions.get_state("s1")
    sessions.get_state("s1")
    assert sessions.get_state("s1").access_count == 0


def test_replace_existing_session_closes_old_client(sessions: SessionManager, backend) -> None:
    sessions.set("s1", CONFIG)
    sessions.get("s1")
    other = ConnectionConfig(address="http://other:19530", db_name="books")
    sessions.set("s1", other)

    assert sessions.size() == 1
    assert backend.closed == [backend.clients[0]]
    state = sessions.get_state("s1")
    assert state.config == other
    assert state.access_count == 0


def test_session_limit(sessions: SessionManager) -> None:
    for i in range(5):
        sessions.set(f"s{i}", CONFIG)
    with pytest.raises(SessionLimitError, match=r"maximum number of sessions \(5\) reached"):
        sessions.set("s5", CONFIG)
    assert sessions.size() == 5


def test_replacement_at_limit_is_admitted(sessions: SessionManager) -> None:
    for i in range(5):
        sessions.set(f"s{i}", CONFIG)
    sessions.set("s0", ConnectionConfig(address="http://other:19530"))
    assert sessions.size() == 5
    assert sessions.get_state("s0").config.address == "http://other:19530"


def test_connect_failure(sessions: SessionManager, backend) -> None:
    backend.fail_connect = True
    with pytest.raises(BackendConnectionError):
        sessions.set("s1", CONFIG)
    assert sessions.size() == 0
    with pytest.raises(SessionNotFoundError):
        sessions.get("s1")


def test_failed_reconnect_drops_previous_session(
    sessions: SessionManager, backend, events: EventLog, wait_until
) -> None:
    sessions.set("s1", CONFIG)
    backend.fail_connect = True
    with pytest.raises(BackendConnectionError):
        sessions.set("s1", CONFIG)
    assert sessions.size() == 0
    assert backend.closed == [backend.clients[0]]
    wait_until(lambda: len(events.of(SessionEvent.REMOVED)) == 1)


def test_remove(sessions: SessionManager, backend) -> None:
    sessions.set("s1", CONFIG)
    sessions.remove("s1")
    assert sessions.size() == 0
    assert backend.clients[0].closed
    with pytest.raises(SessionNotFoundError):
        sessions.remove("s1")
    with pytest.raises(SessionValidationError):
        sessions.remove("")


def test_close_failure_is_swallowed(sessions: SessionManager, backend) -> None:
    sessions.set("s1", CONFIG)
    backend.fail_close = True
    sessions.remove("s1")
    assert sessions.size() == 0


def test_clear_closes_every_client(sessions: SessionManager, backend) -> None:
    for i in range(3):
        sessions.set(f"s{i}", CONFIG)
    sessions.clear()
    assert sessions.size() == 0
    assert all(client.closed for client in backend.clients)
    with pytest.raises(SessionNotFoundError):
        sessions.get("s0")


def test_metadata_copy_on_write(sessions: SessionManager) -> None:
    sessions.set("s1", CONFIG)
    sessions.set_session_metadata("s1", "client_type", "mcp_client")

    metadata = sessions.get_session_metadata("s1")
    assert metadata == {"client_type": "mcp_client"}

    metadata["client_type"] = "mutated"
    assert sessions.get_session_metadata("s1") == {"client_type": "mcp_client"}

    state = sessions.get_state("s1")
    state.metadata["other"] = 1
    assert "other" not in sessions.get_session_metadata("s1")


def test_metadata_unknown_session(sessions: SessionManager) -> None:
    with pytest.raises(SessionNotFoundError):
        sessions.set_session_metadata("nope", "k", "v")
    with pytest.raises(SessionNotFoundError):
        sessions.get_session_metadata("nope")


def test_ttl_expiry(sessions: SessionManager, backend, clock, events: EventLog, wait_until) -> None:
    sessions.set("s1", CONFIG)
    clock.advance(61.0)
    with pytest.raises(SessionNotFoundError):
        sessions.get("s1")
    assert sessions.size() == 0
    assert backend.clients[0].closed
    wait_until(lambda: len(events.of(SessionEvent.EXPIRED)) == 1)


def test_access_refreshes_ttl(sessions: SessionManager, clock) -> None:
    sessions.set("s1", CONFIG)
    clock.advance(40.0)
    sessions.get("s1")
    clock.advance(40.0)
    assert sessions.get("s1") is not None


def test_expired_sessions_swept_on_insert(sessions: SessionManager, backend, clock) -> None:
    sessions.set("old", CONFIG)
    clock.advance(61.0)
    sessions.set("new", CONFIG)
    assert sessions.size() == 1
    assert backend.clients[0].closed


def test_lifecycle_events(sessions: SessionManager, events: EventLog, wait_until) -> None:
    sessions.set("s1", CONFIG)
    sessions.get("s1")
    sessions.remove("s1")

    wait_until(lambda: len(events.events) == 3)
    # Callbacks run on a worker pool, so delivery order is not fixed.
    assert {event for event, _, _ in events.events} == {
        SessionEvent.CREATED,
        SessionEvent.ACCESSED,
        SessionEvent.REMOVED,
    }
    _, session_id, state = events.of(SessionEvent.ACCESSED)[0]
    assert session_id == "s1"
    assert state.access_count == 1


def test_callback_receives_independent_metadata(
    sessions: SessionManager, events: EventLog, wait_until
) -> None:
    sessions.set("s1", CONFIG)
    sessions.set_session_metadata("s1", "k", "v")
    sessions.get("s1")
    wait_until(lambda: len(events.of(SessionEvent.ACCESSED)) == 1)

    _, _, state = events.of(SessionEvent.ACCESSED)[0]
    state.metadata["k"] = "changed"
    assert sessions.get_session_metadata("s1") == {"k": "v"}


def test_failing_callback_does_not_block_others(
    sessions: SessionManager, events: EventLog, wait_until
) -> None:
    def explode(event: SessionEvent, session_id: str, state: SessionState) -> None:
        raise RuntimeError("callback failure")

    sessions.add_event_callback(explode)
    later = EventLog()
    sessions.add_event_callback(later)

    sessions.set("s1", CONFIG)
    wait_until(lambda: len(later.of(SessionEvent.CREATED)) == 1)
    wait_until(lambda: len(events.of(SessionEvent.CREATED)) == 1)


def test_close_is_idempotent(backend, clock) -> None:
    manager = SessionManager(backend, monitor_interval=0.01, clock=clock)
    manager.set("s1", CONFIG)
    manager.close()
    manager.close()

    assert manager.closed
    assert manager.size() == 0
    assert backend.clients[0].closed
    with pytest.raises(SessionError, match="session manager is closed"):
        manager.set("s2", CONFIG)


def test_context_manager(backend) -> None:
    with SessionManager(backend, monitor_interval=0) as manager:
        manager.set("s1", CONFIG)
    assert manager.closed
    assert backend.clients[0].closed


def test_invalid_max_sessions(backend) -> None:
    with pytest.raises(ValueError):
        SessionManager(backend, max_sessions=0, monitor_interval=0)


def test_concurrent_gets_are_all_counted(sessions: SessionManager) -> None:
    sessions.set("s1", CONFIG)

    def hammer() -> None:
        for _ in range(50):
            sessions.get("s1")

    threads = [threading.Thread(target=hammer) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sessions.get_state("s1").access_count == 200


class GatedBackend:
    """Wraps a backend so that ``connect`` blocks until ``parties`` callers are inside it."""

    def __init__(self, backend, parties: int) -> None:
        self._backend = backend
        self.gate: threading.Barrier | None = None
        self.parties = parties

    def open_gate(self) -> None:
        self.gate = threading.Barrier(self.parties, timeout=5.0)

    def connect(self, config: ConnectionConfig):
        if self.gate is not None:
            self.gate.wait()
        return self._backend.connect(config)

    def close(self, client) -> None:
        self._backend.close(client)


def run_concurrently(*targets) -> None:
    errors: list[BaseException] = []

    def guarded(target) -> None:
        try:
            target()
        except BaseException as e:
            errors.append(e)

    threads = [threading.Thread(target=guarded, args=(target,)) for target in targets]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10.0)
    assert errors == []


def test_overlapping_set_keeps_one_connection(backend, clock) -> None:
    gated = GatedBackend(backend, parties=2)
    with SessionManager(gated, max_sessions=5, default_ttl=60.0, monitor_interval=0, clock=clock) as manager:
        gated.open_gate()
        run_concurrently(lambda: manager.set("s1", CONFIG), lambda: manager.set("s1", CONFIG))

        assert len(backend.clients) == 2
        assert manager.size() == 1
        live = [client for client in backend.clients if not client.closed]
        assert live == [manager.get("s1")]

        manager.remove("s1")
        assert manager.size() == 0
        assert all(client.closed for client in backend.clients)


def test_overlapping_replacement_keeps_one_connection(backend, clock) -> None:
    gated = GatedBackend(backend, parties=2)
    with SessionManager(gated, max_sessions=5, default_ttl=60.0, monitor_interval=0, clock=clock) as manager:
        manager.set("s1", CONFIG)
        gated.open_gate()
        run_concurrently(lambda: manager.set("s1", CONFIG), lambda: manager.set("s1", CONFIG))

        assert len(backend.clients) == 3
        assert manager.size() == 1
        assert [client for client in backend.clients if not client.closed] == [manager.get("s1")]


def test_capacity_eviction_expires_oldest_session(backend, clock, wait_until) -> None:
    gated = GatedBackend(backend, parties=2)
    with SessionManager(gated, max_sessions=3, default_ttl=60.0, monitor_interval=0, clock=clock) as manager:
        log = EventLog()
        manager.add_event_callback(log)
        manager.set("s0", CONFIG)
        manager.set("s1", CONFIG)

        # Both newcomers pass the admission check before either is stored.
        gated.open_gate()
        run_concurrently(lambda: manager.set("a", CONFIG), lambda: manager.set("b", CONFIG))

        assert manager.size() == 3
        assert backend.clients[0].closed
        assert backend.closed == [backend.clients[0]]
        with pytest.raises(SessionNotFoundError):
            manager.get("s0")
        wait_until(lambda: [sid for _, sid, _ in log.of(SessionEvent.EXPIRED)] == ["s0"])
