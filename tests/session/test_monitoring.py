import logging
from datetime import timedelta

import pytest

from mcp_milvus.session import ConnectionConfig, SessionEvent, SessionManager, SessionState
from mcp_milvus.session.monitoring import (
    access_rate_per_minute,
    detect_high_frequency_access,
    log_session_event,
    register_session_event_callbacks,
)
from mcp_milvus.session.state import CURRENT_DATABASE_KEY, utcnow

LOGGER = "mcp_milvus.session.monitoring"


def make_state(access_count: int = 0, age: timedelta = timedelta(minutes=1)) -> SessionState:
    created = utcnow() - age
    return SessionState(
        session_id="s1",
        config=ConnectionConfig(address="http://localhost:19530", db_name="books"),
        client=object(),
        created_at=created,
        last_accessed=utcnow(),
        access_count=access_count,
    )


def test_created_logged_with_address(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger=LOGGER):
        log_session_event(SessionEvent.CREATED, "s1", make_state())
    assert "Session created: session_id=s1" in caplog.text
    assert "address=http://localhost:19530 database=books" in caplog.text


def test_removed_logged_with_switched_database(caplog: pytest.LogCaptureFixture) -> None:
    state = make_state().with_metadata(CURRENT_DATABASE_KEY, "archive")
    with caplog.at_level(logging.INFO, logger=LOGGER):
        log_session_event(SessionEvent.REMOVED, "s1", state)
    assert "database=archive" in caplog.text


def test_expired_logged_as_warning(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger=LOGGER):
        log_session_event(SessionEvent.EXPIRED, "s1", make_state(access_count=4))
    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    assert "access_count=4" in record.getMessage()


def test_access_logged_every_tenth(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.DEBUG, logger=LOGGER):
        log_session_event(SessionEvent.ACCESSED, "s1", make_state(access_count=9))
        log_session_event(SessionEvent.ACCESSED, "s1", make_state(access_count=10))
    messages = [r.getMessage() for r in caplog.records]
    assert len(messages) == 1
    assert "access_count=10" in messages[0]


def test_access_rate() -> None:
    state = make_state(access_count=120, age=timedelta(minutes=2))
    assert access_rate_per_minute(state) == pytest.approx(60.0, rel=0.05)


def test_high_frequency_detected(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger=LOGGER):
        detect_high_frequency_access(
            SessionEvent.ACCESSED, "s1", make_state(access_count=101, age=timedelta(minutes=1))
        )
    assert "High frequency access pattern detected: session_id=s1" in caplog.text


@pytest.mark.parametrize(
    "event,count,age",
    [
        (SessionEvent.ACCESSED, 100, timedelta(seconds=10)),
        (SessionEvent.ACCESSED, 500, timedelta(hours=2)),
        (SessionEvent.CREATED, 500, timedelta(seconds=10)),
    ],
)
def test_high_frequency_not_triggered(
    caplog: pytest.LogCaptureFixture, event: SessionEvent, count: int, age: timedelta
) -> None:
    with caplog.at_level(logging.WARNING, logger=LOGGER):
        detect_high_frequency_access(event, "s1", make_state(access_count=count, age=age))
    assert caplog.records == []


def test_register_callbacks(
    sessions: SessionManager, caplog: pytest.LogCaptureFixture, wait_until
) -> None:
    register_session_event_callbacks(sessions)
    with caplog.at_level(logging.INFO, logger=LOGGER):
        sessions.set("s1", ConnectionConfig(address="http://localhost:19530"))
        wait_until(lambda: "Session created: session_id=s1" in caplog.text)
