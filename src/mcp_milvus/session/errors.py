"""Exceptions raised by the session layer."""


class SessionError(Exception):
    """Base class for session manager failures."""


class SessionValidationError(SessionError, ValueError):
    """Raised when a session operation receives malformed input."""


class SessionNotFoundError(SessionError, LookupError):
    """Raised when a session is absent or has expired."""

    def __init__(self, session_id: str):
        super().__init__(f"session not found: {session_id}")
        self.session_id = session_id


class SessionLimitError(SessionError):
    """Raised when the configured maximum number of sessions is reached."""

    def __init__(self, max_sessions: int):
        super().__init__(f"maximum number of sessions ({max_sessions}) reached")
        self.max_sessions = max_sessions


class BackendConnectionError(SessionError):
    """Raised when a backend connection cannot be established."""


__all__ = [
    "BackendConnectionError",
    "SessionError",
    "SessionLimitError",
    "SessionNotFoundError",
    "SessionValidationError",
]
