"""Bounded, thread-safe TTL map backing the session manager.

Entries expire ``ttl`` seconds after they were last written. Expiry is
enforced lazily on lookup and by ``sweep()``, which also runs on every insert.
When the map is full, inserting a new key evicts the entry written least
recently. Every eviction is reported through ``on_evict`` *after* the lock has
been released, so the callback may block (for example to close a connection).
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")


class EvictionReason(str, Enum):
    EXPIRED = "expired"
    CAPACITY = "capacity"


EvictionCallback = Callable[[str, V, EvictionReason], None]


@dataclass(slots=True)
class _Entry(Generic[V]):
    value: V
    expires_at: float


class SessionCache(Generic[V]):
    """TTL map with explicit eviction callbacks.

    Args:
        max_entries: Capacity before least-recently-written entries are evicted
        default_ttl: Lifetime in seconds applied on every write
        on_evict: Called as ``on_evict(key, value, reason)`` for each eviction
        clock: Monotonic time source (injectable for tests)
    """

    def __init__(
        self,
        max_entries: int,
        default_ttl: float,
        *,
        on_evict: EvictionCallback[V] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self._entries: OrderedDict[str, _Entry[V]] = OrderedDict()
        self._max_entries = max_entries
        self._default_ttl = default_ttl
        self._on_evict = on_evict
        self._clock = clock
        self._lock = threading.RLock()

    def get(self, key: str) -> V | None:
        """Return the live value for ``key``, evicting it first if it has expired."""
        evicted: list[tuple[str, V, EvictionReason]] = []
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                evicted.append((key, entry.value, EvictionReason.EXPIRED))
                value = None
            else:
                value = entry.value
        self._notify(evicted)
        return value

    def set(self, key: str, value: V, ttl: float | None = None) -> V | None:
        """Store ``value`` and return the live value it replaced, if any."""
        evicted: list[tuple[str, V, EvictionReason]] = []
        with self._lock:
            now = self._clock()
            evicted.extend(self._sweep_locked(now))
            previous = self._entries.pop(key, None)
            while len(self._entries) >= self._max_entries:
                oldest_key, oldest = self._entries.popitem(last=False)
                evicted.append((oldest_key, oldest.value, EvictionReason.CAPACITY))
            self._entries[key] = _Entry(value, now + (ttl or self._default_ttl))
        self._notify(evicted)
        return previous.value if previous is not None else None

    def update(self, key: str, fn: Callable[[V], V], ttl: float | None = None) -> tuple[V, V] | None:
        """Atomically replace the live value for ``key`` with ``fn(value)``.

        The entry's lifetime is refreshed. Returns ``(old, new)``, or None when
        the key is absent or expired.
        """
        evicted: list[tuple[str, V, EvictionReason]] = []
        result: tuple[V, V] | None = None
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)
            if entry is not None and entry.expires_at <= now:
                del self._entries[key]
                evicted.append((key, entry.value, EvictionReason.EXPIRED))
            elif entry is not None:
                new_value = fn(entry.value)
                self._entries[key] = _Entry(new_value, now + (ttl or self._default_ttl))
                self._entries.move_to_end(key)
                result = (entry.value, new_value)
        self._notify(evicted)
        return result

    def pop(self, key: str) -> V | None:
        """Remove ``key`` without reporting it as evicted."""
        with self._lock:
            entry = self._entries.pop(key, None)
        return entry.value if entry is not None else None

    def clear(self) -> list[tuple[str, V]]:
        """Drop every entry and return what was dropped."""
        with self._lock:
            dropped = [(key, entry.value) for key, entry in self._entries.items()]
            self._entries.clear()
        return dropped

    def sweep(self) -> int:
        """Evict expired entries now. Returns the number evicted."""
        with self._lock:
            evicted = self._sweep_locked(self._clock())
        self._notify(evicted)
        return len(evicted)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _sweep_locked(self, now: float) -> list[tuple[str, V, EvictionReason]]:
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        return [(key, self._entries.pop(key).value, EvictionReason.EXPIRED) for key in expired]

    def _notify(self, evicted: list[tuple[str, V, EvictionReason]]) -> None:
        if not evicted or self._on_evict is None:
            return
        for key, value, reason in evicted:
            try:
                self._on_evict(key, value, reason)
            except Exception:
                logger.exception(f"Eviction callback failed for key {key}")


__all__ = ["EvictionReason", "SessionCache"]
