"""Single-flight memoization of rendered content.

A cache lives as long as its owner; the resolver that holds one is built per
request or recalculation pass, never shared for the life of the server.

Concurrent callers asking for the same unseen key share one computation:
the first caller computes, the rest block until it settles and then receive
the same value (or the same exception).  Values rejected by
``is_cacheable`` are handed to everyone waiting on that computation but are
not stored, so the next call computes again.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Generic, Hashable, Optional, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class _Flight:
    """One in-progress computation."""

    def __init__(self) -> None:
        self.done = threading.Event()
        self.value: Any = None
        self.error: Optional[BaseException] = None


class SingleFlightCache(Generic[K, V]):
    def __init__(self, is_cacheable: Callable[[V], bool] = bool) -> None:
        self._is_cacheable = is_cacheable
        self._lock = threading.Lock()
        self._values: dict[K, V] = {}
        self._in_flight: dict[K, _Flight] = {}

    def get(self, key: K) -> Optional[V]:
        with self._lock:
            return self._values.get(key)

    def get_or_compute(self, key: K, compute: Callable[[], V]) -> V:
        """Return the cached value for *key*, computing it at most once at a time."""
        with self._lock:
            if key in self._values:
                return self._values[key]
            flight = self._in_flight.get(key)
            owner = flight is None
            if flight is None:
                flight = self._in_flight[key] = _Flight()

        if not owner:
            flight.done.wait()
            if flight.error is not None:
                raise flight.error
            return flight.value

        try:
            value = compute()
        except BaseException as exc:
            flight.error = exc
            raise
        else:
            flight.value = value
            return value
        finally:
            with self._lock:
                if flight.error is None and self._is_cacheable(flight.value):
                    self._values[key] = flight.value
                del self._in_flight[key]
            flight.done.set()

    def clear(self) -> None:
        with self._lock:
            self._values.clear()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._values

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)
