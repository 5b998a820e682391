"""Client-side query cache.

Entries are keyed by `(namespace, operation, params)`. A fresh entry is
served without calling the loader; identical loads that overlap share one
loader call; `invalidate(namespace)` drops every entry of that namespace
so the next read refetches. A load that was already running when its
namespace was invalidated still returns to its callers but is not stored.
"""

import json
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

DEFAULT_STALE_TIME = 300.0

CacheKey = Tuple[str, str, str]


def make_key(namespace: str, operation: str, params: Optional[dict] = None) -> CacheKey:
    return (namespace, operation, json.dumps(params or {}, sort_keys=True, default=str))


@dataclass
class _Entry:
    value: Any
    fetched_at: float


@dataclass
class _Flight:
    generation: int
    done: threading.Event = field(default_factory=threading.Event)
    value: Any = None
    error: Optional[BaseException] = None


class QueryCache:
    def __init__(self, stale_time: float = DEFAULT_STALE_TIME, clock: Callable[[], float] = time.monotonic):
        self.stale_time = stale_time
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[CacheKey, _Entry] = {}
        self._inflight: Dict[CacheKey, _Flight] = {}
        self._generations: Dict[Hashable, int] = {}

    def fetch(self, namespace: str, operation: str, params: Optional[dict], loader: Callable[[], Any]) -> Any:
        """Return the cached value for the key, or load it.

        Stale entries are refetched before returning.
        """
        key = make_key(namespace, operation, params)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._clock() - entry.fetched_at < self.stale_time:
                return entry.value
            flight = self._inflight.get(key)
            owner = flight is None
            if owner:
                flight = _Flight(generation=self._generations.get(namespace, 0))
                self._inflight[key] = flight

        if not owner:
            flight.done.wait()
            if flight.error is not None:
                raise flight.error
            return flight.value

        try:
            value = loader()
        except BaseException as exc:
            flight.error = exc
            raise
        else:
            flight.value = value
            with self._lock:
                if self._generations.get(namespace, 0) == flight.generation:
                    self._entries[key] = _Entry(value, self._clock())
            return value
        finally:
            with self._lock:
                if self._inflight.get(key) is flight:
                    del self._inflight[key]
            flight.done.set()

    def get(self, namespace: str, operation: str, params: Optional[dict] = None) -> Any:
        """Cached value for the key regardless of freshness, or None."""
        entry = self._entries.get(make_key(namespace, operation, params))
        return entry.value if entry is not None else None

    def invalidate(self, namespace: str) -> int:
        """Drop every entry of `namespace`; returns how many were dropped."""
        with self._lock:
            self._generations[namespace] = self._generations.get(namespace, 0) + 1
            stale = [key for key in self._entries if key[0] == namespace]
            for key in stale:
                del self._entries[key]
            for key in [k for k in self._inflight if k[0] == namespace]:
                del self._inflight[key]
            return len(stale)

    def clear(self) -> None:
        with self._lock:
            for namespace in {key[0] for key in self._entries} | {key[0] for key in self._inflight}:
                self._generations[namespace] = self._generations.get(namespace, 0) + 1
            self._entries.clear()
            self._inflight.clear()
