"""Idle-expiring cache of property bindings keyed by resolved type."""

from __future__ import annotations

import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from rowbind.config.cache import BindingCacheConfig

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable

    from rowbind.domain.bindings import PropertyBinding

log = getLogger(__name__)

type Clock = Callable[[], float]


@dataclass(slots=True)
class _Entry:
    binding: PropertyBinding[object]
    last_access: float


class BindingCache:
    """Thread-safe get-or-create cache with access-based expiry.

    Concurrent requests for the same missing key share a single build: the first
    caller builds outside the lock while the others wait on its future. Failed
    builds are not cached, and neither are builds that were in flight when
    ``clear()`` or ``invalidate()`` ran.
    """

    def __init__(
        self,
        config: BindingCacheConfig | None = None,
        *,
        clock: Clock = time.monotonic,
    ) -> None:
        self.config = config or BindingCacheConfig()
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[Hashable, _Entry] = {}
        self._pending: dict[Hashable, Future[PropertyBinding[object]]] = {}
        self._generation = 0
        self._next_sweep = clock() + self.config.idle_ttl_seconds

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)  # type: ignore[arg-type]
            return entry is not None and not self._expired(entry, now)

    def get_or_create(
        self,
        key: Hashable,
        factory: Callable[[], PropertyBinding[object]],
    ) -> PropertyBinding[object]:
        now = self._clock()
        with self._lock:
            self._sweep(now)
            entry = self._entries.get(key)
            if entry is not None and not self._expired(entry, now):
                entry.last_access = now
                return entry.binding
            if entry is not None:
                log.debug("Binding for %s expired after idle period", key)
                del self._entries[key]
            pending = self._pending.get(key)
            owner = pending is None
            if pending is None:
                pending = self._pending[key] = Future()
            generation = self._generation

        if not owner:
            return pending.result()

        try:
            binding = factory()
        except BaseException as exc:
            with self._lock:
                self._release(key, pending)
            pending.set_exception(exc)
            raise

        with self._lock:
            self._release(key, pending)
            # a clear() during the build may have replaced the factory behind it
            stored = generation == self._generation
            if stored:
                self._entries[key] = _Entry(binding, self._clock())
        pending.set_result(binding)
        if stored:
            log.debug("Cached binding for %s", key)
        else:
            log.debug("Dropped binding for %s built before the cache was cleared", key)
        return binding

    def invalidate(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)
            self._pending.pop(key, None)
            self._generation += 1

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._pending.clear()
            self._generation += 1

    def _release(self, key: Hashable, pending: Future[PropertyBinding[object]]) -> None:
        if self._pending.get(key) is pending:
            del self._pending[key]

    def _expired(self, entry: _Entry, now: float) -> bool:
        return now - entry.last_access >= self.config.idle_ttl_seconds

    def _sweep(self, now: float) -> None:
        if now < self._next_sweep:
            return
        self._next_sweep = now + self.config.idle_ttl_seconds
        expired = [key for key, entry in self._entries.items() if self._expired(entry, now)]
        for key in expired:
            del self._entries[key]
        if expired:
            log.debug("Evicted %d idle bindings", len(expired))
