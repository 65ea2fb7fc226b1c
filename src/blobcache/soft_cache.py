"""
Blob Cache: soft reference map

Implements:
- put(key, value)
- get(key) → value | None
- size() / clear()
- reclaim(idle_allowance) for the memory pressure monitor
- purge() to drop slots whose value was reclaimed
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Generic, Hashable, Optional, TypeVar

from .observability import CacheStatsRecord
from .pressure import MemoryPressureMonitor, get_default_monitor
from .soft_reference import SoftReference

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class _Slot(SoftReference[V]):
    """A soft reference that remembers which key it was stored under."""

    __slots__ = ("key",)

    def __init__(
        self,
        key: Hashable,
        referent: V,
        callback: Optional[Callable[[SoftReference[V]], None]],
        clock: Callable[[], float],
    ) -> None:
        super().__init__(referent, callback, clock)
        self.key = key


class SoftReferenceCache(Generic[K, V]):
    """
    Map whose values are only softly reachable.

    Design principles:
    - Never the reason the process runs out of memory: values may vanish
      whenever the monitor sees memory pressure
    - No capacity limit, no TTL, no LRU ordering of its own
    - A reclaimed value looks exactly like a missing key
    - Dead slots are dropped lazily, on get() or purge()

    ``hard_size`` keeps that many of the most recently touched values behind
    strong references as well, so they survive a sweep. Without an explicit
    ``monitor`` the cache registers with the process-wide default one.
    """

    def __init__(
        self,
        hard_size: int = 0,
        monitor: Optional[MemoryPressureMonitor] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if hard_size < 0:
            raise ValueError("hard_size must be non-negative")
        self._hard_size = hard_size
        self._hard: Deque[V] = deque()
        self._store: Dict[K, _Slot[V]] = {}
        self._dead: Deque[_Slot[V]] = deque()
        self._lock = threading.Lock()
        self._clock = clock
        self._monitor = monitor if monitor is not None else get_default_monitor()

        self.stats = {
            "hits": 0,
            "misses": 0,
            "writes": 0,
            "reclaimed": 0,
            "purged": 0,
        }

        self._monitor.register(self)

    @property
    def monitor(self) -> MemoryPressureMonitor:
        return self._monitor

    def _on_cleared(self, slot: _Slot[V]) -> None:
        # deque.append is atomic; purge() drains this later.
        self._dead.append(slot)

    def _remember(self, value: V) -> None:
        if self._hard_size == 0:
            return
        self._hard.appendleft(value)
        while len(self._hard) > self._hard_size:
            self._hard.pop()

    def _prune_dead(self) -> None:
        # More queued entries than slots means some left the store through
        # get() or replacement already.
        if len(self._dead) <= len(self._store):
            return
        live = [slot for slot in self._dead if self._store.get(slot.key) is slot]
        self._dead.clear()
        self._dead.extend(live)

    def put(self, key: K, value: V) -> None:
        # Outside the lock: a sweep takes it too.
        self._monitor.check()

        slot = _Slot(key, value, self._on_cleared, self._clock)
        with self._lock:
            self._store[key] = slot
            self._prune_dead()
            self._remember(value)
            self.stats["writes"] += 1
            logger.debug("Stored %r (slots=%d)", key, len(self._store))

    def get(self, key: K) -> Optional[V]:
        with self._lock:
            slot = self._store.get(key)
            if slot is None:
                self.stats["misses"] += 1
                return None

            value = slot.get()
            if value is None:
                del self._store[key]
                self.stats["misses"] += 1
                self.stats["purged"] += 1
                logger.debug("Dropped reclaimed slot %r", key)
                return None

            self._remember(value)
            self.stats["hits"] += 1
            return value

    def size(self) -> int:
        """Number of slots, including ones whose value was reclaimed but not yet purged."""
        with self._lock:
            return len(self._store)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
            self._hard.clear()
            self._dead.clear()
        logger.debug("Cache cleared")

    def reclaim(self, idle_allowance_sec: float) -> int:
        """
        Clear every soft reference idle for longer than the allowance.

        Values pinned by the hard cache are left alone. Slots are kept so
        that size() stays an upper bound until get() or purge() runs.
        """
        with self._lock:
            now = self._clock()
            pinned = {id(value) for value in self._hard}
            cleared = 0
            for slot in self._store.values():
                if slot.cleared or slot.idle_seconds(now) <= idle_allowance_sec:
                    continue
                value = slot.peek()
                if value is not None and id(value) in pinned:
                    continue
                if slot.clear():
                    cleared += 1
            self.stats["reclaimed"] += cleared
        if cleared:
            logger.debug("Reclaimed %d values", cleared)
        return cleared

    def purge(self) -> int:
        """Drop slots whose value has been reclaimed. Returns the number dropped."""
        with self._lock:
            dropped = 0
            while self._dead:
                slot = self._dead.popleft()
                if self._store.get(slot.key) is slot:
                    del self._store[slot.key]
                    dropped += 1
            self.stats["purged"] += dropped
        if dropped:
            logger.debug("Purged %d dead slots", dropped)
        return dropped

    def get_stats(self) -> Dict[str, object]:
        with self._lock:
            record = CacheStatsRecord(
                hits=self.stats["hits"],
                misses=self.stats["misses"],
                writes=self.stats["writes"],
                reclaimed=self.stats["reclaimed"],
                purged=self.stats["purged"],
                slots=len(self._store),
                hard_refs=len(self._hard),
            )
        return record.to_dict()

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            slot = self._store.get(key)  # type: ignore[arg-type]
            return slot is not None and not slot.cleared
