"""Host memory probes and the sweep that clears soft references under pressure."""

from __future__ import annotations

import logging
import threading
import time
import weakref
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

import psutil

if TYPE_CHECKING:
    from .soft_cache import SoftReferenceCache

logger = logging.getLogger(__name__)

_MB = 1024 * 1024


@dataclass(frozen=True)
class MemorySnapshot:
    checked_at: float
    total_bytes: int
    available_bytes: int

    @property
    def available_percent(self) -> float:
        if self.total_bytes <= 0:
            return 100.0
        return self.available_bytes / self.total_bytes * 100

    @property
    def available_mb(self) -> float:
        return self.available_bytes / _MB


def psutil_probe() -> MemorySnapshot:
    """Read system memory through psutil."""
    memory = psutil.virtual_memory()
    return MemorySnapshot(
        checked_at=time.time(),
        total_bytes=int(memory.total),
        available_bytes=int(memory.available),
    )


class MemoryPressureMonitor:
    """
    Clears soft references in registered caches when memory runs low.

    Reclamation follows the JVM's soft reference policy: under pressure a
    reference is cleared once it has been idle for longer than
    ``available_mb * soft_ref_ms_per_mb`` milliseconds. The less memory is
    left, the shorter that allowance gets, until every reference qualifies.
    Outside of pressure nothing is ever cleared, whatever the cache size or
    entry age.
    """

    def __init__(
        self,
        min_available_percent: float = 10.0,
        soft_ref_ms_per_mb: int = 1000,
        snapshot_ttl_sec: float = 1.0,
        probe: Optional[Callable[[], MemorySnapshot]] = None,
    ) -> None:
        self._min_available_percent = min_available_percent
        self._soft_ref_ms_per_mb = soft_ref_ms_per_mb
        self._snapshot_ttl = snapshot_ttl_sec
        self._probe = probe or psutil_probe
        self._snapshot: Optional[MemorySnapshot] = None
        self._caches: "weakref.WeakSet[SoftReferenceCache]" = weakref.WeakSet()
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last_sweep: Optional[float] = None
        self.sweeps = 0
        self.cleared_total = 0

    def register(self, cache: "SoftReferenceCache") -> None:
        with self._lock:
            self._caches.add(cache)

    def unregister(self, cache: "SoftReferenceCache") -> None:
        with self._lock:
            self._caches.discard(cache)

    def refresh_snapshot(self) -> MemorySnapshot:
        self._snapshot = self._probe()
        return self._snapshot

    def get_snapshot(self, force: bool = False) -> MemorySnapshot:
        snapshot = self._snapshot
        if force or snapshot is None:
            return self.refresh_snapshot()
        if time.time() - snapshot.checked_at >= self._snapshot_ttl:
            return self.refresh_snapshot()
        return snapshot

    def under_pressure(self, snapshot: MemorySnapshot) -> bool:
        return snapshot.available_percent < self._min_available_percent

    def idle_allowance(self, snapshot: MemorySnapshot) -> float:
        """Seconds of idleness after which a reference may be cleared."""
        return snapshot.available_mb * self._soft_ref_ms_per_mb / 1000.0

    def check(self, force: bool = False) -> int:
        """
        Sweep every registered cache if memory is low. Returns references cleared.

        Unforced checks (the ones run before each put) sweep at most once per
        ``snapshot_ttl_sec``.
        """
        snapshot = self.get_snapshot(force=force)
        if not self.under_pressure(snapshot):
            return 0

        allowance = self.idle_allowance(snapshot)
        with self._lock:
            now = time.time()
            if not force and self._last_sweep is not None and now - self._last_sweep < self._snapshot_ttl:
                return 0
            self._last_sweep = now
            caches = list(self._caches)

        cleared = 0
        for cache in caches:
            cleared += cache.reclaim(allowance)

        if cleared == 0:
            return 0
        with self._lock:
            self.sweeps += 1
            self.cleared_total += cleared
        logger.info(
            "Memory pressure (%.1f%% available): cleared %d soft references idle > %.1fs",
            snapshot.available_percent, cleared, allowance,
        )
        return cleared

    # ── Background sweeping ──

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, interval_sec: float) -> None:
        if interval_sec <= 0:
            raise ValueError("interval_sec must be positive")
        if self._thread is not None and self._thread.is_alive():
            if not self._stop.is_set():
                return
            # A previous stop() timed out; let that thread finish first.
            self._thread.join()
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run,
            args=(interval_sec,),
            name="blobcache-pressure-monitor",
            daemon=True,
        )
        self._thread.start()
        logger.debug("Memory pressure monitor started (every %.1fs)", interval_sec)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        thread = self._thread
        if thread is None:
            return
        thread.join(timeout)
        if thread.is_alive():
            logger.warning("Memory pressure monitor did not stop within %ss", timeout)
        else:
            self._thread = None

    def _run(self, interval_sec: float) -> None:
        while not self._stop.wait(interval_sec):
            try:
                self.check(force=True)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Memory pressure check failed: %s", exc)


_default_monitor: Optional[MemoryPressureMonitor] = None
_default_lock = threading.Lock()


def get_default_monitor() -> MemoryPressureMonitor:
    """
    Get or create the monitor that caches built without one register with.

    Settings come from the built-in defaults and BLOBCACHE_* environment
    variables; its sweeper thread is started on creation.
    """
    global _default_monitor
    with _default_lock:
        if _default_monitor is None:
            from .config import default_config

            pressure = default_config().pressure
            monitor = MemoryPressureMonitor(
                min_available_percent=pressure.min_available_percent,
                soft_ref_ms_per_mb=pressure.soft_ref_ms_per_mb,
                snapshot_ttl_sec=pressure.snapshot_ttl_sec,
            )
            if pressure.sweep_interval_sec > 0:
                monitor.start(pressure.sweep_interval_sec)
            _default_monitor = monitor
        return _default_monitor


def reset_default_monitor() -> None:
    """Stop and drop the default monitor."""
    global _default_monitor
    with _default_lock:
        monitor, _default_monitor = _default_monitor, None
    if monitor is not None:
        monitor.stop()
