"""
Soft references for the blob cache.

The standard library only offers weak references, which die the moment the
last strong reference goes away (and cannot point at ``bytes`` at all). A
SoftReference instead keeps its referent alive until something explicitly
clears it; in this package that something is the MemoryPressureMonitor, which
only clears references while the host is short on memory.

Each reference remembers when it was last read, the same bookkeeping the JVM
keeps on its soft references, so the monitor can clear the stalest ones first.
"""

from __future__ import annotations

import time
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class SoftReference(Generic[T]):
    """A strong reference that a memory-pressure sweep may clear at any time."""

    __slots__ = ("_referent", "_callback", "_clock", "_timestamp")

    def __init__(
        self,
        referent: T,
        callback: Optional[Callable[["SoftReference[T]"], None]] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._referent: Optional[T] = referent
        self._callback = callback
        self._clock = clock
        self._timestamp = clock()

    def get(self) -> Optional[T]:
        # Single attribute read: a concurrent clear() yields either the whole
        # referent or None.
        referent = self._referent
        if referent is not None:
            self._timestamp = self._clock()
        return referent

    def peek(self) -> Optional[T]:
        """Like get(), without counting as an access."""
        return self._referent

    def clear(self) -> bool:
        """Drop the referent. Returns True if this call did the clearing."""
        referent, self._referent = self._referent, None
        if referent is None:
            return False
        callback, self._callback = self._callback, None
        if callback is not None:
            callback(self)
        return True

    @property
    def cleared(self) -> bool:
        return self._referent is None

    def idle_seconds(self, now: Optional[float] = None) -> float:
        if now is None:
            now = self._clock()
        return max(now - self._timestamp, 0.0)

    def __repr__(self) -> str:
        state = "cleared" if self.cleared else type(self._referent).__name__
        return f"<SoftReference {state} idle={self.idle_seconds():.1f}s>"
