"""Shared fakes for blob cache tests."""

from __future__ import annotations

import time

import pytest

from blobcache.blob_cache import reset_blob_cache
from blobcache.pressure import MemorySnapshot, reset_default_monitor

MB = 1024 * 1024


class FakeClock:
    """Monotonic clock the test moves by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeMemory:
    """Memory probe with a settable amount of free memory."""

    def __init__(self, total_mb: int = 1000, available_mb: int = 800) -> None:
        self.total_mb = total_mb
        self.available_mb = available_mb
        self.calls = 0

    def __call__(self) -> MemorySnapshot:
        self.calls += 1
        return MemorySnapshot(
            checked_at=time.time(),
            total_bytes=self.total_mb * MB,
            available_bytes=self.available_mb * MB,
        )

    def squeeze(self, available_mb: int = 5) -> None:
        self.available_mb = available_mb


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory():
    return FakeMemory()


@pytest.fixture(autouse=True)
def _reset_singleton():
    yield
    reset_blob_cache()
    reset_default_monitor()
