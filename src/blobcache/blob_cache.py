"""
Blob Cache facade

Keeps many small files in memory to avoid disk I/O bottlenecks (for example
gzip compressed structure files that get re-read over and over). The bytes
live in a SoftReferenceCache, so they can disappear whenever the machine runs
short of memory: callers must always be ready for a miss.

Implements:
- add_to_cache(key, file) → AddResult
- get_input_stream(key) → BytesIO | None
- size() / clear()
"""

from __future__ import annotations

import io
import logging
import os
import threading
from enum import Enum
from typing import Any, Dict, Optional, Union

from .config import MAX_BLOB_BYTES, BlobCacheConfig, default_config
from .errors import BlobTooLargeError, IncompleteReadError
from .pressure import MemoryPressureMonitor
from .soft_cache import SoftReferenceCache

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


class AddResult(str, Enum):
    STORED = "stored"
    TOO_LARGE = "too_large"
    INCOMPLETE_READ = "incomplete_read"
    IO_ERROR = "io_error"

    @property
    def ok(self) -> bool:
        return self is AddResult.STORED


def read_file_bytes(path: PathLike, max_bytes: int = MAX_BLOB_BYTES) -> bytes:
    """
    Read a whole file into memory.

    The size is checked before the file is opened. Raises BlobTooLargeError,
    IncompleteReadError (file shrank while reading) or any OSError.
    """
    name = os.fspath(path)
    length = os.stat(name).st_size
    if length > max_bytes:
        raise BlobTooLargeError(name, length, max_bytes)

    buffer = bytearray(length)
    view = memoryview(buffer)
    offset = 0
    with open(name, "rb") as handle:
        while offset < length:
            num_read = handle.readinto(view[offset:])
            if not num_read:
                break
            offset += num_read

    if offset < length:
        raise IncompleteReadError(name, length, offset)
    return bytes(buffer)


class BlobCache:
    """File-oriented front end for one shared SoftReferenceCache."""

    def __init__(
        self,
        cache: Optional[SoftReferenceCache[str, bytes]] = None,
        max_blob_bytes: int = MAX_BLOB_BYTES,
    ) -> None:
        self._cache: SoftReferenceCache[str, bytes] = cache if cache is not None else SoftReferenceCache()
        self._max_blob_bytes = max_blob_bytes

    @classmethod
    def from_config(
        cls,
        config: BlobCacheConfig,
        monitor: Optional[MemoryPressureMonitor] = None,
    ) -> "BlobCache":
        if monitor is None:
            monitor = MemoryPressureMonitor(
                min_available_percent=config.pressure.min_available_percent,
                soft_ref_ms_per_mb=config.pressure.soft_ref_ms_per_mb,
                snapshot_ttl_sec=config.pressure.snapshot_ttl_sec,
            )
        cache: SoftReferenceCache[str, bytes] = SoftReferenceCache(
            hard_size=config.hard_size,
            monitor=monitor,
        )
        return cls(cache, max_blob_bytes=config.max_blob_bytes)

    @property
    def cache(self) -> SoftReferenceCache[str, bytes]:
        return self._cache

    def add_to_cache(self, key: str, file_to_cache: PathLike) -> AddResult:
        """
        Read the file and store its bytes under ``key``.

        The file is read immediately; once added it can be modified or deleted
        without affecting the cached value. Failures are logged and reported
        through the return value, never raised.
        """
        try:
            data = read_file_bytes(file_to_cache, self._max_blob_bytes)
        except BlobTooLargeError as e:
            logger.warning(f"Not caching {key}: {e}")
            return AddResult.TOO_LARGE
        except IncompleteReadError as e:
            logger.error(f"Error adding {key} to cache! {e}", exc_info=True)
            return AddResult.INCOMPLETE_READ
        except OSError as e:
            logger.error(f"Error adding {key} to cache! {e}", exc_info=True)
            return AddResult.IO_ERROR

        self._cache.put(key, data)
        logger.debug(f"Cached {key} ({len(data)} bytes, cache size: {self._cache.size()})")
        return AddResult.STORED

    def get_bytes(self, key: str) -> Optional[bytes]:
        return self._cache.get(key)

    def get_input_stream(self, key: str) -> Optional[io.BytesIO]:
        """
        Get the cached file as a fresh stream positioned at the start.

        Returns None when the key was never added or its bytes were reclaimed.
        """
        data = self._cache.get(key)
        if data is None:
            return None
        return io.BytesIO(data)

    def size(self) -> int:
        """Number of cache slots (an upper bound on live entries)."""
        return self._cache.size()

    def clear(self) -> None:
        """Remove all elements from the cache."""
        self._cache.clear()

    def purge(self) -> int:
        return self._cache.purge()

    def get_stats(self) -> Dict[str, Any]:
        return self._cache.get_stats()

    def print_report(self) -> None:
        """Print cache statistics report."""
        stats = self.get_stats()

        print("\n" + "=" * 60)
        print("BLOB CACHE REPORT")
        print("=" * 60)
        print(f"Hit Rate: {stats['hit_rate_percent']}% ({stats['hits']}/{stats['total_requests']})")
        print(f"Slots: {stats['slots']} | Hard refs: {stats['hard_refs']}")
        print(f"Writes: {stats['writes']} | Reclaimed: {stats['reclaimed']} | Purged: {stats['purged']}")
        print("=" * 60 + "\n")


_blob_cache_instance: Optional[BlobCache] = None
_instance_lock = threading.Lock()


def get_blob_cache(config: Optional[BlobCacheConfig] = None) -> BlobCache:
    """
    Get or create the process-wide blob cache.

    ``config`` only matters for the call that creates the instance.
    """
    global _blob_cache_instance
    with _instance_lock:
        if _blob_cache_instance is None:
            if config is None:
                config = default_config()
            instance = BlobCache.from_config(config)
            if config.pressure.sweep_interval_sec > 0:
                instance.cache.monitor.start(config.pressure.sweep_interval_sec)
            _blob_cache_instance = instance
        return _blob_cache_instance


def reset_blob_cache() -> None:
    """Drop the process-wide instance and stop its sweeper."""
    global _blob_cache_instance
    with _instance_lock:
        instance, _blob_cache_instance = _blob_cache_instance, None
    if instance is not None:
        instance.cache.monitor.stop()
        instance.clear()
