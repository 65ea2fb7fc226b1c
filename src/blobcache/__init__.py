"""
Blob Cache
In-memory cache for small files whose entries give way under memory pressure.
"""

from .blob_cache import AddResult, BlobCache, get_blob_cache, reset_blob_cache
from .config import BlobCacheConfig, load_config
from .errors import BlobCacheError, BlobTooLargeError, IncompleteReadError
from .pressure import MemoryPressureMonitor, MemorySnapshot, get_default_monitor, reset_default_monitor
from .soft_cache import SoftReferenceCache
from .soft_reference import SoftReference

__all__ = [
    'AddResult', 'BlobCache', 'get_blob_cache', 'reset_blob_cache',
    'BlobCacheConfig', 'load_config',
    'BlobCacheError', 'BlobTooLargeError', 'IncompleteReadError',
    'MemoryPressureMonitor', 'MemorySnapshot', 'get_default_monitor', 'reset_default_monitor',
    'SoftReferenceCache', 'SoftReference',
]
