"""Exceptions raised while populating the blob cache."""


class BlobCacheError(Exception):
    """Base class for blob cache failures."""


class BlobTooLargeError(BlobCacheError, ValueError):
    """Raised when a file cannot fit in a single cached buffer."""

    def __init__(self, path: str, length: int, limit: int) -> None:
        super().__init__(f"File must be <= {limit} bytes long: {path} is {length} bytes")
        self.path = path
        self.length = length
        self.limit = limit


class IncompleteReadError(BlobCacheError, OSError):
    """Raised when fewer bytes were read than the file reported."""

    def __init__(self, path: str, expected: int, actual: int) -> None:
        super().__init__(f"Could not completely read file {path} ({actual}/{expected} bytes)")
        self.path = path
        self.expected = expected
        self.actual = actual
