"""Error taxonomy for the cache layer.

- ConfigurationError: programmer error (unknown category, event kind or
  malformed params). Surfaced immediately, never retried.
- StoreUnavailable: transient failure reaching the store. Reads degrade to a
  miss, writes and deletes are logged and skipped.
- LoaderError: base class for failures of the authoritative data source.
  The accessor propagates loader exceptions verbatim whatever their type.
"""

from __future__ import annotations


class CacheError(Exception):
    """Base class for cache layer errors."""


class ConfigurationError(CacheError):
    """Unknown resource category, event kind, or invalid cache configuration."""


class InvalidParameterError(ConfigurationError):
    """Parameters do not match the shape expected by a category or event."""


class StoreUnavailable(CacheError):
    """The cache store could not be reached or did not answer in time."""

    def __init__(self, operation: str, message: str = ""):
        self.operation = operation
        text = f"Cache store unavailable during {operation}"
        if message:
            text = f"{text}: {message}"
        super().__init__(text)


class LoaderError(CacheError):
    """Failure of the authoritative data source during a cache miss."""
