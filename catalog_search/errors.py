"""Exception hierarchy for the search layer."""
from __future__ import annotations

from typing import Any, Optional


class SearchError(Exception):
    """Base class for every error raised by this package."""

    def __init__(self, message: str, error_code: str = "SEARCH_ERROR", details: Optional[dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class InvalidRequest(SearchError):
    """The caller did not provide what the engine needs (index, type)."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, "INVALID_REQUEST", details)


class EngineError(SearchError):
    """The engine answered with an error payload or failed unexpectedly."""

    def __init__(self, payload: str, details: Optional[dict[str, Any]] = None):
        self.payload = payload
        super().__init__(payload, "ENGINE_ERROR", details)


class InvalidResult(SearchError):
    """No response arrived although the process is online."""

    def __init__(self, message: str = "Invalid search result - null not expected"):
        super().__init__(message, "INVALID_RESULT")


class UnknownResult(SearchError):
    """The engine response has neither hits nor an error."""

    def __init__(self, message: str = "Unknown error with search engine result"):
        super().__init__(message, "UNKNOWN_RESULT")


class CacheError(SearchError):
    """A cache backend could not read or store an entry."""

    def __init__(self, operation: str, reason: str):
        super().__init__(f"Cache {operation} failed: {reason}", "CACHE_ERROR", {"operation": operation})
