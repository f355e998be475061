"""
Error taxonomy for searx-edge.

- NoHealthyInstanceError: the health feed yielded no qualifying upstream
- UnsupportedCategoryError: no extraction profile for the requested category
- UpstreamFetchError: the feed or the selected instance could not be reached
- ExtractionError: the upstream document could not be parsed at all

Only the first two are answered with the unauthorized page. Extraction
failures fall back to the raw upstream response, and fetch failures surface
at the application boundary.
"""

from typing import Any


class EdgeError(Exception):
    """Base exception for proxy errors."""

    def __init__(self, message: str, *, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            **self.details,
        }


class NoHealthyInstanceError(EdgeError):
    """No instance in the health feed satisfies the selection policy."""

    def __init__(self, candidates: int = 0):
        super().__init__(
            "No healthy upstream instance available",
            details={"candidates": candidates},
        )
        self.candidates = candidates


class UnsupportedCategoryError(EdgeError):
    """Extraction was requested for a category without a profile."""

    def __init__(self, category: str, supported: list[str] | None = None):
        super().__init__(
            f"Unsupported category: {category}",
            details={"category": category, "supported": supported or []},
        )
        self.category = category


class UpstreamFetchError(EdgeError):
    """Network or protocol failure while talking to the feed or an instance."""

    def __init__(self, url: str, reason: str):
        super().__init__(
            f"Failed to fetch {url}: {reason}",
            details={"url": url, "reason": reason},
        )
        self.url = url
        self.reason = reason


class ExtractionError(EdgeError):
    """The upstream document is structurally unusable."""
