"""
Exception hierarchy for the search service.

Exception Hierarchy:
    SearchServiceError (base)
    ├── InvalidFilterError
    └── CatalogUnavailableError

Usage:
    from shopsearch.core.exceptions import InvalidFilterError

    raise InvalidFilterError("price_min must not exceed price_max",
                             detail={"price_min": 50, "price_max": 10})

An empty query is not an error: the orchestrator answers it with an empty result.
"""
from typing import Any, Dict, Optional


class SearchServiceError(Exception):
    """
    Base exception for all search service errors.

    Attributes:
        message: Human-readable error message
        detail: Optional dict with additional error context
        status_code: Suggested HTTP status code (for API errors)
    """

    def __init__(
        self,
        message: str,
        *,
        detail: Optional[Any] = None,
        status_code: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for JSON serialization."""
        result = {
            "error": self.__class__.__name__,
            "message": self.message,
        }
        if self.detail:
            result["detail"] = self.detail
        return result


class InvalidFilterError(SearchServiceError):
    """
    Raised when a search filter is out of its allowed range.

    Examples:
        raise InvalidFilterError("limit must be positive", detail={"limit": 0})
    """

    def __init__(self, message: str, *, detail: Optional[Any] = None):
        super().__init__(message, detail=detail, status_code=400)


class CatalogUnavailableError(SearchServiceError):
    """
    Raised when the catalog collaborator (database or search index) fails or times out.

    Callers must treat this distinctly from "zero matches".
    """

    def __init__(self, message: str, *, detail: Optional[Any] = None, source: Optional[str] = None):
        super().__init__(message, detail=detail, status_code=503)
        self.source = source

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        if self.source:
            result["source"] = self.source
        return result
