"""Error hierarchy for the search core.

Every error carries a machine-readable ``code`` and a ``detail`` dict so the
HTTP layer can serialise it without knowing the concrete type.
"""

from typing import Any


class SearchError(Exception):
    """Root of the search error hierarchy."""

    default_code: str = "search_error"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        detail: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.detail: dict[str, Any] = detail or {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a plain dict (safe for logging / HTTP responses)."""
        return {"code": self.code, "message": self.message, "detail": self.detail}


class QueryValidationError(SearchError):
    """A malformed query was rejected before any fetch was made."""

    default_code = "validation_error"


class TranslationError(SearchError):
    """The query asks for a filter/sort combination that cannot be expressed."""

    default_code = "translation_error"


class ExecutionError(SearchError):
    """The storage collaborator failed while executing a fetch.

    ``query`` is the query that was being fetched, kept so a retry can re-issue
    it unchanged.
    """

    default_code = "execution_error"

    def __init__(
        self,
        message: str,
        *,
        query: Any = None,
        code: str | None = None,
        detail: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code=code, detail=detail)
        self.query = query

    def with_query(self, query: Any) -> "ExecutionError":
        """Return a copy of this error bound to ``query``."""
        error = ExecutionError(self.message, query=query, code=self.code, detail=dict(self.detail))
        error.__cause__ = self.__cause__
        return error


class NotFoundError(SearchError):
    """A single-item lookup resolved to nothing."""

    default_code = "not_found"
