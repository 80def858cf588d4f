"""Exception types raised across docgraph."""

from typing import Any


class DocgraphError(Exception):
    """Base exception for docgraph operations."""


class ValidationError(DocgraphError):
    """Input documents are missing or malformed."""


class ExtractionFormatError(DocgraphError):
    """The extraction oracle returned no parseable structured payload."""


class NotFoundError(DocgraphError, KeyError):
    """An id referenced in the entity store does not exist."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "not found"


class OracleUnavailableError(DocgraphError):
    """A network or API failure while calling an external oracle."""


class AnalysisError(DocgraphError):
    """A pipeline run failed. Carries the original error and diagnostics."""

    def __init__(
        self,
        message: str,
        original_error: BaseException | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.original_error = original_error
        self.context = context or {}
