"""Error taxonomy shared by the retrieval services and the HTTP layer."""

from __future__ import annotations


class RetrievalServiceError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = 500
    default_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        self.code = code or self.default_code
        self.message = message
        super().__init__(message)


class InvalidInput(RetrievalServiceError):
    """Malformed, missing or oversized request field."""

    status_code = 400
    default_code = "INVALID_INPUT"


class Unauthorized(RetrievalServiceError):
    """Missing or rejected bearer credential."""

    status_code = 401
    default_code = "UNAUTHORIZED"


class NotFound(RetrievalServiceError):
    """A section requested by id does not exist."""

    status_code = 404
    default_code = "SECTION_NOT_FOUND"


class ConfigurationError(RetrievalServiceError):
    """A required provider credential or endpoint is not configured."""

    status_code = 500
    default_code = "CONFIGURATION_ERROR"


class ProviderUnavailable(RetrievalServiceError):
    """An upstream model provider failed or returned a non-success status."""

    status_code = 502
    default_code = "PROVIDER_UNAVAILABLE"


class IndexUnavailable(RetrievalServiceError):
    """The vector index or the document store could not execute a search."""

    status_code = 500
    default_code = "INDEX_UNAVAILABLE"
