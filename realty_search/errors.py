"""
Core Exceptions
Error taxonomy shared by the query pipeline and the sync engine.
"""

from typing import Optional


class RealtySearchError(Exception):
    """Base exception for the search subsystem."""

    pass


class ConfigurationError(RealtySearchError):
    """Raised at startup when endpoints or credentials are missing."""

    pass


class UpstreamError(RealtySearchError):
    """
    Raised when the primary store or the search engine is unreachable
    or rejects a request.

    Upstream errors are retryable by the caller. The core never retries them
    on its own: the current run or request is terminated.
    """

    retryable = True

    def __init__(self, message: str, service: str, status_code: Optional[int] = None):
        self.message = message
        self.service = service
        self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "service": self.service,
            "status_code": self.status_code,
            "retryable": self.retryable,
        }


class ImportRejectedError(UpstreamError):
    """Raised when the engine rejects one or more documents of a batch."""

    def __init__(self, failed: int, total: int, first_error: str):
        self.failed = failed
        self.total = total
        self.first_error = first_error
        super().__init__(
            message=f"Import failed for {failed} of {total} documents. First error: {first_error}",
            service="search_engine",
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({"failed": self.failed, "total": self.total, "first_error": self.first_error})
        return data


class SchemaPatchError(UpstreamError):
    """Raised when the engine refuses an additive schema patch or a collection create."""

    def __init__(self, collection: str, message: str, status_code: Optional[int] = None):
        self.collection = collection
        super().__init__(message=message, service="search_engine", status_code=status_code)
