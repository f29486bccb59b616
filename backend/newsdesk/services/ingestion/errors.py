"""
Failure taxonomy for ingestion.
"""

from enum import Enum
from typing import Optional

import httpx


class FailureKind(str, Enum):
    """Closed set of outbound call failure kinds, used to key retry tables."""
    CONNECTIVITY = "connectivity"
    BAD_RESPONSE = "bad_response"
    INVALID_PAYLOAD = "invalid_payload"


class IngestionError(Exception):
    """Base class for ingestion errors."""


class SourceCallError(IngestionError):
    """An outbound call to a source failed."""

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code

    @classmethod
    def connectivity(cls, message: str) -> "SourceCallError":
        return cls(FailureKind.CONNECTIVITY, message)

    @classmethod
    def bad_response(cls, status_code: int, message: str = "") -> "SourceCallError":
        return cls(
            FailureKind.BAD_RESPONSE,
            message or f"Unexpected HTTP status {status_code}",
            status_code=status_code,
        )

    @classmethod
    def invalid_payload(cls, message: str) -> "SourceCallError":
        return cls(FailureKind.INVALID_PAYLOAD, message)


class StorageUnavailableError(IngestionError):
    """The article store is unreachable; the run cannot continue."""


def classify_failure(exc: BaseException) -> Optional[FailureKind]:
    """
    Map an exception to its failure kind.

    Returns None for failures outside the taxonomy; those are never retried.
    """
    if isinstance(exc, SourceCallError):
        return exc.kind
    if isinstance(exc, httpx.TransportError):
        # Timeouts, refused connections, DNS and protocol errors
        return FailureKind.CONNECTIVITY
    if isinstance(exc, httpx.HTTPStatusError):
        return FailureKind.BAD_RESPONSE
    return None
