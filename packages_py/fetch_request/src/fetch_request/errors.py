"""
Error types for fetch_request.

Every failure is returned to the immediate caller; nothing in this package
retries.
"""
from typing import Any, Optional


class RequestError(Exception):
    """Base class for all fetch_request errors."""


class RequestConstructionError(RequestError, ValueError):
    """Raised when the method or URL cannot form a request."""


class TransportError(RequestError):
    """Raised when sending fails: network error, timeout or cancellation."""


class EncodeError(RequestError):
    """Raised when a streamed JSON/XML request body fails to serialize.

    Surfaces while the body is read during dispatch, not when the body was
    configured. The serializer's exception is chained as ``__cause__``.
    """


class BodyReadError(RequestError):
    """Raised when the response body cannot be read to completion."""

    def __init__(self, message: str, response: Optional[Any] = None):
        super().__init__(message)
        self.response = response


class DecodeError(RequestError):
    """Raised when the response body cannot be decoded.

    The response and the raw bytes stay attached so callers can still
    inspect a non-2xx or malformed body.
    """

    def __init__(
        self,
        message: str,
        response: Optional[Any] = None,
        raw_data: bytes = b"",
    ):
        super().__init__(message)
        self.response = response
        self.raw_data = raw_data

    @property
    def status_code(self) -> Optional[int]:
        return getattr(self.response, "status_code", None)
