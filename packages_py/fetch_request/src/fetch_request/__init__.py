"""
Fluent HTTP request builder for Python.

Accumulates headers, body, auth and timeout on a builder, sends one request
through an httpx client and optionally buffers and decodes the response
(JSON or XML).

    from fetch_request import RequestBuilder

    result = (
        RequestBuilder()
        .with_basic_auth("user", "secret")
        .with_json_body({"text": "hello"})
        .with_json_result(Note)
        .do("POST", "https://api.example.com/notes")
    )
    note = result.data
"""
from .config import (
    FALLBACK_CLIENT_TIMEOUT,
    JSON_CONTENT_TYPE,
    XML_CONTENT_TYPE,
)
from .context import (
    BACKGROUND,
    ExecutionContext,
    async_client_from_context,
    attach_client_to_context,
    client_from_context,
    resolve_client,
    run_in_context,
)
from .core.request_builder import RequestBuilder, new
from .core.result import Result, ResultDecoder
from .errors import (
    BodyReadError,
    DecodeError,
    EncodeError,
    RequestConstructionError,
    RequestError,
    TransportError,
)
from .headers import HeaderSet, canonical_header_key
from .streaming.body_stream import BodyStream

__all__ = [
    # Config
    "FALLBACK_CLIENT_TIMEOUT",
    "JSON_CONTENT_TYPE",
    "XML_CONTENT_TYPE",
    # Context
    "BACKGROUND",
    "ExecutionContext",
    "attach_client_to_context",
    "client_from_context",
    "async_client_from_context",
    "resolve_client",
    "run_in_context",
    # Builder
    "RequestBuilder",
    "new",
    "Result",
    "ResultDecoder",
    "BodyStream",
    # Headers
    "HeaderSet",
    "canonical_header_key",
    # Errors
    "RequestError",
    "RequestConstructionError",
    "TransportError",
    "EncodeError",
    "BodyReadError",
    "DecodeError",
]

__version__ = "0.1.0"
