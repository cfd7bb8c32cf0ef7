"""
Fluent request builder for fetch_request.
"""
import logging
import re
from typing import Any, AsyncIterable, AsyncIterator, Callable, Dict, Iterable, Optional, Union

import httpx

from ..auth.auth_header import basic_auth_value, bearer_auth_value, mask_auth_value
from ..config import (
    JSON_CONTENT_TYPE,
    XML_CONTENT_TYPE,
    TimeoutValue,
    normalize_timeout,
    to_httpx_timeout,
)
from ..context import (
    BACKGROUND,
    ExecutionContext,
    client_timeout,
    resolve_async_client,
    resolve_client,
    run_in_context,
)
from ..errors import RequestConstructionError, TransportError
from ..headers import SENSITIVE_HEADERS, HeaderSet
from ..streaming.body_stream import CHUNK_SIZE, BodyStream
from ..streaming.json_stream import json_body_stream, json_decoder
from ..streaming.xml_stream import xml_body_stream, xml_decoder
from .result import ResultDecoder

logger = logging.getLogger("fetch_request.request_builder")

# RFC 7230 token
_METHOD_RE = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")

BodySource = Union[bytes, str, Iterable[bytes], AsyncIterable[bytes], BodyStream]


def _mask_headers_for_logging(headers: HeaderSet) -> Dict[str, str]:
    """Mask authorization header for safe logging."""
    masked = {}
    for name, value in headers.multi_items():
        if name in SENSITIVE_HEADERS:
            value = mask_auth_value(value)
        masked[name] = value if name not in masked else f"{masked[name]}, {value}"
    return masked


def _validate_method(method: str) -> str:
    if method == "":
        return "GET"
    if not isinstance(method, str) or not _METHOD_RE.fullmatch(method):
        raise RequestConstructionError(f"invalid method {method!r}")
    return method


def _parse_url(url: Union[str, httpx.URL]) -> httpx.URL:
    try:
        return httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as exc:
        raise RequestConstructionError(f"invalid URL {url!r}: {exc}") from exc


async def _aiter_sync(body: Any) -> AsyncIterator[bytes]:
    """Feed a sync iterable or file-like body to an async client."""
    if hasattr(body, "read"):
        while True:
            chunk = body.read(CHUNK_SIZE)
            if not chunk:
                break
            yield chunk.encode("utf-8") if isinstance(chunk, str) else chunk
        return
    for chunk in body:
        yield chunk


class _DispatchStream(httpx.SyncByteStream):
    """Request or response stream bound to one dispatch.

    ctx is checked before every chunk; a cancelled or expired context closes
    the stream and raises TransportError. Closing also closes ``client``, the
    dispatch-owned default client, when one is given.
    """

    def __init__(
        self,
        stream: httpx.SyncByteStream,
        ctx: ExecutionContext,
        client: Optional[httpx.Client] = None,
    ):
        self._stream = stream
        self._ctx = ctx
        self._client = client
        self._closed = False

    def __iter__(self):
        self._check()
        for chunk in self._stream:
            self._check()
            yield chunk

    def _check(self) -> None:
        try:
            self._ctx.check()
        except TransportError:
            self.close()
            raise

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._stream.close()
        finally:
            if self._client is not None:
                self._client.close()


class _AsyncDispatchStream(httpx.AsyncByteStream):
    def __init__(
        self,
        stream: httpx.AsyncByteStream,
        ctx: ExecutionContext,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._stream = stream
        self._ctx = ctx
        self._client = client
        self._closed = False

    async def __aiter__(self):
        await self._check()
        async for chunk in self._stream:
            await self._check()
            yield chunk

    async def _check(self) -> None:
        try:
            self._ctx.check()
        except TransportError:
            await self.aclose()
            raise

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._stream.aclose()
        finally:
            if self._client is not None:
                await self._client.aclose()


class RequestBuilder:
    """Accumulates headers, body and timeout, then sends one request.

    Every ``with_*`` method mutates this builder and returns it, so calls
    chain:

        response = (
            RequestBuilder()
            .with_bearer_auth(token)
            .with_json_body({"text": "hello"})
            .do("POST", "https://api.example.com/notes")
        )
    """

    def __init__(self) -> None:
        self._headers = HeaderSet()
        self._timeout: Optional[float] = None
        self._body: Optional[BodySource] = None

    @property
    def headers(self) -> HeaderSet:
        return self._headers

    @property
    def timeout(self) -> Optional[float]:
        return self._timeout

    @property
    def body(self) -> Optional[BodySource]:
        return self._body

    def with_timeout(self, timeout: Optional[TimeoutValue]) -> "RequestBuilder":
        """Override the client's timeout for this request.

        Seconds or a timedelta. Zero or a negative value disables the timeout;
        None removes the override. The client itself is never modified.
        """
        self._timeout = normalize_timeout(timeout)
        return self

    def with_body(self, body: Optional[BodySource]) -> "RequestBuilder":
        """Set the raw request body, replacing any earlier body."""
        self._replace_body(body)
        return self

    def with_json_body(self, data: Any) -> "RequestBuilder":
        """Send data as JSON, encoded while the request is sent.

        Sets Content-Type to application/json. Encoding failures are raised
        as EncodeError by ``do``.
        """
        self._replace_body(json_body_stream(data))
        self._headers.set("Content-Type", JSON_CONTENT_TYPE)
        return self

    def with_xml_body(self, data: Any) -> "RequestBuilder":
        """Send data as XML, encoded while the request is sent.

        Sets Content-Type to application/xml. See streaming.xml_stream for
        the values that can be encoded.
        """
        self._replace_body(xml_body_stream(data))
        self._headers.set("Content-Type", XML_CONTENT_TYPE)
        return self

    def with_header(self, key: str, value: str) -> "RequestBuilder":
        """Set the header key to the single value, replacing existing values.

        The key is case insensitive; it is canonicalized ("content-type" ->
        "Content-Type").
        """
        self._headers.set(key, value)
        return self

    def with_multi_valued_header(self, key: str, value: str) -> "RequestBuilder":
        """Append value to the values of header key."""
        self._headers.add(key, value)
        return self

    def with_content_type(self, value: str) -> "RequestBuilder":
        self._headers.set("Content-Type", value)
        return self

    def with_basic_auth(self, username: str, password: str) -> "RequestBuilder":
        """Use HTTP Basic Authentication with username and password."""
        self._headers.set("Authorization", basic_auth_value(username, password))
        return self

    def with_bearer_auth(self, token: str) -> "RequestBuilder":
        """Use HTTP Bearer Authentication with token."""
        self._headers.set("Authorization", bearer_auth_value(token))
        return self

    def with_result(self) -> ResultDecoder:
        """Dispatch via a ResultDecoder that buffers the body without decoding."""
        return ResultDecoder(self)

    def with_json_result(self, target: Optional[Any] = None) -> ResultDecoder:
        """Dispatch via a ResultDecoder that decodes the body as JSON.

        Sets Accept to application/json unless an Accept header is already
        present.
        """
        self._default_accept(JSON_CONTENT_TYPE)
        return ResultDecoder(self, json_decoder(target))

    def with_xml_result(self, target: Optional[Any] = None) -> ResultDecoder:
        """Dispatch via a ResultDecoder that decodes the body as XML.

        Sets Accept to application/xml unless an Accept header is already
        present.
        """
        self._default_accept(XML_CONTENT_TYPE)
        return ResultDecoder(self, xml_decoder(target))

    def with_decoded_result(self, decode: Callable[[bytes], Any]) -> ResultDecoder:
        """Dispatch via a ResultDecoder using a custom decode function."""
        return ResultDecoder(self, decode)

    def do(
        self,
        method: str,
        url: Union[str, httpx.URL],
        ctx: Optional[ExecutionContext] = None,
        client: Optional[httpx.Client] = None,
    ) -> httpx.Response:
        """Send the request and return the response with its body unread.

        The client is ``client`` if given, else the one attached to ctx, else
        a new default client (closed together with the response). The caller
        must close the response.

        ctx is checked before sending, between request body chunks, once the
        response headers arrive and between response body chunks. A blocked
        network read is bounded by the per-phase timeout, which never
        exceeds the time left before ctx's deadline.

        Raises:
            RequestConstructionError: invalid method or URL.
            TransportError: sending failed, timed out or ctx was cancelled.
            EncodeError: a JSON/XML body failed to serialize.
        """
        ctx = ctx or BACKGROUND
        method = _validate_method(method)
        parsed_url = _parse_url(url)
        ctx.check()

        http_client, owned = resolve_client(ctx, client)
        try:
            request = self._build_request(http_client, method, parsed_url, ctx, self._body)
            if ctx.is_bounded:
                request.stream = _DispatchStream(request.stream, ctx)
            logger.debug(
                f"RequestBuilder.do: {method} {request.url} headers={_mask_headers_for_logging(self._headers)} "
                f"owned_client={owned}"
            )
            try:
                response = http_client.send(request, stream=True)
            except httpx.HTTPError as exc:
                raise TransportError(f"{method} {request.url}: {exc}") from exc
        except BaseException:
            if owned:
                http_client.close()
            raise

        logger.debug(f"RequestBuilder.do: {method} {request.url} -> {response.status_code}")
        if owned or ctx.is_bounded:
            response.stream = _DispatchStream(response.stream, ctx, http_client if owned else None)
        try:
            ctx.check()
        except TransportError:
            response.close()
            raise
        return response

    async def ado(
        self,
        method: str,
        url: Union[str, httpx.URL],
        ctx: Optional[ExecutionContext] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> httpx.Response:
        """Async counterpart of ``do`` using an httpx.AsyncClient.

        The send is aborted as soon as ctx is cancelled or expires. Task
        cancellation propagates unchanged.
        """
        ctx = ctx or BACKGROUND
        method = _validate_method(method)
        parsed_url = _parse_url(url)
        ctx.check()

        http_client, owned = resolve_async_client(ctx, client)
        try:
            request = self._build_request(
                http_client, method, parsed_url, ctx, self._async_content()
            )
            if ctx.is_bounded:
                request.stream = _AsyncDispatchStream(request.stream, ctx)
            logger.debug(
                f"RequestBuilder.ado: {method} {request.url} headers={_mask_headers_for_logging(self._headers)} "
                f"owned_client={owned}"
            )
            try:
                response = await run_in_context(ctx, http_client.send(request, stream=True))
            except httpx.HTTPError as exc:
                raise TransportError(f"{method} {request.url}: {exc}") from exc
        except BaseException:
            if owned:
                await http_client.aclose()
            raise

        logger.debug(f"RequestBuilder.ado: {method} {request.url} -> {response.status_code}")
        if owned or ctx.is_bounded:
            response.stream = _AsyncDispatchStream(response.stream, ctx, http_client if owned else None)
        try:
            ctx.check()
        except TransportError:
            await response.aclose()
            raise
        return response

    def _replace_body(self, body: Optional[BodySource]) -> None:
        previous = self._body
        if isinstance(previous, BodyStream) and previous is not body and not previous.consumed:
            previous.close()
        self._body = body

    def _default_accept(self, mime_type: str) -> None:
        if "Accept" not in self._headers:
            self._headers.set("Accept", mime_type)

    def _async_content(self) -> Any:
        body = self._body
        if body is None or isinstance(body, (bytes, str)):
            return body
        if isinstance(body, BodyStream):
            return body.__aiter__()
        if isinstance(body, AsyncIterable):
            return body
        return _aiter_sync(body)

    def _effective_timeout(self, http_client: Any, ctx: ExecutionContext) -> Any:
        """Request timeout: the override (or client timeout) capped by ctx."""
        remaining = ctx.remaining()
        if self._timeout is None and remaining is None:
            return httpx.USE_CLIENT_DEFAULT

        if self._timeout is None:
            seconds = client_timeout(http_client)
        elif self._timeout <= 0:
            seconds = None
        else:
            seconds = self._timeout

        if remaining is not None:
            seconds = remaining if seconds is None else min(seconds, remaining)
        return to_httpx_timeout(seconds)

    def _build_request(
        self,
        http_client: Any,
        method: str,
        url: httpx.URL,
        ctx: ExecutionContext,
        content: Any,
    ) -> httpx.Request:
        try:
            return http_client.build_request(
                method,
                url,
                headers=self._headers.multi_items(),
                content=content,
                timeout=self._effective_timeout(http_client, ctx),
            )
        except httpx.InvalidURL as exc:
            raise RequestConstructionError(f"invalid URL {url}: {exc}") from exc


def new() -> RequestBuilder:
    """Return a new RequestBuilder."""
    return RequestBuilder()
