"""
Buffered, optionally decoded responses.
"""
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

import httpx

from ..context import BACKGROUND, ExecutionContext, run_in_context
from ..errors import BodyReadError, DecodeError

if TYPE_CHECKING:
    from .request_builder import RequestBuilder

logger = logging.getLogger("fetch_request.result")

Decoder = Callable[[bytes], Any]


async def _drain(response: httpx.Response) -> bytes:
    return b"".join([chunk async for chunk in response.aiter_bytes()])


@dataclass
class Result:
    """Response whose body has been read to completion and closed.

    Reading ``response`` again (``read``, ``iter_bytes``, ``iter_raw``) raises
    httpx.StreamError; the body lives in ``raw_data``.
    """

    response: httpx.Response
    raw_data: bytes
    data: Any = None

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @property
    def ok(self) -> bool:
        return 200 <= self.response.status_code < 300

    @property
    def text(self) -> str:
        encoding = self.response.encoding or "utf-8"
        return self.raw_data.decode(encoding, errors="replace")


class ResultDecoder:
    """Sends the builder's request, buffers the body and decodes it."""

    def __init__(self, builder: "RequestBuilder", decode: Optional[Decoder] = None):
        self._builder = builder
        self._decode = decode

    def do(
        self,
        method: str,
        url: Union[str, httpx.URL],
        ctx: Optional[ExecutionContext] = None,
        client: Optional[httpx.Client] = None,
    ) -> Result:
        """Send the request and return a Result.

        Raises the errors of ``RequestBuilder.do``, plus BodyReadError when
        the body cannot be read and DecodeError when it cannot be decoded.
        """
        response = self._builder.do(method, url, ctx=ctx, client=client)
        try:
            # iter_bytes leaves nothing cached on the response
            data = b"".join(response.iter_bytes())
        except (httpx.HTTPError, httpx.StreamError) as exc:
            raise BodyReadError(f"failed to read response body: {exc}", response) from exc
        finally:
            response.close()
        return self._result(response, data)

    async def ado(
        self,
        method: str,
        url: Union[str, httpx.URL],
        ctx: Optional[ExecutionContext] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> Result:
        """Async counterpart of ``do``."""
        response = await self._builder.ado(method, url, ctx=ctx, client=client)
        try:
            data = await run_in_context(ctx or BACKGROUND, _drain(response))
        except (httpx.HTTPError, httpx.StreamError) as exc:
            raise BodyReadError(f"failed to read response body: {exc}", response) from exc
        finally:
            await response.aclose()
        return self._result(response, data)

    def _result(self, response: httpx.Response, data: bytes) -> Result:
        logger.debug(
            f"ResultDecoder: status={response.status_code} bytes={len(data)} "
            f"decode={self._decode is not None}"
        )
        if self._decode is None:
            return Result(response=response, raw_data=data)

        try:
            value = self._decode(data)
        except Exception as exc:
            raise DecodeError(
                f"failed to decode response body (status {response.status_code}): {exc}",
                response=response,
                raw_data=data,
            ) from exc
        return Result(response=response, raw_data=data, data=value)
