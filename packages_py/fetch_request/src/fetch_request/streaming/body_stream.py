"""
Lazily produced request bodies.

A BodyStream wraps a producer (a generator factory) that serializes a value
chunk by chunk. httpx pulls the chunks while it sends the request, so the
payload is never buffered whole and the producer only runs inside the
dispatch that reads it. A builder that is never dispatched leaves nothing
running.
"""
import logging
from typing import AsyncIterator, Callable, Iterable, Iterator, Optional

from ..errors import EncodeError

logger = logging.getLogger("fetch_request.body_stream")

CHUNK_SIZE = 8192


def coalesce(pieces: Iterable[str], chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """Join small string pieces into UTF-8 chunks of roughly chunk_size bytes."""
    buffer = []
    size = 0
    for piece in pieces:
        if not piece:
            continue
        data = piece.encode("utf-8")
        buffer.append(data)
        size += len(data)
        if size >= chunk_size:
            yield b"".join(buffer)
            buffer = []
            size = 0
    if buffer:
        yield b"".join(buffer)


class BodyStream:
    """Single-use byte stream fed by a serializer.

    Iterating (sync or async) runs the producer; a failure inside it is
    raised as EncodeError with the underlying exception chained.
    """

    def __init__(
        self,
        producer: Callable[[], Iterable[str]],
        content_type: str,
        chunk_size: int = CHUNK_SIZE,
    ):
        self._producer = producer
        self.content_type = content_type
        self._chunk_size = chunk_size
        self._iterator: Optional[Iterator[bytes]] = None
        self._consumed = False
        self._closed = False

    @property
    def consumed(self) -> bool:
        return self._consumed

    @property
    def closed(self) -> bool:
        return self._closed

    def _chunks(self) -> Iterator[bytes]:
        if self._closed:
            raise EncodeError(f"{self.content_type} body stream is closed")
        if self._consumed:
            raise EncodeError(f"{self.content_type} body stream was already consumed")
        self._consumed = True

        try:
            yield from coalesce(self._producer(), self._chunk_size)
        except EncodeError:
            raise
        except Exception as exc:
            logger.debug(f"BodyStream: {self.content_type} encoding failed: {exc!r}")
            raise EncodeError(f"failed to encode {self.content_type} body: {exc}") from exc

    def __iter__(self) -> Iterator[bytes]:
        self._iterator = self._chunks()
        return self._iterator

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for chunk in self:
            yield chunk

    def close(self) -> None:
        """Stop the producer; later reads raise EncodeError."""
        self._closed = True
        if self._iterator is not None:
            self._iterator.close()
            self._iterator = None

    def __repr__(self) -> str:
        state = "closed" if self._closed else "consumed" if self._consumed else "pending"
        return f"BodyStream(content_type={self.content_type!r}, {state})"
