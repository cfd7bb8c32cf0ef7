"""
Shared fixtures for fetch_request tests.
"""
from typing import List

import httpx
import pytest


class RecordingHandler:
    """MockTransport handler that records requests and echoes the body.

    With streaming=True the response body is handed out as an unread stream,
    the way a network transport returns it, instead of pre-buffered content.
    """

    def __init__(
        self,
        status_code: int = 200,
        body: bytes = None,
        headers: dict = None,
        streaming: bool = False,
    ):
        self.status_code = status_code
        self.body = body
        self.headers = headers or {}
        self.streaming = streaming
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        content = request.content if self.body is None else self.body
        if self.streaming:
            return httpx.Response(self.status_code, headers=self.headers, stream=httpx.ByteStream(content))
        return httpx.Response(self.status_code, headers=self.headers, content=content)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def echo_handler():
    """Handler echoing the request body with status 200."""
    return RecordingHandler()


@pytest.fixture
def streaming_echo_handler():
    """Echo handler whose responses carry an unread body stream."""
    return RecordingHandler(streaming=True)


@pytest.fixture
def echo_client(echo_handler):
    """httpx.Client whose transport echoes the request body."""
    client = httpx.Client(transport=httpx.MockTransport(echo_handler), timeout=5.0)
    yield client
    client.close()


@pytest.fixture
def make_client():
    """Build sync clients answering with a fixed status/body."""
    clients = []

    def factory(status_code=200, body=b"", headers=None, timeout=5.0, streaming=False):
        handler = RecordingHandler(status_code=status_code, body=body, headers=headers, streaming=streaming)
        client = httpx.Client(transport=httpx.MockTransport(handler), timeout=timeout)
        client.handler = handler
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.close()


@pytest.fixture
def make_async_client():
    """Build async clients answering with a fixed status/body (echo when body is None)."""

    def factory(status_code=200, body=None, headers=None, timeout=5.0, streaming=False):
        handler = RecordingHandler(status_code=status_code, body=body, headers=headers, streaming=streaming)

        async def async_handler(request: httpx.Request) -> httpx.Response:
            await request.aread()
            return handler(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(async_handler), timeout=timeout)
        client.handler = handler
        return client

    return factory
