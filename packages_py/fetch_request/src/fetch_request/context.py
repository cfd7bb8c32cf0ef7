"""
Request-scoped execution context: deadline, cancellation and the HTTP client
to send with.

A client attached with attach_client_to_context overrides the default client
for every dispatch given that context. Without one, each dispatch builds a
fresh default client, so nothing it does leaks into unrelated requests.
"""
import asyncio
import contextlib
import dataclasses
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Optional, Tuple, TypeVar, Union

import httpx

from . import config
from .errors import TransportError

logger = logging.getLogger("fetch_request.context")

HttpClient = Union[httpx.Client, httpx.AsyncClient]
T = TypeVar("T")


@dataclass(frozen=True)
class ExecutionContext:
    """Immutable context; derive new ones with the ``with_*`` methods."""

    deadline: Optional[float] = None  # time.monotonic() seconds
    cancel_event: Optional[threading.Event] = None
    _client: Optional[httpx.Client] = field(default=None, repr=False, compare=False)
    _async_client: Optional[httpx.AsyncClient] = field(default=None, repr=False, compare=False)

    def with_timeout(self, seconds: float) -> "ExecutionContext":
        """Derive a context whose deadline is at most seconds from now."""
        return self.with_deadline(time.monotonic() + seconds)

    def with_deadline(self, deadline: float) -> "ExecutionContext":
        if self.deadline is not None and self.deadline < deadline:
            deadline = self.deadline
        return dataclasses.replace(self, deadline=deadline)

    def with_cancel(self, event: Optional[threading.Event] = None) -> "ExecutionContext":
        """Derive a cancellable context. Setting the event cancels it."""
        return dataclasses.replace(self, cancel_event=event or threading.Event())

    def cancel(self) -> None:
        if self.cancel_event is None:
            raise RuntimeError("context is not cancellable; use with_cancel() first")
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without one."""
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    @property
    def is_bounded(self) -> bool:
        """True when the context can be cancelled or expire."""
        return self.deadline is not None or self.cancel_event is not None

    def check(self) -> None:
        """Raise TransportError if the context is cancelled or expired."""
        if self.cancelled:
            raise TransportError("context canceled")
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise TransportError("context deadline exceeded")


BACKGROUND = ExecutionContext()

# cancel_event is a threading.Event, so async waits poll it
CANCEL_POLL_INTERVAL = 0.05


async def run_in_context(ctx: Optional[ExecutionContext], awaitable: Awaitable[T]) -> T:
    """Await awaitable, aborting it once ctx is cancelled or expires.

    The pending work is cancelled and TransportError is raised, as
    ``ExecutionContext.check`` does. Unbounded contexts await directly.
    """
    if ctx is None or not ctx.is_bounded:
        return await awaitable

    task = asyncio.ensure_future(awaitable)
    try:
        while True:
            ctx.check()
            wait = CANCEL_POLL_INTERVAL
            remaining = ctx.remaining()
            if remaining is not None:
                wait = max(0.0, min(wait, remaining))
            done, _ = await asyncio.wait({task}, timeout=wait)
            if done:
                return task.result()
    finally:
        if not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task


def attach_client_to_context(
    ctx: Optional[ExecutionContext], client: Optional[HttpClient]
) -> ExecutionContext:
    """Return a copy of ctx carrying client.

    Accepts an httpx.Client (used by ``do``) or an httpx.AsyncClient (used
    by ``ado``); a context can carry one of each. None detaches both, so
    dispatches fall back to a default client.
    """
    ctx = ctx or BACKGROUND
    if client is None:
        return dataclasses.replace(ctx, _client=None, _async_client=None)
    if isinstance(client, httpx.AsyncClient):
        return dataclasses.replace(ctx, _async_client=client)
    if isinstance(client, httpx.Client):
        return dataclasses.replace(ctx, _client=client)
    raise TypeError(f"expected httpx.Client or httpx.AsyncClient, got {type(client).__name__}")


def new_default_client() -> httpx.Client:
    """Build a client from the current process-wide defaults."""
    settings = config.default_client_config()
    logger.debug(f"new_default_client: timeout={settings.timeout}, verify={settings.verify}")
    return httpx.Client(timeout=config.to_httpx_timeout(settings.timeout), verify=settings.verify)


def new_default_async_client() -> httpx.AsyncClient:
    settings = config.default_client_config()
    logger.debug(f"new_default_async_client: timeout={settings.timeout}, verify={settings.verify}")
    return httpx.AsyncClient(timeout=config.to_httpx_timeout(settings.timeout), verify=settings.verify)


def client_from_context(ctx: Optional[ExecutionContext]) -> httpx.Client:
    """Return the attached sync client, or a new default client.

    A new default client belongs to the caller, who must close it. Use
    resolve_client to learn which case applies.
    """
    return resolve_client(ctx)[0]


def async_client_from_context(ctx: Optional[ExecutionContext]) -> httpx.AsyncClient:
    """Return the attached async client, or a new default async client.

    As with client_from_context, the caller must close a default client;
    resolve_async_client reports ownership.
    """
    return resolve_async_client(ctx)[0]


def resolve_client(
    ctx: Optional[ExecutionContext], client: Optional[httpx.Client] = None
) -> Tuple[httpx.Client, bool]:
    """Pick the client for a dispatch.

    Order: explicit client, then the context's, then a new default. The flag
    is True when the caller owns (and must close) the returned client.
    """
    if client is not None:
        return client, False
    if ctx is not None and ctx._client is not None:
        return ctx._client, False
    return new_default_client(), True


def resolve_async_client(
    ctx: Optional[ExecutionContext], client: Optional[httpx.AsyncClient] = None
) -> Tuple[httpx.AsyncClient, bool]:
    if client is not None:
        return client, False
    if ctx is not None and ctx._async_client is not None:
        return ctx._async_client, False
    return new_default_async_client(), True


def client_timeout(client: Any) -> Optional[float]:
    """Overall timeout configured on client, in seconds (None = unlimited)."""
    timeout = getattr(client, "timeout", None)
    if not isinstance(timeout, httpx.Timeout):
        return None
    values = [v for v in (timeout.connect, timeout.read, timeout.write, timeout.pool) if v is not None]
    return max(values) if values else None
