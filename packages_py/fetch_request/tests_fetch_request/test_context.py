"""
Tests for context.py
Logic testing: Decision/Branch, State Transition, Boundary Value
"""
import asyncio
import threading
import time

import httpx
import pytest

from fetch_request import config
from fetch_request.context import (
    BACKGROUND,
    ExecutionContext,
    async_client_from_context,
    attach_client_to_context,
    client_from_context,
    client_timeout,
    resolve_client,
    run_in_context,
)
from fetch_request.errors import TransportError


class TestClientFromContext:
    """Tests for client resolution."""

    # Decision: nothing attached -> default client with default timeout
    def test_default_client_uses_default_timeout(self):
        client = client_from_context(BACKGROUND)
        try:
            assert isinstance(client, httpx.Client)
            assert client.timeout == httpx.Timeout(config.DEFAULT_CLIENT_TIMEOUT)
        finally:
            client.close()

    def test_none_context_gives_default_client(self):
        client = client_from_context(None)
        try:
            assert client_timeout(client) == config.DEFAULT_CLIENT_TIMEOUT
        finally:
            client.close()

    # State: default client is freshly built per call
    def test_default_client_not_cached(self):
        first = client_from_context(BACKGROUND)
        second = client_from_context(BACKGROUND)
        try:
            assert first is not second
        finally:
            first.close()
            second.close()

    # Path: reassigning the process-wide default is picked up
    def test_default_timeout_read_at_call_time(self, monkeypatch):
        monkeypatch.setattr(config, "DEFAULT_CLIENT_TIMEOUT", 3.5)
        client = client_from_context(BACKGROUND)
        try:
            assert client.timeout == httpx.Timeout(3.5)
        finally:
            client.close()

    # Happy Path: attached client returned as-is
    def test_attached_client_returned(self):
        attached = httpx.Client(timeout=1.0)
        try:
            ctx = attach_client_to_context(BACKGROUND, attached)
            assert client_from_context(ctx) is attached
        finally:
            attached.close()

    # State: attaching derives a new context
    def test_attach_leaves_source_context_unchanged(self):
        attached = httpx.Client()
        try:
            ctx = ExecutionContext()
            derived = attach_client_to_context(ctx, attached)
            assert derived is not ctx
            assert ctx._client is None
        finally:
            attached.close()

    @pytest.mark.asyncio
    async def test_attached_async_client(self):
        attached = httpx.AsyncClient()
        try:
            ctx = attach_client_to_context(None, attached)
            assert async_client_from_context(ctx) is attached
            assert ctx._client is None
        finally:
            await attached.aclose()

    @pytest.mark.asyncio
    async def test_default_async_client(self):
        client = async_client_from_context(BACKGROUND)
        try:
            assert isinstance(client, httpx.AsyncClient)
            assert client.timeout == httpx.Timeout(config.DEFAULT_CLIENT_TIMEOUT)
        finally:
            await client.aclose()

    # Decision: attaching None detaches, resolution falls back to a default
    def test_attach_none_detaches(self):
        attached = httpx.Client(timeout=1.0)
        try:
            ctx = attach_client_to_context(BACKGROUND, attached)
            detached = attach_client_to_context(ctx, None)
            client, owned = resolve_client(detached)
            try:
                assert client is not attached
                assert owned is True
                assert client.timeout == httpx.Timeout(config.DEFAULT_CLIENT_TIMEOUT)
            finally:
                client.close()
        finally:
            attached.close()

    def test_attach_none_to_empty_context(self):
        ctx = attach_client_to_context(None, None)
        assert ctx._client is None
        assert ctx._async_client is None

    # Error Path: not an httpx client
    def test_attach_rejects_other_objects(self):
        with pytest.raises(TypeError):
            attach_client_to_context(BACKGROUND, object())

    # Decision: explicit client wins over context
    def test_resolve_prefers_explicit_client(self):
        explicit = httpx.Client()
        attached = httpx.Client()
        try:
            ctx = attach_client_to_context(BACKGROUND, attached)
            client, owned = resolve_client(ctx, explicit)
            assert client is explicit
            assert owned is False
        finally:
            explicit.close()
            attached.close()

    def test_resolve_default_is_owned(self):
        client, owned = resolve_client(BACKGROUND)
        try:
            assert owned is True
        finally:
            client.close()


class TestExecutionContext:
    """Tests for ExecutionContext class."""

    def test_background_has_no_deadline(self):
        assert BACKGROUND.remaining() is None
        assert BACKGROUND.cancelled is False
        BACKGROUND.check()

    # Boundary: deadline in the future / past
    def test_with_timeout_sets_deadline(self):
        ctx = BACKGROUND.with_timeout(10)
        assert 0 < ctx.remaining() <= 10

    def test_expired_deadline_fails_check(self):
        ctx = BACKGROUND.with_deadline(time.monotonic() - 1)
        with pytest.raises(TransportError, match="deadline exceeded"):
            ctx.check()

    # Decision: a later deadline never extends an earlier one
    def test_deadline_only_shrinks(self):
        ctx = BACKGROUND.with_timeout(1)
        extended = ctx.with_timeout(100)
        assert extended.deadline == ctx.deadline

    # State: cancellation
    def test_cancel(self):
        ctx = BACKGROUND.with_cancel()
        ctx.check()
        ctx.cancel()
        assert ctx.cancelled is True
        with pytest.raises(TransportError, match="canceled"):
            ctx.check()

    def test_cancel_with_shared_event(self):
        event = threading.Event()
        ctx = BACKGROUND.with_cancel(event)
        event.set()
        assert ctx.cancelled is True

    def test_cancel_requires_cancellable_context(self):
        with pytest.raises(RuntimeError):
            BACKGROUND.cancel()

    def test_derived_context_keeps_client(self):
        attached = httpx.Client()
        try:
            ctx = attach_client_to_context(BACKGROUND, attached).with_timeout(5)
            assert client_from_context(ctx) is attached
        finally:
            attached.close()


class TestClientTimeout:
    """Tests for client_timeout function."""

    def test_uniform_timeout(self):
        client = httpx.Client(timeout=7.0)
        try:
            assert client_timeout(client) == 7.0
        finally:
            client.close()

    def test_disabled_timeout(self):
        client = httpx.Client(timeout=None)
        try:
            assert client_timeout(client) is None
        finally:
            client.close()

    def test_non_client(self):
        assert client_timeout(object()) is None


class TestRunInContext:
    """Tests for run_in_context function."""

    def test_is_bounded(self):
        assert BACKGROUND.is_bounded is False
        assert BACKGROUND.with_timeout(1).is_bounded is True
        assert BACKGROUND.with_cancel().is_bounded is True

    @pytest.mark.asyncio
    async def test_returns_result(self):
        async def work():
            return "done"

        assert await run_in_context(BACKGROUND.with_timeout(5), work()) == "done"
        assert await run_in_context(None, work()) == "done"

    @pytest.mark.asyncio
    async def test_deadline_cancels_work(self):
        cancelled = asyncio.Event()

        async def work():
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        start = time.monotonic()
        with pytest.raises(TransportError, match="deadline exceeded"):
            await run_in_context(BACKGROUND.with_timeout(0.1), work())
        assert time.monotonic() - start < 2
        assert cancelled.is_set()

    @pytest.mark.asyncio
    async def test_cancel_event_from_another_thread(self):
        ctx = BACKGROUND.with_cancel()
        threading.Timer(0.05, ctx.cancel).start()

        with pytest.raises(TransportError, match="canceled"):
            await run_in_context(ctx, asyncio.sleep(5))

    @pytest.mark.asyncio
    async def test_work_errors_propagate(self):
        async def work():
            raise ValueError("boom")

        with pytest.raises(ValueError):
            await run_in_context(BACKGROUND.with_cancel(), work())
