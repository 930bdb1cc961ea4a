"""Tests for the execute-vs-timer race."""

from __future__ import annotations

import asyncio
import time
from typing import Any

import pytest

from fallback_chain.exceptions import ProviderTimeoutError
from fallback_chain.timeout import abandoned_count, run_with_timeout
from tests.conftest import slow, succeed


class TestRunWithTimeout:
    @pytest.mark.asyncio
    async def test_returns_result_within_budget(self) -> None:
        result = await run_with_timeout(succeed("ok"), None, timeout_s=1.0, provider="p")
        assert result == "ok"

    @pytest.mark.asyncio
    async def test_raises_provider_timeout(self) -> None:
        with pytest.raises(ProviderTimeoutError) as exc_info:
            await run_with_timeout(slow(1.0), None, timeout_s=0.05, provider="slowpoke")
        assert exc_info.value.code == "PROVIDER_TIMEOUT"
        assert exc_info.value.provider == "slowpoke"

    @pytest.mark.asyncio
    async def test_operation_errors_propagate_unchanged(self) -> None:
        boom = KeyError("missing")

        async def _raise(request: Any) -> Any:
            raise boom

        with pytest.raises(KeyError) as exc_info:
            await run_with_timeout(_raise, None, timeout_s=1.0, provider="p")
        assert exc_info.value is boom

    @pytest.mark.asyncio
    async def test_operation_own_timeout_error_is_not_relabelled(self) -> None:
        async def _own_timeout(request: Any) -> Any:
            raise asyncio.TimeoutError()

        with pytest.raises(asyncio.TimeoutError) as exc_info:
            await run_with_timeout(_own_timeout, None, timeout_s=1.0, provider="p")
        assert not isinstance(exc_info.value, ProviderTimeoutError)

    @pytest.mark.asyncio
    async def test_abandoned_operation_keeps_running(self) -> None:
        done = asyncio.Event()

        async def _finish_later(request: Any) -> Any:
            await asyncio.sleep(0.1)
            done.set()
            return "late"

        with pytest.raises(ProviderTimeoutError):
            await run_with_timeout(
                _finish_later, None, timeout_s=0.02, provider="p", cancel_on_timeout=False
            )
        pending = abandoned_count()
        assert pending >= 1
        await asyncio.wait_for(done.wait(), timeout=1.0)
        await asyncio.sleep(0)
        assert abandoned_count() < pending

    @pytest.mark.asyncio
    async def test_non_awaitable_execute_fails(self) -> None:
        def _sync(request: Any) -> Any:
            return "not awaitable"

        with pytest.raises(TypeError):
            await run_with_timeout(_sync, None, timeout_s=1.0, provider="p")

    @pytest.mark.asyncio
    async def test_slow_cancellation_cleanup_is_not_waited_on(self) -> None:
        cleaned_up = asyncio.Event()

        async def _slow_cleanup(request: Any) -> Any:
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                await asyncio.sleep(0.5)
                cleaned_up.set()
                raise

        start = time.monotonic()
        with pytest.raises(ProviderTimeoutError):
            await run_with_timeout(_slow_cleanup, None, timeout_s=0.1, provider="p")
        assert time.monotonic() - start < 0.3
        assert not cleaned_up.is_set()
        await asyncio.wait_for(cleaned_up.wait(), timeout=2.0)

    @pytest.mark.asyncio
    async def test_value_returned_after_cancellation_is_not_a_success(self) -> None:
        async def _swallow_cancel(request: Any) -> Any:
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                return "late"

        with pytest.raises(ProviderTimeoutError):
            await run_with_timeout(_swallow_cancel, None, timeout_s=0.05, provider="p")
        await asyncio.sleep(0.01)

    @pytest.mark.asyncio
    async def test_timed_out_operation_is_cancelled(self) -> None:
        cancelled = asyncio.Event()

        async def _hang(request: Any) -> Any:
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        with pytest.raises(ProviderTimeoutError):
            await run_with_timeout(_hang, None, timeout_s=0.05, provider="p")
        await asyncio.wait_for(cancelled.wait(), timeout=1.0)
