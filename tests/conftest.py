"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import pytest

from fallback_chain import ChainEvent, ChainOptions, FallbackChain, Provider


def succeed(value: Any, calls: list[str] | None = None, name: str = "") -> Callable[[Any], Any]:
    async def _execute(request: Any) -> Any:
        if calls is not None:
            calls.append(name)
        return value

    return _execute


def fail(exc: Exception, calls: list[str] | None = None, name: str = "") -> Callable[[Any], Any]:
    async def _execute(request: Any) -> Any:
        if calls is not None:
            calls.append(name)
        raise exc

    return _execute


def slow(delay: float, value: Any = "slow") -> Callable[[Any], Any]:
    async def _execute(request: Any) -> Any:
        await asyncio.sleep(delay)
        return value

    return _execute


def health(result: bool) -> Callable[[], Any]:
    async def _check() -> bool:
        return result

    return _check


@pytest.fixture
def calls() -> list[str]:
    return []


@pytest.fixture
def event_log() -> list[ChainEvent]:
    return []


@pytest.fixture
def chain(event_log: list[ChainEvent]) -> FallbackChain:
    c = FallbackChain(ChainOptions(timeout_per_item=1.0), name="test")
    c.subscribe("*", event_log.append)
    return c


@pytest.fixture
def make_provider(calls: list[str]) -> Callable[..., Provider]:
    """Build a provider whose execute records its name in ``calls``."""

    def _make(
        name: str,
        priority: int = 0,
        *,
        result: Any = None,
        error: Exception | None = None,
        healthy: bool | None = None,
    ) -> Provider:
        execute = (
            fail(error, calls, name)
            if error is not None
            else succeed(result if result is not None else name, calls, name)
        )
        return Provider(
            name=name,
            priority=priority,
            execute=execute,
            health_check=health(healthy) if healthy is not None else None,
        )

    return _make
