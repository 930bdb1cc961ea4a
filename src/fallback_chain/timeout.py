"""Race a provider operation against a per-attempt timer."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

import structlog

from fallback_chain.exceptions import ProviderTimeoutError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Abandoned operations, kept referenced until they settle.
_abandoned: set[asyncio.Task[Any]] = set()


async def run_with_timeout(
    fn: Callable[[Any], Awaitable[T]],
    request: Any,
    *,
    timeout_s: float,
    provider: str,
    cancel_on_timeout: bool = True,
) -> T:
    """Await ``fn(request)`` for at most ``timeout_s`` seconds.

    The timer is always disposed when the operation settles first.  If the
    timer wins the call returns immediately: the operation is cancelled (or,
    with ``cancel_on_timeout=False``, left running) without being awaited,
    and whatever it eventually produces is discarded.

    Raises:
        ProviderTimeoutError: The timer fired first.
    """
    task: asyncio.Task[T] = asyncio.ensure_future(fn(request))
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout_s)
    except asyncio.CancelledError:
        # Caller gave up on the whole call.
        task.cancel()
        raise

    if task in done:
        # Re-raises the operation's own error, TimeoutError included.
        return task.result()

    # The timer won.  Never wait on the loser; only keep it referenced until
    # it settles so its outcome is consumed.
    if cancel_on_timeout:
        task.cancel()
    _abandon(task, provider)
    raise ProviderTimeoutError(provider, timeout_s)


def _abandon(task: asyncio.Task[Any], provider: str) -> None:
    _abandoned.add(task)

    def _settled(t: asyncio.Task[Any]) -> None:
        _abandoned.discard(t)
        if t.cancelled():
            return
        exc = t.exception()
        logger.debug(
            "abandoned_operation_settled",
            provider=provider,
            outcome="error" if exc is not None else "result",
            error=f"{type(exc).__name__}: {exc}" if exc is not None else None,
        )

    task.add_done_callback(_settled)


def abandoned_count() -> int:
    """Number of timed-out operations still running in the background."""
    return len(_abandoned)
