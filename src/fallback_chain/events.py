"""Chain events and the in-process observer that fans them out.

Events are typed records of what happened during an ``execute`` call.
Publishing is fire-and-forget: subscribers cannot veto or alter execution,
and a failing subscriber is logged and otherwise ignored.
"""

from __future__ import annotations

import asyncio
import enum
import inspect
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

import structlog

logger = structlog.get_logger(__name__)

WILDCARD = "*"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChainEventType(str, enum.Enum):
    SUCCESS = "success"
    ERROR = "error"
    FALLBACK = "fallback"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class ChainEvent:
    """Base class for all chain events."""

    event_type: str = "CHAIN_EVENT"
    chain: str = ""
    occurred_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True, slots=True)
class ProviderSucceededEvent(ChainEvent):
    event_type: str = ChainEventType.SUCCESS.value
    name: str = ""
    index: int = 0


@dataclass(frozen=True, slots=True)
class ProviderFailedEvent(ChainEvent):
    event_type: str = ChainEventType.ERROR.value
    name: str = ""
    error: BaseException | None = None


@dataclass(frozen=True, slots=True)
class FallbackEvent(ChainEvent):
    event_type: str = ChainEventType.FALLBACK.value
    from_name: str = ""
    to_name: str = ""


@dataclass(frozen=True, slots=True)
class ProviderSkippedEvent(ChainEvent):
    event_type: str = ChainEventType.SKIPPED.value
    name: str = ""
    reason: str = ""


EventHandler = Callable[[ChainEvent], Any]


class ChainEventBus:
    """Synchronous fan-out to zero or more subscribers.

    Plain callables run inline.  Handlers that return an awaitable are
    scheduled on the running loop and never awaited by the publisher.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)
        self._pending: set[asyncio.Future[Any]] = set()

    def subscribe(self, event_type: str | ChainEventType, handler: EventHandler) -> None:
        key = _event_key(event_type)
        self._handlers[key].append(handler)
        logger.debug("event_handler_registered", event_type=key)

    def unsubscribe(self, event_type: str | ChainEventType, handler: EventHandler) -> bool:
        handlers = self._handlers.get(_event_key(event_type), [])
        if handler in handlers:
            handlers.remove(handler)
            return True
        return False

    def on(self, event_type: str | ChainEventType) -> Callable[[EventHandler], EventHandler]:
        """Decorator form of :meth:`subscribe`."""

        def decorator(handler: EventHandler) -> EventHandler:
            self.subscribe(event_type, handler)
            return handler

        return decorator

    def handler_count(self, event_type: str | ChainEventType | None = None) -> int:
        if event_type is None:
            return sum(len(h) for h in self._handlers.values())
        return len(self._handlers.get(_event_key(event_type), []))

    def publish(self, event: ChainEvent) -> None:
        handlers = [
            *self._handlers.get(event.event_type, []),
            *self._handlers.get(WILDCARD, []),
        ]
        if not handlers:
            return

        for i, handler in enumerate(handlers):
            try:
                result = handler(event)
            except Exception:
                logger.exception(
                    "event_handler_error",
                    event_type=event.event_type,
                    handler_index=i,
                )
                continue
            if inspect.isawaitable(result):
                self._schedule(result, event.event_type)

    async def drain(self) -> None:
        """Wait for all scheduled async handlers to settle."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ── Internals ────────────────────────────────────────────
    def _schedule(self, awaitable: Any, event_type: str) -> None:
        future = asyncio.ensure_future(awaitable)
        self._pending.add(future)

        def _done(fut: asyncio.Future[Any]) -> None:
            self._pending.discard(fut)
            if fut.cancelled():
                return
            exc = fut.exception()
            if exc is not None:
                logger.error(
                    "event_handler_error",
                    event_type=event_type,
                    error=f"{type(exc).__name__}: {exc}",
                )

        future.add_done_callback(_done)


def _event_key(event_type: str | ChainEventType) -> str:
    if isinstance(event_type, ChainEventType):
        return event_type.value
    return event_type
