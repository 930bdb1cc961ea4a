"""Fallback chain — tries providers in priority order until one succeeds.

Each ``execute`` call walks a snapshot of the provider sequence.  For every
provider it runs the health check (if any), then races the operation against
``timeout_per_item``.  The first success is returned; failures hand over to
the next provider.  Health-check rejections are skips, not failures.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Generic, Iterable, TypeVar, cast

import structlog

from fallback_chain.events import (
    ChainEvent,
    ChainEventBus,
    ChainEventType,
    EventHandler,
    FallbackEvent,
    ProviderFailedEvent,
    ProviderSkippedEvent,
    ProviderSucceededEvent,
)
from fallback_chain.exceptions import AllProvidersExhaustedError, ProviderTimeoutError
from fallback_chain.observability import metrics
from fallback_chain.timeout import run_with_timeout
from fallback_chain.types import ChainOptions, Provider, SkipReason

logger = structlog.get_logger(__name__)

RequestT = TypeVar("RequestT")
ResultT = TypeVar("ResultT")


class FallbackChain(Generic[RequestT, ResultT]):
    """Ordered providers plus the engine that walks them.

    Usage::

        chain: FallbackChain[Prompt, Completion] = FallbackChain(
            ChainOptions(timeout_per_item=5.0)
        )
        chain.add(Provider("primary", priority=1, execute=call_primary))
        chain.add(Provider("backup", priority=2, execute=call_backup))

        result = await chain.execute(request)
    """

    def __init__(
        self,
        options: ChainOptions | None = None,
        *,
        name: str = "default",
        event_bus: ChainEventBus | None = None,
        metrics_enabled: bool = True,
    ) -> None:
        self._options = options or ChainOptions()
        self._name = name
        self._events = event_bus or ChainEventBus()
        self._metrics_enabled = metrics_enabled

        self._providers: list[Provider] = []
        self._lock = threading.Lock()

    @classmethod
    def from_providers(
        cls,
        providers: Iterable[Provider],
        options: ChainOptions | None = None,
        **kwargs: Any,
    ) -> FallbackChain[Any, Any]:
        chain = cls(options, **kwargs)
        for provider in providers:
            chain.add(provider)
        return chain

    @property
    def name(self) -> str:
        return self._name

    @property
    def options(self) -> ChainOptions:
        return self._options

    @property
    def events(self) -> ChainEventBus:
        return self._events

    # ── Registration ─────────────────────────────────────────
    def add(self, provider: Provider) -> None:
        with self._lock:
            # sorted() is stable, so equal priorities keep insertion order
            self._providers = sorted([*self._providers, provider], key=lambda p: p.priority)
        logger.debug(
            "provider_added",
            chain=self._name,
            provider=provider.name,
            priority=provider.priority,
            kind=provider.kind.value,
        )

    def remove(self, name: str) -> int:
        """Remove every provider called ``name``; returns how many were removed."""
        with self._lock:
            remaining = [p for p in self._providers if p.name != name]
            removed = len(self._providers) - len(remaining)
            self._providers = remaining
        if removed:
            logger.debug("provider_removed", chain=self._name, provider=name, count=removed)
        return removed

    def get(self, name: str) -> Provider | None:
        return next((p for p in self._providers if p.name == name), None)

    def list_providers(self) -> list[Provider]:
        """Snapshot of the providers in priority order."""
        return list(self._providers)

    def count(self) -> int:
        return len(self._providers)

    def __len__(self) -> int:
        return len(self._providers)

    # ── Notifications ────────────────────────────────────────
    def subscribe(self, event_type: str | ChainEventType, handler: EventHandler) -> None:
        self._events.subscribe(event_type, handler)

    def unsubscribe(self, event_type: str | ChainEventType, handler: EventHandler) -> bool:
        return self._events.unsubscribe(event_type, handler)

    def on(self, event_type: str | ChainEventType) -> Any:
        return self._events.on(event_type)

    # ── Execution ────────────────────────────────────────────
    async def execute(self, request: RequestT | None = None) -> ResultT:
        """Run ``request`` through the providers until one succeeds.

        Returns:
            The first successful provider's result.

        Raises:
            The last provider failure (a ``ProviderTimeoutError`` for
            timeouts) when every attempted provider failed, the first failure
            when ``continue_on_error`` is off, or ``AllProvidersExhaustedError``
            when no provider ever executed.
        """
        providers = self._providers
        last_error: Exception | None = None
        attempted: list[str] = []

        for i, provider in enumerate(providers):
            kind = provider.kind

            if kind.has_health_check:
                reason = await self._probe(provider)
                if reason is not None:
                    self._record_skip(provider, reason)
                    continue

            if not kind.can_execute:
                continue

            attempted.append(provider.name)
            log = logger.bind(chain=self._name, provider=provider.name, index=i)
            start = time.monotonic()
            try:
                result = await run_with_timeout(
                    provider.execute,  # type: ignore[arg-type]
                    request,
                    timeout_s=self._options.timeout_per_item,
                    provider=provider.name,
                    cancel_on_timeout=self._options.cancel_on_timeout,
                )
            except ProviderTimeoutError as exc:
                self._observe_attempt(provider, "timeout", start)
                log.warning("provider_timeout", timeout_s=exc.timeout_s)
                last_error = exc
            except Exception as exc:
                self._observe_attempt(provider, "error", start)
                log.warning("provider_request_failed", error=f"{type(exc).__name__}: {exc}")
                last_error = exc
            else:
                latency_ms = self._observe_attempt(provider, "success", start)
                log.info("provider_request_success", latency_ms=float(f"{latency_ms:.1f}"))
                if len(attempted) > 1:
                    logger.info(
                        "provider_failover_success",
                        chain=self._name,
                        provider=provider.name,
                        attempts=len(attempted),
                        failed_providers=attempted[:-1],
                    )
                self._emit(ProviderSucceededEvent(chain=self._name, name=provider.name, index=i))
                return cast(ResultT, result)

            self._emit(ProviderFailedEvent(chain=self._name, name=provider.name, error=last_error))

            if i < len(providers) - 1:
                self._hand_over(provider, providers[i + 1])

            if not self._options.continue_on_error:
                log.info("fallback_chain_stopped_on_error")
                raise last_error

        if self._metrics_enabled:
            metrics.CHAIN_EXHAUSTED.labels(chain=self._name).inc()
        logger.warning(
            "fallback_chain_exhausted",
            chain=self._name,
            providers=len(providers),
            attempted=attempted,
            last_error=repr(last_error) if last_error else None,
        )
        if last_error is not None:
            raise last_error
        raise AllProvidersExhaustedError()

    # ── Convenience queries ──────────────────────────────────
    async def first_available(self) -> Provider | None:
        """First provider whose health check passes or that has none."""
        for provider in self._providers:
            if not provider.kind.has_health_check:
                return provider
            if await self._probe(provider) is None:
                return provider
        return None

    # ── Internals ────────────────────────────────────────────
    async def _probe(self, provider: Provider) -> SkipReason | None:
        """Run the health check; returns why to skip, or None if healthy."""
        try:
            healthy = await provider.health_check()  # type: ignore[misc]
        except Exception as exc:
            logger.warning(
                "provider_health_check_failed",
                chain=self._name,
                provider=provider.name,
                error=f"{type(exc).__name__}: {exc}",
            )
            return SkipReason.HEALTH_CHECK_ERROR
        return None if healthy else SkipReason.UNHEALTHY

    def _record_skip(self, provider: Provider, reason: SkipReason) -> None:
        logger.info("provider_skipped", chain=self._name, provider=provider.name, reason=reason.value)
        if self._metrics_enabled:
            metrics.PROVIDER_SKIPS.labels(
                chain=self._name, provider=provider.name, reason=reason.value
            ).inc()
        self._emit(ProviderSkippedEvent(chain=self._name, name=provider.name, reason=reason.value))

    def _hand_over(self, current: Provider, nxt: Provider) -> None:
        # Names the structurally next provider even if it will be skipped.
        try:
            self._options.on_fallback(current.name, nxt.name)
        except Exception:
            logger.exception(
                "on_fallback_callback_error",
                chain=self._name,
                from_provider=current.name,
                to_provider=nxt.name,
            )
        if self._metrics_enabled:
            metrics.FALLBACKS_TOTAL.labels(
                chain=self._name, from_provider=current.name, to_provider=nxt.name
            ).inc()
        self._emit(FallbackEvent(chain=self._name, from_name=current.name, to_name=nxt.name))

    def _observe_attempt(self, provider: Provider, outcome: str, start: float) -> float:
        elapsed = time.monotonic() - start
        if self._metrics_enabled:
            metrics.PROVIDER_ATTEMPTS.labels(
                chain=self._name, provider=provider.name, outcome=outcome
            ).inc()
            metrics.PROVIDER_ATTEMPT_LATENCY.labels(
                chain=self._name, provider=provider.name
            ).observe(elapsed)
        return elapsed * 1000

    def _emit(self, event: ChainEvent) -> None:
        self._events.publish(event)


def create_fallback_chain(
    providers: Iterable[Provider],
    options: ChainOptions | None = None,
    **kwargs: Any,
) -> FallbackChain[Any, Any]:
    """Build a chain pre-populated with ``providers``."""
    return FallbackChain.from_providers(providers, options, **kwargs)
