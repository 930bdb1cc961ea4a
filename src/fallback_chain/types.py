"""Core types for the fallback chain."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from fallback_chain.exceptions import ValidationError

if TYPE_CHECKING:
    from fallback_chain.config import ChainSettings

ExecuteFn = Callable[[Any], Awaitable[Any]]
HealthCheckFn = Callable[[], Awaitable[bool]]
FallbackCallback = Callable[[str, str], None]

DEFAULT_TIMEOUT_PER_ITEM_S = 30.0


class ProviderKind(str, enum.Enum):
    """Capability set of a provider, derived from which callables it carries."""

    INERT = "inert"
    EXECUTE_ONLY = "execute_only"
    HEALTH_ONLY = "health_only"
    HEALTH_AND_EXECUTE = "health_and_execute"

    @property
    def has_health_check(self) -> bool:
        return self in (ProviderKind.HEALTH_ONLY, ProviderKind.HEALTH_AND_EXECUTE)

    @property
    def can_execute(self) -> bool:
        return self in (ProviderKind.EXECUTE_ONLY, ProviderKind.HEALTH_AND_EXECUTE)


class SkipReason(str, enum.Enum):
    """Why a provider was passed over without being executed."""

    UNHEALTHY = "unhealthy"
    HEALTH_CHECK_ERROR = "health_check_error"


@dataclass(frozen=True)
class Provider:
    """One candidate implementation of an operation.

    Attributes:
        name:         Identifier used in events, logs and lookups.  Not
                      required to be unique; lookups return the first match.
        priority:     Lower = tried earlier.  Ties keep insertion order.
        execute:      Async callable ``(request) -> result``.  Optional.
        health_check: Async callable ``() -> bool``.  Optional; absence
                      means "always healthy".
        metadata:     Arbitrary extra data, never inspected by the chain.
    """

    name: str
    priority: int = 0
    execute: ExecuteFn | None = None
    health_check: HealthCheckFn | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise ValidationError("Provider name must be a non-empty string")
        if isinstance(self.priority, bool) or not isinstance(self.priority, int):
            raise ValidationError(
                f"Provider {self.name!r} priority must be an int, got {type(self.priority).__name__}"
            )
        if self.execute is not None and not callable(self.execute):
            raise ValidationError(f"Provider {self.name!r} execute must be callable")
        if self.health_check is not None and not callable(self.health_check):
            raise ValidationError(f"Provider {self.name!r} health_check must be callable")

    @property
    def kind(self) -> ProviderKind:
        if self.execute is not None and self.health_check is not None:
            return ProviderKind.HEALTH_AND_EXECUTE
        if self.execute is not None:
            return ProviderKind.EXECUTE_ONLY
        if self.health_check is not None:
            return ProviderKind.HEALTH_ONLY
        return ProviderKind.INERT

    @classmethod
    def wrap(
        cls,
        obj: Any,
        *,
        name: str | None = None,
        priority: int | None = None,
    ) -> Provider:
        """Adapt an object exposing ``name``/``priority`` and optional
        ``execute(request)`` / ``health_check()`` coroutine methods."""
        resolved_name = name if name is not None else getattr(obj, "name", None)
        resolved_priority = priority if priority is not None else getattr(obj, "priority", 0)
        if resolved_name is None:
            raise ValidationError(f"Cannot wrap {type(obj).__name__}: no name given")
        return cls(
            name=resolved_name,
            priority=resolved_priority,
            execute=getattr(obj, "execute", None),
            health_check=getattr(obj, "health_check", None),
            metadata={"wrapped": type(obj).__name__},
        )


def _noop_fallback(from_name: str, to_name: str) -> None:
    return None


@dataclass(frozen=True)
class ChainOptions:
    """Per-chain configuration, fixed at construction.

    Attributes:
        timeout_per_item:  Seconds each provider attempt may take.  A falsy
                           value falls back to the 30s default.
        continue_on_error: Move on to the next provider after a failure
                           instead of raising immediately.
        on_fallback:       Called with ``(from_name, to_name)`` whenever a
                           failed provider hands over to the next one.
        cancel_on_timeout: Cancel an operation that lost the race against
                           the timer.  When False the operation is left to
                           finish in the background and its outcome ignored.
    """

    timeout_per_item: float = DEFAULT_TIMEOUT_PER_ITEM_S
    continue_on_error: bool = True
    on_fallback: FallbackCallback = _noop_fallback
    cancel_on_timeout: bool = True

    def __post_init__(self) -> None:
        if not self.timeout_per_item:
            object.__setattr__(self, "timeout_per_item", DEFAULT_TIMEOUT_PER_ITEM_S)
        elif self.timeout_per_item < 0:
            raise ValidationError(
                f"timeout_per_item must be positive, got {self.timeout_per_item}"
            )
        if self.on_fallback is None:
            object.__setattr__(self, "on_fallback", _noop_fallback)
        elif not callable(self.on_fallback):
            raise ValidationError("on_fallback must be callable")

    @classmethod
    def from_settings(
        cls,
        settings: ChainSettings,
        *,
        on_fallback: FallbackCallback | None = None,
    ) -> ChainOptions:
        return cls(
            timeout_per_item=settings.timeout_per_item_s,
            continue_on_error=settings.continue_on_error,
            on_fallback=on_fallback or _noop_fallback,
            cancel_on_timeout=settings.cancel_on_timeout,
        )
