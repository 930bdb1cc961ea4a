"""Priority-ordered fallback execution across interchangeable providers.

Tries each provider in turn, skipping unhealthy ones and bounding every
attempt with a timeout, until one succeeds or all are exhausted.
"""

from fallback_chain.types import (
    ChainOptions,
    Provider,
    ProviderKind,
    SkipReason,
)
from fallback_chain.events import (
    ChainEvent,
    ChainEventBus,
    ChainEventType,
    FallbackEvent,
    ProviderFailedEvent,
    ProviderSkippedEvent,
    ProviderSucceededEvent,
)
from fallback_chain.exceptions import (
    AllProvidersExhaustedError,
    FallbackChainError,
    ProviderTimeoutError,
    ValidationError,
)
from fallback_chain.chain import FallbackChain, create_fallback_chain

__all__ = [
    "AllProvidersExhaustedError",
    "ChainEvent",
    "ChainEventBus",
    "ChainEventType",
    "ChainOptions",
    "FallbackChain",
    "FallbackChainError",
    "FallbackEvent",
    "Provider",
    "ProviderFailedEvent",
    "ProviderKind",
    "ProviderSkippedEvent",
    "ProviderSucceededEvent",
    "ProviderTimeoutError",
    "SkipReason",
    "ValidationError",
    "create_fallback_chain",
]
