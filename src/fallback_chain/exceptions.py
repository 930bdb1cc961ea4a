"""Fallback chain exception hierarchy.

All exceptions raised by the chain itself inherit from ``FallbackChainError``
so callers can catch the whole family in one clause while still
discriminating on subclass.  Failures raised by a provider's own operation
are surfaced unchanged and are *not* wrapped.
"""

from __future__ import annotations


class FallbackChainError(Exception):
    """Base class for all chain-level errors."""

    def __init__(self, message: str, *, code: str = "FALLBACK_CHAIN_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(message)


# ── Validation ───────────────────────────────────────────────
class ValidationError(FallbackChainError):
    """Options or provider definition failed validation."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="VALIDATION_ERROR")


# ── Execution ────────────────────────────────────────────────
class ProviderTimeoutError(FallbackChainError):
    """A provider's operation did not settle within ``timeout_per_item``."""

    def __init__(self, provider: str, timeout_s: float) -> None:
        self.provider = provider
        self.timeout_s = timeout_s
        super().__init__(
            f"Timeout: provider {provider!r} did not respond within {timeout_s}s",
            code="PROVIDER_TIMEOUT",
        )


class AllProvidersExhaustedError(FallbackChainError):
    """Raised when no provider in the chain ever attempted execution."""

    def __init__(self, message: str = "All providers in fallback chain failed") -> None:
        super().__init__(message, code="ALL_PROVIDERS_EXHAUSTED")
