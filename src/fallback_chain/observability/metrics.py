"""Prometheus metrics for fallback chain execution."""

from __future__ import annotations

from prometheus_client import Counter, Histogram


# ── Attempt metrics ──────────────────────────────────────────
PROVIDER_ATTEMPTS = Counter(
    "fallback_chain_provider_attempts_total",
    "Provider attempts made by a fallback chain",
    ["chain", "provider", "outcome"],  # success / error / timeout
)

PROVIDER_ATTEMPT_LATENCY = Histogram(
    "fallback_chain_provider_attempt_seconds",
    "Latency of a single provider attempt",
    ["chain", "provider"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

# ── Chain-level metrics ──────────────────────────────────────
FALLBACKS_TOTAL = Counter(
    "fallback_chain_fallbacks_total",
    "Hand-overs from a failed provider to the next one",
    ["chain", "from_provider", "to_provider"],
)

PROVIDER_SKIPS = Counter(
    "fallback_chain_provider_skips_total",
    "Providers passed over by their health check",
    ["chain", "provider", "reason"],
)

CHAIN_EXHAUSTED = Counter(
    "fallback_chain_exhausted_total",
    "Executions that ended without any provider succeeding",
    ["chain"],
)
