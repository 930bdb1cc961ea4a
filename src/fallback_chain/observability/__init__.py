"""Logging and metrics for the fallback chain."""

from fallback_chain.observability.logging import configure_logging

__all__ = ["configure_logging"]
