"""Fallback chain settings loaded from environment / .env file."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ChainSettings(BaseSettings):
    """Defaults for chains built via ``ChainOptions.from_settings``."""

    model_config = SettingsConfigDict(
        env_prefix="FALLBACK_CHAIN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Execution ────────────────────────────────────────────
    timeout_per_item_s: float = Field(default=30.0, gt=0)
    continue_on_error: bool = True
    cancel_on_timeout: bool = True

    # ── Observability ────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool = False
    metrics_enabled: bool = True

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, v: str) -> str:
        return v.upper()


def get_settings(**overrides: Any) -> ChainSettings:
    """Factory that allows test-time overrides."""
    return ChainSettings(**overrides)
