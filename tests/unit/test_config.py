"""Tests for environment-driven settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError as PydanticValidationError

from fallback_chain.config import ChainSettings, get_settings


class TestChainSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("FALLBACK_CHAIN_TIMEOUT_PER_ITEM_S", raising=False)
        settings = ChainSettings(_env_file=None)
        assert settings.timeout_per_item_s == 30.0
        assert settings.continue_on_error is True
        assert settings.cancel_on_timeout is True
        assert settings.log_level == "INFO"

    def test_reads_prefixed_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FALLBACK_CHAIN_TIMEOUT_PER_ITEM_S", "0.5")
        monkeypatch.setenv("FALLBACK_CHAIN_CONTINUE_ON_ERROR", "false")
        settings = ChainSettings(_env_file=None)
        assert settings.timeout_per_item_s == 0.5
        assert settings.continue_on_error is False

    def test_log_level_uppercased(self) -> None:
        assert get_settings(log_level="debug").log_level == "DEBUG"

    def test_rejects_non_positive_timeout(self) -> None:
        with pytest.raises(PydanticValidationError):
            get_settings(timeout_per_item_s=0)
