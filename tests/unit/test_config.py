"""Unit tests for settings loading and validation."""

import pytest
from pydantic import ValidationError

from draftqueue.config import Settings


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.operation_delay == pytest.approx(0.15)
    assert settings.settle_delay == pytest.approx(0.1)
    assert settings.roster_rate_limit == pytest.approx(0.1)
    assert settings.roster_cache_ttl_s == 24 * 60 * 60
    assert settings.remove_label == "remove"
    assert settings.suggestion_threshold == 0.85


def test_environment_prefix(monkeypatch):
    monkeypatch.setenv("DRAFTQUEUE_OPERATION_DELAY_MS", "250")
    monkeypatch.setenv("DRAFTQUEUE_ADD_TRIGGER_SELECTOR", ".add-button")

    settings = Settings(_env_file=None)

    assert settings.operation_delay == pytest.approx(0.25)
    assert settings.add_trigger_selector == ".add-button"


def test_log_level_normalized():
    assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"


@pytest.mark.parametrize(
    "overrides",
    [
        {"log_level": "LOUD"},
        {"log_format": "xml"},
        {"settle_delay_ms": -1},
        {"filter_input_selectors": ["  "]},
        {"queue_container_selectors": []},
    ],
)
def test_invalid_values_rejected(overrides):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)


def test_selector_lists_trimmed():
    settings = Settings(_env_file=None, player_container_selectors=[" .row ", "", "li"])
    assert settings.player_container_selectors == [".row", "li"]
