"""Unit tests for settings validation and logging bootstrap."""

from unittest.mock import patch

import pytest
from pydantic import ValidationError as PydanticValidationError

from oembed_service.core import logging_setup
from oembed_service.core.config import Settings


def test_defaults() -> None:
    cfg = Settings(_env_file=None)
    assert cfg.EMBED_FETCH_TIMEOUT_SECONDS == 2.0
    assert cfg.EMBED_MAX_REDIRECTS == 10


@pytest.mark.parametrize(
    "overrides",
    [
        {"EMBED_FETCH_TIMEOUT_SECONDS": 0.0},
        {"EMBED_FETCH_TIMEOUT_SECONDS": 120.0},
        {"EMBED_MAX_REDIRECTS": -1},
        {"EMBED_MAX_REDIRECTS": 50},
        {"EMBED_MAX_BODY_BYTES": 10},
    ],
)
def test_out_of_range_settings_are_rejected(overrides: dict) -> None:
    with pytest.raises(PydanticValidationError):
        Settings(_env_file=None, **overrides)


def test_site_url_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("SITE_URL", "https://blog.example")
    assert Settings(_env_file=None).SITE_URL == "https://blog.example"


def test_configure_logging_runs_once(monkeypatch) -> None:
    monkeypatch.setattr(logging_setup, "_CONFIGURED", False)
    with (
        patch("logging.config.dictConfig") as dict_config,
        patch("structlog.configure"),
    ):
        logging_setup.configure_logging("INFO", environment="production")
        logging_setup.configure_logging("DEBUG", environment="production")

    dict_config.assert_called_once()
    config = dict_config.call_args.args[0]
    assert config["root"]["level"] == "INFO"
