"""
Logging configuration.

The `logging.yaml` shipped next to this module is applied with `dictConfig`,
then the level is overridden from settings (`HELPHIVE_LOG_LEVEL`).
"""

import copy
import logging.config
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from helphive.config import Settings, get_settings

LOGGING_CONFIG_PATH = Path(__file__).with_name("logging.yaml")


@lru_cache
def get_logging_config() -> dict[str, Any]:
    text = LOGGING_CONFIG_PATH.read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(
            f"Invalid YAML root object for {LOGGING_CONFIG_PATH}; "
            "expected a mapping."
        )
    return data


def configure_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    config = copy.deepcopy(get_logging_config())

    level = settings.app.log_level.upper()
    config.setdefault("root", {})["level"] = level
    for handler in config.get("handlers", {}).values():
        if isinstance(handler, dict) and "level" in handler:
            handler["level"] = level

    logging.config.dictConfig(config)
