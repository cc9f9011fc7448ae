"""Settings read from ``db-builder.toml``."""

import logging
import tomllib
from pathlib import Path
from typing import Any, TypedDict

from ddl import IDENTIFIER_LIMIT
from erd.history import HISTORY_LIMIT

CONFIG_FILE = "db-builder.toml"
CONFIG_TABLE = "db-builder"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Config(TypedDict):
    """Runtime settings for the command line tool."""

    history_limit: int
    identifier_limit: int
    log_level: str


def default_config() -> Config:
    """Settings used when no configuration file is present."""
    return {
        "history_limit": HISTORY_LIMIT,
        "identifier_limit": IDENTIFIER_LIMIT,
        "log_level": logging.getLevelName(logging.WARNING),
    }


def _positive_int(settings: dict[str, Any], key: str, default: int) -> int:
    value = settings.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        msg = f"{key} must be a positive integer, got {value!r}"
        raise ValueError(msg)
    return value


def parse_config(data: dict[str, Any]) -> Config:
    """Validate the ``[db-builder]`` table of a decoded TOML document."""
    settings = data.get(CONFIG_TABLE, {})
    if not isinstance(settings, dict):
        msg = f"[{CONFIG_TABLE}] must be a table"
        raise TypeError(msg)

    defaults = default_config()
    log_level = str(settings.get("log_level", defaults["log_level"])).upper()
    if log_level not in LOG_LEVELS:
        msg = f"log_level must be one of {', '.join(LOG_LEVELS)}, got {log_level!r}"
        raise ValueError(msg)

    return {
        "history_limit": _positive_int(settings, "history_limit", defaults["history_limit"]),
        "identifier_limit": _positive_int(
            settings,
            "identifier_limit",
            defaults["identifier_limit"],
        ),
        "log_level": log_level,
    }


def load_config(location: Path | None = None) -> Config:
    """Read settings from a file, or from ``db-builder.toml`` in the working directory.

    A missing default file yields the defaults; a missing explicit file is an error.
    """
    if location is None:
        location = Path.cwd() / CONFIG_FILE
        if not location.exists():
            return default_config()
    with location.open("rb") as f:
        return parse_config(tomllib.load(f))
