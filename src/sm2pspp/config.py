"""Configuration for the sm2pspp command-line tool.

Settings are resolved from three tiers (highest first):
    1. Explicit parameters (CLI flags).
    2. Environment variables ``SM2PSPP_REMOVE_THUMBNAIL``, ``SM2PSPP_STRICT``,
       ``SM2PSPP_LOG_LEVEL`` and ``SM2PSPP_LOG_DIR``.
    3. The YAML config file (``~/.sm2pspp/config.yaml`` by default).

Built-in defaults fill whatever is left.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

import yaml

from sm2pspp.messages import WARNINGS, Message, parse_message_name

logger = logging.getLogger(__name__)

DEFAULTS: dict[str, object] = {
    "remove_thumbnail": False,
    "strict": False,
    "abort_on": [],
    "log_level": "WARNING",
    "log_dir": None,
}

_ENV_VARS: dict[str, str] = {
    "remove_thumbnail": "SM2PSPP_REMOVE_THUMBNAIL",
    "strict": "SM2PSPP_STRICT",
    "log_level": "SM2PSPP_LOG_LEVEL",
    "log_dir": "SM2PSPP_LOG_DIR",
}

_BOOL_KEYS = ("remove_thumbnail", "strict")

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


def get_default_config_path() -> Path:
    """Return the default path to the config file (~/.sm2pspp/config.yaml)."""
    return Path.home() / ".sm2pspp" / "config.yaml"


def _parse_bool(value: object) -> bool:
    """Interpret YAML/env style booleans; unknown strings are ``False``."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text not in _FALSE_VALUES:
        logger.warning("Invalid boolean value %r, using false", value)
    return False


def _load_config_file(config_path: Path) -> dict[str, object]:
    """Read and parse a YAML config file, returning an empty dict on any failure."""
    if not config_path.is_file():
        return {}
    try:
        with config_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
        if isinstance(data, dict):
            return data
        return {}
    except (yaml.YAMLError, OSError) as exc:
        logger.warning("Ignoring unreadable config file %s: %s", config_path, exc)
        return {}


def load_config(
    remove_thumbnail: bool | None = None,
    strict: bool | None = None,
    abort_on: Iterable[str] | None = None,
    log_level: str | None = None,
    config_path: str | None = None,
) -> dict[str, object]:
    """Resolve configuration using the three-tier precedence hierarchy.

    Returns a dict with keys ``remove_thumbnail``, ``strict``, ``abort_on``
    (list of message names), ``log_level`` and ``log_dir``.
    """
    # --- Defaults ---
    config: dict[str, object] = {k: (list(v) if isinstance(v, list) else v) for k, v in DEFAULTS.items()}

    # --- Layer 3: config file ---
    path = Path(config_path) if config_path else get_default_config_path()
    file_values = _load_config_file(path)
    for key in DEFAULTS:
        if key in file_values and file_values[key] is not None:
            config[key] = file_values[key]

    # --- Layer 2: environment variables ---
    for key, env_name in _ENV_VARS.items():
        env_value = os.environ.get(env_name)
        if env_value:
            config[key] = env_value

    # --- Layer 1: explicit parameters ---
    if remove_thumbnail is not None:
        config["remove_thumbnail"] = remove_thumbnail
    if strict is not None:
        config["strict"] = strict
    if abort_on:
        config["abort_on"] = list(abort_on)
    if log_level is not None:
        config["log_level"] = log_level

    # --- Post-processing ---
    for key in _BOOL_KEYS:
        config[key] = _parse_bool(config[key])
    raw_abort = config["abort_on"]
    if isinstance(raw_abort, str):
        raw_abort = [part for part in raw_abort.split(",") if part.strip()]
    config["abort_on"] = [str(name).strip() for name in raw_abort]  # type: ignore[union-attr]
    config["log_level"] = str(config["log_level"]).upper()

    return config


def init_config(config_path: str | None = None) -> Path:
    """Create the config directory and write a config file with the defaults.

    Returns the :class:`~pathlib.Path` to the written file.
    """
    path = Path(config_path) if config_path else get_default_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "remove_thumbnail": DEFAULTS["remove_thumbnail"],
        "strict": DEFAULTS["strict"],
        "abort_on": [],
        "log_level": DEFAULTS["log_level"],
    }

    with path.open("w", encoding="utf-8") as fh:
        yaml.safe_dump(data, fh, default_flow_style=False, sort_keys=False)

    return path


def validate_config(config: dict[str, object]) -> tuple[bool, str | None]:
    """Validate a resolved configuration dict.

    Returns ``(True, None)`` when the config is valid, or
    ``(False, error_message)`` describing the first problem found.
    """
    level = config.get("log_level", "")
    if not isinstance(level, str) or level.upper() not in _LOG_LEVELS:
        return False, f"log_level must be one of {', '.join(_LOG_LEVELS)}"

    abort_on = config.get("abort_on", [])
    if not isinstance(abort_on, list):
        return False, "abort_on must be a list of warning names"
    for name in abort_on:
        try:
            msg = parse_message_name(str(name))
        except ValueError:
            return False, f"abort_on: unknown warning {name!r}"
        if msg not in WARNINGS:
            return False, f"abort_on: {name!r} is not a warning"

    log_dir = config.get("log_dir")
    if log_dir is not None and not isinstance(log_dir, str):
        return False, "log_dir must be a path string"

    return True, None


def abort_messages(config: dict[str, object]) -> frozenset[Message]:
    """Return the set of warnings that abort the conversion under *config*.

    ``strict`` aborts on every warning.  Call on a validated config only.
    """
    if config.get("strict"):
        return frozenset(WARNINGS)
    return frozenset(parse_message_name(str(name)) for name in config.get("abort_on", []))  # type: ignore[union-attr]
