# Copyright 2025 icecake0141
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# This file was created or modified with the assistance of an AI (Large Language Model).
# Review required for correctness, security, and licensing.

"""
Persistent settings for TickPing, read from ~/.tickping.conf.

The file is either INI::

    [default]
    period = 2
    timeout_ms = 1900

    [targets]
    10.0.0.1
    db01.example.com

or YAML with a ``default:`` mapping and a ``targets:`` list. CLI arguments
override the file, and the file overrides the built-in defaults.
"""

import configparser
import logging
import os
from typing import Any, Dict, Iterable, Optional, Tuple

import yaml

from tickping.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.expanduser("~/.tickping.conf")

FIELD_TYPES: Dict[str, type] = {
    "period": float,
    "timeout_ms": int,
    "render_offset": float,
    "duration": float,
    "input": str,
    "output": str,
    "ping_command": str,
    "log_level": str,
    "log_file": str,
    "color": bool,
}

_BOOL_WORDS = {"true": True, "yes": True, "on": True, "1": True, "false": False, "no": False, "off": False, "0": False}


def _coerce_field(key: str, raw_value: Any) -> Any:
    """Convert a raw value to the type of ``key``; booleans are only accepted for boolean fields."""
    field_type = FIELD_TYPES[key]
    if field_type is bool:
        if isinstance(raw_value, bool):
            return raw_value
        parsed = _BOOL_WORDS.get(str(raw_value).strip().lower())
        if parsed is None:
            raise ConfigError(f"Invalid value for config field '{key}': expected true/false, got {raw_value!r}")
        return parsed
    if isinstance(raw_value, bool):
        raise ConfigError(f"Invalid value for config field '{key}': expected {field_type.__name__}, got {raw_value!r}")
    try:
        return field_type(raw_value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid value for config field '{key}': expected {field_type.__name__}, got {raw_value!r}") from exc


def _build_settings(path: str, defaults: Iterable[Tuple[str, Any]], targets: Iterable[Any]) -> Dict[str, Any]:
    """Validate the ``default`` entries and collect the target list shared by both file formats."""
    settings: Dict[str, Any] = {}
    for key, value in defaults:
        if key not in FIELD_TYPES:
            logger.warning("Ignoring unknown config key '%s' in '%s'.", key, path)
            continue
        if value is None:
            continue
        settings[key] = _coerce_field(key, value)
    cleaned = [str(target).strip() for target in targets if target is not None and str(target).strip()]
    if cleaned:
        settings["targets"] = cleaned
    return settings


def load_ini_config(path: str) -> Dict[str, Any]:
    """
    Read an INI config file.

    Only ``=`` separates keys from values so IPv6 targets can be listed as
    bare lines in the ``[targets]`` section.

    Raises:
        ConfigError: On parse errors or invalid field values.
    """
    parser = configparser.ConfigParser(allow_no_value=True, delimiters=("=",), interpolation=None)
    parser.optionxform = str
    try:
        with open(path, "r", encoding="utf-8") as fh:
            parser.read_file(fh)
    except configparser.Error as exc:
        raise ConfigError(f"Invalid config file '{path}': {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read config file '{path}': {exc}") from exc

    defaults = parser.items("default") if parser.has_section("default") else []
    # A bare line in [targets] is parsed as a key without a value.
    targets = [value or key for key, value in parser.items("targets")] if parser.has_section("targets") else []
    return _build_settings(path, defaults, targets)


def load_yaml_config(path: str) -> Dict[str, Any]:
    """
    Read a YAML config file with ``yaml.safe_load``.

    Raises:
        ConfigError: On parse errors or a layout other than ``default:`` / ``targets:``.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in config file '{path}': {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read config file '{path}': {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file '{path}' must contain a YAML mapping, got {type(data).__name__}.")
    defaults = data.get("default") or {}
    if not isinstance(defaults, dict):
        raise ConfigError(f"The 'default' section in '{path}' must be a YAML mapping.")
    targets = data.get("targets") or []
    if not isinstance(targets, list):
        raise ConfigError(f"The 'targets' section in '{path}' must be a YAML list.")
    return _build_settings(path, defaults.items(), targets)


def _is_yaml_file(path: str) -> bool:
    """INI files open with a ``[section]`` header; anything else is read as YAML."""
    with open(path, "r", encoding="utf-8") as fh:
        for line in fh:
            stripped = line.strip()
            if stripped and not stripped.startswith(("#", ";")):
                return not stripped.startswith("[")
    return True


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load settings from ``path`` (default ``~/.tickping.conf``).

    Returns:
        Dictionary of settings, empty when the file does not exist

    Raises:
        ConfigError: If the file exists but cannot be read or parsed
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH
    if not os.path.exists(path):
        return {}
    try:
        is_yaml = _is_yaml_file(path)
    except OSError as exc:
        raise ConfigError(f"Cannot read config file '{path}': {exc}") from exc
    logger.debug("Loading %s config from '%s'.", "YAML" if is_yaml else "INI", path)
    return load_yaml_config(path) if is_yaml else load_ini_config(path)
