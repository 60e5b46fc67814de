"""Configuration manager for GroupCode using TOML files."""

from __future__ import annotations

import logging
from typing import Any, Dict

import toml

from . import config

logger = logging.getLogger(__name__)


DEFAULT_REFACTORING_CONFIG: Dict[str, Any] = {
    "similarity_threshold": 0.8,
    "orphaned_threshold": 90,
    "single_use_threshold": 2,
    "too_large_threshold": 50,
    "too_small_threshold": 2,
    "enabled_checks": [
        "duplicate",
        "similar",
        "orphaned",
        "inconsistent_naming",
        "single_use",
    ],
}

DEFAULT_SCAN_CONFIG: Dict[str, Any] = {
    "respect_gitignore": True,
    "extra_skip_dirs": [],
}

_SECTION_DEFAULTS = {
    "refactoring": DEFAULT_REFACTORING_CONFIG,
    "scan": DEFAULT_SCAN_CONFIG,
}


def load_full_config() -> Dict[str, Any]:
    """Load the entire TOML config (all sections)."""
    if not config.CONFIG_FILE.exists():
        return {}
    try:
        with open(config.CONFIG_FILE, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Could not read %s: %s", config.CONFIG_FILE, exc)
        return {}


def _save_full_config(payload: Dict[str, Any]) -> bool:
    """Write entire config dict to TOML file, preserving all sections."""
    config.ensure_base_dirs()
    try:
        with open(config.CONFIG_FILE, "w", encoding="utf-8") as f:
            toml.dump(payload, f)
        return True
    except OSError as exc:
        logger.warning("Could not write %s: %s", config.CONFIG_FILE, exc)
        return False


def load_section(section: str) -> Dict[str, Any]:
    """Return *section* merged over its defaults.

    Unknown keys in the file are ignored; values whose type does not match
    the default are dropped.
    """
    if section not in _SECTION_DEFAULTS:
        raise KeyError(f"Unknown config section '{section}'")
    defaults = _SECTION_DEFAULTS[section]
    merged = {k: (list(v) if isinstance(v, list) else v) for k, v in defaults.items()}

    stored = load_full_config().get(section, {})
    if not isinstance(stored, dict):
        return merged
    for key, value in stored.items():
        if key not in defaults:
            continue
        if not _same_kind(defaults[key], value):
            logger.warning("Ignoring [%s] %s=%r (bad type)", section, key, value)
            continue
        merged[key] = value
    return merged


def _same_kind(default: Any, value: Any) -> bool:
    if isinstance(default, bool):
        return isinstance(value, bool)
    if isinstance(default, (int, float)):
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    return isinstance(value, type(default))


def load_refactoring_config() -> Dict[str, Any]:
    return load_section("refactoring")


def load_scan_config() -> Dict[str, Any]:
    return load_section("scan")


def save_setting(section: str, key: str, value: Any) -> bool:
    """Persist a single ``[section] key = value`` pair.

    Returns:
        True if saved successfully, False otherwise
    """
    if section not in _SECTION_DEFAULTS or key not in _SECTION_DEFAULTS[section]:
        raise KeyError(f"Unknown setting '{section}.{key}'")
    payload = load_full_config()
    payload.setdefault(section, {})[key] = value
    return _save_full_config(payload)


def reset_section(section: str) -> bool:
    """Remove *section* from the config file, restoring defaults."""
    payload = load_full_config()
    payload.pop(section, None)
    return _save_full_config(payload)


def parse_setting_value(section: str, key: str, raw: str) -> Any:
    """Coerce a CLI string into the type of the setting's default."""
    if section not in _SECTION_DEFAULTS or key not in _SECTION_DEFAULTS[section]:
        raise KeyError(f"Unknown setting '{section}.{key}'")
    default = _SECTION_DEFAULTS[section][key]
    if isinstance(default, bool):
        lowered = raw.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ValueError(f"Expected a boolean for {section}.{key}, got '{raw}'")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    if isinstance(default, list):
        return [item.strip() for item in raw.split(",") if item.strip()]
    return raw
