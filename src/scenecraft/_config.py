from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Tuple

HOME_ENV = "SCENECRAFT_HOME"
CONFIG_NAME = "scenecraft.cfg"
DEFAULT_CONFIG = {
    "_comment": "units: millimeters | meters | inches (or mm, m, in). quality: final | preview.",
    "units": "millimeters",
    "spawn_height": 10.0,
    "spawn_size": 20.0,
    "duplicate_offset": 5.0,
    "quality": "final",
    "weld_tolerance": 1e-6,
}
# name -> (label, millimeters per unit, accepted spellings)
_UNITS: Dict[str, Tuple[str, float, Tuple[str, ...]]] = {
    "millimeters": ("mm", 1.0, ("millimeter", "mm")),
    "meters": ("m", 1000.0, ("meter", "m")),
    "inches": ("in", 25.4, ("inch", "in")),
}
_UNIT_ALIASES = {alias: name for name, (_, _, aliases) in _UNITS.items() for alias in (name, *aliases)}


@dataclass(frozen=True)
class UnitSettings:
    """Resolved units from scenecraft.cfg."""

    name: str
    label: str
    scale_to_mm: float


@dataclass(frozen=True)
class EditorSettings:
    """Defaults used by editor commands when creating or copying nodes."""

    units: UnitSettings
    spawn_height: float = 10.0
    spawn_size: float = 20.0
    duplicate_offset: float = 5.0
    quality: str = "final"
    weld_tolerance: float = 1e-6


def config_dir() -> Path:
    override = os.environ.get(HOME_ENV)
    if override:
        return Path(override)
    return Path.home() / ".scenecraft"


def config_file() -> Path:
    return config_dir() / CONFIG_NAME


def ensure_user_config() -> None:
    """Ensure scenecraft.cfg exists with sane defaults."""

    directory = config_dir()
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError:
        return

    path = directory / CONFIG_NAME
    if path.exists():
        return

    try:
        path.write_text(json.dumps(DEFAULT_CONFIG, indent=2) + "\n")
    except OSError:
        return


def _load_user_config() -> Dict[str, Any]:
    ensure_user_config()
    try:
        loaded = json.loads(config_file().read_text())
    except (OSError, json.JSONDecodeError):
        return DEFAULT_CONFIG.copy()
    if not isinstance(loaded, dict):
        return DEFAULT_CONFIG.copy()
    return loaded


def _normalize_units(value: str) -> str | None:
    return _UNIT_ALIASES.get(value.strip().lower())


def _float_setting(raw_config: Dict[str, Any], key: str) -> float:
    try:
        value = float(raw_config.get(key, DEFAULT_CONFIG[key]))
    except (TypeError, ValueError):
        return float(DEFAULT_CONFIG[key])
    if value != value or value in (float("inf"), float("-inf")):
        return float(DEFAULT_CONFIG[key])
    return value


def get_unit_settings(raw_config: Dict[str, Any] | None = None) -> UnitSettings:
    """Return the configured units and the conversion to millimeters."""

    if raw_config is None:
        raw_config = _load_user_config()
    name = _normalize_units(str(raw_config.get("units", ""))) or DEFAULT_CONFIG["units"]
    label, scale_to_mm, _ = _UNITS[name]
    return UnitSettings(name=name, label=label, scale_to_mm=scale_to_mm)


def get_editor_settings() -> EditorSettings:
    """Resolve scenecraft.cfg into editor defaults, ignoring malformed values."""

    raw_config = _load_user_config()
    quality = str(raw_config.get("quality", DEFAULT_CONFIG["quality"])).strip().lower()
    if quality not in {"final", "preview"}:
        quality = DEFAULT_CONFIG["quality"]
    return EditorSettings(
        units=get_unit_settings(raw_config),
        spawn_height=_float_setting(raw_config, "spawn_height"),
        spawn_size=_float_setting(raw_config, "spawn_size"),
        duplicate_offset=_float_setting(raw_config, "duplicate_offset"),
        quality=quality,
        weld_tolerance=_float_setting(raw_config, "weld_tolerance"),
    )


def default_settings() -> EditorSettings:
    """Built-in defaults without touching the user's config file."""

    return EditorSettings(units=get_unit_settings(DEFAULT_CONFIG))
