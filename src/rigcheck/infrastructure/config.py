"""Project settings loaded from ``.rigcheck/config.yml``."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

import yaml

logger = logging.getLogger(__name__)

CONFIG_DIR = ".rigcheck"
CONFIG_FILE = "config.yml"

VALID_LOG_LEVELS: frozenset[str] = frozenset({"DEBUG", "INFO", "WARNING", "ERROR"})

DEFAULT_CATEGORY_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "motherboard": "mobo",
        "graphics_card": "gpu",
        "power_supply": "psu",
    }
)
DEFAULT_POWER_ATTRIBUTES: tuple[str, ...] = ("tdp", "power_draw")


@dataclass(frozen=True)
class Settings:
    """Resolved project settings.

    Relative paths in ``config.yml`` are resolved against the project root.
    """

    project_root: Path
    db_path: Path
    rules_path: Path
    log_level: str = "WARNING"
    category_aliases: Mapping[str, str] = field(
        default_factory=lambda: dict(DEFAULT_CATEGORY_ALIASES)
    )
    power_attributes: tuple[str, ...] = DEFAULT_POWER_ATTRIBUTES


def default_settings(project_root: Path) -> Settings:
    """Return settings with every key at its default."""
    base = project_root / CONFIG_DIR
    return Settings(
        project_root=project_root,
        db_path=base / "rigcheck.db",
        rules_path=base / "rules.yml",
    )


def _resolve(project_root: Path, raw: object, fallback: Path) -> Path:
    if not isinstance(raw, str) or not raw.strip():
        return fallback
    path = Path(raw)
    if not path.is_absolute():
        path = project_root / path
    return path


def load_settings(project_root: Path) -> Settings:
    """Load settings from ``<project_root>/.rigcheck/config.yml``.

    Falls back to defaults for missing keys or a missing file.  An
    unreadable or malformed file is logged and ignored.
    """
    defaults = default_settings(project_root)
    config_path = project_root / CONFIG_DIR / CONFIG_FILE
    if not config_path.is_file():
        return defaults

    try:
        with config_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError):
        logger.warning("Failed to read %s, using default settings", config_path)
        return defaults

    if data is None:
        return defaults
    if not isinstance(data, dict):
        logger.warning("%s must be a YAML mapping, using default settings", config_path)
        return defaults

    log_level = str(data.get("log_level", defaults.log_level)).upper()
    if log_level not in VALID_LOG_LEVELS:
        logger.warning("Unknown log_level '%s' in %s, using WARNING", log_level, config_path)
        log_level = defaults.log_level

    aliases: dict[str, str] = dict(defaults.category_aliases)
    aliases_raw = data.get("category_aliases")
    if isinstance(aliases_raw, dict):
        aliases.update({str(k): str(v) for k, v in aliases_raw.items()})

    power_attributes = defaults.power_attributes
    power_raw = data.get("power_attributes")
    if isinstance(power_raw, list) and power_raw:
        power_attributes = tuple(str(p) for p in power_raw)

    return Settings(
        project_root=project_root,
        db_path=_resolve(project_root, data.get("db_path"), defaults.db_path),
        rules_path=_resolve(project_root, data.get("rules_path"), defaults.rules_path),
        log_level=log_level,
        category_aliases=aliases,
        power_attributes=power_attributes,
    )
