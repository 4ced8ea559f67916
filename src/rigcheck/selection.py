"""Part selection loading and derived build totals."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

import yaml

from rigcheck.compat.errors import SelectionError
from rigcheck.infrastructure.config import DEFAULT_POWER_ATTRIBUTES

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from pathlib import Path

logger = logging.getLogger(__name__)

BUILD_CATEGORY = "build"
# The PSU supplies power; it is never counted toward the draw.
_SUPPLY_CATEGORIES: frozenset[str] = frozenset({"psu", "power_supply"})


def load_selection(path: Path) -> dict[str, dict[str, object]]:
    """Read a part selection from a YAML or JSON file.

    The file is either a mapping of category slug to part record, or a
    mapping with a ``parts:`` key holding that mapping.  Raises
    :class:`SelectionError` when the file is unreadable or malformed.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read selection file {path}: {exc}"
        raise SelectionError(msg) from exc

    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        msg = f"Cannot parse selection file {path}: {exc}"
        raise SelectionError(msg) from exc

    if isinstance(data, dict) and "parts" in data:
        data = data["parts"]
    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"{path}: selection must be a mapping of category to part"
        raise SelectionError(msg)

    selection: dict[str, dict[str, object]] = {}
    for category, part in data.items():
        if part is None:
            continue
        if not isinstance(part, dict):
            msg = f"{path}: part for category '{category}' must be a mapping"
            raise SelectionError(msg)
        selection[str(category)] = dict(part)
    return selection


def _number(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _power_draw(part: Mapping[str, object], power_attributes: Iterable[str]) -> float:
    """Return the first numeric power attribute of *part*, or 0."""
    for attribute in power_attributes:
        draw = _number(part.get(attribute))
        if draw is not None:
            return draw
    return 0.0


def with_build_totals(
    selection: Mapping[str, Mapping[str, object]],
    *,
    power_attributes: Iterable[str] = DEFAULT_POWER_ATTRIBUTES,
) -> dict[str, Mapping[str, object]]:
    """Return a copy of *selection* with a derived ``build`` pseudo-part.

    The pseudo-part carries ``totalPrice``, ``totalDraw`` and ``partCount``
    so rules can reference e.g. ``build.totalDraw``.  A ``build`` entry that
    is already present is kept as-is.
    """
    result: dict[str, Mapping[str, object]] = dict(selection)
    if BUILD_CATEGORY in result:
        return result

    attributes = tuple(power_attributes)
    total_price = 0.0
    total_draw = 0.0
    for category, part in selection.items():
        price = _number(part.get("price"))
        if price is not None:
            total_price += price
        if category not in _SUPPLY_CATEGORIES:
            total_draw += _power_draw(part, attributes)

    result[BUILD_CATEGORY] = {
        "name": "Build",
        "totalPrice": total_price,
        "totalDraw": total_draw,
        "partCount": len(selection),
    }
    logger.debug("Derived build totals: price=%.2f draw=%.1f", total_price, total_draw)
    return result
