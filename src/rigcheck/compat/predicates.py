"""Predicate parsing and evaluation for compatibility rules.

A rule's ``rule_config`` is a tagged mapping selected by its ``kind`` key:

* ``equals``    — two attribute values must be identical (socket, form factor).
* ``threshold`` — a numeric comparison between an attribute and another
  attribute or a literal (PSU wattage vs. total draw).
* ``requires``  — a category must be present in the selection.

Attribute operands are written ``category.attribute``.  When any operand
names a category the selection does not contain, the predicate is skipped
and counts as satisfied: a partial build never reports problems about parts
that have not been chosen yet.  This is the only skip rule and it applies to
every kind.
"""

from __future__ import annotations

import operator
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Callable

from rigcheck.compat.errors import MisconfiguredRule

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

VALID_PREDICATE_KINDS: frozenset[str] = frozenset({"equals", "threshold", "requires"})

THRESHOLD_OPERATORS: dict[str, Callable[[float, float], bool]] = {
    ">=": operator.ge,
    "<=": operator.le,
    ">": operator.gt,
    "<": operator.lt,
    "==": operator.eq,
}

_NAMEABLE_OPERANDS: frozenset[str] = frozenset({"left", "right"})
_WORD_SPLIT_RE = re.compile(r"[._\-]+")

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AttributePath:
    """Reference to an attribute of the part chosen for a category.

    ``attribute`` may itself be dotted to reach into nested mappings,
    e.g. ``motherboard.specs.socket``.
    """

    category: str
    attribute: str

    @classmethod
    def parse(cls, raw: object, context: str) -> AttributePath:
        """Parse ``"category.attribute"``, raising :class:`MisconfiguredRule` if malformed."""
        if not isinstance(raw, str):
            msg = f"{context}: attribute path must be a string, got {type(raw).__name__}"
            raise MisconfiguredRule(msg)
        category, sep, attribute = raw.strip().partition(".")
        if not sep or not category or not attribute or "" in attribute.split("."):
            msg = f"{context}: invalid attribute path '{raw}', expected 'category.attribute'"
            raise MisconfiguredRule(msg)
        return cls(category=category, attribute=attribute)

    def __str__(self) -> str:
        return f"{self.category}.{self.attribute}"


@dataclass(frozen=True)
class EqualsPredicate:
    """Satisfied iff both resolved attribute values are equal."""

    left: AttributePath
    right: AttributePath
    names: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class ThresholdPredicate:
    """Satisfied iff ``left <op> right`` holds numerically."""

    left: AttributePath
    op: str
    right: AttributePath | float
    names: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class PresencePredicate:
    """Satisfied iff *category* is present in the selection."""

    category: str


Predicate = EqualsPredicate | ThresholdPredicate | PresencePredicate


@dataclass(frozen=True)
class PredicateResult:
    """Outcome of evaluating one predicate.

    ``skipped`` is True when an operand's category is absent; such a result
    is always ``satisfied``.
    """

    satisfied: bool
    substitutions: Mapping[str, object] = field(default_factory=dict)
    skipped: bool = False


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _parse_names(config: Mapping[str, object], context: str) -> tuple[tuple[str, str], ...]:
    """Parse the optional ``names`` block mapping operands to placeholder names."""
    names_raw = config.get("names")
    if names_raw is None:
        return ()
    if not isinstance(names_raw, Mapping):
        msg = f"{context}: 'names' must be a mapping"
        raise MisconfiguredRule(msg)
    names: list[tuple[str, str]] = []
    for operand, placeholder in names_raw.items():
        if operand not in _NAMEABLE_OPERANDS:
            msg = (
                f"{context}: cannot name operand '{operand}', "
                f"must be one of {sorted(_NAMEABLE_OPERANDS)}"
            )
            raise MisconfiguredRule(msg)
        names.append((str(operand), str(placeholder)))
    return tuple(sorted(names))


def _parse_literal(raw: object) -> float | None:
    """Return *raw* as a number if it is a numeric literal, else ``None``.

    Numeric strings such as ``"550.5"`` count as literals, never as paths.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return raw
    if isinstance(raw, str):
        try:
            return float(raw)
        except ValueError:
            return None
    return None


def parse_predicate(config: Mapping[str, object], *, context: str = "rule_config") -> Predicate:
    """Turn a raw ``rule_config`` mapping into a typed predicate.

    Raises :class:`MisconfiguredRule` for unknown kinds and missing or
    ill-typed operands.
    """
    if not isinstance(config, Mapping):
        msg = f"{context}: must be a mapping"
        raise MisconfiguredRule(msg)

    kind = config.get("kind")
    if not isinstance(kind, str) or kind not in VALID_PREDICATE_KINDS:
        msg = (
            f"{context}: unsupported predicate kind {kind!r}, "
            f"must be one of {sorted(VALID_PREDICATE_KINDS)}"
        )
        raise MisconfiguredRule(msg)

    if kind == "requires":
        category = config.get("category")
        if not isinstance(category, str) or not category.strip():
            msg = f"{context}: requires.category must be a non-empty string"
            raise MisconfiguredRule(msg)
        return PresencePredicate(category=category.strip())

    left = AttributePath.parse(config.get("left"), f"{context} {kind}.left")
    names = _parse_names(config, context)

    if kind == "equals":
        right = AttributePath.parse(config.get("right"), f"{context} equals.right")
        return EqualsPredicate(left=left, right=right, names=names)

    op = config.get("op")
    if not isinstance(op, str) or op not in THRESHOLD_OPERATORS:
        msg = (
            f"{context}: invalid threshold op {op!r}, "
            f"must be one of {sorted(THRESHOLD_OPERATORS)}"
        )
        raise MisconfiguredRule(msg)

    right_raw = config.get("right")
    right_operand: AttributePath | float
    literal = _parse_literal(right_raw)
    if literal is not None:
        right_operand = literal
    else:
        right_operand = AttributePath.parse(right_raw, f"{context} threshold.right")

    return ThresholdPredicate(left=left, op=str(op), right=right_operand, names=names)


# ---------------------------------------------------------------------------
# Evaluation helpers
# ---------------------------------------------------------------------------


def camel_case(dotted: str) -> str:
    """Return the camelCase placeholder name for a dotted path.

    ``cpu.socket`` -> ``cpuSocket``, ``graphics_card.length_mm`` -> ``graphicsCardLengthMm``.
    """
    words = [w for w in _WORD_SPLIT_RE.split(dotted) if w]
    if not words:
        return ""
    head, *rest = words
    return head[:1].lower() + head[1:] + "".join(w[:1].upper() + w[1:] for w in rest)


def _referenced_paths(predicate: EqualsPredicate | ThresholdPredicate) -> list[AttributePath]:
    paths = [predicate.left]
    if isinstance(predicate.right, AttributePath):
        paths.append(predicate.right)
    return paths


def resolve_attribute(
    path: AttributePath, selection: Mapping[str, Mapping[str, object]]
) -> object:
    """Look up *path* in the selection.

    The category must be present; callers check that first.  Raises
    :class:`MisconfiguredRule` when the attribute is not defined on the part.
    """
    value: object = selection[path.category]
    for key in path.attribute.split("."):
        if not isinstance(value, Mapping) or key not in value:
            msg = f"attribute '{path}' is not defined on the selected {path.category} part"
            raise MisconfiguredRule(msg)
        value = value[key]
    return value


def _as_number(value: object, label: str) -> float:
    """Convert an operand to float for comparison; booleans are rejected."""
    if isinstance(value, bool):
        msg = f"{label} is a boolean, expected a number"
        raise MisconfiguredRule(msg)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            pass
    msg = f"{label} has non-numeric value {value!r}"
    raise MisconfiguredRule(msg)


def _path_substitutions(
    path: AttributePath,
    value: object,
    category_aliases: Mapping[str, str],
) -> dict[str, object]:
    """Placeholder names under which a resolved operand is published."""
    dotted = str(path)
    subs: dict[str, object] = {dotted: value, camel_case(dotted): value}
    alias = category_aliases.get(path.category)
    if alias:
        subs[camel_case(f"{alias}.{path.attribute}")] = value
    return subs


def _part_name(path: AttributePath, selection: Mapping[str, Mapping[str, object]]) -> object:
    part = selection[path.category]
    if isinstance(part, Mapping) and part.get("name") is not None:
        return part["name"]
    return path.category


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


def evaluate_predicate(
    predicate: Predicate,
    selection: Mapping[str, Mapping[str, object]],
    *,
    category_aliases: Mapping[str, str] | None = None,
) -> PredicateResult:
    """Evaluate *predicate* against *selection*.

    Returns a :class:`PredicateResult` whose ``substitutions`` feed the
    rule's message template.  Raises :class:`MisconfiguredRule` when an
    operand cannot be resolved on a part that is present.
    """
    aliases: Mapping[str, str] = category_aliases or {}

    if isinstance(predicate, PresencePredicate):
        return PredicateResult(
            satisfied=predicate.category in selection,
            substitutions={"category": predicate.category, "partName": predicate.category},
        )

    if any(path.category not in selection for path in _referenced_paths(predicate)):
        return PredicateResult(satisfied=True, skipped=True)

    left_value = resolve_attribute(predicate.left, selection)
    subs: dict[str, object] = _path_substitutions(predicate.left, left_value, aliases)

    right_value: object
    if isinstance(predicate.right, AttributePath):
        right_value = resolve_attribute(predicate.right, selection)
        subs.update(_path_substitutions(predicate.right, right_value, aliases))
    else:
        right_value = predicate.right

    if isinstance(predicate, EqualsPredicate):
        satisfied = left_value == right_value
    else:
        compare = THRESHOLD_OPERATORS[predicate.op]
        satisfied = compare(
            _as_number(left_value, f"'{predicate.left}'"),
            _as_number(right_value, f"'{predicate.right}'"),
        )
        subs["op"] = predicate.op

    subs.update(
        {
            "left": left_value,
            "right": right_value,
            "actual": left_value,
            "expected": right_value,
            "category": predicate.left.category,
            "partName": _part_name(predicate.left, selection),
        }
    )
    operand_values = {"left": left_value, "right": right_value}
    for operand, placeholder in predicate.names:
        subs[placeholder] = operand_values[operand]

    return PredicateResult(satisfied=satisfied, substitutions=subs)
