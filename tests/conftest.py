"""Shared test fixtures for rigcheck."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import pytest

from rigcheck.compat.registry import RuleRegistry
from rigcheck.infrastructure.db import create_schema, open_db

if TYPE_CHECKING:
    import sqlite3
    from collections.abc import Callable, Iterator
    from pathlib import Path

SOCKET_TEMPLATE = "CPU socket {cpuSocket} does not match motherboard socket {moboSocket}"
WATTAGE_TEMPLATE = "PSU wattage {actual} is below estimated draw {expected}"


def insert_rule(
    conn: sqlite3.Connection,
    *,
    rule_number: int,
    name: str,
    rule_config: dict[str, object] | str,
    message_template: str = "{partName} failed",
    severity: str = "error",
    is_active: bool = True,
    description: str = "",
) -> int:
    """Insert a rule row directly and return its id."""
    config_text = rule_config if isinstance(rule_config, str) else json.dumps(rule_config)
    cursor = conn.execute(
        "INSERT INTO compatibility_rules"
        " (rule_number, name, description, severity, is_active, message_template, rule_config)"
        " VALUES (?, ?, ?, ?, ?, ?, ?)",
        (rule_number, name, description, severity, int(is_active), message_template, config_text),
    )
    conn.commit()
    return int(cursor.lastrowid or 0)


@pytest.fixture()
def db_conn(tmp_path: Path) -> Iterator[sqlite3.Connection]:
    """Provide an empty database with full schema."""
    conn = open_db(tmp_path / "test.db")
    create_schema(conn)
    yield conn
    conn.close()


@pytest.fixture()
def seeded_conn(db_conn: sqlite3.Connection) -> sqlite3.Connection:
    """Database holding the Socket Match (#1) and PSU Wattage (#2) rules."""
    insert_rule(
        db_conn,
        rule_number=1,
        name="Socket Match",
        rule_config={"kind": "equals", "left": "cpu.socket", "right": "motherboard.socket"},
        message_template=SOCKET_TEMPLATE,
        severity="error",
    )
    insert_rule(
        db_conn,
        rule_number=2,
        name="PSU Wattage",
        rule_config={
            "kind": "threshold",
            "left": "psu.wattage",
            "op": ">=",
            "right": "build.totalDraw",
        },
        message_template=WATTAGE_TEMPLATE,
        severity="warning",
    )
    return db_conn


@pytest.fixture()
def registry(seeded_conn: sqlite3.Connection) -> RuleRegistry:
    return RuleRegistry(seeded_conn)


@pytest.fixture()
def tmp_project(tmp_path: Path) -> Path:
    """Create a minimal project structure for CLI testing."""
    (tmp_path / ".rigcheck").mkdir()
    return tmp_path


@pytest.fixture()
def add_rule(db_conn: sqlite3.Connection) -> Callable[..., int]:
    """Return a helper that inserts a rule row into ``db_conn``."""

    def _add(**kwargs: Any) -> int:
        return insert_rule(db_conn, **kwargs)

    return _add
