"""Tests for rigcheck.compat.provisioning — rules.yml parsing and seeding."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
import yaml

from rigcheck.compat.errors import PersistenceError
from rigcheck.compat.provisioning import RuleDefinition, load_rule_definitions, seed_rules
from rigcheck.compat.registry import RuleRegistry

if TYPE_CHECKING:
    import sqlite3
    from pathlib import Path

RULES_YML = """\
version: 1
rules:
  - rule_number: 2
    name: PSU Wattage
    severity: warning
    message_template: "PSU {actual}W below {expected}W"
    rule_config:
      kind: threshold
      left: psu.wattage
      op: ">="
      right: build.totalDraw
  - rule_number: 1
    name: Socket Match
    description: CPU and motherboard must share a socket
    message_template: "CPU socket {cpuSocket} does not match motherboard socket {moboSocket}"
    rule_config:
      kind: equals
      left: cpu.socket
      right: motherboard.socket
  - rule_number: 3
    name: Storage
    is_active: false
    message_template: "No {category} selected"
    rule_config: { kind: requires, category: storage }
"""


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "rules.yml"
    path.write_text(text)
    return path


class TestLoadRuleDefinitions:
    def test_parses_and_sorts(self, tmp_path: Path) -> None:
        definitions = load_rule_definitions(_write(tmp_path, RULES_YML))
        assert [d.rule_number for d in definitions] == [1, 2, 3]
        socket = definitions[0]
        assert socket.name == "Socket Match"
        assert socket.severity == "error"
        assert socket.is_active is True
        assert socket.description == "CPU and motherboard must share a socket"
        assert socket.rule_config["kind"] == "equals"
        assert definitions[1].severity == "warning"
        assert definitions[2].is_active is False

    def test_empty_rules_list(self, tmp_path: Path) -> None:
        assert load_rule_definitions(_write(tmp_path, "version: 1\nrules: []\n")) == []

    @pytest.mark.parametrize(
        ("text", "match"),
        [
            ("- a\n- b\n", "must be a YAML mapping"),
            ("rules: []\n", "missing required 'version'"),
            ("version: 9\nrules: []\n", "unsupported version"),
            ("version: 1\nrules: {}\n", "'rules' must be a list"),
            ("version: 1\nrules:\n  - just a string\n", "must be a mapping"),
            (
                "version: 1\nrules:\n  - rule_number: 1\n    message_template: m\n"
                "    rule_config: {kind: requires, category: cpu}\n",
                "missing required 'name'",
            ),
            (
                "version: 1\nrules:\n  - name: r\n    rule_number: 0\n    message_template: m\n"
                "    rule_config: {kind: requires, category: cpu}\n",
                "positive integer 'rule_number'",
            ),
            (
                "version: 1\nrules:\n  - name: r\n    rule_number: 1\n    severity: critical\n"
                "    message_template: m\n    rule_config: {kind: requires, category: cpu}\n",
                "invalid severity 'critical'",
            ),
            (
                "version: 1\nrules:\n  - name: r\n    rule_number: 1\n"
                "    rule_config: {kind: requires, category: cpu}\n",
                "missing required 'message_template'",
            ),
            (
                "version: 1\nrules:\n  - name: r\n    rule_number: 1\n    message_template: m\n"
                "    rule_config: {kind: between}\n",
                "unsupported predicate kind",
            ),
            (
                "version: 1\nrules:\n  - name: r\n    rule_number: 1\n    message_template: m\n"
                "    is_active: maybe\n    rule_config: {kind: requires, category: cpu}\n",
                "'is_active' must be true or false",
            ),
        ],
    )
    def test_invalid_documents(self, tmp_path: Path, text: str, match: str) -> None:
        with pytest.raises(ValueError, match=match):
            load_rule_definitions(_write(tmp_path, text))

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "version: 1\nrules: [{name: a, rule_number: 1\n")
        with pytest.raises(ValueError, match="cannot parse") as excinfo:
            load_rule_definitions(path)
        assert isinstance(excinfo.value.__cause__, yaml.YAMLError)

    def test_duplicate_rule_number(self, tmp_path: Path) -> None:
        text = (
            "version: 1\nrules:\n"
            "  - {name: a, rule_number: 1, message_template: m,"
            " rule_config: {kind: requires, category: cpu}}\n"
            "  - {name: b, rule_number: 1, message_template: m,"
            " rule_config: {kind: requires, category: gpu}}\n"
        )
        with pytest.raises(ValueError, match="Duplicate rule_number 1"):
            load_rule_definitions(_write(tmp_path, text))


class TestSeedRules:
    def test_inserts_all(self, db_conn: sqlite3.Connection, tmp_path: Path) -> None:
        inserted = seed_rules(db_conn, load_rule_definitions(_write(tmp_path, RULES_YML)))
        assert inserted == 3
        rules = RuleRegistry(db_conn).list()
        assert [r.name for r in rules] == ["Socket Match", "PSU Wattage", "Storage"]
        assert rules[2].is_active is False
        assert rules[0].rule_config == {
            "kind": "equals",
            "left": "cpu.socket",
            "right": "motherboard.socket",
        }

    def test_reseed_keeps_admin_changes(self, db_conn: sqlite3.Connection, tmp_path: Path) -> None:
        definitions = load_rule_definitions(_write(tmp_path, RULES_YML))
        seed_rules(db_conn, definitions)
        registry = RuleRegistry(db_conn)
        socket_id = registry.list()[0].id
        registry.update(socket_id, {"severity": "warning", "is_active": False})

        assert seed_rules(db_conn, definitions) == 0
        rule = registry.get(socket_id)
        assert (rule.severity, rule.is_active) == ("warning", False)
        assert len(registry.list()) == 3

    def test_adds_only_new_numbers(self, db_conn: sqlite3.Connection) -> None:
        first = RuleDefinition(
            rule_number=1,
            name="A",
            message_template="m",
            rule_config={"kind": "requires", "category": "cpu"},
        )
        renamed = RuleDefinition(
            rule_number=1,
            name="A renamed",
            message_template="m",
            rule_config={"kind": "requires", "category": "cpu"},
        )
        second = RuleDefinition(
            rule_number=2,
            name="B",
            message_template="m",
            rule_config={"kind": "requires", "category": "gpu"},
        )
        assert seed_rules(db_conn, [first]) == 1
        assert seed_rules(db_conn, [renamed, second]) == 1
        assert [r.name for r in RuleRegistry(db_conn).list()] == ["A", "B"]

    def test_persistence_error(self, db_conn: sqlite3.Connection) -> None:
        db_conn.execute("DROP TABLE compatibility_rules")
        definition = RuleDefinition(
            rule_number=1,
            name="A",
            message_template="m",
            rule_config={"kind": "requires", "category": "cpu"},
        )
        with pytest.raises(PersistenceError, match="Failed to seed rules"):
            seed_rules(db_conn, [definition])
