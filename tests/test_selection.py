"""Tests for rigcheck.selection — loading selections and deriving build totals."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from rigcheck.compat.errors import SelectionError
from rigcheck.selection import load_selection, with_build_totals

if TYPE_CHECKING:
    from pathlib import Path


class TestLoadSelection:
    def test_yaml_with_parts_key(self, tmp_path: Path) -> None:
        path = tmp_path / "build.yml"
        path.write_text(
            "parts:\n"
            "  cpu: {name: Ryzen, socket: AM5, price: 299}\n"
            "  motherboard: {name: B650, socket: AM5}\n"
        )
        selection = load_selection(path)
        assert selection == {
            "cpu": {"name": "Ryzen", "socket": "AM5", "price": 299},
            "motherboard": {"name": "B650", "socket": "AM5"},
        }

    def test_bare_json_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "build.json"
        path.write_text(json.dumps({"psu": {"name": "CX450", "wattage": 450}}))
        assert load_selection(path) == {"psu": {"name": "CX450", "wattage": 450}}

    def test_null_category_treated_as_absent(self, tmp_path: Path) -> None:
        path = tmp_path / "build.yml"
        path.write_text("cpu: {socket: AM5}\nmotherboard: null\n")
        assert load_selection(path) == {"cpu": {"socket": "AM5"}}

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "build.yml"
        path.write_text("")
        assert load_selection(path) == {}

    @pytest.mark.parametrize(
        ("name", "text", "match"),
        [
            ("build.yml", "- cpu\n- gpu\n", "must be a mapping of category to part"),
            ("build.yml", "cpu: AM5\n", "part for category 'cpu' must be a mapping"),
            ("build.yml", "cpu: [unclosed\n", "Cannot parse"),
            ("build.json", "{not json", "Cannot parse"),
        ],
    )
    def test_malformed(self, tmp_path: Path, name: str, text: str, match: str) -> None:
        path = tmp_path / name
        path.write_text(text)
        with pytest.raises(SelectionError, match=match):
            load_selection(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SelectionError, match="Cannot read"):
            load_selection(tmp_path / "missing.yml")


class TestWithBuildTotals:
    def test_sums_price_and_draw(self) -> None:
        selection = {
            "cpu": {"price": 299.0, "tdp": 105},
            "gpu": {"price": 549.0, "power_draw": "200"},
            "psu": {"price": 54.0, "wattage": 450, "tdp": 999},
            "case": {"price": 80},
        }
        build = with_build_totals(selection)["build"]
        assert build["totalPrice"] == pytest.approx(982.0)
        assert build["totalDraw"] == pytest.approx(305.0)
        assert build["partCount"] == 4

    def test_custom_power_attributes(self) -> None:
        selection = {"cpu": {"tdp": 105, "watts": 120}}
        build = with_build_totals(selection, power_attributes=["watts"])["build"]
        assert build["totalDraw"] == pytest.approx(120.0)

    def test_existing_build_entry_kept(self) -> None:
        selection = {"build": {"totalDraw": 500}, "cpu": {"tdp": 105}}
        assert with_build_totals(selection)["build"] == {"totalDraw": 500}

    def test_input_not_mutated(self) -> None:
        selection = {"cpu": {"tdp": 65}}
        result = with_build_totals(selection)
        assert "build" not in selection
        assert result["cpu"] == {"tdp": 65}

    def test_empty_selection(self) -> None:
        build = with_build_totals({})["build"]
        assert (build["totalPrice"], build["totalDraw"], build["partCount"]) == (0.0, 0.0, 0)
