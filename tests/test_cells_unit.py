#!/usr/bin/env python3
"""Unit tests for the table cell grammar (keymap_studio/document/cells.py)."""

from __future__ import annotations

import pytest

from keymap_studio.colors import RgbColor
from keymap_studio.document.cells import format_cell, parse_cell
from keymap_studio.errors import InvalidCellSyntax, InvalidColorSyntax
from keymap_studio.models import KeyAssignment


class TestParseCell:
    def test_plain_keycode(self):
        cell = parse_cell(" KC_A ", line=3, column=0)
        assert cell == ("KC_A", None, None)

    def test_empty_cell(self):
        assert parse_cell("   ", line=3, column=0) is None

    def test_color_and_category_in_either_order(self):
        expected = ("KC_A", RgbColor(r=255, g=0, b=0), "navigation")
        assert parse_cell("KC_A{#FF0000}@navigation", 1, 0) == expected
        assert parse_cell("KC_A@navigation{#FF0000}", 1, 0) == expected

    def test_color_without_hash_and_lowercase(self):
        assert parse_cell("KC_A{ff8800}", 1, 0).color == RgbColor(r=255, g=136, b=0)

    def test_parenthesised_keycode_keeps_its_arguments(self):
        cell = parse_cell("LT(1, KC_SPC)@thumbs", 1, 0)
        assert cell.keycode == "LT(1, KC_SPC)"
        assert cell.category_id == "thumbs"

    def test_short_color_is_rejected(self):
        with pytest.raises(InvalidColorSyntax) as exc:
            parse_cell("KC_A{#FFF}", line=7, column=2)
        assert exc.value.line == 7
        assert exc.value.column == 2

    def test_non_hex_color_is_rejected(self):
        with pytest.raises(InvalidColorSyntax):
            parse_cell("KC_A{#GGGGGG}", 1, 0)

    @pytest.mark.parametrize(
        "text",
        [
            "{#FF0000}",
            "@navigation",
            "KC_A{#FF0000",
            "KC_A@",
            "KC_A{#FF0000}{#00FF00}",
            "KC_A@one@two",
            "KC_A{#FF0000}junk",
        ],
    )
    def test_malformed_cells(self, text):
        with pytest.raises(InvalidCellSyntax):
            parse_cell(text, 1, 0)


class TestFormatCell:
    @staticmethod
    def _key(**kwargs) -> KeyAssignment:
        return KeyAssignment(
            keycode="KC_A", matrix_position=(0, 0), visual_position=(0, 0), visual_index=0, led_index=0, **kwargs
        )

    def test_suffixes_only_when_set(self):
        assert format_cell(self._key()) == "KC_A"
        assert format_cell(self._key(category_id="nav")) == "KC_A@nav"
        assert format_cell(self._key(color_override=RgbColor(r=0, g=171, b=255))) == "KC_A{#00ABFF}"

    def test_color_precedes_category(self):
        key = self._key(color_override=RgbColor(r=255, g=0, b=0), category_id="nav")
        assert format_cell(key) == "KC_A{#FF0000}@nav"
        assert parse_cell(format_cell(key), 1, 0) == ("KC_A", key.color_override, "nav")
