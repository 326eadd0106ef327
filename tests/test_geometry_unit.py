#!/usr/bin/env python3
"""Unit tests for keyboard description loading (keymap_studio/geometry.py)."""

from __future__ import annotations

import json

import pytest

from keymap_studio.errors import KeyboardNotFound, LayoutVariantNotFound, MalformedGeometry
from keymap_studio.geometry import list_layout_variants, load_geometry, parse_keyboard_info
from keymap_studio.mapper import CoordinateMapper

from conftest import KEYBOARD, MINI_KEYS, VARIANT, mini_info_json


def _simple_info(**extra) -> dict:
    data = {
        "layouts": {
            "LAYOUT": {
                "layout": [
                    {"matrix": [0, 0], "x": 0, "y": 0},
                    {"matrix": [0, 1], "x": 1, "y": 0, "w": 1.5},
                    {"matrix": [1, 0], "x": 0, "y": 1},
                ]
            }
        }
    }
    data.update(extra)
    return data


class TestLoadGeometry:
    """Test load_geometry against a keyboards/ tree on disk."""

    def test_loads_mini_keyboard(self, keyboards_dir):
        geometry = load_geometry(keyboards_dir, KEYBOARD, VARIANT)

        assert geometry.keyboard_name == KEYBOARD
        assert geometry.layout_name == VARIANT
        assert (geometry.matrix_rows, geometry.matrix_cols) == (4, 3)
        assert geometry.key_count == len(MINI_KEYS)

    def test_led_indices_skip_underglow(self, keyboards_dir):
        geometry = load_geometry(keyboards_dir, KEYBOARD, VARIANT)

        for row, col, led, _, _ in MINI_KEYS:
            assert geometry.key_by_matrix(row, col).led_index == led

    def test_loaded_geometry_builds_a_mapper(self, keyboards_dir, mapper):
        loaded = CoordinateMapper.build(load_geometry(keyboards_dir, KEYBOARD, VARIANT))
        assert loaded.visual_positions() == mapper.visual_positions()
        assert loaded.matrix_positions() == mapper.matrix_positions()

    def test_deeper_description_wins(self, keyboards_dir):
        # testboard/info.json declares a 1x1 matrix; testboard/mini overrides it
        geometry = load_geometry(keyboards_dir, KEYBOARD, VARIANT)
        assert geometry.matrix_rows == 4

    def test_layout_alias_is_followed(self, keyboards_dir):
        geometry = load_geometry(keyboards_dir, KEYBOARD, "LAYOUT")
        assert geometry.key_count == len(MINI_KEYS)

    def test_keyboard_json_is_merged(self, keyboards_dir):
        extra = {"layouts": {"LAYOUT_tiny": {"layout": [{"matrix": [0, 0], "x": 0, "y": 0}]}}}
        (keyboards_dir / "testboard" / "mini" / "keyboard.json").write_text(json.dumps(extra))

        assert list_layout_variants(keyboards_dir, KEYBOARD) == ["LAYOUT_mini", "LAYOUT_tiny"]

    def test_missing_keyboard(self, keyboards_dir):
        with pytest.raises(KeyboardNotFound):
            load_geometry(keyboards_dir, "nope/board", VARIANT)

    def test_path_traversal_is_rejected(self, keyboards_dir):
        with pytest.raises(KeyboardNotFound):
            load_geometry(keyboards_dir, "../keyboards/testboard", VARIANT)

    def test_directory_without_description(self, keyboards_dir):
        (keyboards_dir / "empty").mkdir()
        with pytest.raises(KeyboardNotFound):
            load_geometry(keyboards_dir, "empty", VARIANT)

    def test_missing_variant_lists_available(self, keyboards_dir):
        with pytest.raises(LayoutVariantNotFound) as exc:
            load_geometry(keyboards_dir, KEYBOARD, "LAYOUT_ortho")
        assert exc.value.available == [VARIANT]

    def test_invalid_json(self, keyboards_dir):
        (keyboards_dir / "testboard" / "mini" / "info.json").write_text("{not json")
        with pytest.raises(MalformedGeometry) as exc:
            load_geometry(keyboards_dir, KEYBOARD, VARIANT)
        assert "invalid JSON" in str(exc.value)


class TestParseKeyboardInfo:
    """Test parse_keyboard_info on in-memory descriptions."""

    def test_without_rgb_matrix_leds_follow_layout_order(self):
        geometry = parse_keyboard_info(_simple_info(), "simple", "LAYOUT")
        assert [k.led_index for k in geometry.keys] == [0, 1, 2]
        assert [k.layout_index for k in geometry.keys] == [0, 1, 2]
        assert geometry.keys[1].width == 1.5

    def test_matrix_size_derived_from_keys(self):
        geometry = parse_keyboard_info(_simple_info(), "simple", "LAYOUT")
        assert (geometry.matrix_rows, geometry.matrix_cols) == (2, 2)

    def test_split_matrix_pins_double_the_rows(self):
        info = _simple_info(
            matrix_pins={"rows": ["B1", "B2", "B3"], "cols": ["D1", "D2"]},
            split={"enabled": True},
        )
        geometry = parse_keyboard_info(info, "simple", "LAYOUT")
        assert (geometry.matrix_rows, geometry.matrix_cols) == (6, 2)

    def test_encoders_are_counted(self):
        info = _simple_info(encoder={"rotary": [{"pin_a": "A1", "pin_b": "A2"}]})
        assert parse_keyboard_info(info, "simple", "LAYOUT").encoder_count == 1

    def test_key_without_matrix(self):
        info = _simple_info()
        del info["layouts"]["LAYOUT"]["layout"][0]["matrix"]
        with pytest.raises(MalformedGeometry):
            parse_keyboard_info(info, "simple", "LAYOUT")

    def test_key_outside_declared_matrix(self):
        info = _simple_info(matrix_size={"rows": 1, "cols": 2})
        with pytest.raises(MalformedGeometry):
            parse_keyboard_info(info, "simple", "LAYOUT")

    def test_key_without_rgb_entry(self):
        info = mini_info_json()
        info["rgb_matrix"]["layout"] = info["rgb_matrix"]["layout"][:-1]
        with pytest.raises(MalformedGeometry):
            parse_keyboard_info(info, KEYBOARD, VARIANT)

    def test_led_indices_rank_only_the_variants_keys(self):
        info = {
            "layouts": {
                "LAYOUT_full": {
                    "layout": [{"matrix": [0, c], "x": c, "y": 0} for c in range(4)],
                },
                "LAYOUT_small": {
                    "layout": [{"matrix": [0, c], "x": c, "y": 0} for c in (0, 1, 3)],
                },
            },
            "rgb_matrix": {
                "layout": [{"x": 0, "y": 0, "flags": 2}]
                + [{"matrix": [0, c], "x": c * 10, "y": 0, "flags": 4} for c in range(4)],
            },
        }
        geometry = parse_keyboard_info(info, "subset", "LAYOUT_small")
        assert [k.led_index for k in geometry.keys] == [0, 1, 2]
        mapper = CoordinateMapper.build(geometry)
        assert mapper.led_to_matrix(2) == (0, 3)

        full = parse_keyboard_info(info, "subset", "LAYOUT_full")
        assert [k.led_index for k in full.keys] == [0, 1, 2, 3]

    def test_non_numeric_position(self):
        info = _simple_info()
        info["layouts"]["LAYOUT"]["layout"][0]["x"] = "left"
        with pytest.raises(MalformedGeometry):
            parse_keyboard_info(info, "simple", "LAYOUT")

    def test_no_layouts_at_all(self):
        with pytest.raises(LayoutVariantNotFound):
            parse_keyboard_info({}, "simple", "LAYOUT")
