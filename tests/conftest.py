"""Shared fixtures: a small split test keyboard, its mapper and a sample document."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from keymap_studio.geometry import KeyboardGeometry, KeyGeometry
from keymap_studio.keycodes import KeycodeRegistry
from keymap_studio.mapper import CoordinateMapper

KEYBOARD = "testboard/mini"
VARIANT = "LAYOUT_mini"

# (matrix_row, matrix_col, led_index, x, y)
# Two 2x3 halves; matrix rows 2-3 are the second half, starting at x=9.
# The second half's top row is wired right-to-left for LEDs.
MINI_KEYS = [
    (0, 0, 0, 0.0, 0.0), (0, 1, 1, 1.0, 0.0), (0, 2, 2, 2.0, 0.0),
    (1, 0, 3, 0.0, 1.0), (1, 1, 4, 1.0, 1.0), (1, 2, 5, 2.0, 1.0),
    (2, 0, 8, 9.0, 0.0), (2, 1, 7, 10.0, 0.0), (2, 2, 6, 11.0, 0.0),
    (3, 0, 9, 9.0, 1.0), (3, 1, 10, 10.0, 1.0), (3, 2, 11, 11.0, 1.0),
]

FIXED_NOW = datetime(2024, 2, 1, 12, 0, 0, tzinfo=timezone.utc)

SAMPLE_DOCUMENT = """\
---
name: Test Layout
description: Two layer test layout
author: Tester
created: 2024-01-15T10:30:00Z
modified: 2024-01-20T15:45:00Z
tags:
- split
- test
is_template: false
version: '1.0'
keyboard: testboard/mini
layout_variant: LAYOUT_mini
---

# Test Layout

## Layer 0: Base
**Color**: #FF0000

| C0 | C1 | C2 | C3 | C4 | C5 | C6 | C7 | C8 | C9 | C10 | C11 |
|----|----|----|----|----|----|----|----|----|----|-----|-----|
| KC_Q | KC_W{#00FF00} | KC_E@navigation | | | | | KC_I | KC_O | KC_P | | |
| KC_A | KC_S | TD(esc_caps) | | | | | KC_K | KC_L | MO(1) | | |

## Layer 1: Nav
**Category**: navigation

| C0 | C1 | C2 | C3 | C4 | C5 | C6 | C7 | C8 | C9 | C10 | C11 |
|----|----|----|----|----|----|----|----|----|----|-----|-----|
| KC_TRNS | KC_UP{#FFFFFF} | KC_TRNS | | | | | KC_HOME | KC_END | KC_TRNS | | |
| KC_LEFT | KC_DOWN | KC_RGHT | | | | | KC_TRNS | KC_TRNS | KC_TRNS | | |

## Tap Dances

- esc_caps: KC_ESC / KC_CAPS / -

## Combos

- qw_esc (Escape): KC_Q + KC_W -> KC_ESC

## Settings

- rgb_enabled: true
- rgb_brightness: 80
- tapping_term: 180

## Categories

- navigation: Navigation (#0000FF)
"""


def make_geometry(
    keys: list[tuple[int, int, int, float, float]],
    matrix_rows: int,
    matrix_cols: int,
    keyboard: str = KEYBOARD,
    layout: str = VARIANT,
) -> KeyboardGeometry:
    """Build a geometry from (row, col, led, x, y) tuples."""
    return KeyboardGeometry(
        keyboard_name=keyboard,
        layout_name=layout,
        matrix_rows=matrix_rows,
        matrix_cols=matrix_cols,
        keys=[
            KeyGeometry(matrix_position=(row, col), led_index=led, layout_index=i, x=x, y=y)
            for i, (row, col, led, x, y) in enumerate(keys)
        ],
    )


def mini_info_json() -> dict:
    """QMK-style description of the mini keyboard, with one underglow LED first."""
    by_led = sorted(MINI_KEYS, key=lambda k: k[2])
    return {
        "keyboard_name": "mini",
        "matrix_size": {"rows": 4, "cols": 3},
        "split": {"enabled": True},
        "layout_aliases": {"LAYOUT": VARIANT},
        "layouts": {
            VARIANT: {
                "layout": [{"matrix": [r, c], "x": x, "y": y} for r, c, _, x, y in MINI_KEYS],
            },
        },
        "rgb_matrix": {
            "layout": [{"x": 112, "y": 32, "flags": 2}]
            + [{"matrix": [r, c], "x": int(x * 10), "y": int(y * 10), "flags": 4} for r, c, _, x, y in by_led],
        },
    }


@pytest.fixture
def geometry_factory():
    return make_geometry


@pytest.fixture
def mini_geometry() -> KeyboardGeometry:
    return make_geometry(MINI_KEYS, matrix_rows=4, matrix_cols=3)


@pytest.fixture
def mapper(mini_geometry) -> CoordinateMapper:
    return CoordinateMapper.build(mini_geometry)


@pytest.fixture
def sample_text() -> str:
    return SAMPLE_DOCUMENT


@pytest.fixture
def layout(sample_text, mapper):
    from keymap_studio.document import parse_layout

    return parse_layout(sample_text, mapper)


@pytest.fixture
def registry() -> KeycodeRegistry:
    return KeycodeRegistry.default()


@pytest.fixture
def keyboards_dir(tmp_path) -> Path:
    """A keyboards/ tree holding the mini keyboard, split across two info.json files."""
    root = tmp_path / "keyboards"
    base = root / "testboard"
    board = base / "mini"
    board.mkdir(parents=True)

    info = mini_info_json()
    (base / "info.json").write_text(json.dumps({"manufacturer": "Test", "matrix_size": {"rows": 1, "cols": 1}}))
    (board / "info.json").write_text(json.dumps(info))
    return root
