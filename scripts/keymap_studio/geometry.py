"""Keyboard geometry models and loading from QMK info.json descriptions."""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from .errors import KeyboardNotFound, LayoutVariantNotFound, MalformedGeometry

logger = logging.getLogger(__name__)

# QMK keyboard description file names, in merge order within one directory
INFO_FILENAMES = ("info.json", "keyboard.json")


class KeyGeometry(BaseModel):
    """Physical and electrical description of one key."""

    matrix_position: tuple[int, int] = Field(description="Electrical (row, col)")
    led_index: int = Field(ge=0, description="Sequential lighting element index")
    layout_index: int = Field(0, ge=0, description="Index in the layout array")
    x: float = Field(description="Physical X in keyboard units")
    y: float = Field(description="Physical Y in keyboard units")
    width: float = Field(1.0, gt=0)
    height: float = Field(1.0, gt=0)
    rotation: float = Field(0.0, description="Degrees; parsed but not used for mapping")


class KeyboardGeometry(BaseModel):
    """One keyboard + layout variant: matrix size and ordered key descriptors."""

    keyboard_name: str = ""
    layout_name: str = ""
    matrix_rows: int = Field(ge=1)
    matrix_cols: int = Field(ge=1)
    keys: list[KeyGeometry] = Field(default_factory=list)
    encoder_count: int = Field(0, ge=0)

    @property
    def key_count(self) -> int:
        return len(self.keys)

    def key_by_led(self, led_index: int) -> KeyGeometry | None:
        return next((k for k in self.keys if k.led_index == led_index), None)

    def key_by_matrix(self, row: int, col: int) -> KeyGeometry | None:
        return next((k for k in self.keys if k.matrix_position == (row, col)), None)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge override into a copy of base; nested dicts are merged, other values replaced."""
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_json(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise MalformedGeometry(str(path), f"invalid JSON at line {e.lineno}: {e.msg}") from e
    except OSError as e:
        raise MalformedGeometry(str(path), f"cannot read file: {e}") from e
    if not isinstance(data, dict):
        raise MalformedGeometry(str(path), "top level must be a JSON object")
    return data


def find_keyboard_info(keyboards_dir: Path, keyboard: str) -> dict[str, Any]:
    """Load and merge the description files along a keyboard's directory path.

    For keyboard "crkbd/rev1" this merges keyboards/crkbd/info.json, then
    keyboards/crkbd/rev1/info.json and keyboard.json; deeper files win.

    Args:
        keyboards_dir: The firmware tree's keyboards/ directory
        keyboard: Keyboard path relative to keyboards_dir (e.g. "crkbd/rev1")

    Returns:
        Merged description dict

    Raises:
        KeyboardNotFound: If the keyboard directory or its description is absent
    """
    parts = [p for p in keyboard.replace("\\", "/").split("/") if p]
    if not parts or any(p in (".", "..") for p in parts):
        raise KeyboardNotFound(keyboard, str(keyboards_dir))

    target = keyboards_dir.joinpath(*parts)
    if not target.is_dir():
        raise KeyboardNotFound(keyboard, str(keyboards_dir))

    merged: dict[str, Any] = {}
    found = False
    current = keyboards_dir
    for part in parts:
        current = current / part
        for filename in INFO_FILENAMES:
            candidate = current / filename
            if candidate.is_file():
                logger.debug("Merging keyboard description %s", candidate)
                merged = _deep_merge(merged, _load_json(candidate))
                found = True

    if not found:
        raise KeyboardNotFound(keyboard, str(keyboards_dir))
    return merged


def _resolve_variant(data: dict[str, Any], keyboard: str, variant: str) -> dict[str, Any]:
    layouts = data.get("layouts")
    if not isinstance(layouts, dict):
        raise LayoutVariantNotFound(keyboard, variant, [])

    aliases = data.get("layout_aliases") or {}
    name = variant
    seen = set()
    while name not in layouts and name in aliases and name not in seen:
        seen.add(name)
        name = aliases[name]

    if name not in layouts:
        raise LayoutVariantNotFound(keyboard, variant, sorted(layouts))

    layout_def = layouts[name]
    if not isinstance(layout_def, dict) or not isinstance(layout_def.get("layout"), list):
        raise MalformedGeometry(keyboard, f"layout '{name}' has no 'layout' key list")
    return layout_def


def _matrix_size(data: dict[str, Any], keys: list[dict[str, Any]]) -> tuple[int, int]:
    size = data.get("matrix_size")
    if isinstance(size, dict) and "rows" in size and "cols" in size:
        return int(size["rows"]), int(size["cols"])

    pins = data.get("matrix_pins")
    if isinstance(pins, dict) and isinstance(pins.get("rows"), list) and isinstance(pins.get("cols"), list):
        rows = len(pins["rows"])
        split = data.get("split") or {}
        if isinstance(split, dict) and split.get("enabled"):
            rows *= 2
        return rows, len(pins["cols"])

    # Derive from the keys themselves
    rows = max(int(k["matrix"][0]) for k in keys) + 1
    cols = max(int(k["matrix"][1]) for k in keys) + 1
    return rows, cols


def _led_indices(data: dict[str, Any], source: str, keys: list[dict[str, Any]]) -> list[int]:
    """Sequential LED index per layout key.

    Uses rgb_matrix.layout order when present. Only entries bound to a key
    of this variant are ranked, so underglow LEDs and matrix positions the
    variant leaves out do not open gaps in the indices.
    """
    rgb = data.get("rgb_matrix")
    rgb_layout = rgb.get("layout") if isinstance(rgb, dict) else None
    if not isinstance(rgb_layout, list) or not rgb_layout:
        return list(range(len(keys)))

    positions = [(int(key["matrix"][0]), int(key["matrix"][1])) for key in keys]
    used = set(positions)

    rank: dict[tuple[int, int], int] = {}
    for entry in rgb_layout:
        matrix = entry.get("matrix") if isinstance(entry, dict) else None
        if not isinstance(matrix, list) or len(matrix) != 2:
            continue
        position = (int(matrix[0]), int(matrix[1]))
        if position in used and position not in rank:
            rank[position] = len(rank)

    indices = []
    for i, position in enumerate(positions):
        if position not in rank:
            raise MalformedGeometry(source, f"key {i} at matrix {list(position)} has no rgb_matrix entry")
        indices.append(rank[position])
    return indices


def parse_keyboard_info(data: dict[str, Any], keyboard: str, variant: str) -> KeyboardGeometry:
    """Build a KeyboardGeometry from a (merged) info.json dict.

    Args:
        data: Keyboard description
        keyboard: Keyboard name, used for the result and error messages
        variant: Layout macro name (e.g. "LAYOUT_split_3x6_3"); aliases are followed

    Returns:
        KeyboardGeometry with keys in layout order

    Raises:
        LayoutVariantNotFound: If the variant is not defined
        MalformedGeometry: If keys lack required fields or have invalid values
    """
    layout_def = _resolve_variant(data, keyboard, variant)
    raw_keys = layout_def["layout"]
    source = f"{keyboard}/{variant}"

    for i, key in enumerate(raw_keys):
        if not isinstance(key, dict):
            raise MalformedGeometry(source, f"key {i} is not an object")
        matrix = key.get("matrix")
        if not isinstance(matrix, list) or len(matrix) != 2:
            raise MalformedGeometry(source, f"key {i} has no [row, col] matrix position")
        if "x" not in key or "y" not in key:
            raise MalformedGeometry(source, f"key {i} has no x/y position")

    if not raw_keys:
        return KeyboardGeometry(
            keyboard_name=keyboard, layout_name=variant, matrix_rows=1, matrix_cols=1
        )

    keys = []
    try:
        matrix_rows, matrix_cols = _matrix_size(data, raw_keys)
        leds = _led_indices(data, source, raw_keys)
        for i, key in enumerate(raw_keys):
            row, col = int(key["matrix"][0]), int(key["matrix"][1])
            if row >= matrix_rows or col >= matrix_cols:
                raise MalformedGeometry(
                    source, f"key {i} matrix ({row}, {col}) outside {matrix_rows}x{matrix_cols} matrix"
                )
            keys.append(
                KeyGeometry(
                    matrix_position=(row, col),
                    led_index=leds[i],
                    layout_index=i,
                    x=float(key["x"]),
                    y=float(key["y"]),
                    width=float(key.get("w", 1.0)),
                    height=float(key.get("h", 1.0)),
                    rotation=float(key.get("r", 0.0)),
                )
            )
        encoders = data.get("encoder", {}).get("rotary", []) if isinstance(data.get("encoder"), dict) else []
        geometry = KeyboardGeometry(
            keyboard_name=keyboard,
            layout_name=variant,
            matrix_rows=matrix_rows,
            matrix_cols=matrix_cols,
            keys=keys,
            encoder_count=len(encoders) if isinstance(encoders, list) else 0,
        )
    except (ValidationError, TypeError, ValueError) as e:
        raise MalformedGeometry(source, str(e)) from e

    logger.debug("Loaded %d keys for %s", len(keys), source)
    return geometry


def load_geometry(keyboards_dir: Path, keyboard: str, variant: str) -> KeyboardGeometry:
    """Load a keyboard + layout variant from a firmware keyboards/ tree."""
    data = find_keyboard_info(keyboards_dir, keyboard)
    return parse_keyboard_info(data, keyboard, variant)


def list_layout_variants(keyboards_dir: Path, keyboard: str) -> list[str]:
    """Names of all layout variants (without aliases) defined for a keyboard."""
    data = find_keyboard_info(keyboards_dir, keyboard)
    layouts = data.get("layouts")
    return sorted(layouts) if isinstance(layouts, dict) else []
