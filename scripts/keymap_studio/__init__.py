"""
Keyboard layout documents and QMK firmware generation.

A layout document is a markdown file with YAML front matter and one table
per layer. Documents are parsed against a keyboard's physical geometry
through a CoordinateMapper, edited in memory, saved atomically, and
emitted as QMK keymap sources.

Usage:
    python -m keymap_studio validate layouts/corne.md
    python -m keymap_studio inspect layouts/corne.md --section layers
    python -m keymap_studio generate layouts/corne.md -o build/corne
"""

from .builder import blank_layer, make_key, new_layout
from .colors import RgbColor, hex_to_rgb, is_valid_hex, resolve_key_color, rgb_to_hex
from .config import StudioConfig, load_studio_config, load_yaml
from .document import load_layout, parse_layout, save_layout, serialize_layout
from .errors import DocumentError, GeometryError, LayoutError, StudioError
from .firmware import FirmwareEmitter, generate_tap_dance_docs
from .geometry import KeyboardGeometry, KeyGeometry, load_geometry
from .keycodes import KeycodeRegistry
from .mapper import CoordinateMapper
from .models import (
    Category,
    Combo,
    KeyAssignment,
    Layer,
    Layout,
    LayoutMetadata,
    RgbSettings,
    TapDance,
    UncoloredKeyBehavior,
)

__all__ = [
    # Config
    "StudioConfig",
    "load_studio_config",
    "load_yaml",
    # Errors
    "StudioError",
    "GeometryError",
    "DocumentError",
    "LayoutError",
    # Geometry
    "KeyGeometry",
    "KeyboardGeometry",
    "load_geometry",
    "CoordinateMapper",
    # Colors
    "RgbColor",
    "hex_to_rgb",
    "rgb_to_hex",
    "is_valid_hex",
    "resolve_key_color",
    # Model
    "Category",
    "Combo",
    "KeyAssignment",
    "Layer",
    "Layout",
    "LayoutMetadata",
    "RgbSettings",
    "TapDance",
    "UncoloredKeyBehavior",
    "make_key",
    "blank_layer",
    "new_layout",
    "KeycodeRegistry",
    # Documents
    "parse_layout",
    "serialize_layout",
    "load_layout",
    "save_layout",
    # Firmware
    "FirmwareEmitter",
    "generate_tap_dance_docs",
]
