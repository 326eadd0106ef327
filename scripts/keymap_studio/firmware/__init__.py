"""Firmware source generation from a layout and its coordinate mapper."""

from .combos import generate_combo_c
from .emitter import FirmwareEmitter
from .keymap import generate_keymap_c
from .manifest import generate_config_h, generate_rules_mk
from .tables import build_keymap_table, build_led_color_table, static_lighting_active
from .tap_dance import generate_tap_dance_c, generate_tap_dance_docs, to_c_keycode

__all__ = [
    # Tables
    "build_keymap_table",
    "build_led_color_table",
    "static_lighting_active",
    # Sources
    "generate_keymap_c",
    "generate_config_h",
    "generate_rules_mk",
    "generate_tap_dance_c",
    "generate_combo_c",
    "generate_tap_dance_docs",
    "to_c_keycode",
    # Output
    "FirmwareEmitter",
]
