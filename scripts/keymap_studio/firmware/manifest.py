"""config.h and rules.mk generation."""

from ..mapper import CoordinateMapper
from ..models import Layout
from .keymap import c_comment
from .tables import static_lighting_active

STATIC_LIGHTING_FLAG = "KEYMAP_STUDIO_STATIC_LIGHTING"


def _brightness_value(percent: int) -> str:
    return f"(RGB_MATRIX_MAXIMUM_BRIGHTNESS * {percent} / 100)"


def _saturation_value(percent: int) -> str:
    return f"(255 * {percent} / 100)"


def generate_config_h(layout: Layout, mapper: CoordinateMapper) -> str:
    out: list[str] = []
    out.append("// AUTO-GENERATED FILE. DO NOT EDIT.")
    out.append(f"// Layout: {c_comment(layout.metadata.name)}")
    out.append("")
    out.append("#pragma once")
    out.append("")
    out.append("#undef TAPPING_TERM")
    out.append(f"#define TAPPING_TERM {layout.settings.tapping_term}")

    if layout.settings.rgb_enabled:
        out.append("")
        out.append("#ifdef RGB_MATRIX_ENABLE")
        out.append("#    undef RGB_MATRIX_DEFAULT_VAL")
        out.append(f"#    define RGB_MATRIX_DEFAULT_VAL {_brightness_value(layout.settings.rgb_brightness)}")
        out.append("#    undef RGB_MATRIX_DEFAULT_SAT")
        out.append(f"#    define RGB_MATRIX_DEFAULT_SAT {_saturation_value(layout.settings.rgb_saturation)}")
        if layout.settings.rgb_timeout_ms:
            out.append("#    undef RGB_MATRIX_TIMEOUT")
            out.append(f"#    define RGB_MATRIX_TIMEOUT {layout.settings.rgb_timeout_ms}")
        if static_lighting_active(layout, mapper):
            out.append(f"#    define {STATIC_LIGHTING_FLAG}")
        out.append("#endif")

    return "\n".join(out) + "\n"


def generate_rules_mk(layout: Layout, mapper: CoordinateMapper) -> str:
    """Feature flags for the build: RGB matrix when enabled, tap dance and combos when used."""
    out = ["# AUTO-GENERATED FILE. DO NOT EDIT."]
    out.append(f"RGB_MATRIX_ENABLE = {'yes' if layout.settings.rgb_enabled else 'no'}")
    if layout.tap_dances:
        out.append("TAP_DANCE_ENABLE = yes")
    if layout.combos:
        out.append("COMBO_ENABLE = yes")
    return "\n".join(out) + "\n"
