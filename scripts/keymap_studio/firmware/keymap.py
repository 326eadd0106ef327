"""keymap.c generation."""

from ..colors import RgbColor
from ..mapper import CoordinateMapper
from ..models import Layout, UncoloredKeyBehavior
from .combos import generate_combo_c
from .tables import build_keymap_table, build_led_color_table, static_lighting_active
from .tap_dance import generate_tap_dance_c, to_c_keycode

UNLIT = RgbColor(r=0, g=0, b=0)


def c_comment(text: str) -> str:
    return text.replace("*/", "* /").replace("\n", " ")


def _aligned_rows(grid: list[list[str]]) -> list[str]:
    """Render matrix rows with each column padded to its widest keycode."""
    widths = [max(len(row[col]) for row in grid) for col in range(len(grid[0]))] if grid and grid[0] else []
    rows = []
    for row in grid:
        cells = [f"{code},".ljust(widths[i] + 1) for i, code in enumerate(row)]
        rows.append("{" + " ".join(cells).rstrip().rstrip(",") + "}")
    return rows


def _keymaps_lines(layout: Layout, mapper: CoordinateMapper) -> list[str]:
    out = ["const uint16_t PROGMEM keymaps[][MATRIX_ROWS][MATRIX_COLS] = {"]
    for layer, grid in zip(layout.layers, build_keymap_table(layout, mapper)):
        c_grid = [[to_c_keycode(code) for code in row] for row in grid]
        out.append(f"    /* {layer.number}: {c_comment(layer.name)} */")
        out.append(f"    [{layer.number}] = {{")
        for row in _aligned_rows(c_grid):
            out.append(f"        {row},")
        out.append("    },")
    out.append("};")
    out.append("")
    return out


def _ledmap_lines(layout: Layout, mapper: CoordinateMapper) -> list[str]:
    """Per-layer colors indexed by key LED, plus each LED's matrix position.

    The matrix table lets the indicator callback find the physical LED
    through g_led_config, so boards with underglow LEDs before the key
    LEDs still light the right keys. Keys without a color are drawn unlit,
    or, with uncolored_key_behavior "effect", skipped so the running RGB
    matrix effect shows through them.
    """
    tables = build_led_color_table(layout, mapper)
    key_count = mapper.key_count
    passthrough = layout.settings.uncolored_key_behavior == UncoloredKeyBehavior.EFFECT

    out = [f"#define LEDMAP_LAYERS {len(tables)}", f"#define LEDMAP_KEYS {key_count}", ""]
    out.append("static const uint8_t PROGMEM ledmap_matrix[LEDMAP_KEYS][2] = {")
    for led in range(key_count):
        row, col = mapper.led_to_matrix(led)
        out.append(f"    {{{row}, {col}}},")
    out.append("};")
    out.append("")

    out.append("static const uint8_t PROGMEM ledmap[LEDMAP_LAYERS][LEDMAP_KEYS][3] = {")
    for layer, colors in zip(layout.layers, tables):
        out.append(f"    [{layer.number}] = {{")
        for color in colors:
            r, g, b = (color or UNLIT).as_tuple()
            out.append(f"        {{{r}, {g}, {b}}},")
        out.append("    },")
    out.append("};")
    out.append("")

    if passthrough:
        out.append("static const uint8_t PROGMEM ledmap_lit[LEDMAP_LAYERS][LEDMAP_KEYS] = {")
        for layer, colors in zip(layout.layers, tables):
            flags = ", ".join("0" if color is None else "1" for color in colors)
            out.append(f"    [{layer.number}] = {{{flags}}},")
        out.append("};")
        out.append("")

    out.append("bool rgb_matrix_indicators_user(void) {")
    out.append("    uint8_t layer = get_highest_layer(layer_state | default_layer_state);")
    out.append("    if (layer >= LEDMAP_LAYERS) {")
    out.append("        return false;")
    out.append("    }")
    out.append("    uint8_t val = rgb_matrix_get_val();")
    out.append("    for (uint8_t i = 0; i < LEDMAP_KEYS; i++) {")
    if passthrough:
        out.append("        if (!pgm_read_byte(&ledmap_lit[layer][i])) {")
        out.append("            continue;")
        out.append("        }")
    out.append("        uint8_t row = pgm_read_byte(&ledmap_matrix[i][0]);")
    out.append("        uint8_t col = pgm_read_byte(&ledmap_matrix[i][1]);")
    out.append("        uint8_t led = g_led_config.matrix_co[row][col];")
    out.append("        if (led == NO_LED) {")
    out.append("            continue;")
    out.append("        }")
    out.append("        uint8_t r = pgm_read_byte(&ledmap[layer][i][0]) * val / 255;")
    out.append("        uint8_t g = pgm_read_byte(&ledmap[layer][i][1]) * val / 255;")
    out.append("        uint8_t b = pgm_read_byte(&ledmap[layer][i][2]) * val / 255;")
    out.append("        rgb_matrix_set_color(led, r, g, b);")
    out.append("    }")
    out.append("    return false;")
    out.append("}")
    out.append("")
    return out


def generate_keymap_c(layout: Layout, mapper: CoordinateMapper) -> str:
    """Render keymap.c: tap dances, combos, the keymaps array and, when any key is colored, the ledmap."""
    out: list[str] = []
    out.append("// AUTO-GENERATED FILE. DO NOT EDIT.")
    out.append(f"// Layout: {c_comment(layout.metadata.name)}")
    out.append(f"// Keyboard: {mapper.keyboard_name} ({mapper.layout_name})")
    out.append("")
    out.append("#include QMK_KEYBOARD_H")
    out.append("")

    out.extend(generate_tap_dance_c(layout))
    out.extend(generate_combo_c(layout))
    out.extend(_keymaps_lines(layout, mapper))

    if static_lighting_active(layout, mapper):
        out.append("#ifdef RGB_MATRIX_ENABLE")
        out.append("")
        out.extend(_ledmap_lines(layout, mapper))
        out.append("#endif")

    return "\n".join(out).rstrip("\n") + "\n"
