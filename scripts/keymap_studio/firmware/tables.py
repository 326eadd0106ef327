"""Resolved per-layer tables: keycodes by matrix position, colors by LED index."""

from ..colors import RgbColor, resolve_key_color
from ..errors import LayoutError
from ..mapper import CoordinateMapper
from ..models import NO_KEY, KeyAssignment, Layer, Layout


def build_keymap_table(layout: Layout, mapper: CoordinateMapper) -> list[list[list[str]]]:
    """Keycodes indexed [layer][matrix_row][matrix_col]; KC_NO where the matrix has no key."""
    tables = []
    for layer in layout.layers:
        grid = [[NO_KEY] * mapper.matrix_cols for _ in range(mapper.matrix_rows)]
        for key in layer.keys:
            row, col = key.matrix_position
            if mapper.matrix_to_led(row, col) is None:
                raise LayoutError(f"Layer {layer.number}: matrix ({row}, {col}) is not a key of this keyboard")
            grid[row][col] = key.keycode
        tables.append(grid)
    return tables


def _keys_by_visual(layer: Layer) -> dict[tuple[int, int], KeyAssignment]:
    return {key.visual_position: key for key in layer.keys}


def build_led_color_table(layout: Layout, mapper: CoordinateMapper) -> list[list[RgbColor | None]]:
    """Effective color per LED, per layer.

    Walks the visual grid, resolves each key's color and stores it at the
    key's LED index. None means no color source applies to that key.
    """
    tables = []
    for layer in layout.layers:
        by_visual = _keys_by_visual(layer)
        colors: list[RgbColor | None] = [None] * mapper.key_count
        for row, col in mapper.visual_positions():
            key = by_visual.get((row, col))
            if key is None:
                raise LayoutError(f"Layer {layer.number}: no key at grid position ({row}, {col})")
            led = mapper.visual_to_led(row, col)
            colors[led] = resolve_key_color(key, layer, layout.categories)
        tables.append(colors)
    return tables


def static_lighting_active(layout: Layout, mapper: CoordinateMapper) -> bool:
    """True when RGB is enabled and at least one key on any layer has a color."""
    if not layout.settings.rgb_enabled:
        return False
    return any(color is not None for layer in build_led_color_table(layout, mapper) for color in layer)
