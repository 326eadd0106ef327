"""Layout document serializer.

Produces the canonical text form: front matter, one section per layer with
an aligned key table, tap dances and combos, settings, and categories last in
declaration order so that successive saves diff cleanly.
"""

import logging
from datetime import datetime

from ..errors import LayoutError, PositionOutOfBounds
from ..mapper import CoordinateMapper
from ..models import Combo, Layer, Layout, as_utc, layout_name_problem, utc_now
from .cells import format_cell
from .metadata import dump_metadata
from .parser import EMPTY_ACTION, SUPPORTED_COLUMN_COUNTS

logger = logging.getLogger(__name__)


def table_columns(mapper: CoordinateMapper) -> int:
    """Smallest supported table width that holds every visual column.

    Raises:
        PositionOutOfBounds: If a key lies outside every supported table width
    """
    for row, col in mapper.visual_positions():
        if row < 0 or col < 0:
            raise PositionOutOfBounds(0, row, col)

    needed = mapper.visual_cols
    for count in SUPPORTED_COLUMN_COUNTS:
        if needed <= count:
            return count

    row, col = max(mapper.visual_positions(), key=lambda pos: pos[1])
    raise PositionOutOfBounds(0, row, col)


def _layer_grid(layer: Layer, mapper: CoordinateMapper, columns: int) -> list[list[str]]:
    """Place each key of a layer into its visual cell, row-major."""
    grid = [[""] * columns for _ in range(mapper.visual_rows)]
    placed = 0
    for key in layer.keys:
        visual = mapper.matrix_to_visual(*key.matrix_position)
        if visual is None:
            raise LayoutError(
                f"Layer {layer.number}: key '{key.keycode}' at matrix {key.matrix_position} "
                f"does not exist on {mapper.keyboard_name or 'this keyboard'}"
            )
        row, col = visual
        if grid[row][col]:
            raise LayoutError(f"Layer {layer.number}: two keys at grid position ({row}, {col})")
        grid[row][col] = format_cell(key)
        placed += 1

    if placed != mapper.key_count:
        raise LayoutError(
            f"Layer {layer.number} has {placed} keys, keyboard has {mapper.key_count}"
        )
    return grid


def format_table(grid: list[list[str]], columns: int) -> list[str]:
    """Render a grid as a markdown table with per-column alignment."""
    header = [f"C{i}" for i in range(columns)]
    widths = [len(label) for label in header]
    for row in grid:
        for c, cell in enumerate(row):
            widths[c] = max(widths[c], len(cell))

    def render(cells: list[str]) -> str:
        return "| " + " | ".join(cell.ljust(widths[c]) for c, cell in enumerate(cells)) + " |"

    lines = [render(header), "|" + "|".join("-" * (w + 2) for w in widths) + "|"]
    lines.extend(render(row) for row in grid)
    return lines


def _layer_lines(layer: Layer, mapper: CoordinateMapper, columns: int) -> list[str]:
    lines = [f"## Layer {layer.number}: {layer.name}"]
    if layer.default_color is not None:
        lines.append(f"**Color**: {layer.default_color.to_hex()}")
    if layer.category_id:
        lines.append(f"**Category**: {layer.category_id}")
    if not layer.layer_colors_enabled:
        lines.append("**Layer Colors**: off")
    lines.append("")
    lines.extend(format_table(_layer_grid(layer, mapper, columns), columns))
    lines.append("")
    return lines


def _combo_line(combo: Combo) -> str:
    label = f"{combo.id} ({combo.name})" if combo.name else combo.id
    return f"- {label}: {' + '.join(combo.keys)} -> {combo.output}"


def serialize_layout(layout: Layout, mapper: CoordinateMapper, now: datetime | None = None) -> str:
    """Render a layout as document text.

    The layout itself is not modified; the written 'modified' timestamp is
    `now` (default: current UTC time), never earlier than 'created'.

    Args:
        layout: Layout to serialize
        mapper: Mapper for the layout's keyboard and variant
        now: Timestamp written as 'modified'

    Returns:
        Complete document text ending in a newline

    Raises:
        LayoutError: If the name is invalid or a layer does not match the keyboard's keys
        PositionOutOfBounds: If the keyboard's grid does not fit a 12/14-column table
    """
    if not layout.layers:
        raise LayoutError("Layout has no layers")

    problem = layout_name_problem(layout.metadata.name)
    if problem:
        raise LayoutError(f"Invalid layout name: {problem}")

    modified = max(as_utc(now or utc_now()), as_utc(layout.metadata.created))
    columns = table_columns(mapper)

    lines = [dump_metadata(layout.metadata, modified).rstrip("\n"), "", f"# {layout.metadata.name}", ""]

    for number, layer in enumerate(layout.layers):
        if layer.number != number:
            raise LayoutError(f"Layer at position {number} is numbered {layer.number}")
        lines.extend(_layer_lines(layer, mapper, columns))

    if layout.tap_dances:
        lines.extend(["## Tap Dances", ""])
        for td in layout.tap_dances:
            lines.append(
                f"- {td.name}: {td.single_tap} / {td.double_tap or EMPTY_ACTION} / {td.hold or EMPTY_ACTION}"
            )
        lines.append("")

    if layout.combos:
        lines.extend(["## Combos", ""])
        lines.extend(_combo_line(combo) for combo in layout.combos)
        lines.append("")

    settings = layout.settings
    lines.extend(
        [
            "## Settings",
            "",
            f"- rgb_enabled: {'true' if settings.rgb_enabled else 'false'}",
            f"- rgb_brightness: {settings.rgb_brightness}",
            f"- rgb_saturation: {settings.rgb_saturation}",
            f"- rgb_timeout_ms: {settings.rgb_timeout_ms}",
            f"- uncolored_key_behavior: {settings.uncolored_key_behavior.value}",
            f"- tapping_term: {settings.tapping_term}",
            "",
            "## Categories",
            "",
        ]
    )
    for category in layout.categories:
        lines.append(f"- {category.id}: {category.name} ({category.color.to_hex()})")

    logger.debug("Serialized layout '%s' (%d layers)", layout.metadata.name, len(layout.layers))
    return "\n".join(lines).rstrip("\n") + "\n"
