"""Construction of new layouts and key assignments from a coordinate mapper."""

from datetime import datetime

from .colors import RgbColor
from .errors import LayoutError
from .mapper import CoordinateMapper
from .models import NO_KEY, KeyAssignment, Layer, Layout, LayoutMetadata, layout_name_problem, utc_now


def make_key(
    mapper: CoordinateMapper,
    row: int,
    col: int,
    keycode: str,
    color_override: RgbColor | None = None,
    category_id: str | None = None,
) -> KeyAssignment | None:
    """Create the key at a visual position, resolving its matrix and LED address.

    Returns:
        The key assignment, or None if the keyboard has no key at (row, col)
    """
    matrix = mapper.visual_to_matrix(row, col)
    if matrix is None:
        return None
    return KeyAssignment(
        keycode=keycode,
        matrix_position=matrix,
        visual_position=(row, col),
        visual_index=mapper.visual_index(row, col),
        led_index=mapper.matrix_to_led(*matrix),
        color_override=color_override,
        category_id=category_id,
    )


def blank_layer(mapper: CoordinateMapper, number: int, name: str, keycode: str = NO_KEY) -> Layer:
    """A layer with every key of the keyboard set to the same keycode."""
    keys = [make_key(mapper, row, col, keycode) for row, col in mapper.visual_positions()]
    return Layer(number=number, name=name, keys=keys)


def new_layout(
    name: str,
    mapper: CoordinateMapper,
    author: str = "",
    description: str = "",
    now: datetime | None = None,
) -> Layout:
    """Start a new design with a single empty "Base" layer.

    Args:
        name: Layout name
        mapper: Mapper for the target keyboard and layout variant
        author: Author shown in the metadata
        description: Free-form description
        now: Creation timestamp (default: current UTC time)

    Returns:
        A Layout ready for editing and saving
    """
    problem = layout_name_problem(name)
    if problem:
        raise LayoutError(f"Invalid layout name: {problem}")
    timestamp = now or utc_now()
    metadata = LayoutMetadata(
        name=name,
        description=description,
        author=author,
        created=timestamp,
        modified=timestamp,
        keyboard=mapper.keyboard_name or None,
        layout_variant=mapper.layout_name or None,
    )
    return Layout(metadata=metadata, layers=[blank_layer(mapper, 0, "Base")])

