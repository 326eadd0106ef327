"""Bidirectional mapping between visual grid, electrical matrix and LED index.

A CoordinateMapper is built once per keyboard + layout variant and never
modified afterwards; switching keyboards means building a new one.

Visual positions are derived from the physical key positions:

    visual_row = round(y)
    visual_col = round(x)                   first half  (matrix row <  rows // 2)
    visual_col = 7 + round(x - 9.0)         second half (matrix row >= rows // 2)

Rounding is half away from zero, so 3.5 -> 4 and 4.5 -> 5.
"""

import logging
import math
from collections import Counter
from types import MappingProxyType

from .errors import DuplicateMatrixPosition, EmptyGeometry, InvalidLedSequence, VisualPositionCollision
from .geometry import KeyboardGeometry, KeyGeometry

logger = logging.getLogger(__name__)

# Physical x where the second half of a split keyboard starts, and the
# visual column it is re-based to.
SECOND_HALF_X_ORIGIN = 9.0
SECOND_HALF_VISUAL_COL = 7

Position = tuple[int, int]


def round_half_away(value: float) -> int:
    """Round to the nearest integer, ties away from zero."""
    if value >= 0:
        return int(math.floor(value + 0.5))
    return -int(math.floor(-value + 0.5))


def is_second_half(matrix_row: int, matrix_rows: int) -> bool:
    return matrix_row >= matrix_rows // 2


def visual_position(key: KeyGeometry, matrix_rows: int) -> Position:
    """Quantize a key's physical position into the visual grid."""
    row = round_half_away(key.y)
    if is_second_half(key.matrix_position[0], matrix_rows):
        col = SECOND_HALF_VISUAL_COL + round_half_away(key.x - SECOND_HALF_X_ORIGIN)
    else:
        col = round_half_away(key.x)
    return row, col


class CoordinateMapper:
    """Immutable lookups between the three addressing schemes of one keyboard.

    Use CoordinateMapper.build(geometry); all queries return None for
    positions the keyboard does not have.
    """

    __slots__ = (
        "_keyboard_name",
        "_layout_name",
        "_matrix_rows",
        "_matrix_cols",
        "_led_to_matrix",
        "_matrix_to_led",
        "_matrix_to_visual",
        "_visual_to_matrix",
        "_visual_order",
        "_visual_index",
    )

    def __init__(
        self,
        keyboard_name: str,
        layout_name: str,
        matrix_rows: int,
        matrix_cols: int,
        led_to_matrix: tuple[Position, ...],
        matrix_to_visual: dict[Position, Position],
    ):
        self._keyboard_name = keyboard_name
        self._layout_name = layout_name
        self._matrix_rows = matrix_rows
        self._matrix_cols = matrix_cols
        self._led_to_matrix = led_to_matrix
        self._matrix_to_led = MappingProxyType({m: led for led, m in enumerate(led_to_matrix)})
        self._matrix_to_visual = MappingProxyType(dict(matrix_to_visual))
        self._visual_to_matrix = MappingProxyType({v: m for m, v in matrix_to_visual.items()})
        self._visual_order = tuple(sorted(self._visual_to_matrix))
        self._visual_index = MappingProxyType({v: i for i, v in enumerate(self._visual_order)})

    @classmethod
    def build(cls, geometry: KeyboardGeometry) -> "CoordinateMapper":
        """Validate a geometry and derive all lookup tables.

        Raises:
            EmptyGeometry: If the geometry has no keys
            DuplicateMatrixPosition: If two keys share a matrix position
            InvalidLedSequence: If LED indices are not exactly 0..N-1
            VisualPositionCollision: If two keys quantize to the same grid cell
        """
        keys = geometry.keys
        if not keys:
            raise EmptyGeometry(geometry.keyboard_name, geometry.layout_name)

        seen_matrix: set[Position] = set()
        for key in keys:
            position = tuple(key.matrix_position)
            if position in seen_matrix:
                raise DuplicateMatrixPosition(*position)
            seen_matrix.add(position)

        count = len(keys)
        led_counts = Counter(key.led_index for key in keys)
        duplicates = sorted(led for led, n in led_counts.items() if n > 1)
        extra = sorted(led for led in led_counts if led >= count)
        missing = [led for led in range(count) if led not in led_counts]
        if duplicates or extra or missing:
            raise InvalidLedSequence(count, missing, duplicates, extra)

        led_to_matrix: list[Position | None] = [None] * count
        for key in keys:
            led_to_matrix[key.led_index] = tuple(key.matrix_position)

        matrix_to_visual: dict[Position, Position] = {}
        owner: dict[Position, Position] = {}
        for key in keys:
            matrix = tuple(key.matrix_position)
            visual = visual_position(key, geometry.matrix_rows)
            if visual in owner:
                raise VisualPositionCollision(visual[0], visual[1], owner[visual], matrix)
            owner[visual] = matrix
            matrix_to_visual[matrix] = visual

        logger.debug(
            "Built coordinate mapper for %s/%s with %d keys",
            geometry.keyboard_name,
            geometry.layout_name,
            count,
        )
        return cls(
            keyboard_name=geometry.keyboard_name,
            layout_name=geometry.layout_name,
            matrix_rows=geometry.matrix_rows,
            matrix_cols=geometry.matrix_cols,
            led_to_matrix=tuple(led_to_matrix),
            matrix_to_visual=matrix_to_visual,
        )

    # --- Keyboard facts ---

    @property
    def keyboard_name(self) -> str:
        return self._keyboard_name

    @property
    def layout_name(self) -> str:
        return self._layout_name

    @property
    def matrix_rows(self) -> int:
        return self._matrix_rows

    @property
    def matrix_cols(self) -> int:
        return self._matrix_cols

    @property
    def key_count(self) -> int:
        return len(self._led_to_matrix)

    @property
    def visual_rows(self) -> int:
        """Number of grid rows needed to hold every key (max row + 1)."""
        return max(r for r, _ in self._visual_order) + 1

    @property
    def visual_cols(self) -> int:
        """Number of grid columns needed to hold every key (max col + 1)."""
        return max(c for _, c in self._visual_order) + 1

    def visual_positions(self) -> tuple[Position, ...]:
        """All visual positions in row-major order."""
        return self._visual_order

    def matrix_positions(self) -> tuple[Position, ...]:
        """All matrix positions in LED order."""
        return self._led_to_matrix

    # --- Queries ---

    def led_to_matrix(self, led_index: int) -> Position | None:
        if 0 <= led_index < len(self._led_to_matrix):
            return self._led_to_matrix[led_index]
        return None

    def matrix_to_led(self, row: int, col: int) -> int | None:
        return self._matrix_to_led.get((row, col))

    def matrix_to_visual(self, row: int, col: int) -> Position | None:
        return self._matrix_to_visual.get((row, col))

    def visual_to_matrix(self, visual_row: int, visual_col: int) -> Position | None:
        return self._visual_to_matrix.get((visual_row, visual_col))

    def visual_to_led(self, visual_row: int, visual_col: int) -> int | None:
        matrix = self.visual_to_matrix(visual_row, visual_col)
        if matrix is None:
            return None
        return self.matrix_to_led(*matrix)

    def led_to_visual(self, led_index: int) -> Position | None:
        matrix = self.led_to_matrix(led_index)
        if matrix is None:
            return None
        return self.matrix_to_visual(*matrix)

    def visual_index(self, visual_row: int, visual_col: int) -> int | None:
        """Row-major rank of a visual position among all keys."""
        return self._visual_index.get((visual_row, visual_col))

    def __repr__(self) -> str:
        return (
            f"CoordinateMapper({self._keyboard_name!r}, {self._layout_name!r}, "
            f"keys={self.key_count})"
        )
