"""Table cell grammar: KEYCODE[{#RRGGBB}][@category-id], suffixes in any order."""

from typing import NamedTuple

from ..colors import RgbColor, hex_to_rgb, is_valid_hex
from ..errors import InvalidCellSyntax, InvalidColorSyntax
from ..models import KeyAssignment

COLOR_OPEN = "{"
COLOR_CLOSE = "}"
CATEGORY_MARK = "@"


class ParsedCell(NamedTuple):
    keycode: str
    color: RgbColor | None
    category_id: str | None


def _suffix_start(text: str) -> int:
    """Index of the first '{' or '@' outside parentheses, or len(text)."""
    depth = 0
    for i, char in enumerate(text):
        if char == "(":
            depth += 1
        elif char == ")":
            depth = max(depth - 1, 0)
        elif depth == 0 and char in (COLOR_OPEN, CATEGORY_MARK):
            return i
    return len(text)


def parse_cell(text: str, line: int, column: int) -> ParsedCell | None:
    """Parse one table cell.

    Args:
        text: Raw cell text (surrounding whitespace allowed)
        line: Document line number, for error messages
        column: Table column index, for error messages

    Returns:
        ParsedCell, or None for an empty cell

    Raises:
        InvalidColorSyntax: If a {...} suffix is not exactly 6 hex digits
        InvalidCellSyntax: If the keycode is missing or a suffix is malformed/repeated
    """
    cell = text.strip()
    if not cell:
        return None

    split = _suffix_start(cell)
    keycode = cell[:split].strip()
    if not keycode:
        raise InvalidCellSyntax(line, column, cell, "missing keycode before color/category suffix")

    color: RgbColor | None = None
    category_id: str | None = None
    rest = cell[split:]

    while rest:
        if rest.startswith(COLOR_OPEN):
            close = rest.find(COLOR_CLOSE)
            if close == -1:
                raise InvalidCellSyntax(line, column, cell, "unterminated '{' color suffix")
            if color is not None:
                raise InvalidCellSyntax(line, column, cell, "more than one color suffix")
            value = rest[1:close].strip()
            if not is_valid_hex(value):
                raise InvalidColorSyntax(line, value, column)
            color = hex_to_rgb(value)
            rest = rest[close + 1:]
        elif rest.startswith(CATEGORY_MARK):
            end = 1
            while end < len(rest) and rest[end] not in (COLOR_OPEN, CATEGORY_MARK):
                end += 1
            value = rest[1:end].strip()
            if not value:
                raise InvalidCellSyntax(line, column, cell, "empty category reference after '@'")
            if category_id is not None:
                raise InvalidCellSyntax(line, column, cell, "more than one category reference")
            category_id = value
            rest = rest[end:]
        else:
            raise InvalidCellSyntax(line, column, cell, f"unexpected text '{rest}'")
        rest = rest.lstrip()

    return ParsedCell(keycode, color, category_id)


def format_cell(key: KeyAssignment) -> str:
    """Render a key in cell grammar; suffixes only for fields that are set."""
    text = key.keycode
    if key.color_override is not None:
        text += f"{COLOR_OPEN}{key.color_override.to_hex()}{COLOR_CLOSE}"
    if key.category_id:
        text += f"{CATEGORY_MARK}{key.category_id}"
    return text
