"""Exception taxonomy for geometry, color and document handling."""


class StudioError(Exception):
    """Base class for all keymap_studio errors."""


# --- Geometry ---


class GeometryError(StudioError):
    """Physical/electrical keyboard description is malformed or inconsistent."""


class EmptyGeometry(GeometryError):
    def __init__(self, keyboard: str = "", layout: str = ""):
        self.keyboard = keyboard
        self.layout = layout
        label = f"{keyboard}/{layout}" if keyboard or layout else "geometry"
        super().__init__(f"{label} has no keys")


class InvalidLedSequence(GeometryError):
    """LED indices are not exactly 0..N-1."""

    def __init__(self, expected: int, missing: list[int], duplicates: list[int], extra: list[int]):
        self.expected = expected
        self.missing = missing
        self.duplicates = duplicates
        self.extra = extra
        parts = []
        if missing:
            parts.append(f"missing {missing}")
        if duplicates:
            parts.append(f"duplicated {duplicates}")
        if extra:
            parts.append(f"out of range {extra}")
        super().__init__(
            f"LED indices must be 0..{expected - 1} without gaps: " + ", ".join(parts)
        )


class DuplicateMatrixPosition(GeometryError):
    def __init__(self, row: int, col: int):
        self.row = row
        self.col = col
        super().__init__(f"Matrix position ({row}, {col}) is used by more than one key")


class VisualPositionCollision(GeometryError):
    def __init__(self, row: int, col: int, first: tuple[int, int], second: tuple[int, int]):
        self.row = row
        self.col = col
        self.first = first
        self.second = second
        super().__init__(
            f"Visual position ({row}, {col}) claimed by matrix {first} and matrix {second}"
        )


class KeyboardNotFound(GeometryError):
    def __init__(self, keyboard: str, searched: str = ""):
        self.keyboard = keyboard
        self.searched = searched
        where = f" under {searched}" if searched else ""
        super().__init__(f"Keyboard '{keyboard}' not found{where}")


class LayoutVariantNotFound(GeometryError):
    def __init__(self, keyboard: str, variant: str, available: list[str]):
        self.keyboard = keyboard
        self.variant = variant
        self.available = available
        super().__init__(
            f"Layout '{variant}' not defined for keyboard '{keyboard}' "
            f"(available: {', '.join(available) or 'none'})"
        )


class MalformedGeometry(GeometryError):
    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"{source}: {reason}")


# --- Color ---


class ColorError(StudioError, ValueError):
    """Malformed color text."""


class InvalidHexFormat(ColorError):
    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Invalid hex color '{value}': expected 6 hex digits, optionally prefixed with '#'")


# --- Document ---


class DocumentError(StudioError):
    """Structural violation of the layout document format.

    Attributes:
        line: 1-based line number in the document (0 if not tied to a line)
        message: Human-readable description without the location prefix
    """

    def __init__(self, line: int, message: str):
        self.line = line
        self.message = message
        prefix = f"line {line}: " if line else ""
        super().__init__(prefix + message)


class MissingRequiredField(DocumentError):
    def __init__(self, line: int, field: str):
        self.field = field
        super().__init__(line, f"missing required field '{field}'")


class InvalidMetadata(DocumentError):
    def __init__(self, line: int, field: str, reason: str):
        self.field = field
        super().__init__(line, f"invalid metadata '{field}': {reason}")


class MalformedYaml(DocumentError):
    pass


class NonSequentialLayer(DocumentError):
    def __init__(self, line: int, expected: int, found: str):
        self.expected = expected
        self.found = found
        super().__init__(line, f"expected layer {expected}, found layer '{found}'")


class InvalidLayerName(DocumentError):
    def __init__(self, line: int, name: str, reason: str):
        self.name = name
        super().__init__(line, f"invalid layer name '{name}': {reason}")


class MalformedTable(DocumentError):
    pass


class InconsistentColumnCount(DocumentError):
    def __init__(self, line: int, expected: int, found: int):
        self.expected = expected
        self.found = found
        super().__init__(line, f"table has {found} columns, expected {expected} like the rest of the document")


class PositionOutOfBounds(DocumentError):
    def __init__(self, line: int, row: int, col: int, keycode: str = ""):
        self.row = row
        self.col = col
        self.keycode = keycode
        what = f"'{keycode}' at " if keycode else ""
        super().__init__(line, f"{what}grid position ({row}, {col}) has no key on this keyboard")


class IncompleteLayer(DocumentError):
    def __init__(self, line: int, layer: int, missing: list[tuple[int, int]]):
        self.layer = layer
        self.missing = missing
        shown = ", ".join(f"({r}, {c})" for r, c in missing[:8])
        more = f" and {len(missing) - 8} more" if len(missing) > 8 else ""
        super().__init__(line, f"layer {layer} is missing keys at grid positions {shown}{more}")


class InvalidColorSyntax(DocumentError):
    def __init__(self, line: int, value: str, column: int | None = None):
        self.value = value
        self.column = column
        where = f"column {column}: " if column is not None else ""
        super().__init__(line, f"{where}invalid color '{value}' (expected #RRGGBB)")


class InvalidCellSyntax(DocumentError):
    def __init__(self, line: int, column: int, cell: str, reason: str):
        self.column = column
        self.cell = cell
        super().__init__(line, f"column {column}: invalid cell '{cell}': {reason}")


class InvalidCategory(DocumentError):
    pass


class DuplicateCategoryId(DocumentError):
    def __init__(self, line: int, category_id: str, first_line: int):
        self.category_id = category_id
        self.first_line = first_line
        super().__init__(
            line, f"category '{category_id}' already defined on line {first_line}"
        )


class InvalidTapDance(DocumentError):
    pass


class InvalidCombo(DocumentError):
    pass


class InvalidSetting(DocumentError):
    pass


# --- In-memory layout editing ---


class LayoutError(StudioError):
    """Rejected edit of an in-memory Layout."""
