"""Layout document parser.

Single forward pass over the lines with an explicit parser state, followed
by a validation pass that needs the whole document: category and tap-dance
references from keys and combos, geometry coverage and keycode checks.
Structural problems raise a DocumentError immediately; unresolved references
become warnings on the returned Layout.
"""

import enum
import logging
import re
from dataclasses import dataclass, field

from ..builder import make_key
from ..colors import RgbColor, hex_to_rgb, is_valid_hex
from ..errors import (
    DuplicateCategoryId,
    IncompleteLayer,
    InconsistentColumnCount,
    InvalidCategory,
    InvalidCombo,
    InvalidColorSyntax,
    InvalidLayerName,
    InvalidSetting,
    InvalidTapDance,
    MalformedTable,
    MissingRequiredField,
    NonSequentialLayer,
    PositionOutOfBounds,
)
from ..keycodes import KeycodeRegistry
from ..mapper import CoordinateMapper
from ..models import (
    TAP_DANCE_NAME_PATTERN,
    Category,
    Combo,
    Layer,
    Layout,
    LayoutMetadata,
    ParseWarning,
    RgbSettings,
    TapDance,
    UncoloredKeyBehavior,
    category_problem,
    combo_problem,
    layer_name_problem,
)
from .cells import ParsedCell, parse_cell
from .metadata import parse_metadata, split_front_matter

logger = logging.getLogger(__name__)

SUPPORTED_COLUMN_COUNTS = (12, 14)

LAYER_HEADER = re.compile(r"^##\s+Layer\b\s*(?P<number>[^:]*?)\s*(?::\s*(?P<name>.*?))?\s*$")
SECTION_HEADER = re.compile(r"^##\s+(?P<title>.+?)\s*$")
PROPERTY_LINE = re.compile(r"^\*\*(?P<key>[^*]+)\*\*\s*:\s*(?P<value>.*?)\s*$")
SEPARATOR_CELL = re.compile(r"^:?-+:?$")
CATEGORY_LINE = re.compile(r"^-\s+(?P<id>[^:\s]+)\s*:\s*(?P<name>.*?)\s*\((?P<color>[^()]*)\)\s*$")
LIST_ITEM = re.compile(r"^-\s+(?P<key>[^:]+?)\s*:\s*(?P<value>.*?)\s*$")
COMBO_LINE = re.compile(
    r"^-\s+(?P<id>[^\s:(]+)\s*(?:\((?P<name>[^()]*)\))?\s*:\s*(?P<keys>.+?)\s*->\s*(?P<output>.+?)\s*$"
)
TAP_DANCE_REF = re.compile(r"^TD\((?P<name>[^)]*)\)$")

LAYER_COLORS_ON = ("on", "true", "yes", "enabled")
LAYER_COLORS_OFF = ("off", "false", "no", "disabled")
EMPTY_ACTION = "-"

# Integer settings and their inclusive bounds; None means unbounded
INTEGER_SETTINGS = {
    "rgb_brightness": (0, 100),
    "rgb_saturation": (0, 100),
    "rgb_timeout_ms": (0, None),
    "tapping_term": (1, 5000),
}


class ParserState(enum.Enum):
    METADATA = "metadata"
    LAYER_HEADER = "layer-header"
    LAYER_COLOR = "layer-color"
    TABLE = "table"
    TAP_DANCES = "tap-dances"
    COMBOS = "combos"
    SETTINGS = "settings"
    CATEGORIES = "categories"
    SKIP = "skip"


@dataclass
class CellEntry:
    row: int
    col: int
    line: int
    cell: ParsedCell


@dataclass
class LayerSection:
    number: int
    name: str
    line: int
    default_color: RgbColor | None = None
    category_id: str | None = None
    category_line: int = 0
    layer_colors_enabled: bool = True
    table_line: int = 0
    columns: int = 0
    separator_seen: bool = False
    data_rows: int = 0
    cells: list[CellEntry] = field(default_factory=list)


@dataclass
class RawDocument:
    """Everything gathered by the forward pass, before validation."""

    metadata: LayoutMetadata
    layers: list[LayerSection] = field(default_factory=list)
    categories: list[Category] = field(default_factory=list)
    category_lines: dict[str, int] = field(default_factory=dict)
    tap_dances: list[TapDance] = field(default_factory=list)
    tap_dance_lines: dict[str, int] = field(default_factory=dict)
    combos: list[Combo] = field(default_factory=list)
    combo_lines: dict[str, int] = field(default_factory=dict)
    settings: dict[str, object] = field(default_factory=dict)


def split_row(text: str, line: int) -> list[str]:
    """Split a '| a | b |' table row into raw cell strings."""
    stripped = text.strip()
    if not stripped.endswith("|") or len(stripped) < 2:
        raise MalformedTable(line, "table rows must start and end with '|'")
    return stripped[1:-1].split("|")


class DocumentParser:
    """Forward pass over a layout document. Use parse_layout() instead of this directly."""

    def __init__(self, text: str):
        self.lines = text.splitlines()
        self.state = ParserState.METADATA
        self.document: RawDocument | None = None
        self.current: LayerSection | None = None
        self.document_columns: int | None = None

    def run(self) -> RawDocument:
        yaml_lines, first_line, body_start = split_front_matter(self.lines)
        self.document = RawDocument(metadata=parse_metadata(yaml_lines, first_line))
        self.state = ParserState.LAYER_HEADER

        for index in range(body_start, len(self.lines)):
            self._feed(self.lines[index], index + 1)
        self._close_layer()

        if not self.document.layers:
            raise MissingRequiredField(0, "layers")
        return self.document

    # --- Dispatch ---

    def _feed(self, text: str, line: int) -> None:
        stripped = text.strip()

        if self.state == ParserState.TABLE:
            if stripped.startswith("|"):
                self._table_row(stripped, line)
                return
            self._end_table()

        if stripped.startswith("## "):
            self._section_header(stripped, line)
            return
        if not stripped or stripped.startswith("# "):
            return

        if self.state == ParserState.LAYER_HEADER and stripped.startswith("|") and self.current is not None:
            raise MalformedTable(
                line, f"table row after the end of layer {self.current.number}'s table (blank line inside the table?)"
            )

        if self.state == ParserState.LAYER_COLOR:
            if stripped.startswith("|"):
                self.state = ParserState.TABLE
                self._table_row(stripped, line)
            else:
                self._layer_property(stripped, line)
        elif self.state == ParserState.TAP_DANCES:
            self._tap_dance_line(stripped, line)
        elif self.state == ParserState.COMBOS:
            self._combo_line(stripped, line)
        elif self.state == ParserState.SETTINGS:
            self._setting_line(stripped, line)
        elif self.state == ParserState.CATEGORIES:
            self._category_line(stripped, line)

    def _section_header(self, stripped: str, line: int) -> None:
        self._close_layer()

        if LAYER_HEADER.match(stripped):
            self._layer_header(stripped, line)
            return

        title = SECTION_HEADER.match(stripped).group("title").strip().lower()
        if title in ("tap dances", "tap-dances", "tap dance actions"):
            self.state = ParserState.TAP_DANCES
        elif title == "combos":
            self.state = ParserState.COMBOS
        elif title == "settings":
            self.state = ParserState.SETTINGS
        elif title == "categories":
            self.state = ParserState.CATEGORIES
        else:
            logger.debug("Skipping unknown section '%s' on line %d", title, line)
            self.state = ParserState.SKIP

    # --- Layers ---

    def _layer_header(self, stripped: str, line: int) -> None:
        match = LAYER_HEADER.match(stripped)
        expected = len(self.document.layers)
        number_text = match.group("number")
        if not number_text.isdigit() or int(number_text) != expected:
            raise NonSequentialLayer(line, expected, number_text)

        name = match.group("name")
        if name is None:
            raise InvalidLayerName(line, "", "header must be '## Layer <number>: <name>'")
        problem = layer_name_problem(name)
        if problem:
            raise InvalidLayerName(line, name, problem)

        self.current = LayerSection(number=expected, name=name, line=line)
        self.state = ParserState.LAYER_COLOR

    def _layer_property(self, stripped: str, line: int) -> None:
        match = PROPERTY_LINE.match(stripped)
        if not match:
            return
        key = match.group("key").strip().lower()
        value = match.group("value")

        if key == "color":
            if not is_valid_hex(value):
                raise InvalidColorSyntax(line, value)
            self.current.default_color = hex_to_rgb(value)
        elif key == "category":
            self.current.category_id = value or None
            self.current.category_line = line
        elif key == "layer colors":
            lowered = value.lower()
            if lowered in LAYER_COLORS_ON:
                self.current.layer_colors_enabled = True
            elif lowered in LAYER_COLORS_OFF:
                self.current.layer_colors_enabled = False
            else:
                raise InvalidSetting(line, f"layer colors must be 'on' or 'off', got '{value}'")
        else:
            logger.debug("Ignoring unknown layer property '%s' on line %d", key, line)

    def _table_row(self, stripped: str, line: int) -> None:
        section = self.current
        cells = split_row(stripped, line)

        if not section.columns:
            count = len(cells)
            if self.document_columns is not None and count != self.document_columns:
                raise InconsistentColumnCount(line, self.document_columns, count)
            if count not in SUPPORTED_COLUMN_COUNTS:
                raise MalformedTable(
                    line, f"tables must have 12 or 14 columns, found {count}"
                )
            self.document_columns = count
            section.columns = count
            section.table_line = line
            return

        if len(cells) != section.columns:
            raise InconsistentColumnCount(line, section.columns, len(cells))

        if not section.separator_seen:
            if not all(SEPARATOR_CELL.match(cell.strip()) for cell in cells):
                raise MalformedTable(line, "second table row must be a '|---|' separator")
            section.separator_seen = True
            return

        row = section.data_rows
        for col, raw in enumerate(cells):
            parsed = parse_cell(raw, line, col)
            if parsed is not None:
                section.cells.append(CellEntry(row=row, col=col, line=line, cell=parsed))
        section.data_rows += 1

    def _end_table(self) -> None:
        self.state = ParserState.LAYER_HEADER

    def _close_layer(self) -> None:
        section = self.current
        if section is None:
            return
        if not section.columns:
            raise MalformedTable(section.line, f"layer {section.number} has no key table")
        if not section.separator_seen:
            raise MalformedTable(section.table_line, f"layer {section.number} table has no separator row")
        if not section.data_rows:
            raise MalformedTable(section.table_line, f"layer {section.number} table has no rows")
        self.document.layers.append(section)
        self.current = None

    # --- Tap dances ---

    def _tap_dance_line(self, stripped: str, line: int) -> None:
        match = LIST_ITEM.match(stripped)
        if not match:
            raise InvalidTapDance(line, f"expected '- name: single / double / hold', got '{stripped}'")
        name = match.group("key")
        if not TAP_DANCE_NAME_PATTERN.fullmatch(name):
            raise InvalidTapDance(line, f"tap dance name '{name}' must match ^[a-z][a-z0-9_]*$")
        if name in self.document.tap_dance_lines:
            raise InvalidTapDance(
                line, f"tap dance '{name}' already defined on line {self.document.tap_dance_lines[name]}"
            )

        actions = [part.strip() for part in match.group("value").split("/")]
        if len(actions) > 3:
            raise InvalidTapDance(line, f"tap dance '{name}' has more than three actions")
        actions += [EMPTY_ACTION] * (3 - len(actions))
        single, double, hold = (None if a in ("", EMPTY_ACTION) else a for a in actions)
        if single is None:
            raise InvalidTapDance(line, f"tap dance '{name}' needs a single-tap action")

        self.document.tap_dances.append(TapDance(name=name, single_tap=single, double_tap=double, hold=hold))
        self.document.tap_dance_lines[name] = line

    # --- Combos ---

    def _combo_line(self, stripped: str, line: int) -> None:
        match = COMBO_LINE.match(stripped)
        if not match:
            raise InvalidCombo(line, f"expected '- id (Name): KEY + KEY -> OUTPUT', got '{stripped}'")
        combo_id = match.group("id")
        name = (match.group("name") or "").strip()
        keys = [key.strip() for key in match.group("keys").split("+")]
        output = match.group("output")

        problem = combo_problem(combo_id, name, keys, output)
        if problem:
            raise InvalidCombo(line, problem)
        if combo_id in self.document.combo_lines:
            raise InvalidCombo(line, f"combo '{combo_id}' already defined on line {self.document.combo_lines[combo_id]}")

        self.document.combos.append(Combo(id=combo_id, name=name, keys=keys, output=output))
        self.document.combo_lines[combo_id] = line

    # --- Settings ---

    def _setting_line(self, stripped: str, line: int) -> None:
        match = LIST_ITEM.match(stripped)
        if not match:
            raise InvalidSetting(line, f"expected '- key: value', got '{stripped}'")
        key = match.group("key").strip().lower()
        value = match.group("value").strip()

        if key == "rgb_enabled":
            lowered = value.lower()
            if lowered not in ("true", "false"):
                raise InvalidSetting(line, f"rgb_enabled must be true or false, got '{value}'")
            self.document.settings[key] = lowered == "true"
        elif key in INTEGER_SETTINGS:
            low, high = INTEGER_SETTINGS[key]
            if not re.fullmatch(r"\d+", value) or int(value) < low or (high is not None and int(value) > high):
                bounds = f"{low}..{high}" if high is not None else f">= {low}"
                raise InvalidSetting(line, f"{key} must be an integer {bounds}, got '{value}'")
            self.document.settings[key] = int(value)
        elif key == "uncolored_key_behavior":
            choices = [behavior.value for behavior in UncoloredKeyBehavior]
            if value.lower() not in choices:
                raise InvalidSetting(line, f"uncolored_key_behavior must be one of {', '.join(choices)}, got '{value}'")
            self.document.settings[key] = UncoloredKeyBehavior(value.lower())
        else:
            logger.debug("Ignoring unknown setting '%s' on line %d", key, line)

    # --- Categories ---

    def _category_line(self, stripped: str, line: int) -> None:
        match = CATEGORY_LINE.match(stripped)
        if not match:
            raise InvalidCategory(line, f"expected '- id: Name (#RRGGBB)', got '{stripped}'")
        category_id = match.group("id")
        name = match.group("name")
        color = match.group("color").strip()

        problem = category_problem(category_id, name)
        if problem:
            raise InvalidCategory(line, problem)
        if category_id in self.document.category_lines:
            raise DuplicateCategoryId(line, category_id, self.document.category_lines[category_id])
        if not is_valid_hex(color):
            raise InvalidColorSyntax(line, color)

        self.document.categories.append(Category(id=category_id, name=name, color=hex_to_rgb(color)))
        self.document.category_lines[category_id] = line


def _build_layer(section: LayerSection, mapper: CoordinateMapper) -> Layer:
    keys = []
    for entry in section.cells:
        key = make_key(
            mapper,
            entry.row,
            entry.col,
            entry.cell.keycode,
            color_override=entry.cell.color,
            category_id=entry.cell.category_id,
        )
        if key is None:
            raise PositionOutOfBounds(entry.line, entry.row, entry.col, entry.cell.keycode)
        keys.append(key)

    populated = {key.visual_position for key in keys}
    missing = [pos for pos in mapper.visual_positions() if pos not in populated]
    if missing:
        raise IncompleteLayer(section.table_line, section.number, missing)

    keys.sort(key=lambda k: k.visual_index)
    return Layer(
        number=section.number,
        name=section.name,
        default_color=section.default_color,
        category_id=section.category_id,
        layer_colors_enabled=section.layer_colors_enabled,
        keys=keys,
    )


def _collect_warnings(
    raw: RawDocument,
    mapper: CoordinateMapper,
    registry: KeycodeRegistry | None,
) -> list[ParseWarning]:
    warnings: list[ParseWarning] = []
    known_categories = set(raw.category_lines)
    known_tap_dances = set(raw.tap_dance_lines)

    declared = raw.metadata.keyboard
    if declared and mapper.keyboard_name and declared != mapper.keyboard_name:
        warnings.append(
            ParseWarning(
                message=f"document is for keyboard '{declared}' but geometry is '{mapper.keyboard_name}'"
            )
        )

    for section in raw.layers:
        if section.category_id and section.category_id not in known_categories:
            warnings.append(
                ParseWarning(
                    line=section.category_line,
                    message=f"layer {section.number} references unknown category '{section.category_id}'",
                )
            )
        for entry in section.cells:
            keycode = entry.cell.keycode
            if entry.cell.category_id and entry.cell.category_id not in known_categories:
                warnings.append(
                    ParseWarning(
                        line=entry.line,
                        message=f"key '{keycode}' references unknown category '{entry.cell.category_id}'",
                    )
                )
            td = TAP_DANCE_REF.match(keycode)
            if td and td.group("name") not in known_tap_dances:
                warnings.append(
                    ParseWarning(line=entry.line, message=f"key '{keycode}' references undefined tap dance")
                )
            elif registry is not None and not td and not registry.is_known(keycode):
                warnings.append(ParseWarning(line=entry.line, message=f"unknown keycode '{keycode}'"))

    for tap_dance in raw.tap_dances:
        if registry is None:
            break
        for action in (tap_dance.single_tap, tap_dance.double_tap, tap_dance.hold):
            if action and not registry.is_known(action):
                warnings.append(
                    ParseWarning(
                        line=raw.tap_dance_lines[tap_dance.name],
                        message=f"tap dance '{tap_dance.name}' uses unknown keycode '{action}'",
                    )
                )

    for combo in raw.combos:
        for keycode in [*combo.keys, combo.output]:
            td = TAP_DANCE_REF.match(keycode)
            if td and td.group("name") not in known_tap_dances:
                message = f"combo '{combo.id}' references undefined tap dance in '{keycode}'"
            elif registry is not None and not td and not registry.is_known(keycode):
                message = f"combo '{combo.id}' uses unknown keycode '{keycode}'"
            else:
                continue
            warnings.append(ParseWarning(line=raw.combo_lines[combo.id], message=message))
    return warnings


def parse_layout(
    text: str,
    mapper: CoordinateMapper,
    registry: KeycodeRegistry | None = None,
) -> Layout:
    """Parse a layout document.

    Args:
        text: Full document text
        mapper: Mapper for the document's keyboard and layout variant
        registry: Optional keycode registry; unknown keycodes become warnings

    Returns:
        Layout with non-fatal findings in layout.warnings

    Raises:
        DocumentError: On any structural problem (see errors module)
    """
    raw = DocumentParser(text).run()

    layers = [_build_layer(section, mapper) for section in raw.layers]
    warnings = _collect_warnings(raw, mapper, registry)
    for warning in warnings:
        logger.info("%s", warning)

    layout = Layout(
        metadata=raw.metadata,
        layers=layers,
        categories=raw.categories,
        tap_dances=raw.tap_dances,
        combos=raw.combos,
        settings=RgbSettings(**raw.settings),
        warnings=warnings,
    )
    logger.debug(
        "Parsed layout '%s': %d layers, %d categories, %d warnings",
        layout.metadata.name,
        len(layers),
        len(raw.categories),
        len(warnings),
    )
    return layout
