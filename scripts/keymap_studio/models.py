"""Layout data model: layers, keys, categories, tap dances, combos and settings."""

import enum
import re
from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator

from .colors import RgbColor, find_category
from .errors import LayoutError

# Validation rules shared by the document codec and the setters below
CATEGORY_ID_PATTERN = re.compile(r"^[a-z][a-z0-9-]*$")
TAG_PATTERN = re.compile(r"^[a-z0-9-]+$")
TAP_DANCE_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")
COMBO_ID_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")
MAX_LAYER_NAME_CHARS = 50
MAX_CATEGORY_NAME_CHARS = 50
MAX_COMBO_NAME_CHARS = 50
MAX_LAYOUT_NAME_BYTES = 100
SUPPORTED_VERSIONS = ("1.0",)
CURRENT_VERSION = "1.0"

# Characters with meaning in the document table/cell grammar
RESERVED_KEYCODE_CHARS = "|{}@\n"

TRANSPARENT = "KC_TRNS"
NO_KEY = "KC_NO"


def utc_now() -> datetime:
    """Current time in UTC, truncated to whole seconds."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def validate_tag(tag: str) -> bool:
    """Tags are lowercase ASCII letters, digits and hyphens only."""
    return tag.isascii() and TAG_PATTERN.fullmatch(tag) is not None


def _display_name_problem(name: str, max_chars: int) -> str | None:
    # Names end up on a single document line that the parser strips
    if not name or not name.strip():
        return "name cannot be empty"
    if name != name.strip():
        return "name cannot start or end with whitespace"
    if "\n" in name or "\r" in name:
        return "name cannot contain line breaks"
    if len(name) > max_chars:
        return f"name exceeds {max_chars} characters ({len(name)})"
    return None


def layout_name_problem(name: str) -> str | None:
    """Return why a layout name is invalid, or None if it is fine."""
    if not name or not name.strip():
        return "name cannot be empty"
    size = len(name.encode("utf-8"))
    if size > MAX_LAYOUT_NAME_BYTES:
        return f"exceeds maximum length of {MAX_LAYOUT_NAME_BYTES} bytes (got {size})"
    return None


def layer_name_problem(name: str) -> str | None:
    """Return why a layer name is invalid, or None if it is fine."""
    return _display_name_problem(name, MAX_LAYER_NAME_CHARS)


def category_problem(category_id: str, name: str) -> str | None:
    """Return why a category id/name pair is invalid, or None if it is fine."""
    if not CATEGORY_ID_PATTERN.fullmatch(category_id):
        return f"id '{category_id}' must be lowercase kebab-case (^[a-z][a-z0-9-]*$)"
    return _display_name_problem(name, MAX_CATEGORY_NAME_CHARS)


def keycode_problem(keycode: str) -> str | None:
    if not keycode or not keycode.strip():
        return "keycode cannot be empty"
    if any(char in keycode for char in RESERVED_KEYCODE_CHARS):
        return f"keycode '{keycode}' contains a reserved character ({RESERVED_KEYCODE_CHARS!r})"
    return None


def combo_problem(combo_id: str, name: str, keys: list[str], output: str) -> str | None:
    """Return why a combo definition is invalid, or None if it is fine."""
    if not COMBO_ID_PATTERN.fullmatch(combo_id):
        return f"combo id '{combo_id}' must match ^[a-z][a-z0-9_]*$"
    if name:
        problem = _display_name_problem(name, MAX_COMBO_NAME_CHARS)
        if problem:
            return problem
        if "(" in name or ")" in name:
            return "name cannot contain parentheses"
    if len(keys) < 2:
        return f"combo '{combo_id}' needs at least two keys"
    if len(set(keys)) != len(keys):
        return f"combo '{combo_id}' lists the same key twice"
    for keycode in [*keys, output]:
        problem = keycode_problem(keycode)
        if problem:
            return problem
        if "+" in keycode or "->" in keycode:
            return f"keycode '{keycode}' cannot be used in a combo"
    return None


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Category(BaseModel):
    """User-defined named color group for keys or whole layers."""

    id: str = Field(pattern=CATEGORY_ID_PATTERN.pattern)
    name: str = Field(min_length=1, max_length=MAX_CATEGORY_NAME_CHARS)
    color: RgbColor


class KeyAssignment(BaseModel):
    """One key of one layer, addressed in all three coordinate spaces."""

    keycode: str
    matrix_position: tuple[int, int]
    visual_position: tuple[int, int]
    visual_index: int = Field(ge=0)
    led_index: int = Field(ge=0)
    color_override: RgbColor | None = None
    category_id: str | None = None


class Layer(BaseModel):
    number: int = Field(ge=0)
    name: str = Field(min_length=1, max_length=MAX_LAYER_NAME_CHARS)
    default_color: RgbColor | None = None
    category_id: str | None = None
    layer_colors_enabled: bool = True
    keys: list[KeyAssignment] = Field(default_factory=list)

    def key_at(self, row: int, col: int) -> KeyAssignment | None:
        """Key at a visual grid position."""
        return next((k for k in self.keys if k.visual_position == (row, col)), None)

    def key_by_led(self, led_index: int) -> KeyAssignment | None:
        return next((k for k in self.keys if k.led_index == led_index), None)

    def key_by_matrix(self, row: int, col: int) -> KeyAssignment | None:
        return next((k for k in self.keys if k.matrix_position == (row, col)), None)


class TapDance(BaseModel):
    """Tap-dance behavior referenced from keys as TD(name)."""

    name: str = Field(pattern=TAP_DANCE_NAME_PATTERN.pattern)
    single_tap: str = Field(min_length=1)
    double_tap: str | None = None
    hold: str | None = None

    @property
    def kind(self) -> str:
        if self.hold:
            return "hold"
        if self.double_tap:
            return "double"
        return "single"


class Combo(BaseModel):
    """Chord of keys pressed together that sends one output keycode."""

    id: str = Field(pattern=COMBO_ID_PATTERN.pattern)
    name: str = ""
    keys: list[str] = Field(min_length=2)
    output: str = Field(min_length=1)


class UncoloredKeyBehavior(str, enum.Enum):
    """What the static ledmap does with keys that resolve to no color."""

    OFF = "off"
    EFFECT = "effect"


class RgbSettings(BaseModel):
    rgb_enabled: bool = True
    rgb_brightness: int = Field(100, ge=0, le=100)
    rgb_saturation: int = Field(100, ge=0, le=100)
    rgb_timeout_ms: int = Field(0, ge=0, description="Idle time before RGB turns off; 0 disables")
    uncolored_key_behavior: UncoloredKeyBehavior = UncoloredKeyBehavior.OFF
    tapping_term: int = Field(200, ge=1, le=5000)


class LayoutMetadata(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    author: str = ""
    created: datetime = Field(default_factory=utc_now)
    modified: datetime = Field(default_factory=utc_now)
    tags: list[str] = Field(default_factory=list)
    is_template: bool = False
    version: str = CURRENT_VERSION
    keyboard: str | None = None
    layout_variant: str | None = None
    keymap_name: str | None = None
    output_format: str | None = None

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        problem = layout_name_problem(value)
        if problem:
            raise ValueError(problem)
        return value

    @field_validator("created", "modified")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class ParseWarning(BaseModel):
    """Non-fatal finding attached to a parsed layout."""

    line: int = 0
    message: str

    def __str__(self) -> str:
        return f"line {self.line}: {self.message}" if self.line else self.message


class Layout(BaseModel):
    """A complete keyboard design.

    Invariants: at least one layer, layer numbers 0..n-1 in order, every
    layer has one key per physical key. Category references may dangle;
    they resolve to no color.
    """

    metadata: LayoutMetadata
    layers: list[Layer] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    tap_dances: list[TapDance] = Field(default_factory=list)
    combos: list[Combo] = Field(default_factory=list)
    settings: RgbSettings = Field(default_factory=RgbSettings)
    warnings: list[ParseWarning] = Field(default_factory=list, exclude=True)

    # --- Lookups ---

    def layer(self, number: int) -> Layer:
        if 0 <= number < len(self.layers):
            return self.layers[number]
        raise LayoutError(f"Layer {number} does not exist (layout has {len(self.layers)})")

    def category(self, category_id: str) -> Category | None:
        return find_category(self.categories, category_id)

    def tap_dance(self, name: str) -> TapDance | None:
        return next((td for td in self.tap_dances if td.name == name), None)

    def combo(self, combo_id: str) -> Combo | None:
        return next((c for c in self.combos if c.id == combo_id), None)

    def _key(self, layer_number: int, row: int, col: int) -> KeyAssignment:
        key = self.layer(layer_number).key_at(row, col)
        if key is None:
            raise LayoutError(f"No key at grid position ({row}, {col})")
        return key

    def _require_category(self, category_id: str | None) -> None:
        if category_id is not None and self.category(category_id) is None:
            raise LayoutError(f"Unknown category '{category_id}'")

    # --- Key setters ---

    def set_keycode(self, layer_number: int, row: int, col: int, keycode: str) -> None:
        keycode = keycode.strip()
        problem = keycode_problem(keycode)
        if problem:
            raise LayoutError(f"Invalid keycode: {problem}")
        self._key(layer_number, row, col).keycode = keycode

    def set_key_color(self, layer_number: int, row: int, col: int, color: RgbColor | None) -> None:
        self._key(layer_number, row, col).color_override = color

    def set_key_category(self, layer_number: int, row: int, col: int, category_id: str | None) -> None:
        self._require_category(category_id)
        self._key(layer_number, row, col).category_id = category_id

    # --- Layer setters ---

    def rename_layer(self, layer_number: int, name: str) -> None:
        problem = layer_name_problem(name)
        if problem:
            raise LayoutError(f"Invalid layer name '{name}': {problem}")
        self.layer(layer_number).name = name

    def set_layer_color(self, layer_number: int, color: RgbColor | None) -> None:
        self.layer(layer_number).default_color = color

    def set_layer_category(self, layer_number: int, category_id: str | None) -> None:
        self._require_category(category_id)
        self.layer(layer_number).category_id = category_id

    def set_layer_colors_enabled(self, layer_number: int, enabled: bool) -> None:
        self.layer(layer_number).layer_colors_enabled = enabled

    def add_layer(self, name: str, default_color: RgbColor | None = None) -> Layer:
        """Append a layer with the first layer's key positions, all transparent."""
        problem = layer_name_problem(name)
        if problem:
            raise LayoutError(f"Invalid layer name '{name}': {problem}")
        if not self.layers:
            raise LayoutError("Cannot derive key positions: layout has no layers")

        template = self.layers[0]
        layer = Layer(
            number=len(self.layers),
            name=name,
            default_color=default_color,
            keys=[
                key.model_copy(update={"keycode": TRANSPARENT, "color_override": None, "category_id": None})
                for key in template.keys
            ],
        )
        self.layers.append(layer)
        return layer

    def remove_layer(self, layer_number: int) -> Layer:
        """Remove a layer and renumber the ones after it."""
        self.layer(layer_number)
        if len(self.layers) == 1:
            raise LayoutError("Cannot remove the last layer")
        removed = self.layers.pop(layer_number)
        for number, layer in enumerate(self.layers):
            layer.number = number
        return removed

    # --- Categories ---

    def add_category(self, category_id: str, name: str, color: RgbColor) -> Category:
        problem = category_problem(category_id, name)
        if problem:
            raise LayoutError(f"Invalid category: {problem}")
        if self.category(category_id) is not None:
            raise LayoutError(f"Category '{category_id}' already exists")
        category = Category(id=category_id, name=name, color=color)
        self.categories.append(category)
        return category

    def update_category(self, category_id: str, name: str | None = None, color: RgbColor | None = None) -> Category:
        existing = self.category(category_id)
        if existing is None:
            raise LayoutError(f"Unknown category '{category_id}'")
        new_name = existing.name if name is None else name
        problem = category_problem(category_id, new_name)
        if problem:
            raise LayoutError(f"Invalid category: {problem}")
        updated = existing.model_copy(update={"name": new_name, "color": existing.color if color is None else color})
        self.categories[self.categories.index(existing)] = updated
        return updated

    def remove_category(self, category_id: str) -> Category:
        """Delete a category; keys and layers still naming it fall through to other colors."""
        existing = self.category(category_id)
        if existing is None:
            raise LayoutError(f"Unknown category '{category_id}'")
        self.categories.remove(existing)
        return existing

    # --- Tap dances ---

    def add_tap_dance(self, tap_dance: TapDance) -> None:
        if self.tap_dance(tap_dance.name) is not None:
            raise LayoutError(f"Tap dance '{tap_dance.name}' already exists")
        self.tap_dances.append(tap_dance)

    def remove_tap_dance(self, name: str) -> TapDance:
        existing = self.tap_dance(name)
        if existing is None:
            raise LayoutError(f"Unknown tap dance '{name}'")
        self.tap_dances.remove(existing)
        return existing

    # --- Combos ---

    def add_combo(self, combo_id: str, keys: list[str], output: str, name: str = "") -> Combo:
        keys = [key.strip() for key in keys]
        output = output.strip()
        problem = combo_problem(combo_id, name, keys, output)
        if problem:
            raise LayoutError(f"Invalid combo: {problem}")
        if self.combo(combo_id) is not None:
            raise LayoutError(f"Combo '{combo_id}' already exists")
        combo = Combo(id=combo_id, name=name, keys=keys, output=output)
        self.combos.append(combo)
        return combo

    def remove_combo(self, combo_id: str) -> Combo:
        existing = self.combo(combo_id)
        if existing is None:
            raise LayoutError(f"Unknown combo '{combo_id}'")
        self.combos.remove(existing)
        return existing

    # --- Metadata ---

    def rename(self, name: str) -> None:
        problem = layout_name_problem(name)
        if problem:
            raise LayoutError(f"Invalid layout name: {problem}")
        self.metadata.name = name

    # --- Summary ---

    @property
    def key_count(self) -> int:
        return len(self.layers[0].keys) if self.layers else 0
