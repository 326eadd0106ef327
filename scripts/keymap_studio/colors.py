"""RGB color values, hex conversion and per-key color resolution."""

import re
from collections.abc import Iterable
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from .errors import InvalidHexFormat

if TYPE_CHECKING:
    from .models import Category, KeyAssignment, Layer

HEX_PATTERN = re.compile(r"^#?[0-9A-Fa-f]{6}$")


class RgbColor(BaseModel):
    """24-bit color; canonical text form is uppercase #RRGGBB."""

    model_config = ConfigDict(frozen=True)

    r: int = Field(ge=0, le=255)
    g: int = Field(ge=0, le=255)
    b: int = Field(ge=0, le=255)

    def to_hex(self) -> str:
        return rgb_to_hex(self)

    @classmethod
    def from_hex(cls, value: str) -> "RgbColor":
        return hex_to_rgb(value)

    def as_tuple(self) -> tuple[int, int, int]:
        return self.r, self.g, self.b

    def __str__(self) -> str:
        return self.to_hex()


def rgb_to_hex(color: RgbColor) -> str:
    """Format a color as uppercase #RRGGBB."""
    return f"#{color.r:02X}{color.g:02X}{color.b:02X}"


def is_valid_hex(value: str) -> bool:
    """Check for exactly 6 hex digits with an optional leading '#'.

    Shorthand (#FFF), 8-digit alpha forms and empty strings are rejected.
    """
    if not isinstance(value, str):
        return False
    return HEX_PATTERN.fullmatch(value) is not None


def hex_to_rgb(value: str) -> RgbColor:
    """Parse #RRGGBB or RRGGBB (any case) into an RgbColor.

    Raises:
        InvalidHexFormat: If value is not exactly 6 hex digits
    """
    if not is_valid_hex(value):
        raise InvalidHexFormat(value)
    digits = value.lstrip("#")
    return RgbColor(
        r=int(digits[0:2], 16),
        g=int(digits[2:4], 16),
        b=int(digits[4:6], 16),
    )


def find_category(categories: Iterable["Category"], category_id: str | None) -> "Category | None":
    """Look up a category by id; unknown or missing ids give None."""
    if not category_id:
        return None
    for category in categories:
        if category.id == category_id:
            return category
    return None


def resolve_key_color(
    key: "KeyAssignment",
    layer: "Layer",
    categories: Iterable["Category"],
) -> RgbColor | None:
    """Resolve the effective color of a key.

    Priority, first match wins:
    1. Key color override
    2. Key category color
    3. Layer category color (only if layer colors are enabled)
    4. Layer default color (only if layer colors are enabled)

    Category ids that do not resolve fall through to the next level.

    Args:
        key: The key assignment
        layer: The layer containing the key
        categories: All categories of the layout

    Returns:
        The resolved color, or None if no level provides one
    """
    categories = list(categories)

    if key.color_override is not None:
        return key.color_override

    key_category = find_category(categories, key.category_id)
    if key_category is not None:
        return key_category.color

    if not layer.layer_colors_enabled:
        return None

    layer_category = find_category(categories, layer.category_id)
    if layer_category is not None:
        return layer_category.color

    return layer.default_color
