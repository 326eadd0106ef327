"""Keycode registry: opaque lookup of known firmware keycode tokens.

Unknown tokens are never an error for the document codec. The registry
only decides whether a warning is attached to the parsed layout.
"""

import logging
import re
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

_LETTERS = [f"KC_{c}" for c in "ABCDEFGHIJKLMNOPQRSTUVWXYZ"]
_DIGITS = [f"KC_{d}" for d in "0123456789"]
_FUNCTION = [f"KC_F{n}" for n in range(1, 25)]

# Built-in table: (token, display name)
BUILTIN_KEYCODES: dict[str, str] = {
    **{code: code[3:] for code in _LETTERS + _DIGITS + _FUNCTION},
    "KC_NO": "None",
    "XXXXXXX": "None",
    "KC_TRNS": "Transparent",
    "_______": "Transparent",
    "KC_ENT": "Enter",
    "KC_ESC": "Escape",
    "KC_BSPC": "Backspace",
    "KC_TAB": "Tab",
    "KC_SPC": "Space",
    "KC_MINS": "-",
    "KC_EQL": "=",
    "KC_LBRC": "[",
    "KC_RBRC": "]",
    "KC_BSLS": "\\",
    "KC_SCLN": ";",
    "KC_QUOT": "'",
    "KC_GRV": "`",
    "KC_COMM": ",",
    "KC_DOT": ".",
    "KC_SLSH": "/",
    "KC_CAPS": "Caps Lock",
    "KC_DEL": "Delete",
    "KC_INS": "Insert",
    "KC_HOME": "Home",
    "KC_END": "End",
    "KC_PGUP": "Page Up",
    "KC_PGDN": "Page Down",
    "KC_LEFT": "Left",
    "KC_DOWN": "Down",
    "KC_UP": "Up",
    "KC_RGHT": "Right",
    "KC_PSCR": "Print Screen",
    "KC_LCTL": "Left Ctrl",
    "KC_LSFT": "Left Shift",
    "KC_LALT": "Left Alt",
    "KC_LGUI": "Left GUI",
    "KC_RCTL": "Right Ctrl",
    "KC_RSFT": "Right Shift",
    "KC_RALT": "Right Alt",
    "KC_RGUI": "Right GUI",
    "KC_EXLM": "!",
    "KC_AT": "@",
    "KC_HASH": "#",
    "KC_DLR": "$",
    "KC_PERC": "%",
    "KC_CIRC": "^",
    "KC_AMPR": "&",
    "KC_ASTR": "*",
    "KC_LPRN": "(",
    "KC_RPRN": ")",
    "KC_UNDS": "_",
    "KC_PLUS": "+",
    "KC_LCBR": "{",
    "KC_RCBR": "}",
    "KC_PIPE": "|",
    "KC_COLN": ":",
    "KC_DQUO": '"',
    "KC_TILD": "~",
    "KC_LT": "<",
    "KC_GT": ">",
    "KC_QUES": "?",
    "KC_MUTE": "Mute",
    "KC_VOLU": "Volume Up",
    "KC_VOLD": "Volume Down",
    "KC_MPLY": "Play/Pause",
    "KC_MNXT": "Next Track",
    "KC_MPRV": "Previous Track",
    "QK_BOOT": "Bootloader",
    "RM_TOGG": "RGB Toggle",
    "RM_NEXT": "RGB Next Mode",
    "RM_VALU": "RGB Brightness Up",
    "RM_VALD": "RGB Brightness Down",
}

# Parameterised keycodes
BUILTIN_PATTERNS: tuple[str, ...] = (
    r"(MO|TG|TO|TT|OSL|DF|PDF)\(\d+\)",
    r"LT\(\d+,\s*\S.*\)",
    r"MT\(\S.*,\s*\S.*\)",
    r"(LCTL|LSFT|LALT|LGUI|RCTL|RSFT|RALT|RGUI|C|S|A|G)\(\S.*\)",
    r"(LCTL|LSFT|LALT|LGUI|RCTL|RSFT|RALT|RGUI|LSG|LAG|MEH|HYPR)_T\(\S.*\)",
    r"OSM\(MOD_[A-Z_| ]+\)",
    r"TD\([A-Za-z_][A-Za-z0-9_]*\)",
)


class KeycodeRegistry:
    """Known keycode names plus regex patterns for parameterised keycodes."""

    def __init__(self, codes: dict[str, str] | Iterable[str], patterns: Iterable[str] = ()):
        if isinstance(codes, dict):
            self._names = dict(codes)
        else:
            self._names = {code: code for code in codes}
        self._patterns = [re.compile(p) for p in patterns]

    @classmethod
    def default(cls) -> "KeycodeRegistry":
        return cls(BUILTIN_KEYCODES, BUILTIN_PATTERNS)

    @classmethod
    def from_yaml(cls, path: Path, include_builtin: bool = True) -> "KeycodeRegistry":
        """Load a registry file.

        Format:
            keycodes:            # list of tokens, or mapping token -> display name
              KC_FOO: Foo
            patterns:
              - 'MY_MACRO\\(\\d+\\)'
        """
        with open(path) as f:
            data: dict[str, Any] = yaml.safe_load(f) or {}

        raw_codes = data.get("keycodes", {})
        if isinstance(raw_codes, list):
            codes = {str(code): str(code) for code in raw_codes}
        else:
            codes = {str(code): str(name) for code, name in raw_codes.items()}
        patterns = [str(p) for p in data.get("patterns", [])]

        if include_builtin:
            codes = {**BUILTIN_KEYCODES, **codes}
            patterns = list(BUILTIN_PATTERNS) + patterns

        logger.debug("Loaded %d keycodes and %d patterns from %s", len(codes), len(patterns), path)
        return cls(codes, patterns)

    def is_known(self, token: str) -> bool:
        if token in self._names:
            return True
        return any(p.fullmatch(token) for p in self._patterns)

    def display_name(self, token: str) -> str | None:
        return self._names.get(token)

    def __contains__(self, token: object) -> bool:
        return isinstance(token, str) and self.is_known(token)

    def __len__(self) -> int:
        return len(self._names)
