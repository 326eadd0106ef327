"""Combo code generation."""

from ..models import Combo, Layout
from .tap_dance import to_c_keycode


def combo_enum_name(combo_id: str) -> str:
    return f"COMBO_{combo_id.upper()}"


def combo_keys_name(combo: Combo) -> str:
    return f"combo_{combo.id}_keys"


def generate_combo_c(layout: Layout) -> list[str]:
    """C source lines: enum of combos, one key list per combo, and key_combos[]."""
    if not layout.combos:
        return []

    out = ["enum combos {"]
    for combo in layout.combos:
        out.append(f"    {combo_enum_name(combo.id)},")
    out.append("};")
    out.append("")

    for combo in layout.combos:
        keys = ", ".join(to_c_keycode(key) for key in combo.keys)
        out.append(f"const uint16_t PROGMEM {combo_keys_name(combo)}[] = {{{keys}, COMBO_END}};")
    out.append("")

    out.append("combo_t key_combos[] = {")
    for combo in layout.combos:
        comment = f" // {combo.name}" if combo.name else ""
        out.append(
            f"    [{combo_enum_name(combo.id)}] = COMBO({combo_keys_name(combo)}, {to_c_keycode(combo.output)}),{comment}"
        )
    out.append("};")
    out.append("")
    return out
