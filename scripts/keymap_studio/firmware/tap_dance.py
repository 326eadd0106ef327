"""Tap-dance code generation and markdown documentation."""

import re

from ..keycodes import KeycodeRegistry
from ..models import Layout, TapDance

TAP_DANCE_REF = re.compile(r"\bTD\(\s*([a-z][a-z0-9_]*)\s*\)")


def tap_dance_enum_name(name: str) -> str:
    return f"TD_{name.upper()}"


def to_c_keycode(keycode: str) -> str:
    """Rewrite TD(name) references to the generated enum constant."""
    return TAP_DANCE_REF.sub(lambda m: f"TD({tap_dance_enum_name(m.group(1))})", keycode)


def _uses_advanced(td: TapDance) -> bool:
    return td.hold is not None or td.double_tap is None


def _advanced_functions(td: TapDance) -> list[str]:
    """finished/reset callbacks for dances with a hold action or only a single tap."""
    actions = [td.single_tap, td.double_tap, td.hold]
    used = [to_c_keycode(a) for a in actions if a]

    out = [f"static void td_{td.name}_finished(tap_dance_state_t *state, void *user_data) {{"]
    branch = "if"
    if td.hold:
        out.append(f"    {branch} (state->count == 1 && state->pressed) {{")
        out.append(f"        register_code16({to_c_keycode(td.hold)});")
        branch = "} else if"
    if td.double_tap:
        out.append(f"    {branch} (state->count == 2) {{")
        out.append(f"        register_code16({to_c_keycode(td.double_tap)});")
        branch = "} else if"
    if branch == "if":
        out.append(f"    register_code16({to_c_keycode(td.single_tap)});")
    else:
        out.append("    } else {")
        out.append(f"        register_code16({to_c_keycode(td.single_tap)});")
        out.append("    }")
    out.append("}")
    out.append("")
    out.append(f"static void td_{td.name}_reset(tap_dance_state_t *state, void *user_data) {{")
    for code in dict.fromkeys(used):
        out.append(f"    unregister_code16({code});")
    out.append("}")
    out.append("")
    return out


def generate_tap_dance_c(layout: Layout) -> list[str]:
    """C source lines: enum of dances, callbacks, and tap_dance_actions[]."""
    if not layout.tap_dances:
        return []

    out = ["enum tap_dances {"]
    for td in layout.tap_dances:
        out.append(f"    {tap_dance_enum_name(td.name)},")
    out.append("};")
    out.append("")

    for td in layout.tap_dances:
        if _uses_advanced(td):
            out.extend(_advanced_functions(td))

    out.append("tap_dance_action_t tap_dance_actions[] = {")
    for td in layout.tap_dances:
        enum_name = tap_dance_enum_name(td.name)
        if _uses_advanced(td):
            action = f"ACTION_TAP_DANCE_FN_ADVANCED(NULL, td_{td.name}_finished, td_{td.name}_reset)"
        else:
            action = f"ACTION_TAP_DANCE_DOUBLE({to_c_keycode(td.single_tap)}, {to_c_keycode(td.double_tap)})"
        out.append(f"    [{enum_name}] = {action},")
    out.append("};")
    out.append("")
    return out


def _format_keycode(keycode: str, registry: KeycodeRegistry | None) -> str:
    name = registry.display_name(keycode) if registry is not None else None
    return f"{keycode} ({name})" if name and name != keycode else keycode


def generate_tap_dance_docs(layout: Layout, registry: KeycodeRegistry | None = None) -> str:
    """Markdown summary of tap dances and the keys that use them.

    Example output:

        ## Tap Dance Actions

        ### TD(0): quote_dance
        - **Single Tap:** KC_QUOT (')
        - **Double Tap:** KC_DQUO (")

        **Keys Using Tap Dance:**
        - Layer 0, Position (2,3): TD(quote_dance)

    Returns:
        Markdown text, or an empty string when the layout has no tap dances
    """
    if not layout.tap_dances:
        return ""

    out = ["## Tap Dance Actions", ""]
    for index, td in enumerate(layout.tap_dances):
        out.append(f"### TD({index}): {td.name}")
        out.append(f"- **Single Tap:** {_format_keycode(td.single_tap, registry)}")
        if td.double_tap:
            out.append(f"- **Double Tap:** {_format_keycode(td.double_tap, registry)}")
        if td.hold:
            out.append(f"- **Hold:** {_format_keycode(td.hold, registry)}")
        out.append("")

    references = [
        (layer.number, key.visual_position, key.keycode)
        for layer in layout.layers
        for key in layer.keys
        if TAP_DANCE_REF.search(key.keycode)
    ]
    if references:
        out.append("**Keys Using Tap Dance:**")
        for layer_number, (row, col), keycode in references:
            out.append(f"- Layer {layer_number}, Position ({row},{col}): {keycode}")
        out.append("")

    return "\n".join(out)
