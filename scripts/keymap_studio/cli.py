"""Command-line interface for layout validation, inspection and firmware generation."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

import yaml

from .builder import new_layout
from .config import DEFAULT_CONFIG_FILE, StudioConfig, load_studio_config
from .document import load_layout, save_layout
from .errors import StudioError
from .firmware import FirmwareEmitter, generate_tap_dance_docs
from .geometry import load_geometry
from .keycodes import KeycodeRegistry
from .mapper import CoordinateMapper
from .models import Layout

INSPECT_SECTIONS = ("metadata", "layers", "categories", "tap-dances", "combos", "settings")


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="keymap_studio",
        description="Keyboard layout documents: validation, inspection and QMK firmware generation",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_FILE,
        help=f"Path to studio config YAML (default: {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- validate subcommand ---
    validate_parser = subparsers.add_parser(
        "validate",
        help="Parse a layout document against its keyboard and report problems",
    )
    validate_parser.add_argument("layout", type=Path, help="Layout markdown file")

    # --- inspect subcommand ---
    inspect_parser = subparsers.add_parser(
        "inspect",
        help="Show one section of a layout document",
    )
    inspect_parser.add_argument("layout", type=Path, help="Layout markdown file")
    inspect_parser.add_argument(
        "--section",
        choices=INSPECT_SECTIONS,
        default="metadata",
        help="Section to show (default: metadata)",
    )
    inspect_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the section as JSON",
    )

    # --- generate subcommand ---
    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate keymap.c, config.h and rules.mk",
    )
    generate_parser.add_argument("layout", type=Path, help="Layout markdown file")
    generate_parser.add_argument(
        "-o", "--output",
        type=Path,
        help="Output directory (default: <output_dir>/<keymap_name> from config)",
    )

    # --- tap-dance-docs subcommand ---
    docs_parser = subparsers.add_parser(
        "tap-dance-docs",
        help="Print markdown documentation for the layout's tap dances",
    )
    docs_parser.add_argument("layout", type=Path, help="Layout markdown file")

    # --- new subcommand ---
    new_parser = subparsers.add_parser(
        "new",
        help="Create a new layout document with a blank base layer",
    )
    new_parser.add_argument("output", type=Path, help="Layout markdown file to create")
    new_parser.add_argument("--name", required=True, help="Layout name")
    new_parser.add_argument("--keyboard", required=True, help="Keyboard path, e.g. splitkb/aurora/corne")
    new_parser.add_argument("--variant", required=True, help="Layout variant, e.g. LAYOUT_split_3x6_3")
    new_parser.add_argument("--author", default="", help="Author name")
    new_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing file",
    )

    return parser


def _registry(config: StudioConfig) -> KeycodeRegistry | None:
    """Registry used for unknown-keycode warnings; only when a keycodes file is configured."""
    if config.keycodes_file is None:
        return None
    return KeycodeRegistry.from_yaml(config.keycodes_file)


def _load(args: argparse.Namespace, config: StudioConfig) -> tuple[Layout, CoordinateMapper]:
    return load_layout(args.layout, config.resolve_keyboards_dir(), _registry(config))


def _section_data(layout: Layout, section: str) -> Any:
    if section == "metadata":
        return layout.metadata.model_dump(mode="json")
    if section == "layers":
        return [
            {
                "number": layer.number,
                "name": layer.name,
                "color": layer.default_color.to_hex() if layer.default_color else None,
                "category": layer.category_id,
                "layer_colors": layer.layer_colors_enabled,
                "keys": len(layer.keys),
            }
            for layer in layout.layers
        ]
    if section == "categories":
        return [{"id": c.id, "name": c.name, "color": c.color.to_hex()} for c in layout.categories]
    if section == "tap-dances":
        return [td.model_dump(mode="json", exclude_none=True) for td in layout.tap_dances]
    if section == "combos":
        return [combo.model_dump(mode="json") for combo in layout.combos]
    return layout.settings.model_dump(mode="json")


def cmd_validate(args: argparse.Namespace, config: StudioConfig) -> int:
    """Execute validate subcommand."""
    layout, mapper = _load(args, config)

    for warning in layout.warnings:
        print(f"Warning: {warning}", file=sys.stderr)

    print(
        f"{args.layout}: OK ({len(layout.layers)} layers, {mapper.key_count} keys, "
        f"{len(layout.warnings)} warnings)"
    )
    return 0


def cmd_inspect(args: argparse.Namespace, config: StudioConfig) -> int:
    """Execute inspect subcommand."""
    layout, _ = _load(args, config)
    data = _section_data(layout, args.section)

    if args.json:
        print(json.dumps(data, indent=2, ensure_ascii=False))
    else:
        print(yaml.dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False), end="")
    return 0


def cmd_generate(args: argparse.Namespace, config: StudioConfig) -> int:
    """Execute generate subcommand."""
    layout, mapper = _load(args, config)

    output_dir = args.output
    if output_dir is None:
        output_dir = config.output_dir / (layout.metadata.keymap_name or config.keymap_name)

    written = FirmwareEmitter(layout, mapper).emit(output_dir)
    for path in written:
        print(f"Wrote {path}")
    return 0


def cmd_tap_dance_docs(args: argparse.Namespace, config: StudioConfig) -> int:
    """Execute tap-dance-docs subcommand."""
    layout, _ = _load(args, config)
    registry = _registry(config) or KeycodeRegistry.default()

    docs = generate_tap_dance_docs(layout, registry)
    if not docs:
        print("No tap dances defined.")
        return 0
    print(docs, end="")
    return 0


def cmd_new(args: argparse.Namespace, config: StudioConfig) -> int:
    """Execute new subcommand."""
    if args.output.exists() and not args.force:
        print(f"Error: {args.output} already exists (use --force to overwrite)", file=sys.stderr)
        return 1

    geometry = load_geometry(config.resolve_keyboards_dir(), args.keyboard, args.variant)
    mapper = CoordinateMapper.build(geometry)
    layout = new_layout(args.name, mapper, author=args.author)
    save_layout(args.output, layout, mapper)

    print(f"Created {args.output} ({mapper.key_count} keys)")
    return 0


COMMANDS = {
    "validate": cmd_validate,
    "inspect": cmd_inspect,
    "generate": cmd_generate,
    "tap-dance-docs": cmd_tap_dance_docs,
    "new": cmd_new,
}


def run(argv: list[str] | None = None) -> int:
    """Parse arguments, run the chosen command and return its exit code."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_studio_config(args.config)
        return COMMANDS[args.command](args, config)
    except (StudioError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def main() -> None:
    """Main CLI entry point."""
    sys.exit(run())


if __name__ == "__main__":
    main()
