"""CLI entry point for keymap_studio package.

Usage:
    python -m keymap_studio validate layouts/corne.md
    python -m keymap_studio generate layouts/corne.md -o build/corne
    python -m keymap_studio new layouts/new.md --name "My Layout" --keyboard crkbd --variant LAYOUT_split_3x6_3
"""

from .cli import main

if __name__ == "__main__":
    main()
