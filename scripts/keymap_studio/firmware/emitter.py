"""Writes the generated firmware sources for one layout."""

import logging
from pathlib import Path

from ..document.storage import atomic_write_text
from ..mapper import CoordinateMapper
from ..models import Layout
from .keymap import generate_keymap_c
from .manifest import generate_config_h, generate_rules_mk

logger = logging.getLogger(__name__)


class FirmwareEmitter:
    """Produce keymap.c, config.h and rules.mk for a layout.

    The layout must have been built against the same mapper: every key's
    matrix position and LED index come from it.

    Args:
        layout: Layout to emit
        mapper: Coordinate mapper for the layout's keyboard
    """

    def __init__(self, layout: Layout, mapper: CoordinateMapper):
        self.layout = layout
        self.mapper = mapper

    def render(self) -> dict[str, str]:
        """Render all output files in memory, keyed by file name."""
        return {
            "keymap.c": generate_keymap_c(self.layout, self.mapper),
            "config.h": generate_config_h(self.layout, self.mapper),
            "rules.mk": generate_rules_mk(self.layout, self.mapper),
        }

    def emit(self, output_dir: Path) -> list[Path]:
        """Render and atomically write every file into output_dir.

        Nothing is written unless all files render successfully.

        Returns:
            Paths of the written files
        """
        files = self.render()
        output_dir = Path(output_dir)
        written = []
        for name, content in files.items():
            path = output_dir / name
            atomic_write_text(path, content)
            logger.debug("Wrote %s (%d bytes)", path, len(content))
            written.append(path)
        logger.info("Generated %d firmware files in %s", len(written), output_dir)
        return written
