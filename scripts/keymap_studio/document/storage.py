"""File I/O for layout documents: atomic save and geometry-aware load."""

import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path

from ..errors import MissingRequiredField
from ..geometry import load_geometry
from ..keycodes import KeycodeRegistry
from ..mapper import CoordinateMapper
from ..models import Layout, as_utc, utc_now
from .metadata import read_metadata
from .parser import parse_layout
from .serializer import serialize_layout

logger = logging.getLogger(__name__)


def atomic_write_text(path: Path, content: str) -> None:
    """Write text so that readers see either the old file or the new one.

    Content goes to a temporary file in the destination directory, is
    flushed to disk, then replaces the destination in one os.replace().
    On any failure the temporary file is removed and the existing
    destination is left untouched.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp_fd, tmp_path = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(tmp_fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)


def save_layout(path: Path, layout: Layout, mapper: CoordinateMapper, now: datetime | None = None) -> str:
    """Serialize and atomically write a layout; bumps its modified timestamp.

    Returns:
        The written document text
    """
    timestamp = as_utc(now or utc_now())
    text = serialize_layout(layout, mapper, now=timestamp)
    atomic_write_text(path, text)
    layout.metadata.modified = max(timestamp, as_utc(layout.metadata.created))
    logger.info("Saved layout '%s' to %s", layout.metadata.name, path)
    return text


def read_layout_text(path: Path) -> str:
    with open(path, encoding="utf-8") as f:
        return f.read()


def load_layout(
    path: Path,
    keyboards_dir: Path,
    registry: KeycodeRegistry | None = None,
) -> tuple[Layout, CoordinateMapper]:
    """Load a layout document together with the mapper for its keyboard.

    The front matter must name the keyboard and layout variant; the
    geometry is read from keyboards_dir.

    Raises:
        MissingRequiredField: If keyboard or layout_variant is not declared
        GeometryError: If the geometry cannot be loaded or mapped
        DocumentError: If the document is malformed
    """
    text = read_layout_text(path)
    metadata = read_metadata(text)
    if not metadata.keyboard:
        raise MissingRequiredField(0, "keyboard")
    if not metadata.layout_variant:
        raise MissingRequiredField(0, "layout_variant")

    geometry = load_geometry(keyboards_dir, metadata.keyboard, metadata.layout_variant)
    mapper = CoordinateMapper.build(geometry)
    layout = parse_layout(text, mapper, registry)
    logger.info("Loaded layout '%s' from %s", layout.metadata.name, path)
    return layout, mapper
