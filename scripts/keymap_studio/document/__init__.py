"""Layout document parsing, serialization and storage."""

from .cells import ParsedCell, format_cell, parse_cell
from .metadata import dump_metadata, read_metadata
from .parser import parse_layout
from .serializer import serialize_layout
from .storage import atomic_write_text, load_layout, save_layout

__all__ = [
    # Cells
    "ParsedCell",
    "parse_cell",
    "format_cell",
    # Metadata
    "read_metadata",
    "dump_metadata",
    # Parser / serializer
    "parse_layout",
    "serialize_layout",
    # Storage
    "atomic_write_text",
    "load_layout",
    "save_layout",
]
