"""Configuration models and loaders for the studio tooling."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from .errors import StudioError

DEFAULT_CONFIG_FILE = Path("keymap_studio.yaml")


class StudioConfig(BaseModel):
    """Where keyboards live and where generated firmware goes."""

    qmk_firmware_path: Path | None = Field(None, description="Root of a qmk_firmware checkout")
    keyboards_dir: Path | None = Field(None, description="Keyboard definitions (defaults to <qmk>/keyboards)")
    output_dir: Path = Field(Path("build"), description="Directory for generated firmware sources")
    keycodes_file: Path | None = Field(None, description="YAML keycode list extending the built-in set")
    keymap_name: str = Field("default", min_length=1)

    def resolve_keyboards_dir(self) -> Path:
        """Return keyboards_dir, falling back to <qmk_firmware_path>/keyboards."""
        if self.keyboards_dir is not None:
            return self.keyboards_dir
        if self.qmk_firmware_path is not None:
            return self.qmk_firmware_path / "keyboards"
        raise StudioError("No keyboards directory configured: set keyboards_dir or qmk_firmware_path")


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents."""
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_studio_config(path: Path) -> StudioConfig:
    """Load studio configuration from a YAML file.

    Relative paths in the file are resolved against the file's directory.
    A missing file yields the defaults.

    Raises:
        StudioError: If the file is not valid YAML or has invalid values
    """
    path = Path(path)
    if not path.exists():
        return StudioConfig()

    try:
        data = load_yaml(path)
    except yaml.YAMLError as e:
        raise StudioError(f"Invalid config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise StudioError(f"Invalid config file {path}: expected a mapping")

    base = path.parent
    for key in ("qmk_firmware_path", "keyboards_dir", "output_dir", "keycodes_file"):
        value = data.get(key)
        if isinstance(value, str):
            candidate = Path(value).expanduser()
            data[key] = candidate if candidate.is_absolute() else base / candidate

    try:
        return StudioConfig(**data)
    except ValidationError as e:
        raise StudioError(f"Invalid config file {path}: {e}") from e
