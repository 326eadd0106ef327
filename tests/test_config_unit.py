#!/usr/bin/env python3
"""Unit tests for studio configuration loading (keymap_studio/config.py)."""

from __future__ import annotations

from pathlib import Path

import pytest

from keymap_studio.config import StudioConfig, load_studio_config
from keymap_studio.errors import StudioError


class TestLoadStudioConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_studio_config(tmp_path / "missing.yaml")

        assert config.keyboards_dir is None
        assert config.output_dir == Path("build")
        assert config.keymap_name == "default"

    def test_relative_paths_resolve_against_config_dir(self, tmp_path):
        path = tmp_path / "keymap_studio.yaml"
        path.write_text("qmk_firmware_path: qmk\noutput_dir: out\nkeymap_name: mine\n")

        config = load_studio_config(path)

        assert config.qmk_firmware_path == tmp_path / "qmk"
        assert config.output_dir == tmp_path / "out"
        assert config.keymap_name == "mine"

    def test_absolute_paths_are_kept(self, tmp_path):
        path = tmp_path / "keymap_studio.yaml"
        path.write_text(f"keyboards_dir: {tmp_path / 'elsewhere'}\n")
        assert load_studio_config(path).keyboards_dir == tmp_path / "elsewhere"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "keymap_studio.yaml"
        path.write_text("")
        assert load_studio_config(path) == StudioConfig()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "keymap_studio.yaml"
        path.write_text("keyboards_dir: [unclosed\n")
        with pytest.raises(StudioError):
            load_studio_config(path)

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "keymap_studio.yaml"
        path.write_text("keymap_name: ''\n")
        with pytest.raises(StudioError):
            load_studio_config(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "keymap_studio.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(StudioError):
            load_studio_config(path)


class TestResolveKeyboardsDir:
    def test_explicit_dir_wins(self, tmp_path):
        config = StudioConfig(keyboards_dir=tmp_path / "kb", qmk_firmware_path=tmp_path / "qmk")
        assert config.resolve_keyboards_dir() == tmp_path / "kb"

    def test_falls_back_to_firmware_tree(self, tmp_path):
        config = StudioConfig(qmk_firmware_path=tmp_path / "qmk")
        assert config.resolve_keyboards_dir() == tmp_path / "qmk" / "keyboards"

    def test_nothing_configured(self):
        with pytest.raises(StudioError):
            StudioConfig().resolve_keyboards_dir()
