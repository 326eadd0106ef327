#!/usr/bin/env python3
"""Unit tests for layout construction (keymap_studio/builder.py)."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from keymap_studio.builder import blank_layer, make_key, new_layout
from keymap_studio.document import parse_layout, serialize_layout
from keymap_studio.errors import LayoutError
from keymap_studio.models import NO_KEY, LayoutMetadata

from conftest import FIXED_NOW


class TestMakeKey:
    def test_resolves_all_addresses(self, mapper):
        key = make_key(mapper, 0, 9, "KC_P")
        assert key.matrix_position == (2, 2)
        assert key.led_index == 6
        assert key.visual_index == 5

    def test_position_without_key(self, mapper):
        assert make_key(mapper, 0, 5, "KC_A") is None


class TestNewLayout:
    def test_blank_layer_covers_keyboard(self, mapper):
        layer = blank_layer(mapper, 0, "Base")
        assert len(layer.keys) == mapper.key_count
        assert {k.keycode for k in layer.keys} == {NO_KEY}
        assert sorted(k.led_index for k in layer.keys) == list(range(mapper.key_count))

    def test_new_layout_defaults(self, mapper):
        layout = new_layout("Fresh", mapper, author="me", now=FIXED_NOW)

        assert layout.metadata.created == layout.metadata.modified == FIXED_NOW
        assert layout.metadata.keyboard == "testboard/mini"
        assert layout.metadata.layout_variant == "LAYOUT_mini"
        assert [layer.name for layer in layout.layers] == ["Base"]
        assert layout.settings.tapping_term == 200

    def test_new_layout_serializes(self, mapper):
        layout = new_layout("Fresh", mapper, now=FIXED_NOW)
        reparsed = parse_layout(serialize_layout(layout, mapper, now=FIXED_NOW), mapper)
        assert reparsed.layers == layout.layers

    def test_requires_a_name(self, mapper):
        with pytest.raises(LayoutError):
            new_layout("  ", mapper)

    @pytest.mark.parametrize("name", ["x" * 101, "€" * 34])
    def test_name_limited_to_100_utf8_bytes(self, mapper, name):
        with pytest.raises(LayoutError, match="100 bytes"):
            new_layout(name, mapper)

    def test_name_at_limit(self, mapper):
        layout = new_layout("€" * 33, mapper, now=FIXED_NOW)
        text = serialize_layout(layout, mapper, now=FIXED_NOW)
        assert parse_layout(text, mapper).metadata.name == "€" * 33

    def test_naive_now_is_utc(self, mapper):
        layout = new_layout("Naive", mapper, now=datetime(2024, 1, 1, 12))
        assert layout.metadata.created.tzinfo == timezone.utc
        assert layout.metadata.created == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)


class TestLayoutMetadata:
    def test_naive_timestamps_become_utc(self):
        metadata = LayoutMetadata(name="Naive", created=datetime(2024, 3, 1), modified=datetime(2024, 3, 2))
        assert metadata.created.tzinfo == timezone.utc
        assert metadata.modified > metadata.created

    def test_rejects_long_name(self):
        with pytest.raises(ValueError):
            LayoutMetadata(name="x" * 101)
