#!/usr/bin/env python3
"""Unit tests for front matter parsing (keymap_studio/document/metadata.py)."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from keymap_studio.document.metadata import dump_metadata, read_metadata
from keymap_studio.errors import InvalidMetadata, MalformedYaml, MissingRequiredField
from keymap_studio.models import LayoutMetadata, validate_tag

BASE_FIELDS = {
    "name": "My Layout",
    "description": "desc",
    "author": "me",
    "created": "2024-01-15T10:30:00Z",
    "modified": "2024-01-20T15:45:00Z",
    "tags": "[corne, split]",
    "is_template": "false",
    "version": "'1.0'",
}


def _document(**overrides) -> str:
    fields = {**BASE_FIELDS, **overrides}
    body = "\n".join(f"{key}: {value}" for key, value in fields.items() if value is not None)
    return f"---\n{body}\n---\n\n# Title\n"


class TestReadMetadata:
    def test_valid_front_matter(self):
        metadata = read_metadata(_document())

        assert metadata.name == "My Layout"
        assert metadata.tags == ["corne", "split"]
        assert metadata.created == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        assert metadata.is_template is False
        assert metadata.version == "1.0"
        assert metadata.keyboard is None

    def test_optional_fields(self):
        metadata = read_metadata(_document(keyboard="crkbd/rev1", layout_variant="LAYOUT_split_3x6_3"))
        assert metadata.keyboard == "crkbd/rev1"
        assert metadata.layout_variant == "LAYOUT_split_3x6_3"

    def test_quoted_timestamps(self):
        metadata = read_metadata(_document(created="'2024-01-15T10:30:00Z'"))
        assert metadata.created.tzinfo is not None

    @pytest.mark.parametrize("field", ["name", "created", "tags", "version"])
    def test_missing_required_field(self, field):
        with pytest.raises(MissingRequiredField) as exc:
            read_metadata(_document(**{field: None}))
        assert exc.value.field == field

    def test_document_without_front_matter(self):
        with pytest.raises(MalformedYaml):
            read_metadata("# Title\n")

    def test_unclosed_front_matter(self):
        with pytest.raises(MalformedYaml):
            read_metadata("---\nname: x\n")

    def test_yaml_syntax_error_reports_line(self):
        with pytest.raises(MalformedYaml) as exc:
            read_metadata(_document(tags="[unclosed"))
        assert exc.value.line >= 2

    def test_name_limit_counts_utf8_bytes(self):
        # 34 three-byte characters = 102 bytes, only 34 characters
        with pytest.raises(InvalidMetadata) as exc:
            read_metadata(_document(name="€" * 34))
        assert exc.value.field == "name"
        assert exc.value.line == 2

        assert read_metadata(_document(name="€" * 33)).name == "€" * 33

    def test_modified_before_created(self):
        with pytest.raises(InvalidMetadata) as exc:
            read_metadata(_document(modified="2024-01-01T00:00:00Z"))
        assert exc.value.field == "modified"

    @pytest.mark.parametrize("tags", ["[Corne]", "[split_kb]", "[café]", "[with space]"])
    def test_invalid_tags(self, tags):
        with pytest.raises(InvalidMetadata):
            read_metadata(_document(tags=tags))

    def test_unsupported_version(self):
        with pytest.raises(InvalidMetadata):
            read_metadata(_document(version="'2.0'"))

    def test_non_boolean_template_flag(self):
        with pytest.raises(InvalidMetadata):
            read_metadata(_document(is_template="maybe"))

    def test_unknown_fields_are_ignored(self):
        assert read_metadata(_document(favourite_color="blue")).name == "My Layout"


class TestTags:
    @pytest.mark.parametrize("tag", ["corne", "42-key", "a-b-c", "3x6"])
    def test_valid(self, tag):
        assert validate_tag(tag)

    @pytest.mark.parametrize("tag", ["Corne", "split_kb", "", "café", "a b", "ñ"])
    def test_invalid(self, tag):
        assert not validate_tag(tag)


class TestDumpMetadata:
    def test_dump_then_read(self):
        metadata = LayoutMetadata(
            name="Ünïcode Layout",
            description="line: with colon",
            author="me",
            created=datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc),
            modified=datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc),
            tags=["split"],
            keyboard="crkbd",
        )
        text = dump_metadata(metadata, modified=datetime(2024, 3, 1, tzinfo=timezone.utc))

        assert text.startswith("---\n")
        assert text.endswith("---\n")
        assert "modified: '2024-03-01T00:00:00Z'" in text or "modified: 2024-03-01T00:00:00Z" in text

        loaded = read_metadata(text)
        assert loaded.name == metadata.name
        assert loaded.description == metadata.description
        assert loaded.modified == datetime(2024, 3, 1, tzinfo=timezone.utc)
        assert loaded.keyboard == "crkbd"
        assert loaded.layout_variant is None

    def test_field_order_is_stable(self):
        text = dump_metadata(LayoutMetadata(name="x"))
        keys = [line.split(":")[0] for line in text.splitlines() if line and not line.startswith(("-", " "))]
        assert keys[:8] == ["name", "description", "author", "created", "modified", "tags", "is_template", "version"]
