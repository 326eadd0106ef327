"""YAML front matter of layout documents."""

import logging
import re
from datetime import date, datetime, timezone
from typing import Any

import yaml

from ..errors import InvalidMetadata, MalformedYaml, MissingRequiredField
from ..models import SUPPORTED_VERSIONS, LayoutMetadata, as_utc, layout_name_problem, validate_tag

logger = logging.getLogger(__name__)

FRONT_MATTER_DELIMITER = "---"
REQUIRED_FIELDS = ("name", "description", "author", "created", "modified", "tags", "is_template", "version")
OPTIONAL_FIELDS = ("keyboard", "layout_variant", "keymap_name", "output_format")


def split_front_matter(lines: list[str]) -> tuple[list[str], int, int]:
    """Locate the front matter block.

    Args:
        lines: Document lines without line endings

    Returns:
        (yaml_lines, first_yaml_line_number, index_of_first_body_line)

    Raises:
        MalformedYaml: If the document does not open with a closed '---' block
    """
    start = 0
    while start < len(lines) and not lines[start].strip():
        start += 1

    if start >= len(lines) or lines[start].strip() != FRONT_MATTER_DELIMITER:
        raise MalformedYaml(start + 1 if start < len(lines) else 1, "document must start with '---' front matter")

    for end in range(start + 1, len(lines)):
        if lines[end].strip() == FRONT_MATTER_DELIMITER:
            return lines[start + 1:end], start + 2, end + 1

    raise MalformedYaml(start + 1, "front matter is not closed with '---'")


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with a Z suffix, whole seconds."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_timestamp(value: Any, field: str, line: int) -> datetime:
    """Accept YAML datetimes/dates or ISO-8601 strings; naive values are UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise InvalidMetadata(line, field, f"'{value}' is not an ISO-8601 timestamp") from e
    else:
        raise InvalidMetadata(line, field, f"expected a timestamp, got {type(value).__name__}")

    return as_utc(parsed)


def _field_lines(yaml_lines: list[str], first_line: int) -> dict[str, int]:
    """Document line number of each top-level key."""
    result: dict[str, int] = {}
    for i, text in enumerate(yaml_lines):
        match = re.match(r"^([A-Za-z_][A-Za-z0-9_-]*)\s*:", text)
        if match and match.group(1) not in result:
            result[match.group(1)] = first_line + i
    return result


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


def parse_metadata(yaml_lines: list[str], first_line: int) -> LayoutMetadata:
    """Parse and validate the front matter.

    Args:
        yaml_lines: Lines between the '---' delimiters
        first_line: Document line number of yaml_lines[0]

    Returns:
        Validated LayoutMetadata

    Raises:
        MalformedYaml: On YAML syntax errors or non-mapping content
        MissingRequiredField: If a required key is absent
        InvalidMetadata: If a value breaks a metadata rule
    """
    try:
        data = yaml.safe_load("\n".join(yaml_lines))
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        line = first_line + mark.line if mark is not None else first_line
        problem = getattr(e, "problem", None) or str(e)
        raise MalformedYaml(line, f"invalid YAML front matter: {problem}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise MalformedYaml(first_line, "front matter must be a mapping of fields")

    lines = _field_lines(yaml_lines, first_line)
    for field in REQUIRED_FIELDS:
        if field not in data:
            raise MissingRequiredField(first_line - 1, field)

    unknown = [key for key in data if key not in REQUIRED_FIELDS + OPTIONAL_FIELDS]
    if unknown:
        logger.debug("Ignoring unknown metadata fields: %s", ", ".join(map(str, unknown)))

    name = _as_text(data["name"])
    problem = layout_name_problem(name)
    if problem:
        raise InvalidMetadata(lines.get("name", first_line), "name", problem)

    created = parse_timestamp(data["created"], "created", lines.get("created", first_line))
    modified = parse_timestamp(data["modified"], "modified", lines.get("modified", first_line))
    if modified < created:
        raise InvalidMetadata(lines.get("modified", first_line), "modified", "must not be earlier than created")

    raw_tags = data["tags"]
    if raw_tags is None:
        raw_tags = []
    if not isinstance(raw_tags, list):
        raise InvalidMetadata(lines.get("tags", first_line), "tags", "must be a list")
    tags = []
    for tag in raw_tags:
        tag = _as_text(tag)
        if not validate_tag(tag):
            raise InvalidMetadata(
                lines.get("tags", first_line),
                "tags",
                f"'{tag}' must be lowercase ASCII letters, digits and hyphens only",
            )
        tags.append(tag)

    is_template = data["is_template"]
    if not isinstance(is_template, bool):
        raise InvalidMetadata(lines.get("is_template", first_line), "is_template", "must be true or false")

    version = _as_text(data["version"])
    if version not in SUPPORTED_VERSIONS:
        raise InvalidMetadata(
            lines.get("version", first_line),
            "version",
            f"unsupported version '{version}' (supported: {', '.join(SUPPORTED_VERSIONS)})",
        )

    optional = {
        field: _as_text(data[field]) or None
        for field in OPTIONAL_FIELDS
        if field in data
    }

    return LayoutMetadata(
        name=name,
        description=_as_text(data["description"]),
        author=_as_text(data["author"]),
        created=created,
        modified=modified,
        tags=tags,
        is_template=is_template,
        version=version,
        **optional,
    )


def read_metadata(text: str) -> LayoutMetadata:
    """Parse only the front matter of a document."""
    yaml_lines, first_line, _ = split_front_matter(text.splitlines())
    return parse_metadata(yaml_lines, first_line)


def dump_metadata(metadata: LayoutMetadata, modified: datetime | None = None) -> str:
    """Render the front matter block including both '---' delimiters."""
    data: dict[str, Any] = {
        "name": metadata.name,
        "description": metadata.description,
        "author": metadata.author,
        "created": format_timestamp(metadata.created),
        "modified": format_timestamp(modified or metadata.modified),
        "tags": list(metadata.tags),
        "is_template": metadata.is_template,
        "version": metadata.version,
    }
    for field in OPTIONAL_FIELDS:
        value = getattr(metadata, field)
        if value is not None:
            data[field] = value

    body = yaml.safe_dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False)
    return f"{FRONT_MATTER_DELIMITER}\n{body}{FRONT_MATTER_DELIMITER}\n"
