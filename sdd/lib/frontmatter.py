"""YAML frontmatter split/join for markdown documents."""

import re
from datetime import date, datetime

import yaml

FRONTMATTER_RE = re.compile(r'\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)', re.DOTALL)


def _normalize(value):
    # PyYAML turns 2025-01-01 into a date; specs compare them as strings
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, list):
        return [_normalize(v) for v in value]
    if isinstance(value, dict):
        return {k: _normalize(v) for k, v in value.items()}
    return value


def split_frontmatter(text: str) -> tuple[dict, str]:
    """
    Split a markdown document into (metadata, body).

    Documents without frontmatter return ({}, text).

    Raises:
        yaml.YAMLError: if the frontmatter block is not valid YAML
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    data = yaml.safe_load(match.group(1)) or {}
    if not isinstance(data, dict):
        raise yaml.YAMLError("frontmatter must be a mapping")
    return _normalize(data), text[match.end():]


def has_frontmatter(text: str) -> bool:
    return FRONTMATTER_RE.match(text) is not None


def dump_frontmatter(metadata: dict, body: str) -> str:
    """Join metadata and body back into a document."""
    block = yaml.safe_dump(metadata, sort_keys=False, allow_unicode=True, default_flow_style=False)
    if not body.startswith("\n"):
        body = "\n" + body
    return f"---\n{block}---{body}"


def update_frontmatter(text: str, **fields) -> str:
    """Set frontmatter fields in place, keeping the body untouched.

    Fields with a None value are removed.
    """
    metadata, body = split_frontmatter(text)
    for key, value in fields.items():
        if value is None:
            metadata.pop(key, None)
        else:
            metadata[key] = value
    return dump_frontmatter(metadata, body)
