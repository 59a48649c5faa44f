"""
Delta documents (changes/<CHG-NNN>/delta.md).

A delta lists what a change adds, modifies (per target, with Before and
After blocks) and removes.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

import yaml

from sdd.lib import validate
from sdd.lib.errors import ChangeError
from sdd.lib.frontmatter import split_frontmatter
from sdd.lib.fsutil import today

ADDED_PLACEHOLDER = "(content to be added)"
REMOVED_PLACEHOLDER = "(spec references to remove)"
MODIFIED_PLACEHOLDER_TARGET = "{{SPEC_PATH}}"

TITLE_RE = re.compile(r'^#\s+(?:Delta:\s*)?(.+)$', re.MULTILINE)
ADDED_RE = re.compile(r'^##\s*ADDED\s*(.*?)(?=\n##\s|\Z)', re.MULTILINE | re.DOTALL | re.IGNORECASE)
MODIFIED_RE = re.compile(r'^##\s*MODIFIED\s*(.*?)(?=\n##\s+(?:REMOVED|ADDED)|\Z)', re.MULTILINE | re.DOTALL | re.IGNORECASE)
REMOVED_RE = re.compile(r'^##\s*REMOVED\s*(.*?)(?=\n##\s|\Z)', re.MULTILINE | re.DOTALL | re.IGNORECASE)
TARGET_RE = re.compile(r'^###\s+(.+)$', re.MULTILINE)
BEFORE_RE = re.compile(r'####?\s*Before\s*\n+```(?:markdown)?\n(.*?)\n```', re.DOTALL | re.IGNORECASE)
AFTER_RE = re.compile(r'####?\s*After\s*\n+```(?:markdown)?\n(.*?)\n```', re.DOTALL | re.IGNORECASE)


@dataclass
class ModifiedItem:
    target: str
    content: str
    before: Optional[str] = None
    after: Optional[str] = None


@dataclass
class Delta:
    proposal: str
    created: str
    title: str
    added: list[str] = field(default_factory=list)
    modified: list[ModifiedItem] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)


@dataclass
class DeltaValidation:
    valid: bool = True
    has_added: bool = False
    has_modified: bool = False
    has_removed: bool = False
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _section(pattern: re.Pattern, body: str) -> str:
    match = pattern.search(body)
    return match.group(1).strip() if match else ""


def _modified_items(section: str) -> list[ModifiedItem]:
    headers = list(TARGET_RE.finditer(section))
    if not headers:
        chunks = [("", section)] if section else []
    else:
        chunks = [
            (h.group(1).strip(), section[h.end():headers[i + 1].start() if i + 1 < len(headers) else len(section)])
            for i, h in enumerate(headers)
        ]

    items = []
    for target, chunk in chunks:
        chunk = chunk.strip()
        if not chunk or MODIFIED_PLACEHOLDER_TARGET in target:
            continue
        before = BEFORE_RE.search(chunk)
        after = AFTER_RE.search(chunk)
        items.append(ModifiedItem(
            target=target,
            content=chunk,
            before=before.group(1).strip() if before else None,
            after=after.group(1).strip() if after else None,
        ))
    return items


def parse_delta(content: str) -> Delta:
    """
    Parse delta.md. Placeholder sections come back empty.

    Raises:
        ChangeError: frontmatter is missing or invalid
    """
    try:
        metadata, body = split_frontmatter(content)
    except yaml.YAMLError as e:
        raise ChangeError(f"Invalid delta frontmatter: {e}") from None

    errors = validate.iter_errors(metadata, "delta")
    if errors:
        raise ChangeError(f"Delta metadata error: {'; '.join(errors)}")

    title = TITLE_RE.search(body)
    added = _section(ADDED_RE, body)
    removed = _section(REMOVED_RE, body)

    return Delta(
        proposal=metadata["proposal"],
        created=metadata["created"],
        title=title.group(1).strip() if title else "",
        added=[added] if added and added != ADDED_PLACEHOLDER else [],
        modified=_modified_items(_section(MODIFIED_RE, body)),
        removed=[removed] if removed and removed != REMOVED_PLACEHOLDER else [],
    )


def generate_delta(
    proposal_id: str,
    title: str,
    added: Optional[list[str]] = None,
    modified: Optional[list[ModifiedItem]] = None,
    removed: Optional[list[str]] = None,
) -> str:
    content = f"""---
proposal: {proposal_id}
created: {today()}
---

# Delta: {title}

## ADDED

"""
    content += "\n\n".join(added) if added else ADDED_PLACEHOLDER
    content += "\n\n## MODIFIED\n\n"

    if modified:
        for item in modified:
            content += f"### {item.target}\n\n"
            content += f"#### Before\n\n```markdown\n{item.before or ''}\n```\n\n"
            content += f"#### After\n\n```markdown\n{item.after or ''}\n```\n\n"
    else:
        content += f"""### {MODIFIED_PLACEHOLDER_TARGET}

#### Before

```markdown
existing content
```

#### After

```markdown
changed content
```

"""

    content += "## REMOVED\n\n"
    content += "\n\n".join(removed) if removed else REMOVED_PLACEHOLDER
    return content + "\n"


def validate_delta(content: str) -> DeltaValidation:
    """At least one real ADDED, MODIFIED or REMOVED entry is required."""
    result = DeltaValidation()
    try:
        delta = parse_delta(content)
    except ChangeError as e:
        result.valid = False
        result.errors.append(e.message)
        return result

    result.has_added = bool(delta.added)
    result.has_modified = bool(delta.modified)
    result.has_removed = bool(delta.removed)

    if not (result.has_added or result.has_modified or result.has_removed):
        result.valid = False
        result.errors.append("Delta has no changes. At least one of ADDED, MODIFIED or REMOVED is required.")

    for item in delta.modified:
        if not item.before or not item.after:
            label = item.target or "MODIFIED"
            result.warnings.append(f"{label}: missing Before/After block")

    return result
