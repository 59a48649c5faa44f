"""
Change proposal documents (changes/<CHG-NNN>/proposal.md).
"""

import re
from dataclasses import dataclass, field
from typing import Optional

import yaml

from sdd.lib import validate
from sdd.lib.errors import ChangeError, ErrorCode
from sdd.lib.frontmatter import split_frontmatter, update_frontmatter
from sdd.lib.fsutil import today

CHANGE_ID_RE = re.compile(r'^CHG-(\d{3,})$')
CHANGE_TYPES = ["ADDED", "MODIFIED", "REMOVED"]
IMPACT_LEVELS = ["low", "medium", "high"]

SPEC_PATH_PLACEHOLDER = "specs/{{SPEC_PATH}}"

TITLE_RE = re.compile(r'^#\s+(?:Change Proposal:\s*)?(.+)$', re.MULTILINE)
BACKGROUND_RE = re.compile(r'^##\s*Background\s*(.*?)(?=\n##|\Z)', re.MULTILINE | re.DOTALL)
AFFECTED_RE = re.compile(r'###\s*Affected Specs\s*(.*?)(?=\n###|\n##|\Z)', re.DOTALL)
CHANGES_RE = re.compile(r'^##\s*Changes\s*(.*?)(?=\n## |\Z)', re.MULTILINE | re.DOTALL)
RISK_RE = re.compile(r'Impact:\s*(low|medium|high)', re.IGNORECASE)
COMPLEXITY_RE = re.compile(r'Complexity:\s*(low|medium|high)', re.IGNORECASE)


@dataclass
class Proposal:
    id: str
    status: str
    created: str
    title: str
    rationale: str = ""
    updated: Optional[str] = None
    target: Optional[str] = None
    affected_specs: list[str] = field(default_factory=list)
    change_types: list[str] = field(default_factory=list)
    summary: str = ""
    risk: str = "medium"
    complexity: str = "medium"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status,
            "created": self.created,
            "updated": self.updated,
            "title": self.title,
            "rationale": self.rationale,
            "affectedSpecs": self.affected_specs,
            "changeType": self.change_types,
            "risk": self.risk,
            "complexity": self.complexity,
        }


def generate_change_id(existing_ids: list[str]) -> str:
    """Next CHG-NNN after the highest existing id (CHG-001 when none)."""
    numbers = [int(m.group(1)) for m in map(CHANGE_ID_RE.match, existing_ids) if m]
    return f"CHG-{max(numbers, default=0) + 1:03d}"


def _strip_rule(text: str) -> str:
    return re.sub(r'\n-{3,}\s*$', '', text.strip()).strip()


def parse_proposal(content: str) -> Proposal:
    """
    Parse proposal.md.

    Raises:
        ChangeError: frontmatter is missing or invalid
    """
    try:
        metadata, body = split_frontmatter(content)
    except yaml.YAMLError as e:
        raise ChangeError(f"Invalid proposal frontmatter: {e}") from None

    metadata.setdefault("status", "draft")
    errors = validate.iter_errors(metadata, "proposal")
    if errors:
        raise ChangeError(f"Proposal metadata error: {'; '.join(errors)}")

    title = TITLE_RE.search(body)
    background = BACKGROUND_RE.search(body)
    affected = AFFECTED_RE.search(body)
    changes = CHANGES_RE.search(body)
    risk = RISK_RE.search(body)
    complexity = COMPLEXITY_RE.search(body)

    affected_specs = re.findall(r'`([^`]+)`', affected.group(1)) if affected else []
    change_types = [
        t for t in CHANGE_TYPES
        if re.search(rf'^- \[[xX]\] .*\({t}\)', body, re.MULTILINE)
    ]

    return Proposal(
        id=metadata["id"],
        status=metadata["status"],
        created=metadata["created"],
        updated=metadata.get("updated"),
        target=metadata.get("target"),
        title=title.group(1).strip() if title else "",
        rationale=_strip_rule(background.group(1)) if background else "",
        affected_specs=affected_specs,
        change_types=change_types,
        summary=_strip_rule(changes.group(1)) if changes else "",
        risk=risk.group(1).lower() if risk else "medium",
        complexity=complexity.group(1).lower() if complexity else "medium",
    )


def generate_proposal(
    change_id: str,
    title: str,
    rationale: str = "",
    affected_specs: Optional[list[str]] = None,
    change_types: Optional[list[str]] = None,
) -> str:
    """Render a new draft proposal.md."""
    if not CHANGE_ID_RE.match(change_id):
        raise ChangeError(f"Invalid change id '{change_id}' (expected CHG-NNN)", ErrorCode.INVALID_ARGUMENT)

    specs = affected_specs or []
    types = change_types or ["MODIFIED"]
    specs_block = "\n".join(f"- `{s}`" for s in specs) if specs else f"- `{SPEC_PATH_PLACEHOLDER}`"

    def box(change_type: str) -> str:
        return "x" if change_type in types else " "

    return f"""---
id: {change_id}
status: draft
created: {today()}
---

# Change Proposal: {title}

> {rationale or 'Purpose and background of this change'}

---

## Background

{rationale or 'Why is this change needed?'}

---

## Impact

### Affected Specs

{specs_block}

### Change Type

- [{box('ADDED')}] Added (ADDED)
- [{box('MODIFIED')}] Modified (MODIFIED)
- [{box('REMOVED')}] Removed (REMOVED)

---

## Changes

### ADDED

(content to be added)

### MODIFIED

#### Before

```markdown
existing content
```

#### After

```markdown
changed content
```

### REMOVED

(content to be removed)

---

## Risk Assessment

- Impact: medium
- Complexity: medium
"""


def update_proposal_status(content: str, status: str) -> str:
    """Set status in the frontmatter and stamp updated with today."""
    return update_frontmatter(content, status=status, updated=today())
