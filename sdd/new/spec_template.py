"""Feature spec generation and in-place status updates."""

import re
from typing import Optional

from sdd.lib.fsutil import today

FEATURE_STATUSES = ["draft", "specified", "planned", "tasked", "implementing", "completed"]

FRONTMATTER_BLOCK_RE = re.compile(r'\A---\n(.*?)\n---', re.DOTALL)


def generate_feature_id(name: str) -> str:
    """Lower-kebab feature id, at most 50 characters."""
    feature_id = re.sub(r'[^a-z0-9]+', '-', name.lower()).strip('-')
    return feature_id[:50].rstrip('-')


def generate_spec(
    feature_id: str,
    title: str,
    description: str,
    domain: Optional[str] = None,
    requirements: Optional[list[str]] = None,
    scenarios: Optional[list[dict]] = None,
    depends: Optional[list[str]] = None,
    status: str = "draft",
    constitution_version: Optional[str] = None,
) -> str:
    """
    Render a new spec.md.

    scenarios are dicts with name, given, when, then keys. Without
    requirements or scenarios a placeholder of each is written, and the
    placeholders already pass validation.
    """
    depends_block = "".join(f"\n  - {d}" for d in depends) if depends else " null"
    domain_line = f"\ndomain: {domain}" if domain else ""
    constitution_line = f"\nconstitution_version: {constitution_version}" if constitution_version else ""

    content = f"""---
id: {feature_id}
title: "{title}"
status: {status}
created: {today()}{domain_line}
depends:{depends_block}{constitution_line}
---

# {title}

> {description}

---

## Overview

{description}

---

## Requirements

"""

    if requirements:
        for index, req in enumerate(requirements, 1):
            req_title = req.split(":")[0] or req
            content += f"### REQ-{index:02d}: {req_title}\n\n{req}\n\n"
    else:
        content += """### REQ-01: [Requirement title]

[Requirement details]
- The system SHALL support [feature]

"""

    content += "---\n\n## Scenarios\n\n"

    if scenarios:
        for index, scenario in enumerate(scenarios, 1):
            content += (
                f"### Scenario {index}: {scenario['name']}\n\n"
                f"- **GIVEN** {scenario['given']}\n"
                f"- **WHEN** {scenario['when']}\n"
                f"- **THEN** {scenario['then']}\n\n"
            )
    else:
        content += """### Scenario 1: [Scenario name]

- **GIVEN** [precondition]
- **WHEN** [action or trigger]
- **THEN** [expected outcome]

"""

    content += """---

## Non-functional Requirements

### Performance

- Response time under [N]ms (SHOULD)

### Security

- [Security requirement] (SHALL)

---

## Constraints

- [Technical constraint]
- [Business constraint]

---

## Glossary

| Term | Definition |
|------|------------|
| [Term] | [Definition] |
"""
    return content


def update_spec_status(content: str, status: str) -> str:
    """
    Replace status: in the frontmatter and stamp updated: today.

    Only the frontmatter block is touched, so the rest of the document
    keeps its formatting. Content without frontmatter is returned as is.
    """
    match = FRONTMATTER_BLOCK_RE.match(content)
    if not match:
        return content

    block = match.group(1)
    block, found = re.subn(r'^status:.*$', f"status: {status}", block, count=1, flags=re.MULTILINE)
    if not found:
        block += f"\nstatus: {status}"
    if re.search(r'^updated:', block, re.MULTILINE):
        block = re.sub(r'^updated:.*$', f"updated: {today()}", block, count=1, flags=re.MULTILINE)
    else:
        block, found = re.subn(r'^(created:.*)$', rf"\1\nupdated: {today()}", block, count=1, flags=re.MULTILINE)
        if not found:
            block += f"\nupdated: {today()}"

    return f"---\n{block}\n---" + content[match.end():]
