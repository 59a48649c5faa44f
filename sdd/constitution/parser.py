"""
Project constitution (.sdd/constitution.md).

    ---
    version: 1.0.0
    created: 2025-01-01
    ---

    # Constitution: my-project

    > One-line description

    ## Core Principles

    ### 1. Spec first
    - Every feature SHALL have a spec before implementation

    ## Forbidden
    - Code MUST NOT bypass review

    ## Technical Principles
    - Python SHOULD be used for tooling
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from sdd.lib import validate
from sdd.lib.errors import ConstitutionError, ErrorCode
from sdd.lib.frontmatter import split_frontmatter, update_frontmatter
from sdd.lib.fsutil import read_text, today
from sdd.spec.keywords import has_keyword

logger = logging.getLogger(__name__)

CONSTITUTION_FILENAME = "constitution.md"
BUMP_TYPES = ("major", "minor", "patch")

PROJECT_RE = re.compile(r'^#\s+Constitution:\s*(.+)$', re.MULTILINE)
DESCRIPTION_RE = re.compile(r'^#\s+Constitution:.+\n+>\s*(.+)$', re.MULTILINE)
PRINCIPLES_RE = re.compile(r'^##\s+(?:Core\s+)?Principles\s*\n(.*?)(?=\n##\s+[^#]|\n---|\Z)', re.MULTILINE | re.DOTALL | re.IGNORECASE)
PRINCIPLE_HEADER_RE = re.compile(r'^###\s+(\d+)\.\s*(.+)$', re.MULTILINE)
FORBIDDEN_RE = re.compile(r'^##\s+Forbidden\s*\n(.*?)(?=\n##\s|\n---|\Z)', re.MULTILINE | re.DOTALL | re.IGNORECASE)
TECHNICAL_RE = re.compile(r'^##\s+Technical\s+(?:Principles|Stack)\s*\n(.*?)(?=\n##\s|\n---|\Z)', re.MULTILINE | re.DOTALL | re.IGNORECASE)
BULLET_RE = re.compile(r'^\s*[-*]\s+(.+)$', re.MULTILINE)
NEGATIVE_RE = re.compile(r'\b(?:SHALL|MUST)\s+NOT\b')
SEMVER_RE = re.compile(r'^(\d+)\.(\d+)\.(\d+)$')


@dataclass
class Principle:
    id: str
    title: str
    rules: list[str] = field(default_factory=list)


@dataclass
class Constitution:
    project_name: str
    version: str
    created: str
    updated: Optional[str] = None
    description: str = ""
    principles: list[Principle] = field(default_factory=list)
    forbidden: list[str] = field(default_factory=list)
    technical: list[str] = field(default_factory=list)
    raw_content: str = ""

    @property
    def rule_count(self) -> int:
        return len(self.forbidden) + sum(len(p.rules) for p in self.principles)


@dataclass
class VersionMismatch:
    spec_version: str
    constitution_version: str
    severity: str
    message: str


@dataclass
class ComplianceResult:
    passed: bool
    rules_checked: int
    mismatch: Optional[VersionMismatch] = None


def parse_version(version: str) -> tuple[int, int, int]:
    match = SEMVER_RE.match(version.strip())
    if not match:
        raise ConstitutionError(f"Invalid version '{version}' (expected X.Y.Z)", ErrorCode.INVALID_ARGUMENT)
    return int(match.group(1)), int(match.group(2)), int(match.group(3))


def bump_version(version: str, bump: str) -> str:
    if bump not in BUMP_TYPES:
        raise ConstitutionError(f"Unknown bump type '{bump}' (use major, minor or patch)", ErrorCode.INVALID_ARGUMENT)
    major, minor, patch = parse_version(version)
    if bump == "major":
        return f"{major + 1}.0.0"
    if bump == "minor":
        return f"{major}.{minor + 1}.0"
    return f"{major}.{minor}.{patch + 1}"


def compare_versions(a: str, b: str) -> int:
    left, right = parse_version(a), parse_version(b)
    return (left > right) - (left < right)


def _bullets(section: str) -> list[str]:
    return [m.group(1).strip() for m in BULLET_RE.finditer(section)]


def _parse_principles(body: str) -> list[Principle]:
    match = PRINCIPLES_RE.search(body)
    if not match:
        return []
    section = match.group(1)
    headers = list(PRINCIPLE_HEADER_RE.finditer(section))
    principles = []
    for i, header in enumerate(headers):
        end = headers[i + 1].start() if i + 1 < len(headers) else len(section)
        principles.append(Principle(
            id=f"P{header.group(1)}",
            title=header.group(2).strip(),
            rules=_bullets(section[header.end():end]),
        ))
    return principles


def parse_constitution(content: str) -> Constitution:
    """
    Parse constitution.md.

    Raises:
        ConstitutionError: invalid frontmatter or missing '# Constitution:' heading
    """
    try:
        metadata, body = split_frontmatter(content)
    except yaml.YAMLError as e:
        raise ConstitutionError(f"Invalid constitution frontmatter: {e}") from None

    metadata.setdefault("version", "1.0.0")
    metadata.setdefault("created", today())
    errors = validate.iter_errors(metadata, "constitution")
    if errors:
        raise ConstitutionError(f"Constitution metadata error: {'; '.join(errors)}")

    project = PROJECT_RE.search(body)
    if not project:
        raise ConstitutionError("Project name not found (# Constitution: <name>)")
    description = DESCRIPTION_RE.search(body)
    forbidden = FORBIDDEN_RE.search(body)
    technical = TECHNICAL_RE.search(body)

    return Constitution(
        project_name=project.group(1).strip(),
        version=str(metadata["version"]),
        created=metadata["created"],
        updated=metadata.get("updated"),
        description=description.group(1).strip() if description else "",
        principles=_parse_principles(body),
        forbidden=[r for r in _bullets(forbidden.group(1)) if NEGATIVE_RE.search(r)] if forbidden else [],
        technical=_bullets(technical.group(1)) if technical else [],
        raw_content=content,
    )


def load_constitution(sdd_dir: Path) -> Constitution:
    path = sdd_dir / CONSTITUTION_FILENAME
    if not path.exists():
        raise ConstitutionError(f"Constitution not found: {path}", ErrorCode.CONSTITUTION_NOT_FOUND)
    return parse_constitution(read_text(path))


def validate_constitution(constitution: Constitution) -> list[str]:
    """Problems with a parsed constitution. Empty means valid."""
    problems = []
    if not constitution.principles and not constitution.forbidden:
        problems.append("At least one principle or forbidden rule is required")
    for principle in constitution.principles:
        if not principle.rules:
            problems.append(f"{principle.id} ({principle.title}) has no rules")
        for rule in principle.rules:
            if not has_keyword(rule):
                problems.append(f"{principle.id}: rule has no RFC 2119 keyword: {rule}")
    return problems


def set_version(content: str, version: str) -> str:
    parse_version(version)
    return update_frontmatter(content, version=version, updated=today())


def check_spec_compliance(spec_version: Optional[str], constitution_version: str) -> ComplianceResult:
    """
    Compare the constitution version a spec was written against with the current one.

    A major version gap fails the check; minor and patch gaps only inform.
    """
    mismatch = None
    if not spec_version:
        mismatch = VersionMismatch(
            "(none)", constitution_version, "warning",
            f"Spec has no constitution_version. Current constitution version: {constitution_version}",
        )
    elif compare_versions(spec_version, constitution_version) < 0:
        spec_major, spec_minor, _ = parse_version(spec_version)
        major, minor, _ = parse_version(constitution_version)
        if spec_major != major:
            mismatch = VersionMismatch(
                spec_version, constitution_version, "critical",
                f"Constitution major version changed ({spec_version} -> {constitution_version}). Review the spec.",
            )
        elif spec_minor != minor:
            mismatch = VersionMismatch(
                spec_version, constitution_version, "warning",
                f"Constitution minor version changed ({spec_version} -> {constitution_version}). Check new principles.",
            )
        else:
            mismatch = VersionMismatch(
                spec_version, constitution_version, "info",
                f"Constitution patch version changed ({spec_version} -> {constitution_version}).",
            )

    passed = mismatch is None or mismatch.severity != "critical"
    return ComplianceResult(passed=passed, rules_checked=0, mismatch=mismatch)


def check_constitution(spec_version: Optional[str], constitution: Constitution) -> ComplianceResult:
    result = check_spec_compliance(spec_version, constitution.version)
    result.rules_checked = constitution.rule_count
    return result


def generate_constitution(project_name: str, description: str = "") -> str:
    return f"""---
version: 1.0.0
created: {today()}
---

# Constitution: {project_name}

> {description or 'Core principles every spec in this project follows'}

## Core Principles

### 1. Spec first
- Every feature SHALL have an approved spec before implementation
- Specs SHALL describe behavior with GIVEN-WHEN-THEN scenarios

### 2. Traceability
- Code SHOULD reference requirement ids (REQ-xxx) it implements
- Changes to approved specs SHALL go through a change proposal

## Forbidden
- Implementation MUST NOT start without a spec
- Specs SHALL NOT be edited after approval without a change proposal

## Technical Principles
- Tests SHOULD cover every scenario
"""
