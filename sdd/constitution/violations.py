"""
Checking a spec document against the project constitution.

Two checks run:

- the spec's constitution_version against the current version
  (check_constitution)
- explicit patterns: a prohibition (a Forbidden rule, or a SHALL NOT /
  MUST NOT principle rule) that quotes a term in backticks flags every
  spec line containing that term, unless the line is itself a prohibition

Rules without a quoted term are counted but never matched against free
text; plain words from a rule ("code", "test") match almost any spec.
"""

import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Optional

import yaml

from sdd.constitution.parser import NEGATIVE_RE, Constitution, VersionMismatch, check_constitution
from sdd.lib.frontmatter import split_frontmatter

logger = logging.getLogger(__name__)

QUOTED_TERM_RE = re.compile(r'`([^`]+)`')
SEVERITY_MARKS = {"critical": "✗", "warning": "⚠", "info": "i"}


@dataclass
class Violation:
    rule_id: str
    rule: str
    matched_content: str
    line: int
    severity: str
    message: str


@dataclass
class ViolationReport:
    passed: bool
    rules_checked: int
    violations: list[Violation] = field(default_factory=list)
    mismatch: Optional[VersionMismatch] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ForbiddenPattern:
    rule_id: str
    rule: str
    terms: list[str]


def forbidden_patterns(constitution: Constitution) -> list[ForbiddenPattern]:
    """Prohibitions that quote at least one term, with ids FORBIDDEN-n and P1.n."""
    candidates = [(f"FORBIDDEN-{i}", rule) for i, rule in enumerate(constitution.forbidden, 1)]
    for principle in constitution.principles:
        candidates += [(f"{principle.id}.{i}", rule) for i, rule in enumerate(principle.rules, 1)
                       if NEGATIVE_RE.search(rule)]
    patterns = []
    for rule_id, rule in candidates:
        terms = QUOTED_TERM_RE.findall(rule)
        if terms:
            patterns.append(ForbiddenPattern(rule_id, rule, terms))
    return patterns


def _match(pattern: ForbiddenPattern, lines: list[str]) -> Optional[Violation]:
    for lineno, line in enumerate(lines, 1):
        if NEGATIVE_RE.search(line):
            continue
        lowered = line.lower()
        for term in pattern.terms:
            if term.lower() in lowered:
                return Violation(
                    rule_id=pattern.rule_id,
                    rule=pattern.rule,
                    matched_content=line.strip(),
                    line=lineno,
                    severity="critical",
                    message=f"Forbidden term '{term}' ({pattern.rule})",
                )
    return None


def check_violations(spec_content: str, constitution: Constitution) -> ViolationReport:
    """
    Check a spec against the constitution.

    Fails on a critical version gap (major version) or any forbidden term.
    Line numbers count from the top of the file, frontmatter included.
    """
    try:
        metadata, _ = split_frontmatter(spec_content)
    except yaml.YAMLError:
        metadata = {}
    compliance = check_constitution(metadata.get("constitution_version"), constitution)

    lines = spec_content.split("\n")
    violations = [v for v in (_match(p, lines) for p in forbidden_patterns(constitution)) if v]
    for violation in violations:
        logger.info(f"[constitution] {violation.rule_id} line {violation.line}: {violation.matched_content}")

    return ViolationReport(
        passed=compliance.passed and not violations,
        rules_checked=compliance.rules_checked,
        violations=violations,
        mismatch=compliance.mismatch,
    )


def format_violation_report(report: ViolationReport) -> str:
    lines = [
        "Constitution check",
        "✓ passed: no violations" if report.passed else "✗ failed: violations found",
        f"Rules checked: {report.rules_checked}",
        "",
    ]
    if report.mismatch:
        mismatch = report.mismatch
        lines.append(f"{SEVERITY_MARKS[mismatch.severity]} version: spec {mismatch.spec_version}, "
                     f"constitution {mismatch.constitution_version}")
        lines.append(f"    {mismatch.message}")
        lines.append("")
    for violation in report.violations:
        lines.append(f"{SEVERITY_MARKS[violation.severity]} [{violation.rule_id}] {violation.message}")
        lines.append(f"    line {violation.line}: {violation.matched_content}")
    return "\n".join(lines).rstrip("\n")
