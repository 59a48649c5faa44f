"""
Structural diff of spec documents.

Compares two versions of a spec by requirement id, scenario name,
frontmatter field and leading RFC 2119 keyword. Text inside a block is
compared as a whole; there is no line-level diff.
"""

import logging
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from sdd import git
from sdd.lib.errors import GitError
from sdd.lib.frontmatter import split_frontmatter
from sdd.spec.keywords import extract_keywords, keyword_impact
from sdd.spec.parser import parse_requirements

logger = logging.getLogger(__name__)

SPECS_PATHSPEC = ".sdd/specs"

REQ_HEADER_RE = re.compile(r'^#{2,3}\s+(REQ-\d+):?\s*(.*)$')
REQ_HEADER_PREFIX_RE = re.compile(r'^#{2,3}\s+REQ-\d+')
SCENARIO_HEADER_RE = re.compile(r'^#{2,3}\s+Scenario\s*\d*:?\s*(.*)$', re.IGNORECASE)
HEADING_RE = re.compile(r'^#{1,3}\s+')
GWT_RE = re.compile(r'GIVEN|WHEN|THEN|AND', re.IGNORECASE)
FRONTMATTER_RE = re.compile(r'\A---\s*\n(.*?)\n---', re.DOTALL)


@dataclass
class RequirementDiff:
    id: str
    type: str  # added, removed, modified
    title: str = ""
    before: Optional[str] = None
    after: Optional[str] = None


@dataclass
class ScenarioDiff:
    name: str
    type: str
    before: Optional[str] = None
    after: Optional[str] = None


@dataclass
class KeywordChange:
    req_id: str
    before: str
    after: str
    impact: str  # strengthened, weakened, changed


@dataclass
class MetadataDiff:
    type: str
    changed_fields: list[str]
    before: Optional[dict] = None
    after: Optional[dict] = None


@dataclass
class SpecDiff:
    file: str
    requirements: list[RequirementDiff] = field(default_factory=list)
    scenarios: list[ScenarioDiff] = field(default_factory=list)
    metadata: Optional[MetadataDiff] = None
    keyword_changes: list[KeywordChange] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.requirements or self.scenarios or self.metadata or self.keyword_changes)


@dataclass
class DiffSummary:
    total_files: int = 0
    added_requirements: int = 0
    modified_requirements: int = 0
    removed_requirements: int = 0
    added_scenarios: int = 0
    modified_scenarios: int = 0
    removed_scenarios: int = 0
    keyword_changes: int = 0


@dataclass
class DiffResult:
    files: list[SpecDiff]
    summary: DiffSummary

    def to_dict(self) -> dict:
        return asdict(self)


def _parse_metadata(content: str) -> dict:
    # Line-wise so that a half-edited frontmatter still diffs
    match = FRONTMATTER_RE.match(content)
    if not match:
        return {}
    metadata = {}
    for line in match.group(1).splitlines():
        key, sep, value = line.partition(":")
        if sep and key.strip() and not line.startswith((" ", "\t", "-")):
            metadata[key.strip()] = value.strip().strip("\"'")
    return metadata


def _parse_requirement_blocks(content: str) -> dict[str, tuple[str, str]]:
    requirements: dict[str, tuple[str, str]] = {}
    current_id, title, body = None, "", []

    for line in content.splitlines():
        header = REQ_HEADER_RE.match(line)
        if header:
            if current_id:
                requirements[current_id] = (title, "\n".join(body).strip())
            current_id, title, body = header.group(1), header.group(2).strip(), []
        elif current_id:
            if HEADING_RE.match(line) and not REQ_HEADER_PREFIX_RE.match(line):
                requirements[current_id] = (title, "\n".join(body).strip())
                current_id, body = None, []
            else:
                body.append(line)

    if current_id:
        requirements[current_id] = (title, "\n".join(body).strip())
    return requirements


def _requirement_map(content: str) -> dict[str, tuple[str, str]]:
    """
    Requirements keyed by id, as (title, text).

    Ids and texts come from the spec parser, so "## Requirement:" sections
    diff as REQ-001, REQ-002 and so on. "### REQ-x" blocks are then taken
    whole, untyped ones included.
    """
    try:
        _, body = split_frontmatter(content)
    except yaml.YAMLError:
        body = FRONTMATTER_RE.sub("", content, count=1)
    requirements, _ = parse_requirements(body)
    found = {req.id: (req.title, req.description) for req in requirements}
    found.update(_parse_requirement_blocks(content))
    return found


def _parse_scenarios(content: str) -> dict[str, str]:
    scenarios: dict[str, str] = {}
    current, body = None, []

    for line in content.splitlines():
        header = SCENARIO_HEADER_RE.match(line)
        if header:
            if current:
                scenarios[current] = "\n".join(body).strip()
            current = header.group(1).strip() or f"Scenario {len(scenarios) + 1}"
            body = []
        elif current:
            if HEADING_RE.match(line) and not GWT_RE.search(line):
                scenarios[current] = "\n".join(body).strip()
                current, body = None, []
            else:
                body.append(line)

    if current:
        scenarios[current] = "\n".join(body).strip()
    return scenarios


def _diff_metadata(before: dict, after: dict) -> Optional[MetadataDiff]:
    changed = [k for k in dict.fromkeys([*before, *after]) if before.get(k) != after.get(k)]
    if not changed:
        return None
    if not before:
        return MetadataDiff(type="added", changed_fields=changed, after=after)
    if not after:
        return MetadataDiff(type="removed", changed_fields=changed, before=before)
    return MetadataDiff(type="modified", changed_fields=changed, before=before, after=after)


def _diff_requirements(before: dict, after: dict) -> list[RequirementDiff]:
    diffs = []
    for req_id in sorted(set(before) | set(after)):
        old, new = before.get(req_id), after.get(req_id)
        if old is None:
            diffs.append(RequirementDiff(req_id, "added", title=new[0], after=new[1]))
        elif new is None:
            diffs.append(RequirementDiff(req_id, "removed", title=old[0], before=old[1]))
        elif old != new:
            diffs.append(RequirementDiff(req_id, "modified", title=new[0] or old[0],
                                         before=old[1], after=new[1]))
    return diffs


def _diff_scenarios(before: dict, after: dict) -> list[ScenarioDiff]:
    diffs = []
    for name in dict.fromkeys([*before, *after]):
        old, new = before.get(name), after.get(name)
        if old is None:
            diffs.append(ScenarioDiff(name, "added", after=new))
        elif new is None:
            diffs.append(ScenarioDiff(name, "removed", before=old))
        elif old != new:
            diffs.append(ScenarioDiff(name, "modified", before=old, after=new))
    return diffs


def _diff_keywords(before: dict, after: dict) -> list[KeywordChange]:
    """Compare the leading keyword of requirements present in both versions."""
    changes = []
    for req_id in sorted(after):
        if req_id not in before:
            continue
        old_keywords = extract_keywords(before[req_id][1])
        new_keywords = extract_keywords(after[req_id][1])
        if old_keywords and new_keywords and old_keywords[0] != new_keywords[0]:
            changes.append(KeywordChange(
                req_id=req_id,
                before=old_keywords[0],
                after=new_keywords[0],
                impact=keyword_impact(old_keywords[0], new_keywords[0]),
            ))
    return changes


def compare_specs(before: Optional[str], after: Optional[str], file: str) -> SpecDiff:
    """Diff two versions of a spec. None stands for a missing version."""
    before = before or ""
    after = after or ""
    before_reqs, after_reqs = _requirement_map(before), _requirement_map(after)

    return SpecDiff(
        file=file,
        requirements=_diff_requirements(before_reqs, after_reqs),
        scenarios=_diff_scenarios(_parse_scenarios(before), _parse_scenarios(after)),
        metadata=_diff_metadata(_parse_metadata(before), _parse_metadata(after)),
        keyword_changes=_diff_keywords(before_reqs, after_reqs),
    )


def summarize(diffs: list[SpecDiff]) -> DiffSummary:
    summary = DiffSummary(total_files=len(diffs))
    for diff in diffs:
        for req in diff.requirements:
            attr = f"{req.type}_requirements"
            setattr(summary, attr, getattr(summary, attr) + 1)
        for scenario in diff.scenarios:
            attr = f"{scenario.type}_scenarios"
            setattr(summary, attr, getattr(summary, attr) + 1)
        summary.keyword_changes += len(diff.keyword_changes)
    return summary


def diff_specs(
    project_root: Path,
    spec_id: Optional[str] = None,
    staged: bool = False,
    commit1: Optional[str] = None,
    commit2: Optional[str] = None,
) -> DiffResult:
    """
    Structural diff of every changed spec file under .sdd/specs.

    Untracked spec files are included when comparing against the
    working tree.

    Raises:
        GitError: project_root is not a git repository
    """
    if not git.is_git_repository(project_root):
        raise GitError(f"Not a git repository: {project_root}")

    pathspec = f"{SPECS_PATHSPEC}/{spec_id}" if spec_id else SPECS_PATHSPEC
    paths = [f.path for f in git.get_changed_files(project_root, pathspec, staged, commit1, commit2)]
    if not (staged or commit1 or commit2):
        paths += [p for p in git.get_untracked_files(project_root, pathspec)
                  if p.endswith(".md") and p not in paths]

    diffs = []
    for path in paths:
        before, after = git.get_file_versions(project_root, path, staged, commit1, commit2)
        spec_diff = compare_specs(before, after, path)
        if spec_diff.has_changes:
            diffs.append(spec_diff)
        else:
            logger.debug(f"[diff] {path}: no structural changes")

    return DiffResult(files=diffs, summary=summarize(diffs))
