"""
Preparing agent tooling for a feature.

Scans a feature's tasks.md, plan.md and spec.md for work keywords (test,
api, database...), maps them to the subagents and skills the work needs,
and checks .claude/agents/<name>.md and .claude/skills/<name>/SKILL.md.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from sdd.lib.errors import ErrorCode, SddError
from sdd.lib.frontmatter import dump_frontmatter
from sdd.lib.fsutil import now_iso, read_text, write_text
from sdd.spec.locate import find_feature_dir

logger = logging.getLogger(__name__)

DOCUMENTS = ("tasks.md", "plan.md", "spec.md")
TASK_LINE_RE = re.compile(r'^\s*-\s*\[[ xX]\]')


@dataclass
class KeywordMapping:
    keyword: str
    pattern: re.Pattern
    skill: str
    skill_description: str
    agent: Optional[str] = None
    agent_description: str = ""
    tools: tuple[str, ...] = ("Read", "Grep", "Glob")


KEYWORD_MAPPINGS = [
    KeywordMapping("test", re.compile(r'test|pytest|vitest|jest', re.I), "test",
                   "Write and run tests", "test-runner", "Runs tests and analyses failures",
                   ("Read", "Grep", "Glob", "Bash")),
    KeywordMapping("api", re.compile(r'\bapi\b|\brest\b|endpoint|graphql', re.I), "gen-api",
                   "Generate API endpoints", "api-scaffold", "Scaffolds REST API boilerplate",
                   ("Read", "Write", "Edit", "Glob")),
    KeywordMapping("component", re.compile(r'component|\breact\b|\bvue\b|\bui\b', re.I), "gen-component",
                   "Generate UI component boilerplate", "component-gen", "Generates UI components",
                   ("Read", "Write", "Edit", "Glob")),
    KeywordMapping("database", re.compile(r'\bdb\b|database|migration|prisma', re.I), "db-migrate",
                   "Create and apply database migrations"),
    KeywordMapping("doc", re.compile(r'\bdocs?\b|readme|documentation|docstring', re.I), "doc",
                   "Write documentation", "doc-generator", "Generates documentation",
                   ("Read", "Write", "Glob")),
    KeywordMapping("type", re.compile(r'\btypes?\b|schema|typescript|typing', re.I), "gen-types",
                   "Generate type definitions"),
    KeywordMapping("lint", re.compile(r'lint|prettier|\bformat', re.I), "lint",
                   "Lint and format code"),
    KeywordMapping("review", re.compile(r'review', re.I), "review",
                   "Review code changes", "code-reviewer", "Reviews code for quality and spec compliance"),
]


@dataclass
class DetectionSource:
    file: str
    line: int
    text: str
    keyword: str


@dataclass
class DetectedTool:
    type: str  # agent, skill
    name: str
    description: str
    tools: tuple[str, ...] = ()
    sources: list[DetectionSource] = field(default_factory=list)


@dataclass
class ToolCheck:
    tool: DetectedTool
    status: str  # exists, missing
    path: Path


@dataclass
class PrepareReport:
    feature: str
    total_tasks: int
    checks: list[ToolCheck]
    created: list[Path] = field(default_factory=list)

    def _of(self, kind: str) -> list[ToolCheck]:
        return [c for c in self.checks if c.tool.type == kind]

    @property
    def agents(self) -> list[ToolCheck]:
        return self._of("agent")

    @property
    def skills(self) -> list[ToolCheck]:
        return self._of("skill")

    @property
    def missing(self) -> list[ToolCheck]:
        return [c for c in self.checks if c.status == "missing"]

    def to_dict(self) -> dict:
        def group(checks: list[ToolCheck]) -> dict:
            return {
                "required": len(checks),
                "existing": sum(1 for c in checks if c.status == "exists"),
                "missing": sum(1 for c in checks if c.status == "missing"),
                "checks": [
                    {"name": c.tool.name, "status": c.status, "path": str(c.path),
                     "sources": len(c.tool.sources)}
                    for c in checks
                ],
            }
        return {
            "feature": self.feature,
            "totalTasks": self.total_tasks,
            "agents": group(self.agents),
            "skills": group(self.skills),
            "created": [str(p) for p in self.created],
            "createdAt": now_iso(),
        }


def analyze_documents(feature_dir: Path) -> tuple[dict[str, list[DetectionSource]], int]:
    """Keyword hits per keyword, plus the number of checkbox task lines."""
    hits: dict[str, list[DetectionSource]] = {}
    task_count = 0
    for name in DOCUMENTS:
        path = feature_dir / name
        if not path.exists():
            continue
        for number, line in enumerate(read_text(path).split("\n"), 1):
            if TASK_LINE_RE.match(line):
                task_count += 1
            for mapping in KEYWORD_MAPPINGS:
                if mapping.pattern.search(line):
                    hits.setdefault(mapping.keyword, []).append(
                        DetectionSource(name, number, line.strip(), mapping.keyword)
                    )
    return hits, task_count


def detect_tools(hits: dict[str, list[DetectionSource]]) -> list[DetectedTool]:
    tools = []
    for mapping in KEYWORD_MAPPINGS:
        sources = hits.get(mapping.keyword)
        if not sources:
            continue
        if mapping.agent:
            tools.append(DetectedTool("agent", mapping.agent, mapping.agent_description, mapping.tools, sources))
        tools.append(DetectedTool("skill", mapping.skill, mapping.skill_description, mapping.tools, sources))
    return tools


def tool_path(project_root: Path, tool: DetectedTool) -> Path:
    if tool.type == "agent":
        return project_root / ".claude" / "agents" / f"{tool.name}.md"
    return project_root / ".claude" / "skills" / tool.name / "SKILL.md"


def generate_stub(tool: DetectedTool) -> str:
    examples = "\n".join(f"- {s.file}:{s.line}: {s.text}" for s in tool.sources[:5])
    if tool.type == "agent":
        metadata = {"name": tool.name, "description": tool.description,
                    "tools": ", ".join(tool.tools), "model": "sonnet"}
        body = (f"\n# {tool.name}\n\n{tool.description}.\n\n"
                f"## Responsibilities\n\n- Handle the {tool.sources[0].keyword} work of the current feature\n"
                f"- Follow the spec's RFC 2119 requirements\n\n## Detected in\n\n{examples}\n")
    else:
        metadata = {"name": tool.name, "description": tool.description,
                    "allowed-tools": ", ".join(tool.tools)}
        body = (f"\n# {tool.name}\n\n{tool.description}.\n\n"
                f"## Instructions\n\n1. Read the feature's spec.md and tasks.md\n"
                f"2. Do the {tool.sources[0].keyword} work for the next open task\n\n"
                f"## Detected in\n\n{examples}\n")
    return dump_frontmatter(metadata, body)


def prepare_feature(
    sdd_dir: Path,
    feature: str,
    auto_approve: bool = False,
    dry_run: bool = False,
) -> PrepareReport:
    """
    Check the agents and skills a feature needs.

    Missing ones are created as stubs when auto_approve is set, unless dry_run.

    Raises:
        SddError: the feature does not exist
    """
    feature_dir = find_feature_dir(sdd_dir, feature)
    if feature_dir is None:
        raise SddError(f"Feature not found: {feature}", ErrorCode.DIRECTORY_NOT_FOUND)

    project_root = sdd_dir.parent
    hits, task_count = analyze_documents(feature_dir)
    checks = []
    for tool in detect_tools(hits):
        path = tool_path(project_root, tool)
        checks.append(ToolCheck(tool, "exists" if path.exists() else "missing", path))

    report = PrepareReport(feature=feature, total_tasks=task_count, checks=checks)
    if auto_approve and not dry_run:
        for check in report.missing:
            write_text(check.path, generate_stub(check.tool))
            report.created.append(check.path)
            logger.info(f"[prepare] created {check.tool.type} {check.tool.name}")
    return report


def format_prepare_report(report: PrepareReport, dry_run: bool = False) -> str:
    lines = [f"Prepare: {report.feature}", f"Tasks: {report.total_tasks}", ""]
    for title, checks in (("Agents", report.agents), ("Skills", report.skills)):
        lines.append(f"{title} ({sum(1 for c in checks if c.status == 'exists')}/{len(checks)} present):")
        if not checks:
            lines.append("  (none needed)")
        for check in checks:
            mark = "✓" if check.status == "exists" else "✗"
            lines.append(f"  {mark} {check.tool.name} ({len(check.tool.sources)} mention(s))")
        lines.append("")
    if report.created:
        lines.append("Created:")
        lines += [f"  {p}" for p in report.created]
    elif report.missing:
        hint = "dry run, nothing written" if dry_run else "run with --auto-approve to create stubs"
        lines.append(f"{len(report.missing)} missing ({hint})")
    else:
        lines.append("All required agents and skills are present.")
    return "\n".join(lines)
