"""Text, stat, JSON and markdown renderings of a DiffResult."""

import json
import re

from sdd.diff.structural import DiffResult, KeywordChange, RequirementDiff, ScenarioDiff

COLORS = {
    "reset": "\x1b[0m",
    "bold": "\x1b[1m",
    "red": "\x1b[31m",
    "green": "\x1b[32m",
    "yellow": "\x1b[33m",
    "blue": "\x1b[34m",
    "magenta": "\x1b[35m",
    "cyan": "\x1b[36m",
    "gray": "\x1b[90m",
}

PREFIX = {"added": "+", "removed": "-", "modified": "~"}
TYPE_COLOR = {"added": "green", "removed": "red", "modified": "yellow"}
IMPACT_COLOR = {"strengthened": "yellow", "weakened": "magenta", "changed": "blue"}
IMPACT_ICON = {"strengthened": "⚠️", "weakened": "⚡", "changed": "🔄"}
MD_ICON = {"added": "➕", "removed": "➖", "modified": "✏️"}

GWT_LINE_RE = re.compile(r'\*\*(?:GIVEN|WHEN|THEN)\*\*\s*.+', re.IGNORECASE)


class DiffFormatter:
    def __init__(self, colors: bool = True, stat: bool = False, name_only: bool = False):
        self.colors = colors
        self.stat = stat
        self.name_only = name_only

    def c(self, color: str, text: str) -> str:
        if not self.colors:
            return text
        return f"{COLORS[color]}{text}{COLORS['reset']}"

    def format_terminal(self, result: DiffResult) -> str:
        if not result.files:
            return self.c("gray", "No spec changes.")
        if self.name_only:
            return "\n".join(f.file for f in result.files)
        if self.stat:
            return self._format_stat(result)
        return self._format_full(result)

    def _counts(self, added: int, modified: int, removed: int) -> str:
        return f"{self.c('green', f'+{added}')} {self.c('yellow', f'~{modified}')} {self.c('red', f'-{removed}')}"

    def _format_stat(self, result: DiffResult) -> str:
        lines = [self.c("bold", "=== SDD Diff --stat ==="), ""]

        for spec_diff in result.files:
            lines.append(self.c("cyan", spec_diff.file))
            reqs = [r.type for r in spec_diff.requirements]
            scens = [s.type for s in spec_diff.scenarios]
            if reqs:
                lines.append(f"  Requirements: {self._counts(reqs.count('added'), reqs.count('modified'), reqs.count('removed'))}")
            if scens:
                lines.append(f"  Scenarios: {self._counts(scens.count('added'), scens.count('modified'), scens.count('removed'))}")
            if spec_diff.keyword_changes:
                impacts = [k.impact for k in spec_diff.keyword_changes]
                lines.append(
                    f"  Keyword changes: {len(impacts)} "
                    f"(strengthened: {impacts.count('strengthened')}, weakened: {impacts.count('weakened')})"
                )
            lines.append("")

        s = result.summary
        lines.append(self.c("bold", "Total:"))
        lines.append(f"  {s.total_files} file(s)")
        lines.append(f"  Requirements: {self._counts(s.added_requirements, s.modified_requirements, s.removed_requirements)}")
        lines.append(f"  Scenarios: {self._counts(s.added_scenarios, s.modified_scenarios, s.removed_scenarios)}")
        if s.keyword_changes:
            lines.append(f"  Keyword changes: {self.c('magenta', str(s.keyword_changes))}")
        return "\n".join(lines)

    def _format_full(self, result: DiffResult) -> str:
        lines = [self.c("bold", "=== SDD Diff ==="), ""]

        for spec_diff in result.files:
            lines += [self.c("cyan", spec_diff.file), ""]
            if spec_diff.requirements:
                lines.append(self.c("bold", "  Requirements:"))
                for req in spec_diff.requirements:
                    lines += self._requirement_lines(req)
                lines.append("")
            if spec_diff.scenarios:
                lines.append(self.c("bold", "  Scenarios:"))
                for scenario in spec_diff.scenarios:
                    lines += self._scenario_lines(scenario)
                lines.append("")
            if spec_diff.metadata:
                lines.append(self.c("bold", "  Metadata:"))
                lines.append(f"    ~ {', '.join(spec_diff.metadata.changed_fields)}")
                lines.append("")
            if spec_diff.keyword_changes:
                lines.append(self.c("bold", "  Keyword changes:"))
                for change in spec_diff.keyword_changes:
                    lines.append(self._keyword_line(change))
                lines.append("")

        return "\n".join(lines)

    def _preview(self, text: str | None, sign: str, color: str) -> list[str]:
        if not text:
            return []
        return [self.c(color, f"    {sign} {line.strip()}") for line in text.splitlines()[:2] if line.strip()]

    def _requirement_lines(self, req: RequirementDiff) -> list[str]:
        lines = [self.c(TYPE_COLOR[req.type], f"  {PREFIX[req.type]} {req.id}: {req.title}")]
        if req.type in ("modified", "removed"):
            lines += self._preview(req.before, "-", "red")
        if req.type in ("modified", "added"):
            lines += self._preview(req.after, "+", "green")
        return lines

    def _scenario_lines(self, scenario: ScenarioDiff) -> list[str]:
        lines = [self.c(TYPE_COLOR[scenario.type], f"  {PREFIX[scenario.type]} {scenario.name}")]
        content = scenario.after or scenario.before or ""
        for match in GWT_LINE_RE.findall(content)[:3]:
            lines.append(self.c("gray", f"    {match.strip()}"))
        return lines

    def _keyword_line(self, change: KeywordChange) -> str:
        return (
            f"    {IMPACT_ICON[change.impact]} {change.req_id}: "
            f"{self.c('red', change.before)} -> {self.c('green', change.after)} "
            f"({self.c(IMPACT_COLOR[change.impact], change.impact)})"
        )

    def format_json(self, result: DiffResult) -> str:
        return json.dumps(result.to_dict(), indent=2, ensure_ascii=False)

    def format_markdown(self, result: DiffResult) -> str:
        s = result.summary
        lines = [
            "# SDD Diff Report",
            "",
            "## Summary",
            "",
            "| Item | Count |",
            "|------|-------|",
            f"| Changed files | {s.total_files} |",
            f"| Added requirements | {s.added_requirements} |",
            f"| Modified requirements | {s.modified_requirements} |",
            f"| Removed requirements | {s.removed_requirements} |",
            f"| Added scenarios | {s.added_scenarios} |",
            f"| Modified scenarios | {s.modified_scenarios} |",
            f"| Removed scenarios | {s.removed_scenarios} |",
            f"| Keyword changes | {s.keyword_changes} |",
            "",
        ]

        for spec_diff in result.files:
            lines += [f"## {spec_diff.file}", ""]
            if spec_diff.requirements:
                lines += ["### Requirements", ""]
                lines += [f"- {MD_ICON[r.type]} **{r.id}**: {r.title}" for r in spec_diff.requirements]
                lines.append("")
            if spec_diff.scenarios:
                lines += ["### Scenarios", ""]
                lines += [f"- {MD_ICON[sc.type]} **{sc.name}**" for sc in spec_diff.scenarios]
                lines.append("")
            if spec_diff.keyword_changes:
                lines += ["### Keyword changes", ""]
                lines += [
                    f"- {IMPACT_ICON[k.impact]} **{k.req_id}**: `{k.before}` -> `{k.after}` ({k.impact})"
                    for k in spec_diff.keyword_changes
                ]
                lines.append("")

        return "\n".join(lines)
