"""Rendering SyncResult for the terminal, JSON and markdown."""

import json

from sdd.diff.formatter import COLORS
from sdd.lib.fsutil import today
from sdd.sync.matcher import RequirementStatus, SyncResult


class SyncReporter:
    def __init__(self, colors: bool = True):
        self.colors = colors

    def c(self, color: str, text: str) -> str:
        if not self.colors:
            return text
        return f"{COLORS[color]}{text}{COLORS['reset']}"

    def _implemented_line(self, status: RequirementStatus) -> str:
        title = f": {status.title}" if status.title else ""
        locations = ", ".join(f"{loc.file}:{loc.line}" for loc in status.locations[:2])
        more = f" +{len(status.locations) - 2}" if len(status.locations) > 2 else ""
        return f"  - {status.id}{title} {self.c('gray', f'({locations}{more})')}"

    def format_terminal(self, result: SyncResult) -> str:
        total = result.total_requirements
        lines = [
            self.c("bold", "=== SDD Sync: spec/code sync check ==="),
            "",
            f"Specs: {len(result.specs)}, requirements: {total}",
            "",
        ]

        if result.implemented:
            lines.append(self.c("green", f"✓ Implemented ({len(result.implemented)}/{total})"))
            lines += [self._implemented_line(s) for s in result.requirements if s.status == "implemented"]
            lines.append("")

        if result.missing:
            lines.append(self.c("red", f"✗ Missing ({len(result.missing)}/{total})"))
            for status in result.requirements:
                if status.status == "missing":
                    title = f": {status.title}" if status.title else ""
                    lines.append(f"  - {status.id}{title}")
            lines.append("")

        if result.orphans:
            lines.append(self.c("yellow", f"⚠ References without a spec ({len(result.orphans)})"))
            lines += [f"  - {o.file}:{o.line} ({o.text or 'orphan'})" for o in result.orphans]
            lines.append("")

        rate_color = "green" if result.sync_rate >= 80 else "yellow" if result.sync_rate >= 50 else "red"
        lines.append(self.c(rate_color, f"Sync rate: {result.sync_rate}% ({result.total_implemented}/{total})"))
        return "\n".join(lines)

    def format_json(self, result: SyncResult) -> str:
        return json.dumps(result.to_dict(), indent=2, ensure_ascii=False)

    def format_markdown(self, result: SyncResult) -> str:
        lines = [
            "# SDD Sync Report",
            "",
            f"> Generated: {today()}",
            "",
            "## Summary",
            "",
            "| Metric | Value |",
            "|--------|-------|",
            f"| Specs | {len(result.specs)} |",
            f"| Requirements | {result.total_requirements} |",
            f"| Implemented | {result.total_implemented} |",
            f"| Missing | {len(result.missing)} |",
            f"| Sync rate | {result.sync_rate}% |",
            "",
            "## By spec",
            "",
            "| Spec | Requirements | Implemented | Missing | Sync rate |",
            "|------|--------------|-------------|---------|-----------|",
        ]
        for spec in result.specs:
            lines.append(f"| {spec.id} | {spec.requirement_count} | {spec.implemented_count} "
                         f"| {spec.missing_count} | {spec.sync_rate}% |")
        lines.append("")

        implemented = [s for s in result.requirements if s.status == "implemented"]
        if implemented:
            lines += ["## Implemented requirements", ""]
            for status in implemented:
                lines.append(f"### {status.id}{': ' + status.title if status.title else ''}")
                lines.append("")
                lines += [f"- `{loc.file}:{loc.line}` ({loc.type})" for loc in status.locations]
                lines.append("")

        missing = [s for s in result.requirements if s.status == "missing"]
        if missing:
            lines += ["## Missing requirements", ""]
            lines += [f"- **{s.id}**{': ' + s.title if s.title else ''}" for s in missing]
            lines.append("")

        if result.orphans:
            lines += ["## References without a spec", ""]
            lines += [f"- `{o.file}:{o.line}`: {o.text}" for o in result.orphans]

        return "\n".join(lines)


def check_threshold(result: SyncResult, threshold: float) -> str | None:
    """Failure message when the sync rate is below threshold, else None."""
    if result.sync_rate < threshold:
        return f"Sync rate {result.sync_rate}% is below threshold {threshold:g}%"
    return None
