"""Project status report (HTML, Markdown or JSON)."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from sdd.export.renderer import create_environment
from sdd.lib.errors import ErrorCode, SddError
from sdd.lib.frontmatter import split_frontmatter
from sdd.lib.fsutil import now_iso, read_text
from sdd.spec.locate import iter_spec_files, spec_id_for, specs_dir
from sdd.spec.parser import get_spec_title
from sdd.spec.validator import ValidationSummary, validate_specs

logger = logging.getLogger(__name__)

REPORT_FORMATS = ("html", "markdown", "json")


@dataclass
class SpecListItem:
    id: str
    title: str
    status: str = "unknown"
    phase: str = "-"


@dataclass
class Report:
    title: str
    generated_at: str
    project_path: str
    specs: list[SpecListItem] = field(default_factory=list)
    validation: Optional[ValidationSummary] = None

    @property
    def total_specs(self) -> int:
        return len(self.specs)

    @property
    def by_status(self) -> dict[str, int]:
        return _count(s.status for s in self.specs)

    @property
    def by_phase(self) -> dict[str, int]:
        return _count(s.phase for s in self.specs)

    @property
    def validation_errors(self) -> int:
        if self.validation is None:
            return 0
        return sum(len(f.errors) for f in self.validation.files)

    @property
    def validation_warnings(self) -> int:
        return self.validation.warnings if self.validation else 0

    def to_dict(self) -> dict:
        summary = {"totalSpecs": self.total_specs, "byPhase": self.by_phase, "byStatus": self.by_status}
        if self.validation is not None:
            summary["validationErrors"] = self.validation_errors
            summary["validationWarnings"] = self.validation_warnings
        data = {
            "title": self.title,
            "generatedAt": self.generated_at,
            "projectPath": self.project_path,
            "summary": summary,
            "specs": [vars(s) for s in self.specs],
        }
        if self.validation is not None:
            data["validation"] = self.validation.to_dict()
        return data


def _count(values) -> dict[str, int]:
    counts: dict[str, int] = {}
    for value in values:
        counts[value] = counts.get(value, 0) + 1
    return dict(sorted(counts.items()))


def load_spec_list(sdd_dir: Path) -> list[SpecListItem]:
    items = []
    for path in iter_spec_files(sdd_dir):
        spec_id = spec_id_for(sdd_dir, path)
        text = read_text(path)
        try:
            metadata, _ = split_frontmatter(text)
        except yaml.YAMLError:
            logger.warning(f"[report] {spec_id}: invalid frontmatter")
            metadata = {}
        items.append(SpecListItem(
            id=spec_id,
            title=metadata.get("title") or get_spec_title(text) or spec_id,
            status=str(metadata.get("status") or "unknown"),
            phase=str(metadata.get("phase") or "-"),
        ))
    return items


def build_report(sdd_dir: Path, title: Optional[str] = None, include_validation: bool = True) -> Report:
    """
    Raises:
        SddError: E104 when .sdd/specs does not exist
    """
    if not specs_dir(sdd_dir).is_dir():
        raise SddError(f"Specs directory not found: {specs_dir(sdd_dir)}", ErrorCode.DIRECTORY_NOT_FOUND)
    return Report(
        title=title or "SDD Project Report",
        generated_at=now_iso(),
        project_path=str(sdd_dir.parent),
        specs=load_spec_list(sdd_dir),
        validation=validate_specs(specs_dir(sdd_dir)) if include_validation else None,
    )


def render_report_markdown(report: Report) -> str:
    lines = [
        f"# {report.title}",
        "",
        f"> Generated: {report.generated_at}",
        "",
        "## Summary",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Specs | {report.total_specs} |",
    ]
    if report.validation is not None:
        lines.append(f"| Validation errors | {report.validation_errors} |")
        lines.append(f"| Validation warnings | {report.validation_warnings} |")

    for heading, counts in (("By status", report.by_status), ("By phase", report.by_phase)):
        lines += ["", f"## {heading}", "", "| Value | Specs |", "|-------|-------|"]
        lines += [f"| {key} | {count} |" for key, count in counts.items()]

    lines += ["", "## Specs", "", "| ID | Title | Status | Phase |", "|----|-------|--------|-------|"]
    lines += [f"| {s.id} | {s.title} | {s.status} | {s.phase} |" for s in report.specs]

    if report.validation is not None:
        issues = [(f.file, str(i)) for f in report.validation.files for i in f.errors + f.warnings]
        if issues:
            lines += ["", "## Validation", ""]
            lines += [f"- `{file}`: {issue}" for file, issue in issues]

    return "\n".join(lines) + "\n"


def render_report(report: Report, fmt: str) -> str:
    if fmt == "json":
        return json.dumps(report.to_dict(), indent=2, ensure_ascii=False)
    if fmt == "markdown":
        return render_report_markdown(report)
    if fmt == "html":
        return create_environment().get_template("report.html").render(report=report)
    raise SddError(f"Unsupported report format: {fmt}", ErrorCode.INVALID_ARGUMENT)
