"""
Change impact analysis over the spec dependency graph.

Risk score (1-10): each dependent spec adds 2 for an explicit edge and
0.5 for a reference. 1-3 is low, 4-6 medium, 7-10 high.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

from sdd.change.service import show_change
from sdd.impact.graph import DependencyGraph, build_dependency_graph
from sdd.lib.errors import ErrorCode, SddError
from sdd.spec.locate import specs_dir

logger = logging.getLogger(__name__)

EDGE_WEIGHT = {"explicit": 2.0, "reference": 0.5}
EDGE_LEVEL = {"explicit": "high", "reference": "low"}
LEVEL_ICON = {"high": "🔴", "medium": "🟡", "low": "🟢"}


@dataclass
class AffectedSpec:
    id: str
    path: str
    title: Optional[str]
    level: str
    type: str
    reason: str


@dataclass
class ImpactResult:
    target: str
    depends_on: list[AffectedSpec]
    affected_by: list[AffectedSpec]
    risk_score: int
    risk_level: str
    summary: str
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ChangeImpact:
    change_id: str
    title: str
    affected_specs: list[str]
    results: list[ImpactResult]
    missing_specs: list[str]
    risk_score: int
    risk_level: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ImpactReport:
    total_specs: int
    total_edges: int
    explicit_edges: int
    reference_edges: int
    most_depended: list[tuple[str, int]]
    isolated: list[str]
    cycles: list[list[str]]
    missing: list[str]
    mermaid: str

    def to_dict(self) -> dict:
        return asdict(self)


def risk_level(score: int) -> str:
    if score <= 3:
        return "low"
    if score <= 6:
        return "medium"
    return "high"


def risk_score(affected_by: list[AffectedSpec]) -> int:
    score = sum(EDGE_WEIGHT.get(a.type, 0.5) for a in affected_by)
    return min(10, max(1, round(score)))


def recommendations_for(level: str, affected_by: list[AffectedSpec]) -> list[str]:
    if level == "high":
        recs = [
            "Review every affected spec before changing this one.",
            "Share the change with the owners of dependent specs.",
            "Consider a staged migration.",
        ]
    elif level == "medium":
        recs = [
            "Check the tests of affected specs.",
            "Re-validate affected specs after the change.",
        ]
    else:
        recs = ["Follow the standard change process."]
    if any(a.type == "explicit" for a in affected_by):
        recs.append("Update the depends field of dependent specs if the interface changes.")
    return recs


def _summary(target: str, depends_on: list[AffectedSpec], affected_by: list[AffectedSpec], score: int) -> str:
    parts = [f"Changing '{target}':"]
    if depends_on:
        parts.append(f"- depends on {len(depends_on)} spec(s)")
    if affected_by:
        parts.append(f"- affects {len(affected_by)} spec(s)")
        high = sum(1 for a in affected_by if a.level == "high")
        if high:
            parts.append(f"  - high impact: {high}")
    parts.append(f"- risk score: {score}/10")
    return "\n".join(parts)


def analyze_impact(sdd_dir: Path, spec_id: str, graph: Optional[DependencyGraph] = None) -> ImpactResult:
    """
    Raises:
        SddError: specs directory or the spec itself is missing
    """
    if graph is None:
        if not specs_dir(sdd_dir).is_dir():
            raise SddError(f"Specs directory not found: {specs_dir(sdd_dir)}", ErrorCode.DIRECTORY_NOT_FOUND)
        graph = build_dependency_graph(sdd_dir)

    node = graph.nodes.get(spec_id)
    if node is None:
        raise SddError(f"Spec not found: {spec_id}", ErrorCode.FILE_NOT_FOUND)

    def affected(other_id: str, edge_source: str, edge_target: str, level: Optional[str]) -> AffectedSpec:
        other = graph.nodes.get(other_id)
        e = graph.edge(edge_source, edge_target)
        edge_type = e.type if e else "reference"
        return AffectedSpec(
            id=other_id,
            path=other.path if other else other_id,
            title=other.title if other else None,
            level=level or EDGE_LEVEL[edge_type],
            type=edge_type,
            reason=e.description if e else "",
        )

    depends_on = [affected(d, spec_id, d, "low") for d in node.depends_on]
    affected_by = [affected(d, d, spec_id, None) for d in node.depended_by]

    score = risk_score(affected_by)
    level = risk_level(score)
    logger.info(f"[impact] {spec_id}: risk {score}/10 ({level})")
    return ImpactResult(
        target=spec_id,
        depends_on=depends_on,
        affected_by=affected_by,
        risk_score=score,
        risk_level=level,
        summary=_summary(spec_id, depends_on, affected_by, score),
        recommendations=recommendations_for(level, affected_by),
    )


def analyze_change_impact(sdd_dir: Path, change_id: str) -> ChangeImpact:
    """Impact of every spec a change proposal lists as affected. Overall risk is the highest one."""
    proposal = show_change(sdd_dir, change_id)
    graph = build_dependency_graph(sdd_dir)

    results, missing = [], []
    for spec_id in proposal.affected_specs:
        if spec_id in graph.nodes:
            results.append(analyze_impact(sdd_dir, spec_id, graph))
        else:
            missing.append(spec_id)

    score = max((r.risk_score for r in results), default=1)
    return ChangeImpact(
        change_id=proposal.id,
        title=proposal.title,
        affected_specs=proposal.affected_specs,
        results=results,
        missing_specs=missing,
        risk_score=score,
        risk_level=risk_level(score),
    )


def generate_impact_report(sdd_dir: Path) -> ImpactReport:
    graph = build_dependency_graph(sdd_dir)
    ranked = sorted(
        ((n.id, len(n.depended_by)) for n in graph.nodes.values() if n.depended_by),
        key=lambda item: (-item[1], item[0]),
    )
    return ImpactReport(
        total_specs=len(graph.nodes),
        total_edges=len(graph.edges),
        explicit_edges=sum(1 for e in graph.edges if e.type == "explicit"),
        reference_edges=sum(1 for e in graph.edges if e.type == "reference"),
        most_depended=ranked[:5],
        isolated=sorted(n.id for n in graph.nodes.values() if not n.depends_on and not n.depended_by),
        cycles=graph.find_cycles(),
        missing=[f"{e.source} -> {e.target}" for e in graph.missing_targets()],
        mermaid=graph.to_mermaid(),
    )


def format_impact(result: ImpactResult) -> str:
    lines = [f"Impact analysis: {result.target}", ""]
    if result.depends_on:
        lines.append("Depends on:")
        lines += [f"  └─ {d.id} ({d.type})" for d in result.depends_on]
        lines.append("")
    if result.affected_by:
        lines.append("Affected specs:")
        lines += [f"  ├─ {LEVEL_ICON[a.level]} {a.id} ({a.type})" for a in result.affected_by]
        lines.append("")
    lines += [f"Risk score: {result.risk_score}/10 {LEVEL_ICON[result.risk_level]}", ""]
    if result.recommendations:
        lines.append("Recommendations:")
        lines += [f"  - {r}" for r in result.recommendations]
    return "\n".join(lines)


def format_change_impact(impact: ChangeImpact) -> str:
    lines = [f"Change impact: {impact.change_id} {impact.title}", ""]
    if not impact.affected_specs:
        lines.append("The proposal lists no affected specs.")
    for result in impact.results:
        lines.append(f"{LEVEL_ICON[result.risk_level]} {result.target}: risk {result.risk_score}/10, "
                     f"{len(result.affected_by)} dependent spec(s)")
    for spec_id in impact.missing_specs:
        lines.append(f"?  {spec_id}: not found in specs/")
    lines += ["", f"Overall risk: {impact.risk_score}/10 ({impact.risk_level})"]
    return "\n".join(lines)


def format_impact_report(report: ImpactReport) -> str:
    lines = [
        "Dependency report",
        "=" * 40,
        f"Specs: {report.total_specs}",
        f"Edges: {report.total_edges} (explicit {report.explicit_edges}, reference {report.reference_edges})",
        "",
    ]
    if report.most_depended:
        lines.append("Most depended on:")
        lines += [f"  {spec_id}: {count}" for spec_id, count in report.most_depended]
        lines.append("")
    if report.cycles:
        lines.append("Cycles:")
        lines += ["  " + " -> ".join(c) for c in report.cycles]
        lines.append("")
    if report.missing:
        lines.append("Dependencies on unknown specs:")
        lines += [f"  {m}" for m in report.missing]
        lines.append("")
    if report.isolated:
        lines.append(f"Isolated specs: {', '.join(report.isolated)}")
    return "\n".join(lines)


def format_json(data) -> str:
    return json.dumps(data.to_dict(), indent=2, ensure_ascii=False)
