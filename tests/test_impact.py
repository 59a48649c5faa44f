"""Tests for sdd.impact graph and analyzer."""

import json

import pytest

from sdd.change.service import create_change
from sdd.impact.analyzer import (
    analyze_change_impact,
    analyze_impact,
    format_change_impact,
    format_impact,
    format_impact_report,
    format_json,
    generate_impact_report,
    risk_level,
)
from sdd.impact.graph import DependencyGraph, DependencyNode, build_dependency_graph, find_references
from sdd.lib.errors import ErrorCode, SddError

SPECS = {
    "core": "---\nstatus: approved\n---\n\n# Core\n",
    "auth/login": "---\ndepends: [core]\n---\n\n# Login\n\nTokens come from `billing/invoice`.\n",
    "billing/invoice": "---\ndepends: core, ghost\n---\n\n# Invoices\n",
}


@pytest.fixture
def sdd_dir(tmp_path):
    path = tmp_path / ".sdd"
    for spec_id, content in SPECS.items():
        spec_dir = path / "specs" / spec_id
        spec_dir.mkdir(parents=True)
        (spec_dir / "spec.md").write_text(content)
    return path


class TestDependencyGraph:
    """Test building the graph from spec files."""

    def test_nodes_and_edges(self, sdd_dir):
        graph = build_dependency_graph(sdd_dir)
        assert sorted(graph.nodes) == ["auth/login", "billing/invoice", "core"]
        assert [(e.source, e.target, e.type) for e in graph.edges] == [
            ("auth/login", "core", "explicit"),
            ("auth/login", "billing/invoice", "reference"),
            ("billing/invoice", "core", "explicit"),
            ("billing/invoice", "ghost", "explicit"),
        ]
        assert graph.nodes["core"].depended_by == ["auth/login", "billing/invoice"]
        assert graph.nodes["auth/login"].title == "Login"
        assert graph.nodes["auth/login"].path == "auth/login/spec.md"

    def test_missing_targets(self, sdd_dir):
        graph = build_dependency_graph(sdd_dir)
        assert [e.target for e in graph.missing_targets()] == ["ghost"]

    def test_no_specs_dir_gives_empty_graph(self, tmp_path):
        assert build_dependency_graph(tmp_path).nodes == {}

    def test_invalid_frontmatter_is_ignored(self, tmp_path, caplog):
        spec_dir = tmp_path / "specs" / "broken"
        spec_dir.mkdir(parents=True)
        (spec_dir / "spec.md").write_text("---\ndepends: [x\n---\n\n# Broken\n")
        graph = build_dependency_graph(tmp_path)
        assert graph.nodes["broken"].depends_on == []
        assert "invalid frontmatter" in caplog.text

    def test_find_references(self):
        content = "See [the doc](../specs/auth/login/spec.md) and `core`."
        assert find_references(content, ["auth/login", "core", "billing/invoice"]) == ["auth/login", "core"]

    def test_find_cycles(self):
        graph = DependencyGraph(nodes={
            "a": DependencyNode("a", "a/spec.md", depends_on=["b"]),
            "b": DependencyNode("b", "b/spec.md", depends_on=["a"]),
            "c": DependencyNode("c", "c/spec.md"),
        })
        assert graph.find_cycles() == [["a", "b", "a"]]

    def test_mermaid(self, sdd_dir):
        text = build_dependency_graph(sdd_dir).to_mermaid(highlight="core")
        assert text.startswith("graph LR")
        assert '    auth_login["Login"]' in text
        assert "    style core fill:#ff9" in text
        assert "    auth_login --> core" in text
        assert "    auth_login -.-> billing_invoice" in text


class TestAnalyzeImpact:
    """Test single-spec impact analysis."""

    def test_core_has_medium_risk(self, sdd_dir):
        result = analyze_impact(sdd_dir, "core")
        assert result.depends_on == []
        assert [(a.id, a.level, a.type) for a in result.affected_by] == [
            ("auth/login", "high", "explicit"),
            ("billing/invoice", "high", "explicit"),
        ]
        assert (result.risk_score, result.risk_level) == (4, "medium")
        assert len(result.recommendations) == 3
        assert "- affects 2 spec(s)" in result.summary

    def test_reference_only_dependent_is_low(self, sdd_dir):
        result = analyze_impact(sdd_dir, "billing/invoice")
        assert [d.id for d in result.depends_on] == ["core", "ghost"]
        assert result.depends_on[1].path == "ghost"
        assert (result.risk_score, result.risk_level) == (1, "low")
        assert result.recommendations == ["Follow the standard change process."]

    def test_unknown_spec(self, sdd_dir):
        with pytest.raises(SddError) as exc:
            analyze_impact(sdd_dir, "nope")
        assert exc.value.code == ErrorCode.FILE_NOT_FOUND

    def test_missing_specs_dir(self, tmp_path):
        with pytest.raises(SddError) as exc:
            analyze_impact(tmp_path, "core")
        assert exc.value.code == ErrorCode.DIRECTORY_NOT_FOUND

    @pytest.mark.parametrize("score,level", [(1, "low"), (3, "low"), (4, "medium"), (6, "medium"), (7, "high")])
    def test_risk_level(self, score, level):
        assert risk_level(score) == level

    def test_format(self, sdd_dir):
        text = format_impact(analyze_impact(sdd_dir, "core"))
        assert "Impact analysis: core" in text
        assert "  ├─ 🔴 auth/login (explicit)" in text
        assert "Risk score: 4/10 🟡" in text

    def test_json(self, sdd_dir):
        data = json.loads(format_json(analyze_impact(sdd_dir, "core")))
        assert data["risk_score"] == 4
        assert data["affected_by"][0]["id"] == "auth/login"


class TestChangeImpact:
    """Test impact of a change proposal."""

    def test_affected_specs(self, sdd_dir):
        create_change(sdd_dir, "Touch core", affected_specs=["core", "ghost"])
        impact = analyze_change_impact(sdd_dir, "CHG-001")
        assert impact.title == "Touch core"
        assert [r.target for r in impact.results] == ["core"]
        assert impact.missing_specs == ["ghost"]
        assert (impact.risk_score, impact.risk_level) == (4, "medium")

        text = format_change_impact(impact)
        assert "ghost: not found in specs/" in text
        assert "Overall risk: 4/10 (medium)" in text

    def test_unknown_change(self, sdd_dir):
        with pytest.raises(SddError):
            analyze_change_impact(sdd_dir, "CHG-404")


class TestImpactReport:
    """Test the project-wide dependency report."""

    def test_report(self, sdd_dir):
        report = generate_impact_report(sdd_dir)
        assert (report.total_specs, report.total_edges) == (3, 4)
        assert (report.explicit_edges, report.reference_edges) == (3, 1)
        assert report.most_depended == [("core", 2), ("billing/invoice", 1)]
        assert report.isolated == []
        assert report.cycles == []
        assert report.missing == ["billing/invoice -> ghost"]

    def test_format(self, sdd_dir):
        text = format_impact_report(generate_impact_report(sdd_dir))
        assert "Edges: 4 (explicit 3, reference 1)" in text
        assert "  core: 2" in text
        assert "  billing/invoice -> ghost" in text
