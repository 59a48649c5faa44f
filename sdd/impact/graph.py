"""
Spec dependency graph.

Edges come from two places:
- explicit: the `depends` frontmatter field
- reference: markdown links, specs/<id> paths or `<id>` in backticks

Built fresh on every call; nothing is persisted.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from sdd.lib.frontmatter import split_frontmatter
from sdd.lib.fsutil import read_text
from sdd.spec.locate import iter_spec_files, spec_id_for, specs_dir
from sdd.spec.parser import get_spec_title

logger = logging.getLogger(__name__)


@dataclass
class DependencyNode:
    id: str
    path: str
    title: Optional[str] = None
    depends_on: list[str] = field(default_factory=list)
    depended_by: list[str] = field(default_factory=list)


@dataclass
class DependencyEdge:
    source: str
    target: str
    type: str  # explicit, reference
    description: str = ""


@dataclass
class DependencyGraph:
    nodes: dict[str, DependencyNode] = field(default_factory=dict)
    edges: list[DependencyEdge] = field(default_factory=list)

    def edge(self, source: str, target: str) -> Optional[DependencyEdge]:
        return next((e for e in self.edges if e.source == source and e.target == target), None)

    def find_cycles(self) -> list[list[str]]:
        cycles: list[list[str]] = []
        visited: set[str] = set()

        def visit(node_id: str, stack: list[str]) -> None:
            if node_id in stack:
                cycle = stack[stack.index(node_id):] + [node_id]
                if sorted(cycle[:-1]) not in [sorted(c[:-1]) for c in cycles]:
                    cycles.append(cycle)
                return
            if node_id in visited or node_id not in self.nodes:
                return
            visited.add(node_id)
            for dep in self.nodes[node_id].depends_on:
                visit(dep, stack + [node_id])

        for node_id in sorted(self.nodes):
            visit(node_id, [])
        return cycles

    def missing_targets(self) -> list[DependencyEdge]:
        return [e for e in self.edges if e.target not in self.nodes]

    def to_mermaid(self, highlight: Optional[str] = None) -> str:
        lines = ["graph LR"]
        for node_id, node in sorted(self.nodes.items()):
            label = (node.title or node_id).replace('"', "'")
            lines.append(f'    {_mermaid_id(node_id)}["{label}"]')
            if node_id == highlight:
                lines.append(f"    style {_mermaid_id(node_id)} fill:#ff9")
        for e in self.edges:
            arrow = "-->" if e.type == "explicit" else "-.->"
            lines.append(f"    {_mermaid_id(e.source)} {arrow} {_mermaid_id(e.target)}")
        return "\n".join(lines)


def _mermaid_id(spec_id: str) -> str:
    return re.sub(r'[^A-Za-z0-9]', '_', spec_id)


def _explicit_depends(metadata: dict) -> list[str]:
    depends = metadata.get("depends")
    if not depends:
        return []
    if isinstance(depends, str):
        depends = [d.strip() for d in depends.split(",")]
    return [str(d) for d in depends if d and d != "null"]


def find_references(content: str, spec_ids: list[str]) -> list[str]:
    references = []
    for spec_id in spec_ids:
        escaped = re.escape(spec_id)
        patterns = (
            rf'\[[^\]]*\]\([^)]*{escaped}[^)]*\)',
            rf'specs/{escaped}\b',
            rf'`{escaped}`',
        )
        if any(re.search(p, content, re.IGNORECASE) for p in patterns):
            references.append(spec_id)
    return references


def build_dependency_graph(sdd_dir: Path) -> DependencyGraph:
    """Graph over every spec.md. An empty graph when specs/ does not exist."""
    graph = DependencyGraph()
    paths = iter_spec_files(sdd_dir)
    all_ids = [spec_id_for(sdd_dir, p) for p in paths]

    for path, spec_id in zip(paths, all_ids):
        content = read_text(path)
        try:
            metadata, _ = split_frontmatter(content)
        except yaml.YAMLError:
            logger.warning(f"[impact] {spec_id}: invalid frontmatter, explicit dependencies ignored")
            metadata = {}

        node = DependencyNode(
            id=spec_id,
            path=path.relative_to(specs_dir(sdd_dir)).as_posix(),
            title=get_spec_title(content),
        )
        for dep in _explicit_depends(metadata):
            node.depends_on.append(dep)
            graph.edges.append(DependencyEdge(spec_id, dep, "explicit", "depends field"))

        for ref in find_references(content, all_ids):
            if ref != spec_id and ref not in node.depends_on:
                node.depends_on.append(ref)
                graph.edges.append(DependencyEdge(spec_id, ref, "reference", "referenced in document"))

        graph.nodes[spec_id] = node

    for e in graph.edges:
        target = graph.nodes.get(e.target)
        if target and e.source not in target.depended_by:
            target.depended_by.append(e.source)

    logger.debug(f"[impact] graph: {len(graph.nodes)} node(s), {len(graph.edges)} edge(s)")
    return graph
