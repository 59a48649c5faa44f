"""
Domain definitions (.sdd/domains.yml) and the domain dependency graph.

    version: "1.0"
    domains:
      auth:
        description: Authentication
        path: src/auth
        specs: [login]
        dependencies:
          uses: [core]
    rules:
      - {from: core, to: auth, type: uses, allowed: false}
"""

import logging
import re
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from sdd.lib import validate
from sdd.lib.errors import SddError

logger = logging.getLogger(__name__)

DOMAINS_FILENAME = "domains.yml"
DEPENDENCY_TYPES = ("uses", "extends", "implements")
DOMAIN_ID_RE = re.compile(r'^[a-z][a-z0-9-]*$')


class DomainError(SddError):
    pass


@dataclass
class DomainInfo:
    id: str
    description: str
    path: str = ""
    specs: list[str] = field(default_factory=list)
    dependencies: dict = field(default_factory=lambda: {t: [] for t in DEPENDENCY_TYPES})
    owner: str = ""
    tags: list[str] = field(default_factory=list)

    @property
    def depends_on(self) -> list[str]:
        return [d for t in DEPENDENCY_TYPES for d in self.dependencies.get(t, [])]


def default_domains_config() -> dict:
    return {
        "version": "1.0",
        "domains": {
            "core": {
                "description": "Shared core functionality",
                "path": "src/core",
                "specs": [],
                "dependencies": {"uses": [], "extends": [], "implements": []},
            },
        },
        "rules": [],
    }


def load_domains_config(sdd_dir: Path) -> dict:
    """
    Load and validate domains.yml. A missing file is an empty config.

    Raises:
        DomainError: malformed YAML or schema violation
    """
    path = sdd_dir / DOMAINS_FILENAME
    if not path.exists():
        return {"version": "1.0", "domains": {}, "rules": []}
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as e:
        raise DomainError(f"{path}: invalid YAML: {e}") from None

    errors = validate.iter_errors(data, "domains")
    if errors:
        raise DomainError(f"{path}: {'; '.join(errors)}")

    data["domains"] = data.get("domains") or {}
    data.setdefault("rules", [])
    return data


def save_domains_config(sdd_dir: Path, config: dict) -> None:
    validate.validate_before_write(config, "domains", sdd_dir / DOMAINS_FILENAME)
    (sdd_dir / DOMAINS_FILENAME).write_text(
        yaml.safe_dump(config, sort_keys=False, allow_unicode=True)
    )


def to_domain_infos(config: dict) -> list[DomainInfo]:
    infos = []
    for domain_id, definition in config.get("domains", {}).items():
        deps = definition.get("dependencies") or {}
        infos.append(DomainInfo(
            id=domain_id,
            description=definition["description"],
            path=definition.get("path", ""),
            specs=list(definition.get("specs", [])),
            dependencies={t: list(deps.get(t, [])) for t in DEPENDENCY_TYPES},
            owner=definition.get("owner", ""),
            tags=list(definition.get("tags", [])),
        ))
    return infos


def list_domains(sdd_dir: Path) -> list[DomainInfo]:
    return to_domain_infos(load_domains_config(sdd_dir))


def get_domain(sdd_dir: Path, domain_id: str) -> Optional[DomainInfo]:
    for info in list_domains(sdd_dir):
        if info.id == domain_id:
            return info
    return None


def create_domain(sdd_dir: Path, domain_id: str, description: str, path: str = "",
                  uses: Optional[list[str]] = None) -> DomainInfo:
    if not DOMAIN_ID_RE.match(domain_id):
        raise DomainError(f"Invalid domain id '{domain_id}': use lowercase letters, digits and hyphens")
    config = load_domains_config(sdd_dir)
    if domain_id in config["domains"]:
        raise DomainError(f"Domain '{domain_id}' already exists")
    for dep in uses or []:
        if dep not in config["domains"]:
            raise DomainError(f"Unknown dependency domain '{dep}'")

    config["domains"][domain_id] = {
        "description": description,
        "path": path or f"src/{domain_id}",
        "specs": [],
        "dependencies": {"uses": list(uses or []), "extends": [], "implements": []},
    }
    save_domains_config(sdd_dir, config)
    logger.info(f"[domain] created {domain_id}")
    return get_domain(sdd_dir, domain_id)


def link_spec(sdd_dir: Path, domain_id: str, spec_id: str) -> None:
    config = load_domains_config(sdd_dir)
    definition = config["domains"].get(domain_id)
    if definition is None:
        raise DomainError(f"Unknown domain '{domain_id}'")
    specs = definition.setdefault("specs", [])
    if spec_id not in specs:
        specs.append(spec_id)
        save_domains_config(sdd_dir, config)


class DomainGraph:
    """Directed graph of domain dependencies (edge from -> to means from depends on to)."""

    def __init__(self, config: dict):
        self.domains = {d.id: d for d in to_domain_infos(config)}
        self.rules = config.get("rules", [])
        self.edges: list[tuple[str, str, str]] = [
            (d.id, target, dep_type)
            for d in self.domains.values()
            for dep_type in DEPENDENCY_TYPES
            for target in d.dependencies.get(dep_type, [])
        ]

    def dependencies(self, domain_id: str) -> list[str]:
        return [t for s, t, _ in self.edges if s == domain_id]

    def dependents(self, domain_id: str) -> list[str]:
        return [s for s, t, _ in self.edges if t == domain_id]

    def transitive_dependencies(self, domain_ids: list[str]) -> list[str]:
        """Every domain reachable from domain_ids, excluding the starting ones."""
        seen: set[str] = set()
        queue = deque(domain_ids)
        while queue:
            current = queue.popleft()
            for dep in self.dependencies(current):
                if dep not in seen and dep in self.domains:
                    seen.add(dep)
                    queue.append(dep)
        return [d for d in sorted(seen) if d not in domain_ids]

    def find_cycles(self) -> list[list[str]]:
        cycles: list[list[str]] = []
        visited: set[str] = set()

        def visit(node: str, stack: list[str]) -> None:
            if node in stack:
                cycle = stack[stack.index(node):] + [node]
                if sorted(cycle[:-1]) not in [sorted(c[:-1]) for c in cycles]:
                    cycles.append(cycle)
                return
            if node in visited:
                return
            visited.add(node)
            for dep in self.dependencies(node):
                visit(dep, stack + [node])

        for domain_id in sorted(self.domains):
            visit(domain_id, [])
        return cycles

    def topological_sort(self) -> Optional[list[str]]:
        """Dependencies first. None when the graph has a cycle."""
        in_degree = {d: 0 for d in self.domains}
        for source, target, _ in self.edges:
            if source in in_degree and target in in_degree:
                in_degree[source] += 1
        queue = deque(sorted(d for d, n in in_degree.items() if n == 0))
        order = []
        while queue:
            node = queue.popleft()
            order.append(node)
            for dependent in sorted(self.dependents(node)):
                if dependent in in_degree:
                    in_degree[dependent] -= 1
                    if in_degree[dependent] == 0:
                        queue.append(dependent)
        return order if len(order) == len(self.domains) else None

    def roots(self) -> list[str]:
        """Domains nothing depends on."""
        return sorted(d for d in self.domains if not self.dependents(d))

    def leaves(self) -> list[str]:
        """Domains that depend on nothing."""
        return sorted(d for d in self.domains if not self.dependencies(d))

    def find_path(self, start: str, end: str) -> Optional[list[str]]:
        queue = deque([[start]])
        seen = {start}
        while queue:
            path = queue.popleft()
            if path[-1] == end:
                return path
            for dep in self.dependencies(path[-1]):
                if dep not in seen:
                    seen.add(dep)
                    queue.append(path + [dep])
        return None

    def rule_violations(self) -> list[str]:
        violations = []
        for rule in self.rules:
            if rule.get("allowed", True):
                continue
            for source, target, dep_type in self.edges:
                if (source, target, dep_type) == (rule["from"], rule["to"], rule["type"]):
                    reason = f" ({rule['reason']})" if rule.get("reason") else ""
                    violations.append(f"{source} -[{dep_type}]-> {target} is not allowed{reason}")
        return violations

    def unknown_references(self) -> list[str]:
        return [f"{s} -> {t}" for s, t, _ in self.edges if t not in self.domains]

    def to_mermaid(self) -> str:
        arrows = {"uses": "-->", "extends": "-.->", "implements": "==>"}
        lines = ["graph LR"]
        for domain_id in sorted(self.domains):
            lines.append(f"  {domain_id}[{domain_id}]")
        for source, target, dep_type in self.edges:
            lines.append(f"  {source} {arrows[dep_type]}|{dep_type}| {target}")
        return "\n".join(lines)

    def to_dot(self) -> str:
        styles = {"uses": "solid", "extends": "dashed", "implements": "bold"}
        lines = ["digraph domains {", "  rankdir=LR;"]
        for domain_id in sorted(self.domains):
            lines.append(f'  "{domain_id}";')
        for source, target, dep_type in self.edges:
            lines.append(f'  "{source}" -> "{target}" [label="{dep_type}", style={styles[dep_type]}];')
        lines.append("}")
        return "\n".join(lines)
