"""
sdd domain - Manage domains in .sdd/domains.yml.
"""

import json
from pathlib import Path

from sdd.lib.domains import (
    DomainGraph,
    create_domain,
    get_domain,
    link_spec,
    list_domains,
    load_domains_config,
)
from sdd.lib.errors import ExitCode, SddError


def cmd_domain_create(args, sdd_dir: Path, config) -> int:
    info = create_domain(sdd_dir, args.id, args.description or args.id, args.path or "", args.uses)
    print(f"Created domain {info.id} ({info.path})")
    return ExitCode.SUCCESS


def cmd_domain_list(args, sdd_dir: Path, config) -> int:
    domains = list_domains(sdd_dir)
    if args.json:
        print(json.dumps([
            {"id": d.id, "description": d.description, "path": d.path, "specs": d.specs, "dependsOn": d.depends_on}
            for d in domains
        ], indent=2))
        return ExitCode.SUCCESS
    if not domains:
        print("No domains defined. Create one with 'sdd domain create <id>'.")
        return ExitCode.SUCCESS
    for info in domains:
        print(f"  {info.id:<20} {len(info.specs):>3} spec(s)  {info.description}")
    return ExitCode.SUCCESS


def cmd_domain_show(args, sdd_dir: Path, config) -> int:
    info = get_domain(sdd_dir, args.id)
    if info is None:
        print(f"ERROR: Unknown domain '{args.id}'")
        return ExitCode.GENERAL_ERROR
    graph = DomainGraph(load_domains_config(sdd_dir))
    print(f"{info.id}: {info.description}")
    print(f"  Path:  {info.path}")
    if info.owner:
        print(f"  Owner: {info.owner}")
    if info.tags:
        print(f"  Tags:  {', '.join(info.tags)}")
    for dep_type, targets in info.dependencies.items():
        if targets:
            print(f"  {dep_type}: {', '.join(targets)}")
    dependents = graph.dependents(info.id)
    if dependents:
        print(f"  Used by: {', '.join(sorted(dependents))}")
    print(f"  Specs ({len(info.specs)}):")
    for spec_id in info.specs:
        print(f"    - {spec_id}")
    return ExitCode.SUCCESS


def cmd_domain_link(args, sdd_dir: Path, config) -> int:
    link_spec(sdd_dir, args.id, args.spec)
    print(f"Linked {args.spec} to {args.id}")
    return ExitCode.SUCCESS


def cmd_domain_graph(args, sdd_dir: Path, config) -> int:
    graph = DomainGraph(load_domains_config(sdd_dir))
    print(graph.to_dot() if args.format == "dot" else graph.to_mermaid())
    return ExitCode.SUCCESS


def cmd_domain_validate(args, sdd_dir: Path, config) -> int:
    graph = DomainGraph(load_domains_config(sdd_dir))
    problems = [f"unknown dependency: {ref}" for ref in graph.unknown_references()]
    problems += [f"cycle: {' -> '.join(cycle)}" for cycle in graph.find_cycles()]
    problems += graph.rule_violations()
    if problems:
        print(f"✗ {len(problems)} problem(s) in domains.yml")
        for problem in problems:
            print(f"    {problem}")
        return ExitCode.VALIDATION_FAILED
    order = graph.topological_sort() or []
    print(f"✓ {len(graph.domains)} domain(s), no cycles")
    if order:
        print(f"  Build order: {' -> '.join(order)}")
    return ExitCode.SUCCESS


HANDLERS = {
    "create": cmd_domain_create,
    "list": cmd_domain_list,
    "show": cmd_domain_show,
    "link": cmd_domain_link,
    "graph": cmd_domain_graph,
    "validate": cmd_domain_validate,
}


def cmd_domain(args, sdd_dir: Path, config) -> int:
    try:
        return HANDLERS[args.domain_cmd or "list"](args, sdd_dir, config)
    except SddError as e:
        print(f"ERROR: {e.message}")
        return e.exit_code
