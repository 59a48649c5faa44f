"""
sdd impact - What a change to a spec or change proposal touches.

  sdd impact <feature> [--graph] [--json]
  sdd impact report [--json]
  sdd impact change <CHG-xxx> [--json]
"""

from pathlib import Path

from sdd.impact.analyzer import (
    analyze_change_impact,
    analyze_impact,
    format_change_impact,
    format_impact,
    format_impact_report,
    format_json,
    generate_impact_report,
)
from sdd.impact.graph import build_dependency_graph
from sdd.lib.errors import ExitCode, SddError


def cmd_impact_feature(args, sdd_dir: Path, config) -> int:
    graph = build_dependency_graph(sdd_dir)
    result = analyze_impact(sdd_dir, args.target, graph)
    if args.json:
        print(format_json(result))
        return ExitCode.SUCCESS
    print(format_impact(result))
    if args.graph:
        print()
        print("```mermaid")
        print(graph.to_mermaid(highlight=args.target))
        print("```")
    return ExitCode.SUCCESS


def cmd_impact_report(args, sdd_dir: Path, config) -> int:
    report = generate_impact_report(sdd_dir)
    print(format_json(report) if args.json else format_impact_report(report))
    return ExitCode.SUCCESS


def cmd_impact_change(args, sdd_dir: Path, config) -> int:
    if not args.change_id:
        print("ERROR: Usage: sdd impact change <CHG-xxx>")
        return ExitCode.GENERAL_ERROR
    impact = analyze_change_impact(sdd_dir, args.change_id)
    print(format_json(impact) if args.json else format_change_impact(impact))
    return ExitCode.SUCCESS


def cmd_impact(args, sdd_dir: Path, config) -> int:
    """'report' and 'change' are keywords; anything else is a feature id."""
    if args.target == "report":
        handler = cmd_impact_report
    elif args.target == "change":
        handler = cmd_impact_change
    else:
        handler = cmd_impact_feature
    try:
        return handler(args, sdd_dir, config)
    except SddError as e:
        print(f"ERROR: {e.message}")
        return e.exit_code
