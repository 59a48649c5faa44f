"""
sdd context - Narrow work to a set of active domains.
"""

import json
from pathlib import Path

from sdd.lib.context import (
    ContextInfo,
    add_domain,
    clear_context,
    context_specs,
    get_context,
    remove_domain,
    set_context,
)
from sdd.lib.errors import ExitCode, SddError


def print_context(info: ContextInfo) -> None:
    if not info.is_active:
        print("No active context (all domains).")
        return
    print(f"Active:    {', '.join(info.active_domains)}")
    if info.read_only_domains:
        print(f"Read-only: {', '.join(info.read_only_domains)}")
    print(f"Specs:     {info.total_specs}")
    if info.updated_at:
        print(f"Updated:   {info.updated_at}")


def cmd_context_show(args, sdd_dir: Path, config) -> int:
    info = get_context(sdd_dir)
    if getattr(args, "json", False):
        print(json.dumps(info.to_dict(), indent=2))
    else:
        print_context(info)
    return ExitCode.SUCCESS


def cmd_context_set(args, sdd_dir: Path, config) -> int:
    print_context(set_context(sdd_dir, args.domains, include_dependencies=args.include_deps))
    return ExitCode.SUCCESS


def cmd_context_add(args, sdd_dir: Path, config) -> int:
    print_context(add_domain(sdd_dir, args.domain))
    return ExitCode.SUCCESS


def cmd_context_remove(args, sdd_dir: Path, config) -> int:
    print_context(remove_domain(sdd_dir, args.domain))
    return ExitCode.SUCCESS


def cmd_context_clear(args, sdd_dir: Path, config) -> int:
    clear_context(sdd_dir)
    print("Context cleared.")
    return ExitCode.SUCCESS


def cmd_context_specs(args, sdd_dir: Path, config) -> int:
    active, read_only = context_specs(sdd_dir)
    if not active and not read_only:
        print("No specs in context.")
        return ExitCode.SUCCESS
    for spec_id in active:
        print(f"  {spec_id}")
    for spec_id in read_only:
        print(f"  {spec_id} (read-only)")
    return ExitCode.SUCCESS


HANDLERS = {
    "show": cmd_context_show,
    "set": cmd_context_set,
    "add": cmd_context_add,
    "remove": cmd_context_remove,
    "clear": cmd_context_clear,
    "specs": cmd_context_specs,
}


def cmd_context(args, sdd_dir: Path, config) -> int:
    try:
        return HANDLERS[args.context_cmd or "show"](args, sdd_dir, config)
    except SddError as e:
        print(f"ERROR: {e.message}")
        return e.exit_code
