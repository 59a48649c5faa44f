"""
sdd change - Change proposals for existing specs.

Lifecycle: draft -> proposed -> approved -> applied -> archived
(reject from draft or proposed).
"""

import json
import sys
from pathlib import Path

from sdd.change.archive import archive_change, list_pending_changes
from sdd.change.service import (
    apply_change,
    check_change,
    create_change,
    load_delta,
    show_change,
    transition_change,
)
from sdd.diff.formatter import COLORS
from sdd.lib.errors import ExitCode, SddError

PREVIEW_LINES = 10


def _color(enabled: bool, color: str, text: str) -> str:
    return f"{COLORS[color]}{text}{COLORS['reset']}" if enabled else text


def _preview(text: str, sign: str) -> list[str]:
    lines = text.strip().split("\n")
    shown = [f"  {sign} {line}" for line in lines[:PREVIEW_LINES]]
    if len(lines) > PREVIEW_LINES:
        shown.append(f"  ... ({len(lines) - PREVIEW_LINES} more lines)")
    return shown


def cmd_change_new(args, sdd_dir: Path, config) -> int:
    if not args.title:
        print("ERROR: --title is required")
        return ExitCode.GENERAL_ERROR
    created = create_change(
        sdd_dir,
        title=args.title,
        affected_specs=args.spec or None,
        rationale=args.rationale or "",
        change_types=args.type or None,
    )
    print(f"Created change {created.id}")
    for path in created.files:
        print(f"  {path}")
    print()
    print("Next steps:")
    print(f"  1. Describe the change in {created.path / 'proposal.md'}")
    print(f"  2. Fill in {created.path / 'delta.md'}")
    print(f"  3. sdd change propose {created.id}")
    return ExitCode.SUCCESS


def cmd_change_list(args, sdd_dir: Path, config) -> int:
    changes = list_pending_changes(sdd_dir)
    if not changes:
        print("No pending changes.")
        return ExitCode.SUCCESS
    for change in changes:
        print(f"  {change.id:<10} {change.status:<10} {change.title or ''}")
    return ExitCode.SUCCESS


def cmd_change_show(args, sdd_dir: Path, config) -> int:
    proposal = show_change(sdd_dir, args.id)
    if args.json:
        print(json.dumps(proposal.to_dict(), indent=2))
        return ExitCode.SUCCESS

    print(f"{proposal.id}: {proposal.title}")
    print(f"  Status:  {proposal.status}")
    print(f"  Created: {proposal.created}")
    if proposal.updated:
        print(f"  Updated: {proposal.updated}")
    print(f"  Type:    {', '.join(proposal.change_types) or '-'}")
    print(f"  Risk:    {proposal.risk} (complexity {proposal.complexity})")
    if proposal.affected_specs:
        print("  Affected specs:")
        for spec in proposal.affected_specs:
            print(f"    - {spec}")
    if proposal.rationale:
        print()
        print(proposal.rationale)
    return ExitCode.SUCCESS


def cmd_change_transition(args, sdd_dir: Path, config) -> int:
    """propose, approve, reject."""
    status = transition_change(sdd_dir, args.id, args.change_cmd)
    print(f"{args.id}: {status}")
    return ExitCode.SUCCESS


def cmd_change_apply(args, sdd_dir: Path, config) -> int:
    check = check_change(sdd_dir, args.id)
    if not check.delta.valid:
        print(f"ERROR: {args.id} has an invalid delta:")
        for error in check.delta.errors:
            print(f"  - {error}")
        return ExitCode.VALIDATION_FAILED
    status = apply_change(sdd_dir, args.id)
    print(f"{args.id}: {status}")
    print(f"Update the affected specs, then run 'sdd change archive {args.id}'")
    return ExitCode.SUCCESS


def cmd_change_archive(args, sdd_dir: Path, config) -> int:
    result = archive_change(sdd_dir, args.id)
    print(f"Archived {result.change_id} to {result.archive_dir}")
    return ExitCode.SUCCESS


def cmd_change_diff(args, sdd_dir: Path, config) -> int:
    delta = load_delta(sdd_dir, args.id)
    colors = sys.stdout.isatty()
    print(f"Delta: {delta.title} ({delta.proposal})")
    print()
    if delta.added:
        print(_color(colors, "green", "ADDED"))
        for item in delta.added:
            print("\n".join(_color(colors, "green", line) for line in _preview(item, "+")))
        print()
    if delta.modified:
        print(_color(colors, "yellow", "MODIFIED"))
        for item in delta.modified:
            print(f"  {item.target}")
            if item.before:
                print("\n".join(_color(colors, "red", line) for line in _preview(item.before, "-")))
            if item.after:
                print("\n".join(_color(colors, "green", line) for line in _preview(item.after, "+")))
        print()
    if delta.removed:
        print(_color(colors, "red", "REMOVED"))
        for item in delta.removed:
            print("\n".join(_color(colors, "red", line) for line in _preview(item, "-")))
        print()
    if not (delta.added or delta.modified or delta.removed):
        print("Delta has no changes.")
    return ExitCode.SUCCESS


def cmd_change_validate(args, sdd_dir: Path, config) -> int:
    check = check_change(sdd_dir, args.id)
    if check.proposal_error:
        print(f"✗ proposal.md: {check.proposal_error}")
    else:
        print("✓ proposal.md")
    print(f"{'✓' if check.delta.valid else '✗'} delta.md")
    for error in check.delta.errors:
        print(f"    {error}")
    for warning in check.delta.warnings:
        print(f"    ⚠ {warning}")
    return ExitCode.SUCCESS if check.ok else ExitCode.VALIDATION_FAILED


HANDLERS = {
    "new": cmd_change_new,
    "list": cmd_change_list,
    "show": cmd_change_show,
    "propose": cmd_change_transition,
    "approve": cmd_change_transition,
    "reject": cmd_change_transition,
    "apply": cmd_change_apply,
    "archive": cmd_change_archive,
    "diff": cmd_change_diff,
    "validate": cmd_change_validate,
}


def cmd_change(args, sdd_dir: Path, config) -> int:
    """Dispatch change sub-commands. No sub-command lists pending changes."""
    handler = HANDLERS[args.change_cmd or "list"]
    try:
        return handler(args, sdd_dir, config)
    except SddError as e:
        print(f"ERROR: {e.message}")
        return e.exit_code
