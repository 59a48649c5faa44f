"""
sdd constitution - Show, validate and version the project constitution,
and check specs against it.
"""

import json
from pathlib import Path

from sdd.constitution.changelog import (
    CHANGE_TYPES,
    add_changelog_entry,
    create_entry,
    history,
    suggest_bump,
)
from sdd.constitution.parser import (
    CONSTITUTION_FILENAME,
    load_constitution,
    set_version,
    validate_constitution,
)
from sdd.constitution.violations import check_violations, format_violation_report
from sdd.lib.errors import ExitCode, SddError
from sdd.lib.fsutil import read_text, write_text
from sdd.spec.locate import SPEC_FILENAME, find_feature_dir


def parse_change_message(message: str) -> tuple[str, str]:
    """'added: new rule' -> ('added', 'new rule'). Untyped messages count as 'changed'."""
    change_type, sep, description = message.partition(":")
    change_type = change_type.strip().lower()
    if sep and change_type in CHANGE_TYPES:
        return change_type, description.strip()
    return "changed", message.strip()


def cmd_constitution_show(args, sdd_dir: Path, config) -> int:
    constitution = load_constitution(sdd_dir)
    if args.json:
        data = {
            "projectName": constitution.project_name,
            "version": constitution.version,
            "created": constitution.created,
            "updated": constitution.updated,
            "description": constitution.description,
            "principles": [{"id": p.id, "title": p.title, "rules": p.rules} for p in constitution.principles],
            "forbidden": constitution.forbidden,
            "technical": constitution.technical,
        }
        print(json.dumps(data, indent=2))
        return ExitCode.SUCCESS

    print(f"Constitution: {constitution.project_name} v{constitution.version}")
    if constitution.description:
        print(f"  {constitution.description}")
    print()
    for principle in constitution.principles:
        print(f"{principle.id}. {principle.title}")
        for rule in principle.rules:
            print(f"    - {rule}")
    if constitution.forbidden:
        print()
        print("Forbidden:")
        for rule in constitution.forbidden:
            print(f"    - {rule}")
    if constitution.technical:
        print()
        print("Technical:")
        for item in constitution.technical:
            print(f"    - {item}")
    return ExitCode.SUCCESS


def cmd_constitution_version(args, sdd_dir: Path, config) -> int:
    print(load_constitution(sdd_dir).version)
    return ExitCode.SUCCESS


def cmd_constitution_bump(args, sdd_dir: Path, config) -> int:
    constitution = load_constitution(sdd_dir)
    changes = [parse_change_message(m) for m in args.message or []]
    bump = args.bump or suggest_bump(changes)
    entry = create_entry(constitution.version, bump, changes, args.reason)

    print(f"{constitution.version} -> {entry.version} ({bump})")
    if args.dry_run:
        print("(dry run, nothing written)")
        return ExitCode.SUCCESS

    path = sdd_dir / CONSTITUTION_FILENAME
    write_text(path, set_version(read_text(path), entry.version))
    add_changelog_entry(sdd_dir, entry)
    print(f"Updated {path}")
    return ExitCode.SUCCESS


def cmd_constitution_history(args, sdd_dir: Path, config) -> int:
    entries = history(sdd_dir, args.limit)
    if not entries:
        print("No constitution history.")
        return ExitCode.SUCCESS
    for entry in entries:
        print(f"[{entry.version}] {entry.date}")
        for change_type, description in entry.changes:
            print(f"    {change_type}: {description}")
        if entry.reason:
            print(f"    reason: {entry.reason}")
    return ExitCode.SUCCESS


def cmd_constitution_validate(args, sdd_dir: Path, config) -> int:
    constitution = load_constitution(sdd_dir)
    problems = validate_constitution(constitution)
    if not problems:
        print(f"✓ Constitution v{constitution.version}: {constitution.rule_count} rules")
        return ExitCode.SUCCESS
    print(f"✗ Constitution v{constitution.version}")
    for problem in problems:
        print(f"    {problem}")
    return ExitCode.CONSTITUTION_VIOLATION


def cmd_constitution_check(args, sdd_dir: Path, config) -> int:
    """Check one spec against the constitution."""
    constitution = load_constitution(sdd_dir)
    feature_dir = find_feature_dir(sdd_dir, args.feature)
    if not feature_dir or not (feature_dir / SPEC_FILENAME).is_file():
        print(f"ERROR: Spec not found: {args.feature}")
        return ExitCode.FILE_SYSTEM_ERROR

    report = check_violations(read_text(feature_dir / SPEC_FILENAME), constitution)
    if args.json:
        print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    else:
        print(format_violation_report(report))
    return ExitCode.SUCCESS if report.passed else ExitCode.CONSTITUTION_VIOLATION


HANDLERS = {
    "show": cmd_constitution_show,
    "version": cmd_constitution_version,
    "bump": cmd_constitution_bump,
    "history": cmd_constitution_history,
    "validate": cmd_constitution_validate,
    "check": cmd_constitution_check,
}


def cmd_constitution(args, sdd_dir: Path, config) -> int:
    """Dispatch constitution sub-commands. No sub-command shows it."""
    try:
        return HANDLERS[args.constitution_cmd or "show"](args, sdd_dir, config)
    except SddError as e:
        print(f"ERROR: {e.message}")
        return e.exit_code
