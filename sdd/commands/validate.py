"""
sdd validate - Check spec files.

Validates one file or every spec.md under a directory (default
.sdd/specs). With --constitution each spec is also checked against the
constitution: its constitution_version and any forbidden terms the
constitution quotes.
"""

import json
from pathlib import Path

from sdd.constitution.parser import load_constitution
from sdd.constitution.violations import check_violations
from sdd.lib.cache import load_cache, save_cache
from sdd.lib.errors import ConstitutionError, ExitCode, SddError
from sdd.spec.locate import specs_dir
from sdd.spec.validator import FileValidationResult, ValidationSummary, validate_specs


def print_file_result(result: FileValidationResult, base: Path) -> None:
    path = Path(result.file)
    display = path.relative_to(base) if path.is_relative_to(base) else path
    mark = "✓" if result.valid else "✗"
    print(f"{mark} {display}")
    for error in result.errors:
        print(f"    {error}")
    for warning in result.warnings:
        print(f"    ⚠ {warning}")


def print_summary(summary: ValidationSummary) -> None:
    parts = [f"{summary.passed} passed", f"{summary.failed} failed"]
    if summary.warnings:
        parts.append(f"{summary.warnings} warnings")
    print(", ".join(parts))


def _constitution_issues(sdd_dir: Path, summary: ValidationSummary) -> list[str]:
    try:
        constitution = load_constitution(sdd_dir)
    except ConstitutionError as e:
        return [f"constitution: {e.message}"]

    issues = []
    for result in summary.files:
        try:
            report = check_violations(Path(result.file).read_text(encoding="utf-8"), constitution)
        except OSError:
            continue
        except ConstitutionError as e:
            issues.append(f"{result.file}: {e.message}")
            continue
        if report.mismatch and report.mismatch.severity != "info":
            issues.append(f"{result.file}: {report.mismatch.message}")
        issues += [f"{result.file}:{v.line}: [{v.rule_id}] {v.message}" for v in report.violations]
    return issues


def cmd_validate(args, sdd_dir: Path, config) -> int:
    """Validate specs."""
    target = Path(args.path).resolve() if args.path else specs_dir(sdd_dir)
    if not target.exists():
        print(f"ERROR: Path not found: {target}")
        return ExitCode.FILE_SYSTEM_ERROR

    cache = load_cache(sdd_dir, config)
    try:
        summary = validate_specs(target, strict=args.strict, cache=cache)
    except SddError as e:
        print(f"ERROR: {e.message}")
        return e.exit_code
    if cache is not None:
        save_cache(sdd_dir, cache)

    if args.json:
        print(json.dumps(summary.to_dict(), indent=2))
        return ExitCode.SUCCESS if summary.ok else ExitCode.VALIDATION_FAILED

    base = target if target.is_dir() else target.parent
    if not args.quiet:
        print(f"Validating {target}")
        print()
        for result in summary.files:
            print_file_result(result, base)
        print()

    if not summary.files:
        print("No spec files found.")
    else:
        print_summary(summary)

    if args.constitution:
        issues = _constitution_issues(sdd_dir, summary)
        for issue in issues:
            print(f"  ⚠ {issue}")
        if issues and args.strict:
            return ExitCode.CONSTITUTION_VIOLATION

    return ExitCode.SUCCESS if summary.ok else ExitCode.VALIDATION_FAILED
