"""
sdd reverse - Draft specs from an existing code base.

  scan      walk the source tree, suggest domains (records .reverse-meta.json)
  extract   draft one spec per module (needs Serena MCP or --skip-serena-check)
  review    list drafts, approve or reject one
  finalize  write approved drafts to .sdd/specs/<domain>/<name>/spec.md
"""

import json
from pathlib import Path

from sdd.lib.domains import DomainError, create_domain, load_domains_config
from sdd.lib.errors import ExitCode, SddError
from sdd.lib.fsutil import write_text
from sdd.new.spec_template import generate_feature_id
from sdd.reverse.extractor import (
    draft_summary,
    extract_drafts,
    finalize_drafts,
    get_draft,
    load_drafts,
    review_draft,
)
from sdd.reverse.meta import get_last_scan, get_scan_history, record_scan
from sdd.reverse.scanner import ScanResult, format_scan_result, scan_project
from sdd.reverse.serena import check_serena, ensure_serena


def _scan_path(args, sdd_dir: Path) -> Path:
    return Path(args.path).resolve() if args.path else sdd_dir.parent


def _compare(previous: dict, result: ScanResult) -> list[str]:
    summary = previous["summary"]
    lines = [f"Compared with scan of {previous['scannedAt'][:19]}:"]
    delta = result.file_count - summary["fileCount"]
    lines.append(f"  files: {summary['fileCount']} -> {result.file_count} ({delta:+d})")
    before = set(summary["suggestedDomains"])
    after = {d.name for d in result.domains}
    for name in sorted(after - before):
        lines.append(f"  + domain {name}")
    for name in sorted(before - after):
        lines.append(f"  - domain {name}")
    if summary["complexityGrade"] != result.complexity.grade:
        lines.append(f"  complexity: {summary['complexityGrade']} -> {result.complexity.grade}")
    return lines


def _create_domains(sdd_dir: Path, result: ScanResult) -> list[str]:
    existing = load_domains_config(sdd_dir)["domains"]
    created = []
    for suggested in result.domains:
        domain_id = generate_feature_id(suggested.name)
        if not domain_id or domain_id in existing:
            continue
        try:
            create_domain(sdd_dir, domain_id, f"Reverse-extracted from {suggested.path}", suggested.path)
        except DomainError as e:
            print(f"  WARNING: domain {domain_id} not created: {e.message}")
            continue
        created.append(domain_id)
    return created


def _print_history(sdd_dir: Path) -> None:
    entries = get_scan_history(sdd_dir)
    if not entries:
        print("No scans recorded.")
        return
    for entry in entries:
        summary = entry["summary"]
        print(f"  {entry['scannedAt'][:19]}  {summary['fileCount']:>5} files  "
              f"{summary['complexityGrade']:<9}  {entry['path']}")


def cmd_reverse_scan(args, sdd_dir: Path, config) -> int:
    if args.history:
        _print_history(sdd_dir)
        return ExitCode.SUCCESS

    previous = get_last_scan(sdd_dir) if args.compare else None
    result = scan_project(
        _scan_path(args, sdd_dir),
        depth=args.depth,
        include=args.include,
        exclude=args.exclude,
        language=args.language,
    )
    record_scan(sdd_dir, result, {
        "depth": args.depth,
        "include": args.include,
        "exclude": args.exclude,
        "language": args.language,
    })

    if args.output:
        write_text(Path(args.output), json.dumps(result.to_dict(), indent=2))

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    elif not args.quiet:
        print(format_scan_result(result))
        if previous:
            print()
            print("\n".join(_compare(previous, result)))

    if args.create_domains and result.domains:
        created = _create_domains(sdd_dir, result)
        if created and not args.json:
            print(f"Created domains: {', '.join(created)}")
    return ExitCode.SUCCESS


def cmd_reverse_extract(args, sdd_dir: Path, config) -> int:
    status = ensure_serena(config, "extract", skip_check=args.skip_serena_check)
    if not status.available and not args.quiet:
        print("WARNING: Serena check skipped; using regex extraction only")

    scan = scan_project(_scan_path(args, sdd_dir), depth=args.depth)
    drafts, skipped = extract_drafts(sdd_dir, scan, domain=args.domain, min_confidence=args.min_confidence)
    if not drafts:
        print("No drafts extracted.")
        return ExitCode.SUCCESS

    if not args.quiet:
        for draft in drafts:
            print(f"  {draft.id:<40} confidence {draft.confidence}%")
    print(f"Extracted {len(drafts)} draft(s)" + (f", skipped {skipped} low-confidence" if skipped else ""))
    print("Next: sdd reverse review")
    return ExitCode.SUCCESS


def cmd_reverse_review(args, sdd_dir: Path, config) -> int:
    if args.draft and (args.approve or args.reject):
        draft = review_draft(sdd_dir, args.draft, approve=args.approve, comment=args.comment)
        print(f"{draft.id}: {draft.status}")
        return ExitCode.SUCCESS

    if args.draft:
        draft = get_draft(sdd_dir, args.draft)
        print(draft.content)
        print()
        print(f"Approve: sdd reverse review {args.draft} --approve")
        return ExitCode.SUCCESS

    drafts = load_drafts(sdd_dir, None if args.all else "pending")
    if args.json:
        print(draft_summary(drafts))
        return ExitCode.SUCCESS
    if not drafts:
        print("No drafts to review." if not args.all else "No drafts.")
        return ExitCode.SUCCESS
    for draft in drafts:
        print(f"  {draft.id:<40} {draft.status:<10} {draft.confidence}%")
    return ExitCode.SUCCESS


def cmd_reverse_finalize(args, sdd_dir: Path, config) -> int:
    if args.draft:
        written = finalize_drafts(sdd_dir, args.draft, force=args.force)
    elif args.domain:
        written = []
        for draft in load_drafts(sdd_dir, "approved"):
            if draft.domain == args.domain:
                written += finalize_drafts(sdd_dir, draft.id, force=args.force)
    elif args.all:
        written = finalize_drafts(sdd_dir, force=args.force)
    else:
        print("ERROR: Give a draft id, --domain or --all")
        return ExitCode.GENERAL_ERROR

    if not written:
        print("Nothing finalized (only approved drafts are written).")
        return ExitCode.SUCCESS
    for path in written:
        print(f"  {path}")
    print(f"Finalized {len(written)} spec(s)")
    return ExitCode.SUCCESS


HANDLERS = {
    "scan": cmd_reverse_scan,
    "extract": cmd_reverse_extract,
    "review": cmd_reverse_review,
    "finalize": cmd_reverse_finalize,
}


def cmd_reverse(args, sdd_dir: Path, config) -> int:
    """Dispatch reverse sub-commands."""
    if args.check_serena or not args.reverse_cmd:
        status = check_serena(config)
        print(status.describe())
        return ExitCode.SUCCESS if status.available else ExitCode.GENERAL_ERROR
    try:
        return HANDLERS[args.reverse_cmd](args, sdd_dir, config)
    except SddError as e:
        print(f"ERROR: {e.message}")
        return e.exit_code
