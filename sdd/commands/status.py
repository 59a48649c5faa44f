"""
sdd status - Show project status.
"""

import json
from pathlib import Path

from sdd.change.archive import list_archives, list_pending_changes
from sdd.constitution.parser import load_constitution
from sdd.export.report import load_spec_list
from sdd.lib.context import get_context
from sdd.lib.errors import ConstitutionError, ExitCode, SddError
from sdd.spec.locate import specs_dir


def collect_status(sdd_dir: Path) -> dict:
    specs = load_spec_list(sdd_dir)
    by_status: dict[str, int] = {}
    for spec in specs:
        by_status[spec.status] = by_status.get(spec.status, 0) + 1

    try:
        constitution_version = load_constitution(sdd_dir).version
    except ConstitutionError:
        constitution_version = None

    try:
        context = get_context(sdd_dir).active_domains
    except SddError:
        context = []

    return {
        "project": str(sdd_dir.parent),
        "constitution": constitution_version,
        "features": {
            "total": len(specs),
            "byStatus": dict(sorted(by_status.items())),
            "items": [vars(s) for s in specs],
        },
        "changes": {
            "pending": [{"id": c.id, "status": c.status, "title": c.title} for c in list_pending_changes(sdd_dir)],
            "archived": len(list_archives(sdd_dir)),
        },
        "context": context,
    }


def cmd_status(args, sdd_dir: Path, config) -> int:
    """Show feature, change and context status."""
    if not specs_dir(sdd_dir).is_dir():
        print(f"ERROR: Specs directory not found: {specs_dir(sdd_dir)}")
        return ExitCode.FILE_SYSTEM_ERROR

    status = collect_status(sdd_dir)
    if args.json:
        print(json.dumps(status, indent=2))
        return ExitCode.SUCCESS

    print(f"Project: {status['project']}")
    print(f"Constitution: {status['constitution'] or 'missing'}")
    if status["context"]:
        print(f"Context: {', '.join(status['context'])}")
    print()

    features = status["features"]
    print(f"Features: {features['total']}")
    for name, count in features["byStatus"].items():
        print(f"  {name:<14} {count}")
    if args.verbose and features["items"]:
        print()
        for item in features["items"]:
            print(f"  {item['id']:<36} {item['status']:<14} {item['title']}")
    print()

    pending = status["changes"]["pending"]
    print(f"Pending changes: {len(pending)}")
    for change in pending:
        title = change["title"] or ""
        print(f"  {change['id']:<10} {change['status']:<10} {title}")
    print(f"Archived changes: {status['changes']['archived']}")
    return ExitCode.SUCCESS
