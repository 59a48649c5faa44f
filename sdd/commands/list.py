"""
sdd list - List features, changes, specs and templates.
"""

from pathlib import Path

from sdd.change.archive import list_archives, list_pending_changes
from sdd.export.report import load_spec_list
from sdd.lib.errors import ExitCode
from sdd.spec.locate import iter_spec_files, specs_dir


def _truncate(text: str, width: int) -> str:
    return text[:width - 3] + "..." if len(text) > width else text


def list_features(sdd_dir: Path, status=None) -> int:
    features = load_spec_list(sdd_dir)
    if status:
        features = [f for f in features if f.status == status]
    if not features:
        print("Features: none")
        return ExitCode.SUCCESS

    print("Features")
    print("-" * 60)
    for feature in features:
        print(f"  {feature.id:<32} {feature.status:<14} {_truncate(feature.title, 40)}")
    print()
    print(f"{len(features)} feature(s)")
    return ExitCode.SUCCESS


def list_changes(sdd_dir: Path, pending: bool = False, archived: bool = False) -> int:
    show_all = not (pending or archived)
    if pending or show_all:
        changes = list_pending_changes(sdd_dir)
        print("Pending changes" if changes else "Pending changes: none")
        for change in changes:
            print(f"  {change.id:<10} {change.status:<10} {_truncate(change.title or '', 40)}")
        print()
    if archived or show_all:
        archives = list_archives(sdd_dir)
        print("Archived changes" if archives else "Archived changes: none")
        for entry in archives:
            print(f"  {entry.id:<10} {entry.archived_at:<12} {_truncate(entry.title or '', 40)}")
    return ExitCode.SUCCESS


def list_specs(sdd_dir: Path) -> int:
    paths = iter_spec_files(sdd_dir)
    if not paths:
        print("Specs: none")
        return ExitCode.SUCCESS
    for path in paths:
        print(f"  {path.relative_to(specs_dir(sdd_dir))}")
    return ExitCode.SUCCESS


def list_templates(sdd_dir: Path) -> int:
    templates_dir = sdd_dir / "templates"
    names = sorted(p.name for p in templates_dir.glob("*.md")) if templates_dir.is_dir() else []
    if not names:
        print("Templates: none (run 'sdd init')")
        return ExitCode.SUCCESS
    for name in names:
        print(f"  {name}")
    return ExitCode.SUCCESS


def cmd_list(args, sdd_dir: Path, config) -> int:
    """List project items. Defaults to features."""
    kind = args.kind or "features"
    if kind == "features":
        return list_features(sdd_dir, args.status)
    if kind == "changes":
        return list_changes(sdd_dir, args.pending, args.archived)
    if kind == "specs":
        return list_specs(sdd_dir)
    return list_templates(sdd_dir)
