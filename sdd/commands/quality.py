"""
sdd quality - Score spec quality.

  sdd quality [<feature>] [--all] [--json] [--min-score N]

Without a feature (or with --all) every spec is scored and the average
is compared with --min-score.
"""

from pathlib import Path

from sdd.lib.errors import ErrorCode, ExitCode, SddError
from sdd.spec.locate import SPEC_FILENAME, find_feature_dir
from sdd.spec.quality import (
    ProjectQuality,
    analyze_project_quality,
    analyze_spec_quality,
    format_json,
    format_project_quality,
    format_quality,
)


def _analyze(args, sdd_dir: Path):
    """(result, percentage compared with --min-score)"""
    if args.all or not args.feature:
        project = analyze_project_quality(sdd_dir)
        return project, project.average_percentage

    feature_dir = find_feature_dir(sdd_dir, args.feature)
    if not feature_dir:
        raise SddError(f"Spec not found: {args.feature}", ErrorCode.FILE_NOT_FOUND)
    result = analyze_spec_quality(sdd_dir, feature_dir / SPEC_FILENAME)
    return result, result.percentage


def cmd_quality(args, sdd_dir: Path, config) -> int:
    """Score one spec or the whole project."""
    try:
        result, percentage = _analyze(args, sdd_dir)
    except SddError as e:
        print(f"ERROR: {e.message}")
        return e.exit_code

    if args.json:
        print(format_json(result))
    elif isinstance(result, ProjectQuality):
        print(format_project_quality(result))
    else:
        print(format_quality(result))

    if percentage < args.min_score:
        if not args.json:
            print()
            print(f"ERROR: Quality {percentage}% is below the minimum of {args.min_score}%")
        return ExitCode.VALIDATION_FAILED
    return ExitCode.SUCCESS
