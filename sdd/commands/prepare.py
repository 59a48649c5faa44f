"""
sdd prepare - Check the agents and skills a feature's documents call for.
"""

import json
from pathlib import Path

from sdd.lib.errors import ExitCode, SddError
from sdd.lib.prepare import format_prepare_report, prepare_feature


def cmd_prepare(args, sdd_dir: Path, config) -> int:
    try:
        report = prepare_feature(sdd_dir, args.feature, auto_approve=args.auto_approve, dry_run=args.dry_run)
    except SddError as e:
        print(f"ERROR: {e.message}")
        return e.exit_code

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print(format_prepare_report(report, dry_run=args.dry_run))
    return ExitCode.SUCCESS
