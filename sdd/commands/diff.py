"""
sdd diff - Structural diff of specs against git.

  sdd diff                   working tree vs HEAD (untracked specs included)
  sdd diff --staged          index vs HEAD
  sdd diff <c1>              working tree vs c1
  sdd diff <c1> <c2>         c1 vs c2
"""

import sys
from pathlib import Path

from sdd.diff.formatter import DiffFormatter
from sdd.diff.structural import diff_specs
from sdd.lib.errors import ExitCode, SddError


def cmd_diff(args, sdd_dir: Path, config) -> int:
    """Show requirement, scenario and keyword changes in specs."""
    try:
        result = diff_specs(
            sdd_dir.parent,
            spec_id=args.spec,
            staged=args.staged,
            commit1=args.commit1,
            commit2=args.commit2,
        )
    except SddError as e:
        print(f"ERROR: {e.message}")
        return e.exit_code

    formatter = DiffFormatter(
        colors=not args.no_color and sys.stdout.isatty(),
        stat=args.stat,
        name_only=args.name_only,
    )
    if args.json:
        print(formatter.format_json(result))
    elif args.markdown:
        print(formatter.format_markdown(result))
    else:
        print(formatter.format_terminal(result))
    return ExitCode.SUCCESS
