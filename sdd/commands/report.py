"""
sdd report - Project report (HTML, Markdown or JSON).
"""

from pathlib import Path

from sdd.export.report import build_report, render_report
from sdd.lib.errors import ExitCode, SddError
from sdd.lib.fsutil import write_text

SUFFIX = {"html": "html", "markdown": "md", "json": "json"}


def cmd_report(args, sdd_dir: Path, config) -> int:
    """Write the project report to --output, or to .sdd/../sdd-report.<ext>."""
    try:
        report = build_report(sdd_dir, title=args.title, include_validation=args.validation)
        content = render_report(report, args.format)
        output = Path(args.output) if args.output else sdd_dir.parent / f"sdd-report.{SUFFIX[args.format]}"
        write_text(output, content)
    except SddError as e:
        print(f"ERROR: {e.message}")
        return e.exit_code

    print(f"Report written to {output}")
    print(f"  specs: {report.total_specs}")
    if report.validation is not None:
        print(f"  validation: {report.validation_errors} error(s), {report.validation_warnings} warning(s)")
    return ExitCode.SUCCESS
