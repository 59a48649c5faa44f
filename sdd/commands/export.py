"""
sdd export - Export specs to HTML, JSON or Markdown.
"""

from pathlib import Path

from sdd.export.renderer import ExportOptions, export_specs, format_export_result
from sdd.lib.errors import ExitCode, SddError


def cmd_export(args, sdd_dir: Path, config) -> int:
    """Export the given specs, or all specs."""
    options = ExportOptions(
        format=args.format,
        output=Path(args.output) if args.output else None,
        theme=args.theme,
        include_toc=args.toc,
        include_constitution=args.include_constitution,
        include_changes=args.include_changes,
        spec_ids=args.spec_ids or None,
    )
    try:
        result = export_specs(sdd_dir, options)
    except SddError as e:
        print(f"ERROR: {e.message}")
        return e.exit_code

    print(format_export_result(result))
    return ExitCode.SUCCESS
