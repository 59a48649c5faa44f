"""
sdd search - Search specs by text and metadata.
"""

from pathlib import Path

from sdd.lib.errors import ExitCode, SddError
from sdd.lib.search import SearchOptions, format_search_json, format_search_result, search_specs


def _split(value) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()] if value else []


def cmd_search(args, sdd_dir: Path, config) -> int:
    """Search specs."""
    options = SearchOptions(
        query=args.query,
        status=_split(args.status),
        phase=_split(args.phase),
        author=args.author,
        tags=_split(args.tags),
        created_after=args.created_after,
        created_before=args.created_before,
        updated_after=args.updated_after,
        updated_before=args.updated_before,
        depends_on=args.depends_on,
        regex=args.regex,
        case_sensitive=args.case_sensitive,
        sort_by=args.sort_by,
        ascending=args.sort_order == "asc",
        limit=args.limit,
    )
    try:
        result = search_specs(sdd_dir, options)
    except SddError as e:
        print(f"ERROR: {e.message}")
        return e.exit_code

    print(format_search_json(result) if args.json else format_search_result(result))
    return ExitCode.SUCCESS
