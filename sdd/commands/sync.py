"""
sdd sync - Check spec requirements against code and tests.

Code counts as implementing a requirement through `@spec REQ-xxx`
annotations; tests through REQ ids in test names or annotations.
"""

import sys
from pathlib import Path

from sdd.lib.errors import ExitCode
from sdd.sync.matcher import SyncMatcher
from sdd.sync.reporter import SyncReporter, check_threshold
from sdd.sync.scanner import CodeScanner, SpecRequirementParser, TestScanner


def cmd_sync(args, sdd_dir: Path, config) -> int:
    """Report the spec/code sync rate."""
    project_root = sdd_dir.parent
    requirements = SpecRequirementParser(sdd_dir).parse(args.spec_id)
    if args.spec_id and not requirements:
        print(f"ERROR: No requirements found for spec '{args.spec_id}'")
        return ExitCode.VALIDATION_FAILED

    src_dir = Path(args.src).resolve() if args.src else None
    exclude = [p.strip() for p in args.exclude.split(",")] if args.exclude else None
    code_refs = CodeScanner(project_root, src_dir=src_dir, exclude=exclude).scan()
    test_refs = TestScanner(project_root).scan()
    result = SyncMatcher().match(requirements, code_refs, test_refs)

    reporter = SyncReporter(colors=not args.no_color and sys.stdout.isatty())
    if args.json:
        print(reporter.format_json(result))
    elif args.markdown:
        print(reporter.format_markdown(result))
    else:
        print(reporter.format_terminal(result))

    if args.ci:
        threshold = args.threshold if args.threshold is not None else config.sync_threshold
        failure = check_threshold(result, threshold)
        if failure:
            print(f"ERROR: {failure}")
            return ExitCode.VALIDATION_FAILED
    return ExitCode.SUCCESS
