#!/usr/bin/env python3
"""SDD CLI entrypoint."""

import argparse
import logging
import os
import sys
from pathlib import Path

from sdd.commands import cache as cmd_cache_module
from sdd.commands import change as cmd_change_module
from sdd.commands import constitution as cmd_constitution_module
from sdd.commands import context as cmd_context_module
from sdd.commands import diff as cmd_diff_module
from sdd.commands import domain as cmd_domain_module
from sdd.commands import export as cmd_export_module
from sdd.commands import impact as cmd_impact_module
from sdd.commands import init as cmd_init_module
from sdd.commands import list as cmd_list_module
from sdd.commands import new as cmd_new_module
from sdd.commands import prepare as cmd_prepare_module
from sdd.commands import quality as cmd_quality_module
from sdd.commands import report as cmd_report_module
from sdd.commands import reverse as cmd_reverse_module
from sdd.commands import search as cmd_search_module
from sdd.commands import status as cmd_status_module
from sdd.commands import sync as cmd_sync_module
from sdd.commands import transition as cmd_transition_module
from sdd.commands import validate as cmd_validate_module
from sdd.commands import watch as cmd_watch_module
from sdd.export.renderer import FORMATS, THEMES
from sdd.export.report import REPORT_FORMATS
from sdd.lib.config import LOG_LEVELS, load_config
from sdd.lib.errors import SddError
from sdd.lib.fsutil import require_sdd_dir
from sdd.lib.search import SORT_FIELDS

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(args) -> None:
    """--verbose beats --log-level beats SDD_LOG_LEVEL. sdd.env is applied later by get_project."""
    if args.log_verbose:
        level = "DEBUG"
    else:
        level = (args.log_level or os.environ.get("SDD_LOG_LEVEL", "WARNING")).upper()
    logging.basicConfig(level=getattr(logging, level, logging.WARNING), format=LOG_FORMAT)


def get_project(args):
    """Find .sdd from --project or the current directory and load its config."""
    start = Path(args.project) if args.project else None
    try:
        sdd_dir = require_sdd_dir(start)
        config = load_config(sdd_dir)
    except SddError as e:
        print(f"ERROR: {e.message}")
        sys.exit(e.exit_code)

    if not args.log_verbose and not args.log_level and "SDD_LOG_LEVEL" not in os.environ:
        logging.getLogger().setLevel(config.log_level)
    return sdd_dir, config


def cmd_init(args):
    return cmd_init_module.cmd_init(args)


def cmd_new(args):
    sdd_dir, config = get_project(args)
    return cmd_new_module.cmd_new(args, sdd_dir, config)


def cmd_validate(args):
    sdd_dir, config = get_project(args)
    return cmd_validate_module.cmd_validate(args, sdd_dir, config)


def cmd_status(args):
    sdd_dir, config = get_project(args)
    return cmd_status_module.cmd_status(args, sdd_dir, config)


def cmd_list(args):
    sdd_dir, config = get_project(args)
    return cmd_list_module.cmd_list(args, sdd_dir, config)


def cmd_change(args):
    sdd_dir, config = get_project(args)
    return cmd_change_module.cmd_change(args, sdd_dir, config)


def cmd_diff(args):
    sdd_dir, config = get_project(args)
    return cmd_diff_module.cmd_diff(args, sdd_dir, config)


def cmd_sync(args):
    sdd_dir, config = get_project(args)
    return cmd_sync_module.cmd_sync(args, sdd_dir, config)


def cmd_export(args):
    sdd_dir, config = get_project(args)
    return cmd_export_module.cmd_export(args, sdd_dir, config)


def cmd_quality(args):
    sdd_dir, config = get_project(args)
    return cmd_quality_module.cmd_quality(args, sdd_dir, config)


def cmd_report(args):
    sdd_dir, config = get_project(args)
    return cmd_report_module.cmd_report(args, sdd_dir, config)


def cmd_search(args):
    sdd_dir, config = get_project(args)
    return cmd_search_module.cmd_search(args, sdd_dir, config)


def cmd_watch(args):
    sdd_dir, config = get_project(args)
    return cmd_watch_module.cmd_watch(args, sdd_dir, config)


def cmd_reverse(args):
    sdd_dir, config = get_project(args)
    return cmd_reverse_module.cmd_reverse(args, sdd_dir, config)


def cmd_constitution(args):
    sdd_dir, config = get_project(args)
    return cmd_constitution_module.cmd_constitution(args, sdd_dir, config)


def cmd_context(args):
    sdd_dir, config = get_project(args)
    return cmd_context_module.cmd_context(args, sdd_dir, config)


def cmd_domain(args):
    sdd_dir, config = get_project(args)
    return cmd_domain_module.cmd_domain(args, sdd_dir, config)


def cmd_cache(args):
    sdd_dir, config = get_project(args)
    return cmd_cache_module.cmd_cache(args, sdd_dir, config)


def cmd_impact(args):
    sdd_dir, config = get_project(args)
    return cmd_impact_module.cmd_impact(args, sdd_dir, config)


def cmd_prepare(args):
    sdd_dir, config = get_project(args)
    return cmd_prepare_module.cmd_prepare(args, sdd_dir, config)


def cmd_transition(args):
    sdd_dir, config = get_project(args)
    return cmd_transition_module.cmd_transition(args, sdd_dir, config)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='sdd', description='Spec-driven development CLI')
    parser.add_argument('--project', '-p', help='Project directory (default: search up from cwd)')
    parser.add_argument('--verbose', '-v', dest='log_verbose', action='store_true', help='Debug logging')
    parser.add_argument('--log-level', type=str.upper, choices=LOG_LEVELS, help='Log level (default: SDD_LOG_LEVEL or WARNING)')

    subparsers = parser.add_subparsers(dest='command', required=True)

    # sdd init
    p_init = subparsers.add_parser('init', help='Create .sdd/ in a project')
    p_init.add_argument('path', nargs='?', default='.', help='Project directory')
    p_init.add_argument('--force', '-f', action='store_true', help='Overwrite an existing .sdd/')
    p_init.set_defaults(func=cmd_init)

    # sdd new
    p_new = subparsers.add_parser('new', help='Create a feature (or: new plan|tasks|checklist|counter)')
    p_new.add_argument('name', nargs='?', help='Feature name, domain/name, or plan|tasks|checklist|counter')
    p_new.add_argument('feature', nargs='?', help='Feature id for plan, tasks and checklist')
    p_new.add_argument('--domain', '-d', help='Domain for the feature')
    p_new.add_argument('--title', '-t', help='Title')
    p_new.add_argument('--description', help='One-line description')
    p_new.add_argument('--numbered', '-n', action='store_true', help='Prefix the id with the next feature number')
    p_new.add_argument('--plan', action='store_true', help='Also create plan.md')
    p_new.add_argument('--tasks', action='store_true', help='Also create tasks.md')
    p_new.add_argument('--checklist', action='store_true', help='Also create checklist.md')
    p_new.add_argument('--all', '-a', action='store_true', help='Create spec, plan, tasks and checklist')
    p_new.add_argument('--branch', '-b', action='store_true', help='Create a git branch for the feature')
    p_new.add_argument('--force', action='store_true', help='Overwrite existing plan.md/tasks.md')
    p_new.add_argument('--set', type=int, help='counter: set the next feature number')
    p_new.add_argument('--history', action='store_true', help='counter: show numbered features')
    p_new.set_defaults(func=cmd_new)

    # sdd validate
    p_validate = subparsers.add_parser('validate', help='Validate spec documents')
    p_validate.add_argument('path', nargs='?', help='File or directory (default: .sdd/specs)')
    p_validate.add_argument('--strict', action='store_true', help='Treat warnings as errors')
    p_validate.add_argument('--json', action='store_true', help='JSON output')
    p_validate.add_argument('--quiet', '-q', action='store_true', help='Only print failures and the summary')
    p_validate.add_argument('--constitution', action='store_true', help='Also check constitution versions and forbidden terms')
    p_validate.set_defaults(func=cmd_validate)

    # sdd quality
    p_quality = subparsers.add_parser('quality', help='Score spec quality (all specs by default)')
    p_quality.add_argument('feature', nargs='?', help='Feature id (default: every spec)')
    p_quality.add_argument('--all', '-a', action='store_true', help='Score every spec')
    p_quality.add_argument('--json', action='store_true', help='JSON output')
    p_quality.add_argument('--min-score', type=int, default=0, help='Fail below this percentage')
    p_quality.set_defaults(func=cmd_quality)

    # sdd status
    p_status = subparsers.add_parser('status', help='Feature, change and context status')
    p_status.add_argument('--json', action='store_true', help='JSON output')
    p_status.add_argument('--verbose', action='store_true', help='List every feature')
    p_status.set_defaults(func=cmd_status)

    # sdd list
    p_list = subparsers.add_parser('list', help='List features, changes, specs or templates')
    p_list.add_argument('kind', nargs='?', choices=['features', 'changes', 'specs', 'templates'])
    p_list.add_argument('--status', help='features: only this status')
    p_list.add_argument('--pending', action='store_true', help='changes: only pending')
    p_list.add_argument('--archived', action='store_true', help='changes: only archived')
    p_list.set_defaults(func=cmd_list)

    # sdd change
    p_change = subparsers.add_parser('change', help='Change proposals (lists pending by default)')
    p_change.set_defaults(func=cmd_change, change_cmd=None)
    change_sub = p_change.add_subparsers(dest='change_cmd')

    p_change_new = change_sub.add_parser('new', help='Create a change proposal')
    p_change_new.add_argument('--title', '-t', required=True, help='Change title')
    p_change_new.add_argument('--spec', '-s', action='append', help='Affected spec id (repeatable)')
    p_change_new.add_argument('--rationale', '-r', help='Why the change is needed')
    p_change_new.add_argument('--type', action='append', choices=['ADDED', 'MODIFIED', 'REMOVED'],
                              help='Change type (repeatable)')

    change_sub.add_parser('list', help='List pending changes')

    p_change_show = change_sub.add_parser('show', help='Show a change')
    p_change_show.add_argument('id', help='Change id (CHG-xxx)')
    p_change_show.add_argument('--json', action='store_true', help='JSON output')

    for name, help_text in (
        ('propose', 'draft -> proposed'),
        ('approve', 'proposed -> approved'),
        ('reject', 'Reject a change'),
        ('apply', 'approved -> applied'),
        ('archive', 'Move a change to archive/'),
        ('diff', 'Show the delta'),
        ('validate', 'Validate proposal.md and delta.md'),
    ):
        p_change_step = change_sub.add_parser(name, help=help_text)
        p_change_step.add_argument('id', help='Change id (CHG-xxx)')

    # sdd diff
    p_diff = subparsers.add_parser('diff', help='Structural diff of specs against git')
    p_diff.add_argument('commit1', nargs='?', help='Base commit')
    p_diff.add_argument('commit2', nargs='?', help='Target commit')
    p_diff.add_argument('--spec', help='Only this spec id')
    p_diff.add_argument('--staged', action='store_true', help='Index vs HEAD')
    p_diff.add_argument('--stat', action='store_true', help='Summary only')
    p_diff.add_argument('--name-only', action='store_true', help='Changed spec files only')
    p_diff.add_argument('--no-color', action='store_true', help='Disable colors')
    p_diff.add_argument('--json', action='store_true', help='JSON output')
    p_diff.add_argument('--markdown', action='store_true', help='Markdown output')
    p_diff.set_defaults(func=cmd_diff)

    # sdd sync
    p_sync = subparsers.add_parser('sync', help='Requirement coverage in code and tests')
    p_sync.add_argument('spec_id', nargs='?', help='Only this spec')
    p_sync.add_argument('--src', help='Source directory (default: <project>/src)')
    p_sync.add_argument('--exclude', help='Comma-separated glob patterns to skip')
    p_sync.add_argument('--no-color', action='store_true', help='Disable colors')
    p_sync.add_argument('--json', action='store_true', help='JSON output')
    p_sync.add_argument('--markdown', action='store_true', help='Markdown output')
    p_sync.add_argument('--ci', action='store_true', help='Fail below the coverage threshold')
    p_sync.add_argument('--threshold', type=float, help='Coverage threshold percent (default: SDD_SYNC_THRESHOLD)')
    p_sync.set_defaults(func=cmd_sync)

    # sdd export
    p_export = subparsers.add_parser('export', help='Export specs as HTML, JSON or Markdown')
    p_export.add_argument('spec_ids', nargs='*', help='Spec ids (default: all)')
    p_export.add_argument('--format', '-f', choices=FORMATS, default='html')
    p_export.add_argument('--output', '-o', help='Output file')
    p_export.add_argument('--theme', choices=THEMES, default='light')
    p_export.add_argument('--toc', action=argparse.BooleanOptionalAction, default=True, help='Table of contents')
    p_export.add_argument('--include-constitution', action='store_true')
    p_export.add_argument('--include-changes', action='store_true')
    p_export.set_defaults(func=cmd_export)

    # sdd report
    p_report = subparsers.add_parser('report', help='Project report')
    p_report.add_argument('--title', help='Report title')
    p_report.add_argument('--format', '-f', choices=REPORT_FORMATS, default='html')
    p_report.add_argument('--output', '-o', help='Output file (default: sdd-report.<ext>)')
    p_report.add_argument('--validation', action=argparse.BooleanOptionalAction, default=True,
                          help='Include validation results')
    p_report.set_defaults(func=cmd_report)

    # sdd search
    p_search = subparsers.add_parser('search', help='Search specs')
    p_search.add_argument('query', nargs='?', default='', help='Text to search for')
    p_search.add_argument('--status', help='Comma-separated statuses')
    p_search.add_argument('--phase', help='Comma-separated phases')
    p_search.add_argument('--author')
    p_search.add_argument('--tags', help='Comma-separated tags (all must match)')
    p_search.add_argument('--created-after', metavar='YYYY-MM-DD')
    p_search.add_argument('--created-before', metavar='YYYY-MM-DD')
    p_search.add_argument('--updated-after', metavar='YYYY-MM-DD')
    p_search.add_argument('--updated-before', metavar='YYYY-MM-DD')
    p_search.add_argument('--depends-on', help='Specs depending on this id')
    p_search.add_argument('--regex', action='store_true', help='Query is a regular expression')
    p_search.add_argument('--case-sensitive', action='store_true')
    p_search.add_argument('--sort-by', choices=SORT_FIELDS, default='relevance')
    p_search.add_argument('--sort-order', choices=['asc', 'desc'], default='desc')
    p_search.add_argument('--limit', type=int)
    p_search.add_argument('--json', action='store_true', help='JSON output')
    p_search.set_defaults(func=cmd_search)

    # sdd watch
    p_watch = subparsers.add_parser('watch', help='Re-validate specs on change')
    p_watch.add_argument('--debounce', type=int, help='Debounce in ms (default: SDD_WATCH_DEBOUNCE_MS)')
    p_watch.add_argument('--validate', action=argparse.BooleanOptionalAction, default=True)
    p_watch.add_argument('--plain', action='store_true', help='Stream to stdout instead of the dashboard')
    p_watch.add_argument('--quiet', '-q', action='store_true', help='plain: only print failures')
    p_watch.set_defaults(func=cmd_watch)

    # sdd reverse
    p_reverse = subparsers.add_parser('reverse', help='Draft specs from existing code')
    p_reverse.add_argument('--check-serena', action='store_true', help='Report Serena MCP availability')
    p_reverse.set_defaults(func=cmd_reverse, reverse_cmd=None)
    reverse_sub = p_reverse.add_subparsers(dest='reverse_cmd')

    p_reverse_scan = reverse_sub.add_parser('scan', help='Scan the code base')
    p_reverse_scan.add_argument('path', nargs='?', help='Directory (default: project root)')
    p_reverse_scan.add_argument('--depth', type=int, default=5)
    p_reverse_scan.add_argument('--include', help='Glob of files to include')
    p_reverse_scan.add_argument('--exclude', help='Glob of files to skip')
    p_reverse_scan.add_argument('--language', help='Only this language')
    p_reverse_scan.add_argument('--output', '-o', help='Also write the JSON result here')
    p_reverse_scan.add_argument('--json', action='store_true', help='JSON output')
    p_reverse_scan.add_argument('--quiet', '-q', action='store_true')
    p_reverse_scan.add_argument('--compare', action='store_true', help='Compare with the last scan')
    p_reverse_scan.add_argument('--history', action='store_true', help='List recorded scans')
    p_reverse_scan.add_argument('--no-create-domains', dest='create_domains', action='store_false',
                                help='Do not add suggested domains to domains.yml')

    p_reverse_extract = reverse_sub.add_parser('extract', help='Draft specs per module')
    p_reverse_extract.add_argument('path', nargs='?', help='Directory (default: project root)')
    p_reverse_extract.add_argument('--depth', type=int, default=5)
    p_reverse_extract.add_argument('--domain', help='Only this suggested domain')
    p_reverse_extract.add_argument('--min-confidence', type=int, default=0)
    p_reverse_extract.add_argument('--skip-serena-check', action='store_true')
    p_reverse_extract.add_argument('--quiet', '-q', action='store_true')

    p_reverse_review = reverse_sub.add_parser('review', help='List, show, approve or reject drafts')
    p_reverse_review.add_argument('draft', nargs='?', help='Draft id (domain/name)')
    review_action = p_reverse_review.add_mutually_exclusive_group()
    review_action.add_argument('--approve', action='store_true')
    review_action.add_argument('--reject', action='store_true')
    p_reverse_review.add_argument('--comment', '-m')
    p_reverse_review.add_argument('--all', action='store_true', help='List drafts of every status')
    p_reverse_review.add_argument('--json', action='store_true', help='JSON output')

    p_reverse_finalize = reverse_sub.add_parser('finalize', help='Write approved drafts to specs/')
    p_reverse_finalize.add_argument('draft', nargs='?', help='Draft id (domain/name)')
    p_reverse_finalize.add_argument('--all', action='store_true', help='Every approved draft')
    p_reverse_finalize.add_argument('--domain', help='Approved drafts of this domain')
    p_reverse_finalize.add_argument('--force', action='store_true', help='Overwrite existing specs')

    # sdd constitution
    p_const = subparsers.add_parser('constitution', help='Project constitution (shows it by default)')
    p_const.set_defaults(func=cmd_constitution, constitution_cmd=None, json=False)
    const_sub = p_const.add_subparsers(dest='constitution_cmd')

    p_const_show = const_sub.add_parser('show', help='Show the constitution')
    p_const_show.add_argument('--json', action='store_true', help='JSON output')

    const_sub.add_parser('version', help='Print the version')

    p_const_bump = const_sub.add_parser('bump', help='Bump the version and record a changelog entry')
    bump_level = p_const_bump.add_mutually_exclusive_group()
    bump_level.add_argument('--major', dest='bump', action='store_const', const='major')
    bump_level.add_argument('--minor', dest='bump', action='store_const', const='minor')
    bump_level.add_argument('--patch', dest='bump', action='store_const', const='patch')
    p_const_bump.add_argument('--message', '-m', action='append',
                              help="Change, e.g. 'added: new rule' (repeatable)")
    p_const_bump.add_argument('--reason', '-r')
    p_const_bump.add_argument('--dry-run', action='store_true')

    p_const_history = const_sub.add_parser('history', help='Changelog entries')
    p_const_history.add_argument('-n', dest='limit', type=int, help='Show the last N entries')

    const_sub.add_parser('validate', help='Check the constitution structure')

    p_const_check = const_sub.add_parser('check', help='Check a spec against the constitution')
    p_const_check.add_argument('feature', help='Feature id')
    p_const_check.add_argument('--json', action='store_true', help='JSON output')

    # sdd context
    p_context = subparsers.add_parser('context', help='Active domains (shows the context by default)')
    p_context.set_defaults(func=cmd_context, context_cmd=None)
    context_sub = p_context.add_subparsers(dest='context_cmd')

    p_context_show = context_sub.add_parser('show', help='Show the context')
    p_context_show.add_argument('--json', action='store_true', help='JSON output')

    p_context_set = context_sub.add_parser('set', help='Replace the active domains')
    p_context_set.add_argument('domains', nargs='+')
    p_context_set.add_argument('--no-include-deps', dest='include_deps', action='store_false',
                               help='Do not pull in dependency domains read-only')

    p_context_add = context_sub.add_parser('add', help='Add an active domain')
    p_context_add.add_argument('domain')

    p_context_remove = context_sub.add_parser('remove', help='Remove an active domain')
    p_context_remove.add_argument('domain')

    context_sub.add_parser('clear', help='Clear the context')
    context_sub.add_parser('specs', help='Specs in the context')

    # sdd domain
    p_domain = subparsers.add_parser('domain', help='Domains (lists them by default)')
    p_domain.set_defaults(func=cmd_domain, domain_cmd=None, json=False)
    domain_sub = p_domain.add_subparsers(dest='domain_cmd')

    p_domain_create = domain_sub.add_parser('create', help='Define a domain')
    p_domain_create.add_argument('id')
    p_domain_create.add_argument('--description', '-d')
    p_domain_create.add_argument('--path', help='Source path (default: src/<id>)')
    p_domain_create.add_argument('--uses', action='append', help='Dependency domain (repeatable)')

    p_domain_list = domain_sub.add_parser('list', help='List domains')
    p_domain_list.add_argument('--json', action='store_true', help='JSON output')

    p_domain_show = domain_sub.add_parser('show', help='Show a domain')
    p_domain_show.add_argument('id')

    p_domain_link = domain_sub.add_parser('link', help='Link a spec to a domain')
    p_domain_link.add_argument('id')
    p_domain_link.add_argument('spec')

    p_domain_graph = domain_sub.add_parser('graph', help='Dependency graph')
    p_domain_graph.add_argument('--format', choices=['mermaid', 'dot'], default='mermaid')

    domain_sub.add_parser('validate', help='Check for cycles, unknown references and rule violations')

    # sdd cache
    p_cache = subparsers.add_parser('cache', help='Spec parse cache (shows stats by default)')
    p_cache.set_defaults(func=cmd_cache, cache_cmd=None, json=False)
    cache_sub = p_cache.add_subparsers(dest='cache_cmd')
    p_cache_stats = cache_sub.add_parser('stats', help='Hit and entry counts')
    p_cache_stats.add_argument('--json', action='store_true', help='JSON output')
    cache_sub.add_parser('clear', help='Delete the cache snapshot')
    cache_sub.add_parser('enable', help='Set SDD_CACHE_ENABLED=true in sdd.env')
    cache_sub.add_parser('disable', help='Set SDD_CACHE_ENABLED=false in sdd.env')

    # sdd impact
    p_impact = subparsers.add_parser('impact', help='Impact of changing a spec (or: impact report | impact change <id>)')
    p_impact.add_argument('target', help="Spec id, 'report' or 'change'")
    p_impact.add_argument('change_id', nargs='?', help='Change id for impact change')
    p_impact.add_argument('--graph', action='store_true', help='Append a Mermaid dependency graph')
    p_impact.add_argument('--json', action='store_true', help='JSON output')
    p_impact.set_defaults(func=cmd_impact)

    # sdd prepare
    p_prepare = subparsers.add_parser('prepare', help='Check agents and skills a feature needs')
    p_prepare.add_argument('feature')
    p_prepare.add_argument('--auto-approve', action='store_true', help='Create missing stubs')
    p_prepare.add_argument('--dry-run', action='store_true')
    p_prepare.add_argument('--json', action='store_true', help='JSON output')
    p_prepare.set_defaults(func=cmd_prepare)

    # sdd transition
    p_transition = subparsers.add_parser('transition', help='Move work between new and change workflows')
    p_transition.set_defaults(func=cmd_transition, transition_cmd=None)
    transition_sub = p_transition.add_subparsers(dest='transition_cmd')

    p_n2c = transition_sub.add_parser('new-to-change', help='Open a change for an existing spec')
    p_n2c.add_argument('id', help='Spec id')
    p_n2c.add_argument('--title', '-t')
    p_n2c.add_argument('--reason', '-r')

    p_c2n = transition_sub.add_parser('change-to-new', help='Turn a change into a new feature')
    p_c2n.add_argument('id', help='Change id (CHG-xxx)')
    p_c2n.add_argument('--name', '-n', help='Feature name (default: change title)')
    p_c2n.add_argument('--reason', '-r')

    transition_sub.add_parser('guide', help='When to use which workflow')

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args)
    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
