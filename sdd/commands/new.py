"""
sdd new - Create a new feature.

  sdd new <name>               spec.md (plus plan/tasks/checklist on request)
  sdd new plan <feature>       plan.md for an existing feature
  sdd new tasks <feature>      tasks.md for an existing feature
  sdd new checklist [feature]  workflow checklist
  sdd new counter              feature numbering (--peek, --history, --set)

<name> may be domain/name. A feature goes to specs/<domain>/<id> when a
domain is given (or is the only active context domain), else specs/<id>.
"""

import logging
from pathlib import Path

from sdd import git
from sdd.constitution.parser import load_constitution
from sdd.lib.context import active_domain
from sdd.lib.domains import DomainError, get_domain, link_spec
from sdd.lib.errors import ConstitutionError, ExitCode, SddError
from sdd.lib.fsutil import read_text, write_text
from sdd.lib.validate import ValidationError
from sdd.new.checklist import generate_full_checklist
from sdd.new.counter import (
    generate_branch_name,
    get_feature_history,
    next_feature_number,
    peek_next_feature_number,
    set_next_feature_number,
)
from sdd.new.plan import generate_plan
from sdd.new.spec_template import generate_feature_id, generate_spec
from sdd.new.tasks import generate_tasks
from sdd.spec.locate import find_feature_dir, specs_dir
from sdd.spec.parser import DESCRIPTION_RE, get_spec_title

logger = logging.getLogger(__name__)

SUBCOMMANDS = ("plan", "tasks", "checklist", "counter")


def _constitution_version(sdd_dir: Path):
    try:
        return load_constitution(sdd_dir).version
    except ConstitutionError as e:
        logger.debug(f"no constitution version for new spec: {e.message}")
        return None


def _feature_info(feature_dir: Path) -> tuple[str, str]:
    """(title, description) from the feature's spec.md."""
    spec_path = feature_dir / "spec.md"
    if not spec_path.exists():
        return feature_dir.name, ""
    text = read_text(spec_path)
    description = DESCRIPTION_RE.search(text)
    return get_spec_title(text) or feature_dir.name, description.group(1).strip() if description else ""


def _create_branch(project_root: Path, branch: str) -> None:
    if not git.is_git_repository(project_root):
        print("  (not a git repository, no branch created)")
        return
    if git.branch_exists(project_root, branch):
        print(f"  WARNING: branch '{branch}' already exists, not switching")
        return
    if git.create_branch(project_root, branch):
        print(f"  branch: {branch}")
    else:
        print(f"  WARNING: could not create branch '{branch}'")


def cmd_new_feature(args, sdd_dir: Path, config) -> int:
    if not args.name:
        print("ERROR: Feature name is required (sdd new <name>)")
        return ExitCode.GENERAL_ERROR

    name, domain = args.name, args.domain
    if "/" in name:
        domain, name = name.split("/", 1)
    domain = domain or active_domain(sdd_dir)

    feature_id = generate_feature_id(name)
    if not feature_id:
        print(f"ERROR: Invalid feature name '{args.name}'")
        return ExitCode.GENERAL_ERROR

    if args.numbered:
        feature_id = f"{peek_next_feature_number(sdd_dir):03d}-{feature_id}"
    spec_id = f"{domain}/{feature_id}" if domain else feature_id
    feature_dir = specs_dir(sdd_dir) / spec_id
    if feature_dir.exists():
        print(f"ERROR: Feature already exists: {feature_dir}")
        return ExitCode.GENERAL_ERROR

    if args.numbered:
        numbered = next_feature_number(sdd_dir, generate_feature_id(name))
        branch = numbered.branch_name
    else:
        branch = generate_branch_name(feature_id)

    title = args.title or name
    description = args.description or f"{title} feature"
    write_text(feature_dir / "spec.md", generate_spec(
        feature_id, title, description,
        domain=domain,
        constitution_version=_constitution_version(sdd_dir),
    ))
    created = ["spec.md"]

    if args.plan or args.all:
        write_text(feature_dir / "plan.md", generate_plan(feature_id, title, description))
        created.append("plan.md")
    if args.tasks or args.all:
        write_text(feature_dir / "tasks.md", generate_tasks(feature_id, title))
        created.append("tasks.md")
    if args.checklist or args.all:
        write_text(feature_dir / "checklist.md", generate_full_checklist())
        created.append("checklist.md")

    if domain:
        try:
            if get_domain(sdd_dir, domain):
                link_spec(sdd_dir, domain, spec_id)
            else:
                print(f"  WARNING: domain '{domain}' is not defined in domains.yml")
        except DomainError as e:
            print(f"  WARNING: {e.message}")

    print(f"Created feature: {spec_id}")
    for name in created:
        print(f"  {feature_dir / name}")
    if args.branch:
        _create_branch(sdd_dir.parent, branch)

    print()
    print("Next steps:")
    print(f"  1. Edit {feature_dir / 'spec.md'}")
    print(f"  2. sdd validate {feature_dir / 'spec.md'}")
    if not (args.plan or args.all):
        print(f"  3. sdd new plan {spec_id}")
    return ExitCode.SUCCESS


def _require_feature(sdd_dir: Path, feature: str):
    if not feature:
        print("ERROR: Feature is required")
        return None
    feature_dir = find_feature_dir(sdd_dir, feature)
    if feature_dir is None:
        print(f"ERROR: Feature not found: {feature}")
    return feature_dir


def cmd_new_plan(args, sdd_dir: Path, config) -> int:
    feature_dir = _require_feature(sdd_dir, args.feature)
    if feature_dir is None:
        return ExitCode.GENERAL_ERROR
    plan_path = feature_dir / "plan.md"
    if plan_path.exists() and not args.force:
        print(f"ERROR: {plan_path} already exists (use --force to overwrite)")
        return ExitCode.GENERAL_ERROR

    title, description = _feature_info(feature_dir)
    write_text(plan_path, generate_plan(feature_dir.name, args.title or title,
                                        description or f"Implementation plan for {title}"))
    print(f"Created {plan_path}")
    return ExitCode.SUCCESS


def cmd_new_tasks(args, sdd_dir: Path, config) -> int:
    feature_dir = _require_feature(sdd_dir, args.feature)
    if feature_dir is None:
        return ExitCode.GENERAL_ERROR
    tasks_path = feature_dir / "tasks.md"
    if tasks_path.exists() and not args.force:
        print(f"ERROR: {tasks_path} already exists (use --force to overwrite)")
        return ExitCode.GENERAL_ERROR

    title, _ = _feature_info(feature_dir)
    write_text(tasks_path, generate_tasks(feature_dir.name, args.title or title))
    print(f"Created {tasks_path}")
    return ExitCode.SUCCESS


def cmd_new_checklist(args, sdd_dir: Path, config) -> int:
    if not args.feature:
        print(generate_full_checklist())
        return ExitCode.SUCCESS
    feature_dir = _require_feature(sdd_dir, args.feature)
    if feature_dir is None:
        return ExitCode.GENERAL_ERROR
    write_text(feature_dir / "checklist.md", generate_full_checklist())
    print(f"Created {feature_dir / 'checklist.md'}")
    return ExitCode.SUCCESS


def cmd_new_counter(args, sdd_dir: Path, config) -> int:
    try:
        if args.set is not None:
            set_next_feature_number(sdd_dir, args.set)
            print(f"Next feature number set to {args.set:03d}")
        elif args.history:
            history = get_feature_history(sdd_dir)
            if not history:
                print("No numbered features yet.")
            for entry in history:
                print(f"  {entry['fullId']:<40} {entry['createdAt'][:10]}")
        else:
            print(f"Next feature number: {peek_next_feature_number(sdd_dir):03d}")
    except ValueError as e:
        print(f"ERROR: {e}")
        return ExitCode.GENERAL_ERROR
    except ValidationError as e:
        print(f"ERROR: counter.json is invalid: {e}")
        return ExitCode.FILE_SYSTEM_ERROR
    return ExitCode.SUCCESS


def cmd_new(args, sdd_dir: Path, config) -> int:
    """Create a feature, or run one of the new sub-commands."""
    handlers = {
        "plan": cmd_new_plan,
        "tasks": cmd_new_tasks,
        "checklist": cmd_new_checklist,
        "counter": cmd_new_counter,
    }
    handler = handlers.get(args.name, cmd_new_feature)
    try:
        return handler(args, sdd_dir, config)
    except SddError as e:
        print(f"ERROR: {e.message}")
        return e.exit_code
