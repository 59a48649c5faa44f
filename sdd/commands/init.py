"""
sdd init - Initialize an SDD project.

Creates .sdd/ with:
- specs/, changes/, archive/, templates/
- constitution.md, AGENTS.md, domains.yml
"""

from pathlib import Path

from sdd.change.delta import generate_delta
from sdd.change.proposal import generate_proposal
from sdd.constitution.parser import CONSTITUTION_FILENAME, generate_constitution
from sdd.lib.domains import DOMAINS_FILENAME, default_domains_config, save_domains_config
from sdd.lib.errors import ExitCode, SddError
from sdd.lib.fsutil import SDD_DIR, ensure_dir, remove_dir, write_text
from sdd.new.spec_template import generate_spec
from sdd.new.tasks import generate_tasks

DIRECTORIES = ["specs", "changes", "archive", "templates"]

AGENTS_MD = """# SDD Workflow

This project uses spec-driven development. Specs live in `.sdd/specs/`.

## Workflow

1. `sdd new <name>` - write the spec (requirements with SHALL/MUST/SHOULD/MAY,
   scenarios in GIVEN-WHEN-THEN)
2. `sdd new plan <feature>` - implementation plan
3. `sdd new tasks <feature>` - task breakdown
4. Implement, referencing requirements with `@spec REQ-xxx`
5. `sdd validate` and `sdd sync` before review

## Changing approved specs

Approved specs are changed through proposals:

- `sdd change new --title "..." --spec <spec-id>`
- `sdd change propose|approve|apply|archive <CHG-NNN>`

## Rules

- Follow `.sdd/constitution.md`
- Never edit an approved spec without a change proposal
"""


def template_files() -> dict[str, str]:
    return {
        "spec.md": generate_spec("{{FEATURE_ID}}", "{{TITLE}}", "{{DESCRIPTION}}"),
        "proposal.md": generate_proposal("CHG-000", "{{TITLE}}", "{{RATIONALE}}"),
        "delta.md": generate_delta("CHG-000", "{{TITLE}}"),
        "tasks.md": generate_tasks("{{FEATURE_ID}}", "{{TITLE}}"),
    }


def init_project(project_root: Path, force: bool = False) -> list[Path]:
    """Create the .sdd layout and return the files written.

    Raises:
        SddError: .sdd exists and force is not set
    """
    sdd_dir = project_root / SDD_DIR
    if sdd_dir.exists():
        if not force:
            raise SddError(f"{sdd_dir} already exists (use --force to overwrite)")
        remove_dir(sdd_dir)

    for name in DIRECTORIES:
        ensure_dir(sdd_dir / name)

    created = []
    for name, content in template_files().items():
        write_text(sdd_dir / "templates" / name, content)
        created.append(sdd_dir / "templates" / name)

    write_text(sdd_dir / CONSTITUTION_FILENAME, generate_constitution(project_root.resolve().name))
    write_text(sdd_dir / "AGENTS.md", AGENTS_MD)
    save_domains_config(sdd_dir, default_domains_config())
    created += [sdd_dir / CONSTITUTION_FILENAME, sdd_dir / "AGENTS.md", sdd_dir / DOMAINS_FILENAME]
    return created


def cmd_init(args) -> int:
    """Initialize .sdd/ in the current directory."""
    project_root = Path(args.path or ".")
    try:
        created = init_project(project_root, force=args.force)
    except SddError as e:
        print(f"ERROR: {e.message}")
        return e.exit_code

    print(f"Initialized SDD project in {project_root.resolve() / SDD_DIR}")
    for path in created:
        print(f"  created {path.relative_to(project_root)}")
    print()
    print("Next steps:")
    print("  1. Edit .sdd/constitution.md")
    print("  2. sdd new <feature-name>")
    return ExitCode.SUCCESS
