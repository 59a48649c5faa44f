"""
Moving work between the new-feature and change workflows.

new-to-change: an existing spec gets a change proposal instead of a new feature.
change-to-new: a change that grew too large becomes its own feature.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sdd.change.fsm import ProposalFSM
from sdd.change.service import CreatedChange, create_change, get_change_dir, show_change
from sdd.lib.errors import ErrorCode, SddError
from sdd.lib.frontmatter import update_frontmatter
from sdd.lib.fsutil import read_text, write_text
from sdd.new.plan import generate_plan
from sdd.new.spec_template import generate_feature_id, generate_spec
from sdd.new.tasks import generate_tasks
from sdd.spec.locate import specs_dir
from sdd.spec.parser import get_spec_title

logger = logging.getLogger(__name__)

GUIDE = """Workflow transition guide

new -> change
  When: a new feature overlaps an existing spec, or extending the
  existing feature is the better fit.
  Command: sdd transition new-to-change <spec-id> [--title T] [--reason R]
  Rule of thumb: three or fewer specs affected, mostly modified scenarios.

change -> new
  When: a change grew too large, introduces a new concept or domain,
  or can be tested independently of the existing specs.
  Command: sdd transition change-to-new <change-id> [--name N] [--reason R]
  Rule of thumb: more than three specs affected.
"""


@dataclass
class NewFeature:
    feature_id: str
    path: Path
    source_change: str


def new_to_change(
    sdd_dir: Path,
    spec_id: str,
    title: Optional[str] = None,
    reason: Optional[str] = None,
) -> CreatedChange:
    """
    Raises:
        SddError: the spec does not exist
    """
    spec_path = specs_dir(sdd_dir) / spec_id / "spec.md"
    if not spec_path.exists():
        raise SddError(f"Spec not found: {spec_id} (see 'sdd list specs')", ErrorCode.FILE_NOT_FOUND)

    spec_title = get_spec_title(read_text(spec_path)) or spec_id
    created = create_change(
        sdd_dir,
        title=title or f"Extend {spec_title}",
        affected_specs=[spec_id],
        rationale=reason or "Transitioned from the new-feature workflow.",
        change_types=["MODIFIED"],
    )
    logger.info(f"[transition] {spec_id} -> {created.id}")
    return created


def change_to_new(
    sdd_dir: Path,
    change_id: str,
    name: Optional[str] = None,
    reason: Optional[str] = None,
) -> NewFeature:
    """
    Create specs/<name>/ from a change proposal and reject the change.

    The proposal records transitioned_to and transition_reason. A change
    that can no longer be rejected (approved, applied) keeps its status.

    Raises:
        SddError: the change is missing or the feature already exists
    """
    proposal = show_change(sdd_dir, change_id)
    feature_id = generate_feature_id(name or proposal.title) or f"feature-from-{change_id.lower()}"
    feature_dir = specs_dir(sdd_dir) / feature_id
    if feature_dir.exists():
        raise SddError(f"Spec already exists: {feature_id} (choose another --name)", ErrorCode.DIRECTORY_EXISTS)

    reason = reason or "Transitioned from the change workflow."
    title = proposal.title or feature_id
    write_text(feature_dir / "spec.md", generate_spec(feature_id, title, f"{reason} Source: {change_id}."))
    write_text(feature_dir / "plan.md", generate_plan(feature_id, title, proposal.rationale or reason))
    write_text(feature_dir / "tasks.md", generate_tasks(feature_id, title))

    change_dir = get_change_dir(sdd_dir, change_id)
    proposal_path = change_dir / "proposal.md"
    write_text(proposal_path, update_frontmatter(
        read_text(proposal_path), transitioned_to=feature_id, transition_reason=reason,
    ))
    fsm = ProposalFSM(change_dir)
    if fsm.can("reject"):
        fsm.fire("reject")

    logger.info(f"[transition] {change_id} -> {feature_id}")
    return NewFeature(feature_id=feature_id, path=feature_dir, source_change=change_id)
