"""
Change workflow operations shared by `sdd change` and `sdd transition`.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sdd.change.archive import list_archives
from sdd.change.delta import Delta, DeltaValidation, generate_delta, parse_delta, validate_delta
from sdd.change.fsm import ProposalFSM
from sdd.change.proposal import CHANGE_ID_RE, Proposal, generate_change_id, generate_proposal, parse_proposal
from sdd.lib.errors import ChangeError, ErrorCode, SddError
from sdd.lib.fsutil import ensure_dir, list_dirs, read_text, write_text
from sdd.new.tasks import generate_tasks

logger = logging.getLogger(__name__)


@dataclass
class CreatedChange:
    id: str
    path: Path
    files: list[Path]


@dataclass
class ChangeCheck:
    proposal: Optional[Proposal]
    proposal_error: Optional[str]
    delta: DeltaValidation

    @property
    def ok(self) -> bool:
        return self.proposal is not None and self.delta.valid


def changes_dir(sdd_dir: Path) -> Path:
    return sdd_dir / "changes"


def existing_change_ids(sdd_dir: Path) -> list[str]:
    """Ids in use under changes/ and in the archive; archived ids are never reissued."""
    pending = [d.name for d in list_dirs(changes_dir(sdd_dir)) if CHANGE_ID_RE.match(d.name)]
    return pending + [a.id for a in list_archives(sdd_dir)]


def get_change_dir(sdd_dir: Path, change_id: str) -> Path:
    """
    Raises:
        ChangeError: no such change under changes/
    """
    path = changes_dir(sdd_dir) / change_id
    if not path.is_dir():
        raise ChangeError(f"Change not found: {change_id}", ErrorCode.PROPOSAL_NOT_FOUND)
    return path


def create_change(
    sdd_dir: Path,
    title: str,
    affected_specs: Optional[list[str]] = None,
    rationale: str = "",
    change_types: Optional[list[str]] = None,
    added: Optional[list[str]] = None,
    with_tasks: bool = True,
) -> CreatedChange:
    """Create changes/<CHG-NNN>/ with proposal.md, delta.md and tasks.md."""
    change_id = generate_change_id(existing_change_ids(sdd_dir))
    change_dir = ensure_dir(changes_dir(sdd_dir) / change_id)

    files = {
        "proposal.md": generate_proposal(change_id, title, rationale, affected_specs, change_types),
        "delta.md": generate_delta(change_id, title, added=added),
    }
    if with_tasks:
        files["tasks.md"] = generate_tasks(change_id, title)

    written = []
    for name, content in files.items():
        write_text(change_dir / name, content)
        written.append(change_dir / name)

    logger.info(f"[change] {change_id}: created ({title})")
    return CreatedChange(id=change_id, path=change_dir, files=written)


def show_change(sdd_dir: Path, change_id: str) -> Proposal:
    change_dir = get_change_dir(sdd_dir, change_id)
    return parse_proposal(read_text(change_dir / "proposal.md"))


def load_delta(sdd_dir: Path, change_id: str) -> Delta:
    change_dir = get_change_dir(sdd_dir, change_id)
    delta_path = change_dir / "delta.md"
    if not delta_path.exists():
        raise ChangeError(f"delta.md not found for {change_id}", ErrorCode.PROPOSAL_NOT_FOUND)
    return parse_delta(read_text(delta_path))


def transition_change(sdd_dir: Path, change_id: str, trigger: str) -> str:
    """Fire a lifecycle trigger (propose, approve, reject, apply) and return the new status."""
    fsm = ProposalFSM(get_change_dir(sdd_dir, change_id))
    return fsm.fire(trigger)


def apply_change(sdd_dir: Path, change_id: str) -> str:
    return transition_change(sdd_dir, change_id, "apply")


def check_change(sdd_dir: Path, change_id: str) -> ChangeCheck:
    """Parse the proposal and validate the delta without raising on content errors."""
    change_dir = get_change_dir(sdd_dir, change_id)

    proposal, proposal_error = None, None
    proposal_path = change_dir / "proposal.md"
    if not proposal_path.exists():
        proposal_error = "proposal.md is missing"
    else:
        try:
            proposal = parse_proposal(read_text(proposal_path))
        except SddError as e:
            proposal_error = e.message

    delta_path = change_dir / "delta.md"
    if delta_path.exists():
        delta = validate_delta(read_text(delta_path))
    else:
        delta = DeltaValidation(valid=False, errors=["delta.md is missing"])

    return ChangeCheck(proposal=proposal, proposal_error=proposal_error, delta=delta)
