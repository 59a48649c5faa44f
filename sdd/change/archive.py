"""
Archiving finished changes and listing pending/archived ones.

Archived changes live under archive/<yyyy-mm>/<yyyy-mm-dd>-<CHG-NNN>/.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional

from sdd.change.fsm import ProposalFSM
from sdd.change.proposal import parse_proposal
from sdd.lib.errors import ChangeError, ErrorCode, SddError
from sdd.lib.fsutil import copy_dir, list_dirs, read_text, remove_dir

logger = logging.getLogger(__name__)

ARCHIVE_ENTRY_RE = re.compile(r'^(\d{4}-\d{2}-\d{2})-(CHG-\d+)')


@dataclass
class ArchiveResult:
    change_id: str
    source_dir: Path
    archive_dir: Path
    archived_at: str


@dataclass
class ArchivedChange:
    id: str
    path: Path
    archived_at: str
    title: Optional[str] = None


@dataclass
class PendingChange:
    id: str
    path: Path
    status: str = "draft"
    title: Optional[str] = None
    created: Optional[str] = None


def _read_proposal(change_dir: Path):
    proposal_path = change_dir / "proposal.md"
    if not proposal_path.exists():
        return None
    try:
        return parse_proposal(read_text(proposal_path))
    except SddError as e:
        logger.warning(f"[change] {change_dir.name}: unreadable proposal: {e}")
        return None


def archive_change(sdd_dir: Path, change_id: str, when: Optional[date] = None) -> ArchiveResult:
    """
    Move changes/<id> into the archive through the proposal's archive transition.

    Raises:
        ChangeError: the change does not exist, its status does not allow
            archiving, or an archive entry for the same day already exists
    """
    source = sdd_dir / "changes" / change_id
    if not source.is_dir():
        raise ChangeError(f"Change not found: {change_id}", ErrorCode.PROPOSAL_NOT_FOUND)

    day = when or date.today()
    target = sdd_dir / "archive" / day.strftime("%Y-%m") / f"{day.isoformat()}-{change_id}"
    if target.exists():
        raise ChangeError(f"Archive entry already exists: {target}", ErrorCode.ARCHIVE_FAILED)

    ProposalFSM(source).fire("archive")

    try:
        copy_dir(source, target)
    except SddError as e:
        raise ChangeError(f"Archive copy failed: {e.message}", ErrorCode.ARCHIVE_FAILED) from e

    try:
        remove_dir(source)
    except SddError as e:
        raise ChangeError(f"Could not remove {source}: {e.message}", ErrorCode.ARCHIVE_FAILED) from e

    logger.info(f"[change] {change_id}: archived to {target}")
    return ArchiveResult(change_id=change_id, source_dir=source, archive_dir=target,
                         archived_at=day.isoformat())


def list_archives(sdd_dir: Path) -> list[ArchivedChange]:
    """Archived changes, newest first."""
    archives = []
    for month_dir in list_dirs(sdd_dir / "archive"):
        for change_dir in list_dirs(month_dir):
            match = ARCHIVE_ENTRY_RE.match(change_dir.name)
            proposal = _read_proposal(change_dir)
            archives.append(ArchivedChange(
                id=match.group(2) if match else change_dir.name,
                path=change_dir,
                archived_at=match.group(1) if match else month_dir.name,
                title=proposal.title if proposal else None,
            ))
    archives.sort(key=lambda a: a.archived_at, reverse=True)
    return archives


def list_pending_changes(sdd_dir: Path) -> list[PendingChange]:
    """Changes still under changes/, newest first."""
    changes = []
    for change_dir in list_dirs(sdd_dir / "changes"):
        proposal = _read_proposal(change_dir)
        if proposal:
            changes.append(PendingChange(id=change_dir.name, path=change_dir, status=proposal.status,
                                         title=proposal.title, created=proposal.created))
        else:
            changes.append(PendingChange(id=change_dir.name, path=change_dir))
    changes.sort(key=lambda c: c.created or "", reverse=True)
    return changes
