"""Change proposal state machine using transitions library.

Status lives in the proposal.md frontmatter; every transition rewrites it
and stamps `updated`.

Usage:
    from sdd.change.fsm import ProposalFSM

    fsm = ProposalFSM(change_dir)
    fsm.propose()
    fsm.approve()
    fsm.apply()
"""

import logging
from pathlib import Path
from typing import Callable

from transitions import Machine

from sdd.change.proposal import update_proposal_status
from sdd.lib.errors import ChangeError, ErrorCode
from sdd.lib.frontmatter import split_frontmatter
from sdd.lib.fsutil import read_text, write_text

logger = logging.getLogger(__name__)

PROPOSAL_FILENAME = "proposal.md"

STATES = [
    "draft",
    "proposed",
    "approved",
    "applied",
    "archived",
    "rejected",
]

TRANSITIONS = [
    {"trigger": "propose", "source": "draft", "dest": "proposed"},

    {"trigger": "approve", "source": "draft", "dest": "approved"},
    {"trigger": "approve", "source": "proposed", "dest": "approved"},

    {"trigger": "reject", "source": "draft", "dest": "rejected"},
    {"trigger": "reject", "source": "proposed", "dest": "rejected"},

    # Applying without review is allowed for small changes
    {"trigger": "apply", "source": "draft", "dest": "applied"},
    {"trigger": "apply", "source": "proposed", "dest": "applied"},
    {"trigger": "apply", "source": "approved", "dest": "applied"},

    {"trigger": "archive", "source": "draft", "dest": "archived"},
    {"trigger": "archive", "source": "proposed", "dest": "archived"},
    {"trigger": "archive", "source": "approved", "dest": "archived"},
    {"trigger": "archive", "source": "applied", "dest": "archived"},
    {"trigger": "archive", "source": "rejected", "dest": "archived"},
]


class ProposalFSM:
    """State machine for a change proposal.

    - Loads initial state from proposal.md
    - Persists state changes back to proposal.md
    - Logs all transitions
    """

    def __init__(self, change_dir: Path, on_transition: Callable[[str, str, str], None] | None = None):
        self.change_dir = change_dir
        self.change_id = change_dir.name
        self.on_transition = on_transition

        initial = self._read_status()
        if initial not in STATES:
            logger.warning(f"[change] {self.change_id}: Unknown status '{initial}', defaulting to 'draft'")
            initial = "draft"

        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial=initial,
            auto_transitions=False,
            send_event=True,
            after_state_change="on_state_change",
        )

    @property
    def proposal_path(self) -> Path:
        return self.change_dir / PROPOSAL_FILENAME

    def _read_status(self) -> str:
        if not self.proposal_path.exists():
            raise ChangeError(f"Proposal not found: {self.proposal_path}", ErrorCode.PROPOSAL_NOT_FOUND)
        metadata, _ = split_frontmatter(read_text(self.proposal_path))
        return metadata.get("status", "draft")

    def _write_status(self) -> None:
        text = read_text(self.proposal_path)
        write_text(self.proposal_path, update_proposal_status(text, self.state))

    def on_state_change(self, event) -> None:
        source, dest = event.transition.source, event.transition.dest
        trigger = event.event.name

        logger.info(f"[change] {self.change_id}: {source} -> {dest} ({trigger})")

        self._write_status()

        if self.on_transition:
            self.on_transition(source, dest, trigger)

    def allowed_triggers(self) -> list[str]:
        return self.machine.get_triggers(self.state)

    def can(self, trigger: str) -> bool:
        return trigger in self.allowed_triggers()

    def fire(self, trigger: str) -> str:
        """Run trigger by name and return the new state.

        Raises:
            ChangeError: trigger is not allowed from the current state
        """
        if not self.can(trigger):
            allowed = ", ".join(self.allowed_triggers()) or "none"
            raise ChangeError(
                f"Cannot {trigger} {self.change_id} in status '{self.state}' (allowed: {allowed})",
            )
        self.trigger(trigger)
        return self.state


