"""Tests for sdd.change: proposals, deltas, the lifecycle FSM, archive and transitions."""

from datetime import date

import pytest

from sdd.change.archive import archive_change, list_archives, list_pending_changes
from sdd.change.delta import ModifiedItem, generate_delta, parse_delta, validate_delta
from sdd.change.fsm import STATES, ProposalFSM
from sdd.change.proposal import generate_change_id, generate_proposal, parse_proposal
from sdd.change.service import check_change, create_change, get_change_dir, load_delta, show_change, transition_change
from sdd.change.transition import change_to_new, new_to_change
from sdd.lib.errors import ChangeError, ErrorCode, SddError
from sdd.lib.frontmatter import split_frontmatter


@pytest.fixture
def sdd_dir(tmp_path):
    path = tmp_path / ".sdd"
    path.mkdir()
    return path


class TestChangeId:
    """Test generate_change_id."""

    def test_first_id(self):
        assert generate_change_id([]) == "CHG-001"

    def test_next_after_highest(self):
        assert generate_change_id(["CHG-001", "CHG-009", "notes"]) == "CHG-010"

    def test_wide_numbers(self):
        assert generate_change_id(["CHG-1234"]) == "CHG-1235"


class TestProposal:
    """Test proposal generation and parsing."""

    def test_round_trip(self):
        content = generate_proposal("CHG-001", "Add MFA", "Passwords alone are weak",
                                    ["auth/login", "auth/mfa"], ["ADDED", "MODIFIED"])
        proposal = parse_proposal(content)
        assert proposal.id == "CHG-001"
        assert proposal.status == "draft"
        assert proposal.title == "Add MFA"
        assert proposal.rationale == "Passwords alone are weak"
        assert proposal.affected_specs == ["auth/login", "auth/mfa"]
        assert proposal.change_types == ["ADDED", "MODIFIED"]
        assert (proposal.risk, proposal.complexity) == ("medium", "medium")

    def test_change_type_defaults_to_modified(self):
        proposal = parse_proposal(generate_proposal("CHG-002", "Tweak"))
        assert proposal.change_types == ["MODIFIED"]

    def test_risk_is_read_case_insensitively(self):
        content = generate_proposal("CHG-001", "Risky").replace("Impact: medium", "Impact: High")
        assert parse_proposal(content).risk == "high"

    def test_invalid_id_rejected(self):
        with pytest.raises(ChangeError) as exc:
            generate_proposal("CHANGE-1", "x")
        assert exc.value.code == ErrorCode.INVALID_ARGUMENT

    def test_invalid_status_rejected(self):
        content = generate_proposal("CHG-001", "x").replace("status: draft", "status: bogus")
        with pytest.raises(ChangeError, match="status"):
            parse_proposal(content)

    def test_missing_status_defaults_to_draft(self):
        content = generate_proposal("CHG-001", "x").replace("status: draft\n", "")
        assert parse_proposal(content).status == "draft"

    def test_to_dict_uses_camel_case(self):
        data = parse_proposal(generate_proposal("CHG-001", "x", affected_specs=["a"])).to_dict()
        assert data["affectedSpecs"] == ["a"]
        assert data["changeType"] == ["MODIFIED"]


class TestDelta:
    """Test delta generation, parsing and validation."""

    def test_template_parses_empty(self):
        delta = parse_delta(generate_delta("CHG-001", "Add MFA"))
        assert delta.title == "Add MFA"
        assert (delta.added, delta.modified, delta.removed) == ([], [], [])

    def test_template_is_invalid(self):
        result = validate_delta(generate_delta("CHG-001", "Add MFA"))
        assert not result.valid
        assert "no changes" in result.errors[0]

    def test_added_entry_is_valid(self):
        result = validate_delta(generate_delta("CHG-001", "Add MFA", added=["REQ-05: The system SHALL send a code"]))
        assert result.valid
        assert result.has_added and not result.has_modified

    def test_modified_items_parse_before_and_after(self):
        content = generate_delta("CHG-001", "x", modified=[ModifiedItem("auth/login", "", before="old", after="new")])
        item = parse_delta(content).modified[0]
        assert (item.target, item.before, item.after) == ("auth/login", "old", "new")

    def test_modified_without_after_warns(self):
        content = generate_delta("CHG-001", "x", modified=[ModifiedItem("auth/login", "", before="old")])
        result = validate_delta(content)
        assert result.valid
        assert result.warnings == ["auth/login: missing Before/After block"]

    def test_removed_entry(self):
        delta = parse_delta(generate_delta("CHG-001", "x", removed=["auth/legacy"]))
        assert delta.removed == ["auth/legacy"]

    def test_bad_frontmatter_is_reported(self):
        result = validate_delta("---\nproposal: nope\n---\n# Delta: x\n")
        assert not result.valid
        assert "proposal" in result.errors[0]


class TestProposalFSM:
    """Test the change lifecycle state machine."""

    @pytest.fixture
    def change_dir(self, sdd_dir):
        return create_change(sdd_dir, "Add MFA").path

    def test_all_states_defined(self):
        assert set(STATES) == {"draft", "proposed", "approved", "applied", "archived", "rejected"}

    def test_initial_state_from_file(self, change_dir):
        assert ProposalFSM(change_dir).state == "draft"

    def test_transition_persists_status(self, change_dir):
        fsm = ProposalFSM(change_dir)
        assert fsm.fire("propose") == "proposed"
        metadata, _ = split_frontmatter((change_dir / "proposal.md").read_text())
        assert metadata["status"] == "proposed"
        assert metadata["updated"]
        assert ProposalFSM(change_dir).state == "proposed"

    def test_invalid_trigger_raises(self, change_dir):
        fsm = ProposalFSM(change_dir)
        fsm.fire("approve")
        with pytest.raises(ChangeError, match="allowed: apply, archive"):
            fsm.fire("reject")

    def test_apply_without_review(self, change_dir):
        assert ProposalFSM(change_dir).fire("apply") == "applied"

    def test_archived_is_terminal(self, change_dir):
        fsm = ProposalFSM(change_dir)
        fsm.fire("archive")
        assert fsm.allowed_triggers() == []

    def test_on_transition_callback(self, change_dir):
        seen = []
        fsm = ProposalFSM(change_dir, on_transition=lambda *args: seen.append(args))
        fsm.fire("propose")
        assert seen == [("draft", "proposed", "propose")]

    def test_unknown_status_defaults_to_draft(self, change_dir, caplog):
        path = change_dir / "proposal.md"
        path.write_text(path.read_text().replace("status: draft", "status: weird"))
        assert ProposalFSM(change_dir).state == "draft"
        assert "Unknown status" in caplog.text

    def test_missing_proposal_raises(self, tmp_path):
        with pytest.raises(ChangeError) as exc:
            ProposalFSM(tmp_path)
        assert exc.value.code == ErrorCode.PROPOSAL_NOT_FOUND


class TestChangeService:
    """Test create/show/check operations."""

    def test_create_writes_three_files(self, sdd_dir):
        created = create_change(sdd_dir, "Add MFA", affected_specs=["auth/login"])
        assert created.id == "CHG-001"
        assert sorted(p.name for p in created.files) == ["delta.md", "proposal.md", "tasks.md"]
        assert create_change(sdd_dir, "Second", with_tasks=False).id == "CHG-002"
        assert not (sdd_dir / "changes" / "CHG-002" / "tasks.md").exists()

    def test_show_change(self, sdd_dir):
        create_change(sdd_dir, "Add MFA", affected_specs=["auth/login"])
        assert show_change(sdd_dir, "CHG-001").affected_specs == ["auth/login"]

    def test_missing_change_is_e401(self, sdd_dir):
        with pytest.raises(ChangeError) as exc:
            get_change_dir(sdd_dir, "CHG-404")
        assert exc.value.code == ErrorCode.PROPOSAL_NOT_FOUND

    def test_check_template_change_fails_on_delta(self, sdd_dir):
        create_change(sdd_dir, "Add MFA")
        check = check_change(sdd_dir, "CHG-001")
        assert check.proposal is not None
        assert not check.delta.valid
        assert not check.ok

    def test_check_with_added_content_passes(self, sdd_dir):
        create_change(sdd_dir, "Add MFA", added=["The system SHALL send a code"])
        assert check_change(sdd_dir, "CHG-001").ok
        assert load_delta(sdd_dir, "CHG-001").added == ["The system SHALL send a code"]

    def test_check_reports_missing_files(self, sdd_dir):
        (sdd_dir / "changes" / "CHG-001").mkdir(parents=True)
        check = check_change(sdd_dir, "CHG-001")
        assert check.proposal_error == "proposal.md is missing"
        assert check.delta.errors == ["delta.md is missing"]

    def test_transition_change(self, sdd_dir):
        create_change(sdd_dir, "Add MFA")
        assert transition_change(sdd_dir, "CHG-001", "propose") == "proposed"
        assert show_change(sdd_dir, "CHG-001").status == "proposed"


class TestArchive:
    """Test archiving and listing changes."""

    def test_archive_moves_and_marks(self, sdd_dir):
        create_change(sdd_dir, "Add MFA")
        result = archive_change(sdd_dir, "CHG-001", when=date(2025, 1, 15))

        assert result.archive_dir == sdd_dir / "archive" / "2025-01" / "2025-01-15-CHG-001"
        assert not (sdd_dir / "changes" / "CHG-001").exists()
        metadata, _ = split_frontmatter((result.archive_dir / "proposal.md").read_text())
        assert metadata["status"] == "archived"

    def test_archive_missing_change(self, sdd_dir):
        with pytest.raises(ChangeError) as exc:
            archive_change(sdd_dir, "CHG-001")
        assert exc.value.code == ErrorCode.PROPOSAL_NOT_FOUND

    def test_archive_goes_through_transition(self, sdd_dir, caplog):
        create_change(sdd_dir, "Add MFA")
        transition_change(sdd_dir, "CHG-001", "approve")
        caplog.set_level("INFO")

        archive_change(sdd_dir, "CHG-001", when=date(2025, 1, 15))

        assert "[change] CHG-001: approved -> archived (archive)" in caplog.text

    def test_archive_refused_when_already_archived(self, sdd_dir):
        create_change(sdd_dir, "Add MFA")
        proposal = sdd_dir / "changes" / "CHG-001" / "proposal.md"
        proposal.write_text(proposal.read_text().replace("status: draft", "status: archived"))

        with pytest.raises(ChangeError, match="Cannot archive CHG-001"):
            archive_change(sdd_dir, "CHG-001")
        assert (sdd_dir / "changes" / "CHG-001").is_dir()

    def test_archived_ids_are_not_reused(self, sdd_dir):
        create_change(sdd_dir, "First")
        archive_change(sdd_dir, "CHG-001", when=date(2025, 1, 15))
        second = create_change(sdd_dir, "Second")
        archive_change(sdd_dir, "CHG-002", when=date(2025, 1, 15))

        assert second.id == "CHG-002"
        assert sorted(a.id for a in list_archives(sdd_dir)) == ["CHG-001", "CHG-002"]

    def test_existing_archive_entry_is_not_overwritten(self, sdd_dir):
        create_change(sdd_dir, "Add MFA")
        entry = sdd_dir / "archive" / "2025-01" / "2025-01-15-CHG-001"
        entry.mkdir(parents=True)
        (entry / "proposal.md").write_text("kept")

        with pytest.raises(ChangeError) as exc:
            archive_change(sdd_dir, "CHG-001", when=date(2025, 1, 15))

        assert exc.value.code == ErrorCode.ARCHIVE_FAILED
        assert (entry / "proposal.md").read_text() == "kept"
        assert (sdd_dir / "changes" / "CHG-001").is_dir()

    def test_list_archives_newest_first(self, sdd_dir):
        create_change(sdd_dir, "First")
        create_change(sdd_dir, "Second")
        archive_change(sdd_dir, "CHG-001", when=date(2025, 1, 15))
        archive_change(sdd_dir, "CHG-002", when=date(2025, 2, 1))

        archives = list_archives(sdd_dir)
        assert [(a.id, a.archived_at) for a in archives] == [("CHG-002", "2025-02-01"), ("CHG-001", "2025-01-15")]
        assert archives[1].title == "First"

    def test_list_pending_changes(self, sdd_dir, caplog):
        create_change(sdd_dir, "First")
        (sdd_dir / "changes" / "CHG-002").mkdir()
        (sdd_dir / "changes" / "CHG-002" / "proposal.md").write_text("---\nid: bad\n---\n")

        pending = {c.id: c for c in list_pending_changes(sdd_dir)}
        assert pending["CHG-001"].title == "First"
        assert pending["CHG-002"].title is None
        assert "unreadable proposal" in caplog.text


class TestTransition:
    """Test moving work between the new-feature and change workflows."""

    def test_new_to_change_requires_spec(self, sdd_dir):
        with pytest.raises(SddError) as exc:
            new_to_change(sdd_dir, "auth/login")
        assert exc.value.code == ErrorCode.FILE_NOT_FOUND

    def test_new_to_change_creates_proposal(self, sdd_dir):
        spec = sdd_dir / "specs" / "auth" / "login"
        spec.mkdir(parents=True)
        (spec / "spec.md").write_text("---\nstatus: draft\n---\n# Login\n")

        created = new_to_change(sdd_dir, "auth/login")
        proposal = show_change(sdd_dir, created.id)
        assert proposal.title == "Extend Login"
        assert proposal.affected_specs == ["auth/login"]

    def test_change_to_new_creates_feature_and_rejects(self, sdd_dir):
        create_change(sdd_dir, "Big Payments Rework")
        feature = change_to_new(sdd_dir, "CHG-001", reason="Too large")

        assert feature.feature_id == "big-payments-rework"
        assert sorted(p.name for p in feature.path.iterdir()) == ["plan.md", "spec.md", "tasks.md"]
        metadata, _ = split_frontmatter((sdd_dir / "changes" / "CHG-001" / "proposal.md").read_text())
        assert metadata["status"] == "rejected"
        assert metadata["transitioned_to"] == "big-payments-rework"
        assert metadata["transition_reason"] == "Too large"

    def test_change_to_new_keeps_approved_status(self, sdd_dir):
        create_change(sdd_dir, "Rework")
        transition_change(sdd_dir, "CHG-001", "approve")
        change_to_new(sdd_dir, "CHG-001", name="rework feature")
        assert show_change(sdd_dir, "CHG-001").status == "approved"

    def test_change_to_new_refuses_existing_feature(self, sdd_dir):
        create_change(sdd_dir, "Rework")
        (sdd_dir / "specs" / "rework").mkdir(parents=True)
        with pytest.raises(SddError) as exc:
            change_to_new(sdd_dir, "CHG-001")
        assert exc.value.code == ErrorCode.DIRECTORY_EXISTS
