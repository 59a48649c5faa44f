"""Tests for sdd.new: spec template, counter, plan, tasks and checklists."""

import json

import pytest

from sdd.lib.frontmatter import split_frontmatter
from sdd.new.checklist import (
    checklist_progress,
    checklist_to_markdown,
    create_checklist,
    generate_full_checklist,
    parse_checklist,
)
from sdd.new.counter import (
    extract_feature_number,
    get_feature_history,
    is_valid_feature_id,
    next_feature_number,
    peek_next_feature_number,
    set_next_feature_number,
)
from sdd.new.plan import Phase, TechDecision, generate_plan, parse_plan
from sdd.new.spec_template import generate_feature_id, generate_spec, update_spec_status
from sdd.new.tasks import (
    TaskItem,
    build_tasks,
    generate_task_id,
    generate_tasks,
    get_next_task,
    parse_tasks,
    update_task_status,
)
from sdd.spec.parser import parse_spec
from sdd.spec.validator import validate_spec


class TestSpecTemplate:
    """Test spec.md generation."""

    def test_feature_id(self):
        assert generate_feature_id("User Login (v2)!") == "user-login-v2"
        assert len(generate_feature_id("x" * 80)) == 50

    def test_placeholder_spec_validates(self):
        assert validate_spec(generate_spec("login", "Login", "Sign in")).valid

    def test_requirements_and_scenarios(self):
        content = generate_spec(
            "login", "Login", "Sign in", domain="auth",
            requirements=["Password check: The system SHALL verify passwords"],
            scenarios=[{"name": "ok", "given": "a user", "when": "they log in", "then": "it works"}],
            depends=["core"],
        )
        spec = parse_spec(content)
        assert spec.metadata["domain"] == "auth"
        assert spec.metadata["depends"] == ["core"]
        assert spec.requirements[0].title == "Password check"
        assert spec.scenarios[0].name == "ok"

    def test_update_status_only_touches_frontmatter(self):
        content = generate_spec("login", "Login", "status: keep me")
        updated = update_spec_status(content, "planned")
        metadata, body = split_frontmatter(updated)
        assert metadata["status"] == "planned"
        assert metadata["updated"]
        assert "status: keep me" in body

    def test_update_status_without_frontmatter(self):
        assert update_spec_status("# Plain\n", "planned") == "# Plain\n"


class TestCounter:
    """Test the feature number counter."""

    def test_allocates_sequential_numbers(self, tmp_path):
        first = next_feature_number(tmp_path, "login")
        second = next_feature_number(tmp_path, "signup")
        assert (first.full_id, first.branch_name) == ("001-login", "feature/001-login")
        assert second.number == 2
        assert peek_next_feature_number(tmp_path) == 3
        assert [h["fullId"] for h in get_feature_history(tmp_path)] == ["001-login", "002-signup"]

    def test_counter_file_is_schema_valid_json(self, tmp_path):
        next_feature_number(tmp_path, "login")
        data = json.loads((tmp_path / "counter.json").read_text())
        assert data["nextFeatureNumber"] == 2

    def test_set_next_number(self, tmp_path):
        set_next_feature_number(tmp_path, 42)
        assert next_feature_number(tmp_path, "x").full_id == "042-x"
        with pytest.raises(ValueError):
            set_next_feature_number(tmp_path, 0)

    def test_branch_helpers(self):
        assert extract_feature_number("feature/007-search") == 7
        assert extract_feature_number("main") is None
        assert is_valid_feature_id("001-user-auth")
        assert not is_valid_feature_id("1-user")


class TestPlan:
    """Test plan.md generation and parsing."""

    def test_round_trip(self):
        content = generate_plan(
            "login", "Login", "Add password login",
            decisions=[TechDecision("Use bcrypt", "Slow hashing", ["argon2", "scrypt"])],
            phases=[Phase("Base", "Set up models", ["User model"])],
        )
        plan = parse_plan(content)
        assert plan.overview == "Add password login"
        assert plan.decisions == [TechDecision("Use bcrypt", "Slow hashing", ["argon2", "scrypt"])]
        assert plan.phases[0].name == "Base"
        assert plan.phases[0].description == "Set up models"
        assert plan.phases[0].deliverables == ["User model"]

    def test_defaults_have_three_phases(self):
        plan = parse_plan(generate_plan("login", "Login", "Overview"))
        assert [p.name for p in plan.phases] == ["Foundation", "Core Features", "Integration & Testing"]

    def test_no_overview_returns_none(self):
        assert parse_plan("# Plan\n") is None


class TestTasks:
    """Test tasks.md generation, parsing and status updates."""

    def test_task_id_format(self):
        assert generate_task_id("login", 3) == "login-task-003"

    def test_default_tasks_round_trip(self):
        tasks = parse_tasks(generate_tasks("login", "Login"))
        assert [t.id for t in tasks] == [f"login-task-00{i}" for i in range(1, 5)]
        assert [t.priority for t in tasks] == ["high", "high", "medium", "low"]
        assert all(t.status == "pending" for t in tasks)

    def test_files_and_dependencies(self):
        items = build_tasks("login", [
            {"title": "Model", "files": ["src/user.py"]},
            {"title": "API", "dependencies": ["login-task-001"], "description": "Routes"},
        ])
        tasks = parse_tasks(generate_tasks("login", "Login", items))
        assert tasks[0].files == ["src/user.py"]
        assert tasks[1].dependencies == ["login-task-001"]
        assert tasks[1].description == "Routes"

    def test_update_status_refreshes_progress(self):
        content = update_task_status(generate_tasks("login", "Login"), "login-task-002", "completed")
        tasks = parse_tasks(content)
        assert tasks[1].status == "completed"
        assert tasks[0].status == "pending"
        assert "- Completed: 1" in content
        assert "- Pending: 3" in content
        assert split_frontmatter(content)[0]["completed"] == 1

    def test_update_status_errors(self):
        content = generate_tasks("login", "Login")
        with pytest.raises(ValueError, match="Unknown task status"):
            update_task_status(content, "login-task-001", "done")
        with pytest.raises(ValueError, match="not found"):
            update_task_status(content, "login-task-009", "completed")

    def test_next_task_prefers_in_progress(self):
        tasks = [TaskItem("a", "A", priority="high"), TaskItem("b", "B", status="in_progress", priority="low")]
        assert get_next_task(tasks).id == "b"

    def test_next_task_respects_dependencies(self):
        tasks = [
            TaskItem("a", "A", priority="low"),
            TaskItem("b", "B", priority="high", dependencies=["a"]),
        ]
        assert get_next_task(tasks).id == "a"
        tasks[0].status = "completed"
        assert get_next_task(tasks).id == "b"
        tasks[1].status = "completed"
        assert get_next_task(tasks) is None


class TestChecklist:
    """Test checklists."""

    def test_create_and_progress(self):
        items = create_checklist("pre-spec")
        assert items[0].id == "pre-spec-01"
        items[0].checked = True
        assert checklist_progress(items) == (1, 4, 25)

    def test_unknown_category(self):
        with pytest.raises(ValueError):
            create_checklist("mid-spec")

    def test_markdown_round_trip(self):
        items = create_checklist("post-spec")
        items[1].checked = True
        parsed = parse_checklist(checklist_to_markdown(items, "After"), "post-spec")
        assert [i.checked for i in parsed] == [False, True, False, False]

    def test_full_checklist_has_every_stage(self):
        content = generate_full_checklist()
        assert content.count("## ") == 8
        assert checklist_progress(parse_checklist(content, "all")) == (0, 33, 0)

    def test_empty_progress(self):
        assert checklist_progress([]) == (0, 0, 0)
