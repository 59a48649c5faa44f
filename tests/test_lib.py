"""Tests for sdd.lib frontmatter, fsutil, validate and errors."""

import json

import pytest
import yaml

from sdd.lib import validate
from sdd.lib.errors import (
    ChangeError,
    ConstitutionError,
    ErrorCode,
    ExitCode,
    FileSystemError,
    NotInitializedError,
    SddError,
)
from sdd.lib.frontmatter import dump_frontmatter, has_frontmatter, split_frontmatter, update_frontmatter
from sdd.lib.fsutil import find_sdd_root, list_dirs, list_files, read_text, require_sdd_dir, write_text


class TestSplitFrontmatter:
    """Test split_frontmatter."""

    def test_splits_metadata_and_body(self):
        metadata, body = split_frontmatter("---\nid: login\nstatus: draft\n---\n# Title\n")
        assert metadata == {"id": "login", "status": "draft"}
        assert body == "# Title\n"

    def test_no_frontmatter_returns_text(self):
        assert split_frontmatter("# Title\n") == ({}, "# Title\n")

    def test_dates_become_strings(self):
        metadata, _ = split_frontmatter("---\ncreated: 2025-01-15\n---\n")
        assert metadata["created"] == "2025-01-15"

    def test_non_mapping_raises(self):
        with pytest.raises(yaml.YAMLError):
            split_frontmatter("---\n- a\n- b\n---\nbody")

    def test_invalid_yaml_raises(self):
        with pytest.raises(yaml.YAMLError):
            split_frontmatter("---\nid: [unclosed\n---\nbody")

    def test_has_frontmatter(self):
        assert has_frontmatter("---\na: 1\n---\n")
        assert not has_frontmatter("# no\n")


class TestUpdateFrontmatter:
    """Test update_frontmatter and dump_frontmatter."""

    def test_sets_and_removes_fields(self):
        text = "---\nid: login\nstatus: draft\nbranch: x\n---\n\n# Login\n"
        updated = update_frontmatter(text, status="approved", branch=None)
        metadata, body = split_frontmatter(updated)
        assert metadata == {"id": "login", "status": "approved"}
        assert body.strip() == "# Login"

    def test_dump_keeps_key_order(self):
        text = dump_frontmatter({"b": 1, "a": 2}, "body\n")
        assert text == "---\nb: 1\na: 2\n---\nbody\n"


class TestFsutil:
    """Test fsutil helpers."""

    def test_find_sdd_root_walks_up(self, tmp_path):
        (tmp_path / ".sdd").mkdir()
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_sdd_root(nested) == tmp_path.resolve()
        assert require_sdd_dir(nested) == tmp_path.resolve() / ".sdd"

    def test_require_sdd_dir_raises_when_missing(self, tmp_path):
        with pytest.raises(NotInitializedError) as exc:
            require_sdd_dir(tmp_path)
        assert exc.value.code == ErrorCode.NOT_INITIALIZED
        assert "sdd init" in exc.value.message

    def test_write_text_creates_parents(self, tmp_path):
        target = tmp_path / "x" / "y" / "file.md"
        write_text(target, "hello")
        assert read_text(target) == "hello"

    def test_read_missing_file_raises(self, tmp_path):
        with pytest.raises(FileSystemError) as exc:
            read_text(tmp_path / "missing.md")
        assert exc.value.code == ErrorCode.FILE_NOT_FOUND
        assert exc.value.exit_code == ExitCode.FILE_SYSTEM_ERROR

    def test_list_files_and_dirs(self, tmp_path):
        (tmp_path / "b").mkdir()
        (tmp_path / "a").mkdir()
        (tmp_path / ".hidden").mkdir()
        (tmp_path / "a" / "spec.md").write_text("x")
        (tmp_path / "a" / "notes.txt").write_text("x")
        assert list_files(tmp_path) == [tmp_path / "a" / "spec.md"]
        assert [p.name for p in list_dirs(tmp_path)] == ["a", "b"]
        assert list_files(tmp_path / "missing") == []


class TestValidate:
    """Test JSON schema validation."""

    def test_valid_counter_passes(self):
        validate.validate({"nextFeatureNumber": 1, "lastUpdated": "now", "history": []}, "counter")

    def test_invalid_data_raises_with_path(self):
        with pytest.raises(validate.ValidationError) as exc:
            validate.validate({"nextFeatureNumber": 0, "lastUpdated": "now", "history": []}, "counter")
        assert exc.value.schema_name == "counter"
        assert exc.value.path == "nextFeatureNumber"

    def test_unknown_schema_raises(self):
        with pytest.raises(validate.ValidationError, match="Schema file not found"):
            validate.validate({}, "no-such-schema")

    def test_iter_errors_lists_all(self):
        errors = validate.iter_errors({"status": "bogus", "created": "yesterday"}, "spec-metadata")
        assert len(errors) == 2
        assert any(e.startswith("status:") for e in errors)
        assert any(e.startswith("created:") for e in errors)

    def test_validate_file_rejects_bad_json(self, tmp_path):
        path = tmp_path / "counter.json"
        path.write_text("{not json")
        with pytest.raises(validate.ValidationError, match="Invalid JSON"):
            validate.validate_file(path, "counter")

    def test_write_json_refuses_invalid_data(self, tmp_path):
        path = tmp_path / "counter.json"
        with pytest.raises(validate.ValidationError, match="Refusing to write"):
            validate.write_json(path, {"nextFeatureNumber": "one"}, "counter")
        assert not path.exists()

    def test_write_json_round_trips(self, tmp_path):
        path = tmp_path / "state" / "counter.json"
        data = {"nextFeatureNumber": 3, "lastUpdated": "now", "history": []}
        validate.write_json(path, data, "counter")
        assert json.loads(path.read_text()) == data
        assert validate.validate_file(path, "counter") == data


class TestErrors:
    """Test error types carry codes and exit codes."""

    def test_default_exit_code(self):
        error = SddError("boom")
        assert error.exit_code == ExitCode.GENERAL_ERROR
        assert error.to_user_message() == "[E001] boom"

    def test_constitution_error_exit_code(self):
        assert ConstitutionError("x").exit_code == ExitCode.CONSTITUTION_VIOLATION

    def test_change_error_default_code(self):
        assert ChangeError("x").code == ErrorCode.PROPOSAL_INVALID

    def test_file_system_error_includes_path(self, tmp_path):
        error = FileSystemError("Cannot read", tmp_path / "a.md")
        assert error.path.endswith("a.md")
        assert "a.md" in error.message
