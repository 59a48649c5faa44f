"""Tests for sdd.git."""

import subprocess
from pathlib import Path
from unittest.mock import patch, MagicMock

from sdd.git.runner import GIT_NOT_FOUND, run_git, GitResult
from sdd.git.branch import branch_exists, create_branch, get_current_branch, is_git_repository
from sdd.git.diff import get_changed_files, get_file_versions, get_untracked_files, show_file


class TestGitResult:
    """Test GitResult."""

    def test_success_needs_zero_exit_and_no_timeout(self):
        assert GitResult(0, "ok", "").success
        assert not GitResult(1, "", "fatal").success
        assert not GitResult(0, "", "", timed_out=True).success

    def test_lines_skips_blank_output(self):
        assert GitResult(0, "a.md\n\n  \nb.md\n", "").lines() == ["a.md", "b.md"]


class TestRunGit:
    """Test run_git against a mocked subprocess."""

    @patch("sdd.git.runner.subprocess.run")
    def test_runs_in_repo_directory(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout=".git\n", stderr="")
        result = run_git(["rev-parse", "--git-dir"], Path("/work/project"))
        assert result.success
        assert result.lines() == [".git"]
        assert mock_run.call_args[0][0] == ["git", "-C", "/work/project", "rev-parse", "--git-dir"]
        assert mock_run.call_args[1]["timeout"] == 30

    @patch("sdd.git.runner.subprocess.run")
    def test_timeout_is_reported_not_raised(self, mock_run, caplog):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="git", timeout=5)
        result = run_git(["show", "HEAD:spec.md"], Path("/repo"), timeout=5)
        assert result.timed_out
        assert result.stderr == "git timed out after 5s"
        assert "show timed out" in caplog.text

    @patch("sdd.git.runner.subprocess.run")
    def test_missing_binary(self, mock_run):
        mock_run.side_effect = FileNotFoundError("git")
        result = run_git(["status"], Path("/repo"))
        assert result.returncode == GIT_NOT_FOUND
        assert result.stderr == "git executable not found"


class TestBranch:
    """Test branch helpers."""

    @patch("sdd.git.branch.run_git")
    def test_is_git_repository(self, mock_run):
        mock_run.return_value = GitResult(returncode=128, stdout="", stderr="not a git repository")
        assert is_git_repository(Path("/tmp")) is False

    @patch("sdd.git.branch.run_git")
    def test_current_branch(self, mock_run):
        mock_run.return_value = GitResult(returncode=0, stdout="feature/001-login\n", stderr="")
        assert get_current_branch(Path("/tmp")) == "feature/001-login"

    @patch("sdd.git.branch.run_git")
    def test_detached_head_is_none(self, mock_run):
        mock_run.return_value = GitResult(returncode=0, stdout="\n", stderr="")
        assert get_current_branch(Path("/tmp")) is None

    @patch("sdd.git.branch.run_git")
    def test_branch_exists_uses_show_ref(self, mock_run):
        mock_run.return_value = GitResult(returncode=0, stdout="", stderr="")
        assert branch_exists(Path("/tmp"), "main")
        assert mock_run.call_args[0][0] == ["show-ref", "--verify", "--quiet", "refs/heads/main"]

    @patch("sdd.git.branch.run_git")
    def test_create_branch_checks_out(self, mock_run):
        mock_run.return_value = GitResult(returncode=0, stdout="", stderr="")
        assert create_branch(Path("/tmp"), "feature/001-login")
        assert mock_run.call_args[0][0] == ["checkout", "-b", "feature/001-login"]
        create_branch(Path("/tmp"), "x", checkout=False)
        assert mock_run.call_args[0][0] == ["branch", "x"]


class TestGetChangedFiles:
    """Test get_changed_files parsing of --name-status output."""

    @patch("sdd.git.diff.run_git")
    def test_parses_status_and_filters_suffix(self, mock_run):
        mock_run.return_value = GitResult(
            returncode=0,
            stdout="M\t.sdd/specs/a/spec.md\nA\t.sdd/specs/b/spec.md\nD\t.sdd/specs/c/notes.txt\n"
                   "R100\t.sdd/specs/old.md\t.sdd/specs/new.md\n",
            stderr="",
        )
        files = get_changed_files(Path("/repo"), ".sdd/specs")
        assert [(f.path, f.status) for f in files] == [
            (".sdd/specs/a/spec.md", "modified"),
            (".sdd/specs/b/spec.md", "added"),
            (".sdd/specs/new.md", "modified"),
        ]

    @patch("sdd.git.diff.run_git")
    def test_builds_comparison_args(self, mock_run):
        mock_run.return_value = GitResult(returncode=0, stdout="", stderr="")
        get_changed_files(Path("/repo"), ".sdd/specs", staged=True)
        assert mock_run.call_args[0][0] == ["diff", "--name-status", "--cached", "--", ".sdd/specs"]
        get_changed_files(Path("/repo"), ".sdd/specs", commit1="HEAD~1", commit2="HEAD")
        assert mock_run.call_args[0][0] == ["diff", "--name-status", "HEAD~1", "HEAD", "--", ".sdd/specs"]

    @patch("sdd.git.diff.run_git")
    def test_failure_returns_empty(self, mock_run):
        mock_run.return_value = GitResult(returncode=128, stdout="", stderr="fatal")
        assert get_changed_files(Path("/repo"), ".sdd/specs") == []
        assert get_untracked_files(Path("/repo"), ".sdd/specs") == []


class TestFileVersions:
    """Test show_file and get_file_versions."""

    @patch("sdd.git.diff.run_git")
    def test_show_file_missing_is_none(self, mock_run):
        mock_run.return_value = GitResult(returncode=128, stdout="", stderr="does not exist")
        assert show_file(Path("/repo"), "HEAD", "x.md") is None

    @patch("sdd.git.diff.run_git")
    def test_working_tree_version(self, mock_run, tmp_path):
        mock_run.return_value = GitResult(returncode=0, stdout="old", stderr="")
        (tmp_path / "spec.md").write_text("new")
        assert get_file_versions(tmp_path, "spec.md") == ("old", "new")
        assert mock_run.call_args[0][0] == ["show", "HEAD:spec.md"]

    @patch("sdd.git.diff.run_git")
    def test_staged_version_reads_index(self, mock_run, tmp_path):
        mock_run.return_value = GitResult(returncode=0, stdout="content", stderr="")
        get_file_versions(tmp_path, "spec.md", staged=True)
        assert mock_run.call_args[0][0] == ["show", ":0:spec.md"]

    @patch("sdd.git.diff.run_git")
    def test_deleted_file_has_no_after(self, mock_run, tmp_path):
        mock_run.return_value = GitResult(returncode=0, stdout="old", stderr="")
        assert get_file_versions(tmp_path, "gone.md") == ("old", None)
