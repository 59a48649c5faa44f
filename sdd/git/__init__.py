"""Git operations for SDD.

Thin wrappers over the git CLI. Every call goes through run_git.

Return type conventions:
- Functions returning bool: True on success/condition met, False otherwise.
  Examples: is_git_repository(), branch_exists()
- Functions returning parsed values (str, list): Return None/empty on failure.
  Examples: get_changed_files() -> [], show_file() -> None
"""

from sdd.git.runner import GitResult, run_git
from sdd.git.branch import (
    is_git_repository,
    get_current_branch,
    branch_exists,
    create_branch,
)
from sdd.git.diff import (
    ChangedFile,
    get_changed_files,
    get_untracked_files,
    show_file,
    get_file_versions,
)

__all__ = [
    # runner
    "GitResult",
    "run_git",
    # branch
    "is_git_repository",
    "get_current_branch",
    "branch_exists",
    "create_branch",
    # diff
    "ChangedFile",
    "get_changed_files",
    "get_untracked_files",
    "show_file",
    "get_file_versions",
]
