"""Git repository and branch operations."""

from pathlib import Path

from sdd.git.runner import run_git


def is_git_repository(path: Path) -> bool:
    """Check if path is inside a git work tree."""
    result = run_git(["rev-parse", "--git-dir"], path)
    return result.success


def get_current_branch(repo: Path) -> str | None:
    """Get the current branch name, or None if detached HEAD."""
    result = run_git(["branch", "--show-current"], repo)
    if result.success:
        return result.stdout.strip() or None
    return None


def branch_exists(repo: Path, branch: str) -> bool:
    """Check if a branch exists."""
    result = run_git(["show-ref", "--verify", "--quiet", f"refs/heads/{branch}"], repo)
    return result.success


def create_branch(repo: Path, branch: str, checkout: bool = True) -> bool:
    """Create branch from HEAD. Returns False if git refused."""
    if checkout:
        result = run_git(["checkout", "-b", branch], repo)
    else:
        result = run_git(["branch", branch], repo)
    return result.success
