"""Git diff and show operations for spec files."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sdd.git.runner import run_git

STATUS_NAMES = {"A": "added", "D": "deleted"}


@dataclass
class ChangedFile:
    """A changed file from git diff --name-status."""
    path: str
    status: str  # added, modified, deleted


def _parse_status(code: str) -> str:
    # R and C (rename/copy) count as modified
    return STATUS_NAMES.get(code[:1].upper(), "modified")


def get_changed_files(
    repo: Path,
    pathspec: str,
    staged: bool = False,
    commit1: Optional[str] = None,
    commit2: Optional[str] = None,
    suffix: str = ".md",
) -> list[ChangedFile]:
    """
    List changed files under pathspec.

    Compares commit1..commit2, commit1..worktree, index..HEAD (staged),
    or worktree..index. Returns [] when git fails.
    """
    args = ["diff", "--name-status"]
    if commit1 and commit2:
        args += [commit1, commit2]
    elif commit1:
        args.append(commit1)
    elif staged:
        args.append("--cached")
    args += ["--", pathspec]

    result = run_git(args, repo)
    if not result.success:
        return []

    files = []
    for line in result.stdout.splitlines():
        parts = line.split("\t")
        if len(parts) < 2:
            continue
        # Renames list old and new path; keep the new one
        path = parts[-1]
        if suffix and not path.endswith(suffix):
            continue
        files.append(ChangedFile(path=path, status=_parse_status(parts[0])))
    return files


def get_untracked_files(repo: Path, pathspec: str) -> list[str]:
    result = run_git(["ls-files", "--others", "--exclude-standard", "--", pathspec], repo)
    if not result.success:
        return []
    return [f.strip() for f in result.stdout.splitlines() if f.strip()]


def show_file(repo: Path, ref: str, path: str) -> str | None:
    """Content of path at ref ("HEAD", a sha, or ":0" for the index), or None."""
    spec = f"{ref}:{path}"
    result = run_git(["show", spec], repo)
    if result.success:
        return result.stdout
    return None


def get_file_versions(
    repo: Path,
    path: str,
    staged: bool = False,
    commit1: Optional[str] = None,
    commit2: Optional[str] = None,
) -> tuple[str | None, str | None]:
    """
    (before, after) content of a file for the given comparison.

    before comes from commit1 or HEAD; after comes from commit2, the index
    when staged, or the working tree.
    """
    before = show_file(repo, commit1 or "HEAD", path)

    if commit2:
        after = show_file(repo, commit2, path)
    elif staged:
        after = show_file(repo, ":0", path)
    else:
        file_path = repo / path
        after = file_path.read_text(encoding="utf-8") if file_path.exists() else None

    return before, after
