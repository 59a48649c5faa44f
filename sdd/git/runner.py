"""Single entry point for invoking the git CLI against a repository."""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

GIT_TIMEOUT = 30
GIT_NOT_FOUND = 127


@dataclass
class GitResult:
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    def lines(self) -> list[str]:
        """Non-empty stdout lines."""
        return [line for line in self.stdout.splitlines() if line.strip()]


def run_git(args: list[str], cwd: Path, timeout: int = GIT_TIMEOUT) -> GitResult:
    """
    Run `git -C <cwd> <args>` and capture its output.

    Never raises for git failures: a timeout sets timed_out, a missing git
    binary comes back as returncode 127. Callers check .success.
    """
    command = ["git", "-C", str(cwd), *args]
    logger.debug(f"[git] {' '.join(args)} (in {cwd})")
    try:
        proc = subprocess.run(command, capture_output=True, text=True, timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.warning(f"[git] {args[0] if args else 'git'} timed out after {timeout}s")
        return GitResult(-1, "", f"git timed out after {timeout}s", timed_out=True)
    except FileNotFoundError:
        return GitResult(GIT_NOT_FOUND, "", "git executable not found")
    if proc.returncode != 0:
        logger.debug(f"[git] exit {proc.returncode}: {proc.stderr.strip()}")
    return GitResult(proc.returncode, proc.stdout, proc.stderr)
