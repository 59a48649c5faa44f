"""Filesystem helpers shared by SDD commands."""

import logging
import shutil
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Optional

from sdd.lib.errors import ErrorCode, FileSystemError, NotInitializedError

logger = logging.getLogger(__name__)

SDD_DIR = ".sdd"


def today() -> str:
    return date.today().isoformat()


def now_iso() -> str:
    """UTC timestamp in ISO 8601 with a Z suffix."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def find_sdd_root(start: Optional[Path] = None) -> Optional[Path]:
    """Walk up from start looking for a directory containing .sdd.

    Returns the project root (the parent of .sdd), or None.
    """
    current = Path(start or Path.cwd()).resolve()
    for candidate in [current, *current.parents]:
        if (candidate / SDD_DIR).is_dir():
            return candidate
    return None


def require_sdd_dir(start: Optional[Path] = None) -> Path:
    """Return the .sdd directory for start, or raise NotInitializedError."""
    root = find_sdd_root(start)
    if root is None:
        raise NotInitializedError(str(start or Path.cwd()))
    return root / SDD_DIR


def ensure_dir(path: Path) -> Path:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FileSystemError(f"Cannot create directory ({e.strerror})", path,
                              ErrorCode.FILE_WRITE_ERROR) from e
    return path


def read_text(path: Path) -> str:
    if not path.exists():
        raise FileSystemError("File not found", path, ErrorCode.FILE_NOT_FOUND)
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise FileSystemError(f"Cannot read file ({e.strerror})", path) from e


def write_text(path: Path, content: str) -> None:
    """Write content, creating parent directories."""
    ensure_dir(path.parent)
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise FileSystemError(f"Cannot write file ({e.strerror})", path,
                              ErrorCode.FILE_WRITE_ERROR) from e
    logger.debug(f"wrote {path}")


def list_files(directory: Path, suffix: str = ".md", recursive: bool = True) -> list[Path]:
    """Sorted files under directory with the given suffix. Missing dir gives []."""
    if not directory.is_dir():
        return []
    pattern = f"**/*{suffix}" if recursive else f"*{suffix}"
    return sorted(p for p in directory.glob(pattern) if p.is_file())


def list_dirs(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.is_dir() and not p.name.startswith("."))


def copy_dir(src: Path, dest: Path) -> None:
    if not src.is_dir():
        raise FileSystemError("Directory not found", src, ErrorCode.DIRECTORY_NOT_FOUND)
    try:
        shutil.copytree(src, dest)
    except OSError as e:
        raise FileSystemError(f"Cannot copy directory ({e})", src,
                              ErrorCode.FILE_WRITE_ERROR) from e


def remove_dir(path: Path) -> None:
    if not path.exists():
        return
    try:
        shutil.rmtree(path)
    except OSError as e:
        raise FileSystemError(f"Cannot remove directory ({e})", path,
                              ErrorCode.FILE_WRITE_ERROR) from e
