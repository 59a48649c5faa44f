"""Locating features and spec files in the .sdd/specs tree."""

from pathlib import Path
from typing import Optional

from sdd.lib.fsutil import list_files

SPEC_FILENAME = "spec.md"


def specs_dir(sdd_dir: Path) -> Path:
    return sdd_dir / "specs"


def iter_spec_files(sdd_dir: Path) -> list[Path]:
    """All spec.md files, sorted."""
    return [p for p in list_files(specs_dir(sdd_dir), ".md") if p.name == SPEC_FILENAME]


def spec_id_for(sdd_dir: Path, spec_path: Path) -> str:
    """Spec id is the feature directory relative to specs/, e.g. auth/login."""
    return spec_path.parent.relative_to(specs_dir(sdd_dir)).as_posix()


def find_feature_dir(sdd_dir: Path, name: str) -> Optional[Path]:
    """
    Resolve a feature name to its directory.

    Accepts a path relative to specs/ (auth/login) or a bare feature name,
    which is looked up anywhere in the tree.
    """
    direct = specs_dir(sdd_dir) / name
    if direct.is_dir():
        return direct
    for spec_path in iter_spec_files(sdd_dir):
        if spec_path.parent.name == name:
            return spec_path.parent
    return None
