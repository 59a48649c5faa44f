"""Constitution changelog (.sdd/CHANGELOG.md)."""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from sdd.constitution.parser import bump_version
from sdd.lib.fsutil import read_text, today, write_text

CHANGELOG_FILENAME = "CHANGELOG.md"
CHANGE_TYPES = ["added", "changed", "deprecated", "removed", "fixed"]

CHANGELOG_HEADER = """# Constitution Changelog

All notable changes to the Constitution will be documented in this file.

"""

ENTRY_RE = re.compile(r'^##\s+\[(\d+\.\d+\.\d+)\]\s+-\s+(\d{4}-\d{2}-\d{2})(.*?)(?=\n##\s+\[|\Z)', re.MULTILINE | re.DOTALL)
TYPE_RE = re.compile(r'^###\s+(Added|Changed|Deprecated|Removed|Fixed|Reason)\s*\n(.*?)(?=\n###|\n##|\n---|\Z)', re.MULTILINE | re.DOTALL | re.IGNORECASE)
ITEM_RE = re.compile(r'^-\s+(.+)$', re.MULTILINE)


@dataclass
class ChangelogEntry:
    version: str
    date: str
    changes: list[tuple[str, str]] = field(default_factory=list)
    reason: Optional[str] = None


def format_entry(entry: ChangelogEntry) -> str:
    content = f"## [{entry.version}] - {entry.date}\n\n"
    for change_type in CHANGE_TYPES:
        items = [d for t, d in entry.changes if t == change_type]
        if items:
            content += f"### {change_type.capitalize()}\n"
            content += "".join(f"- {item}\n" for item in items)
            content += "\n"
    if entry.reason:
        content += f"### Reason\n- {entry.reason}\n\n"
    return content


def generate_changelog(entries: list[ChangelogEntry]) -> str:
    return CHANGELOG_HEADER + "".join(format_entry(e) + "---\n\n" for e in entries)


def parse_changelog(content: str) -> list[ChangelogEntry]:
    """Entries in file order (newest first as written)."""
    entries = []
    for match in ENTRY_RE.finditer(content):
        entry = ChangelogEntry(version=match.group(1), date=match.group(2))
        for type_match in TYPE_RE.finditer(match.group(3)):
            label = type_match.group(1).lower()
            items = [m.group(1).strip() for m in ITEM_RE.finditer(type_match.group(2))]
            if label == "reason":
                entry.reason = items[0] if items else None
            else:
                entry.changes.extend((label, item) for item in items)
        entries.append(entry)
    return entries


def create_entry(current_version: str, bump: str, changes: list[tuple[str, str]],
                 reason: Optional[str] = None) -> ChangelogEntry:
    return ChangelogEntry(version=bump_version(current_version, bump), date=today(),
                          changes=changes, reason=reason)


def suggest_bump(changes: list[tuple[str, str]]) -> str:
    """major for removals or breaking/rewritten rules, minor for additions, else patch."""
    for change_type, description in changes:
        if change_type == "removed" or "breaking" in description.lower():
            return "major"
        if change_type == "changed" and ("->" in description or "→" in description):
            return "major"
    if any(t == "added" for t, _ in changes):
        return "minor"
    return "patch"


def add_changelog_entry(sdd_dir: Path, entry: ChangelogEntry) -> None:
    """Prepend entry so the newest version is listed first."""
    path = sdd_dir / CHANGELOG_FILENAME
    entries = parse_changelog(read_text(path)) if path.exists() else []
    write_text(path, generate_changelog([entry] + entries))


def history(sdd_dir: Path, limit: Optional[int] = None) -> list[ChangelogEntry]:
    path = sdd_dir / CHANGELOG_FILENAME
    if not path.exists():
        return []
    entries = parse_changelog(read_text(path))
    return entries[:limit] if limit else entries
