"""
Project scan for reverse extraction.

Walks a source tree, builds a language histogram and guesses domains from
the top-level directories under src/, lib/, packages/, modules/ or apps/.
"""

import fnmatch
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Callable, Optional

from sdd.lib.errors import ErrorCode, FileSystemError

logger = logging.getLogger(__name__)

LANGUAGES = {
    ".ts": "typescript", ".tsx": "typescript",
    ".js": "javascript", ".jsx": "javascript", ".mjs": "javascript", ".cjs": "javascript",
    ".py": "python", ".pyi": "python",
    ".java": "java",
    ".kt": "kotlin", ".kts": "kotlin",
    ".go": "go",
    ".rs": "rust",
    ".c": "c", ".h": "c",
    ".cpp": "cpp", ".cc": "cpp", ".cxx": "cpp", ".hpp": "cpp",
    ".cs": "csharp",
    ".rb": "ruby",
    ".php": "php",
    ".swift": "swift",
    ".scala": "scala",
    ".dart": "dart",
    ".lua": "lua",
    ".ex": "elixir", ".exs": "elixir",
}

DOMAIN_ROOTS = ("src", "lib", "packages", "modules", "apps")
NON_DOMAIN_NAMES = {"utils", "helpers", "types", "config", "test", "tests", "__tests__"}
SKIP_DIRS = {"node_modules", "dist", "build", "__pycache__", "venv"}
MAX_DOMAINS = 10


@dataclass
class SuggestedDomain:
    name: str
    path: str
    file_count: int
    confidence: int
    files: list[str] = field(default_factory=list)


@dataclass
class Complexity:
    total_lines: int
    avg_file_size: int
    grade: str  # low, medium, high, very-high


@dataclass
class ScanResult:
    path: str
    files: list[str]
    directories: list[str]
    languages: dict[str, int]
    domains: list[SuggestedDomain]
    complexity: Complexity

    @property
    def file_count(self) -> int:
        return len(self.files)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["file_count"] = self.file_count
        return data


def detect_language(path: str) -> Optional[str]:
    return LANGUAGES.get(os.path.splitext(path)[1].lower())


def _walk(base: Path, depth: int) -> tuple[list[str], list[str]]:
    directories, files = [], []

    def visit(current: Path, level: int) -> None:
        if level > depth:
            return
        for entry in sorted(current.iterdir()):
            if entry.name.startswith(".") or entry.name in SKIP_DIRS:
                continue
            rel = entry.relative_to(base).as_posix()
            if entry.is_dir():
                directories.append(rel)
                visit(entry, level + 1)
            elif entry.is_file():
                files.append(rel)

    visit(base, 0)
    return directories, files


def _matches(path: str, pattern: Optional[str]) -> bool:
    if not pattern:
        return True
    return any(fnmatch.fnmatch(path, p.strip()) or p.strip() in path for p in pattern.split(","))


def domain_confidence(path: str, file_count: int, total_files: int) -> int:
    file_score = min(file_count / max(total_files, 1) * 100, 50)
    size_score = min(file_count * 5 / 10, 30)
    path_score = 20 if path.startswith("src/") else 10
    return round(file_score + size_score + path_score)


def infer_domains(files: list[str]) -> list[SuggestedDomain]:
    grouped: dict[str, tuple[str, list[str]]] = {}
    for file in files:
        parts = file.split("/")
        if len(parts) < 3 or parts[0] not in DOMAIN_ROOTS:
            continue
        name = parts[1]
        grouped.setdefault(name, (f"{parts[0]}/{name}", []))[1].append(file)

    ranked = sorted(
        ((name, path, members) for name, (path, members) in grouped.items() if name not in NON_DOMAIN_NAMES),
        key=lambda item: len(item[2]),
        reverse=True,
    )[:MAX_DOMAINS]

    return [
        SuggestedDomain(name=name, path=path, file_count=len(members),
                        confidence=domain_confidence(path, len(members), len(files)), files=members)
        for name, path, members in ranked
    ]


def complexity_grade(total_lines: int, avg_file_size: int, file_count: int) -> str:
    score = (total_lines / 10000) * 0.4 + (file_count * 2 / 100) * 0.4 + (avg_file_size / 500) * 0.2
    if score < 0.5:
        return "low"
    if score < 1.5:
        return "medium"
    if score < 3:
        return "high"
    return "very-high"


def _count_lines(path: Path) -> int:
    try:
        with open(path, "rb") as f:
            return sum(1 for _ in f)
    except OSError:
        return 0


def scan_project(
    project_path: Path,
    depth: int = 5,
    include: Optional[str] = None,
    exclude: Optional[str] = None,
    language: Optional[str] = None,
    on_progress: Optional[Callable[[str, int, int], None]] = None,
) -> ScanResult:
    """
    Scan a source tree.

    include/exclude are comma-separated glob patterns or substrings.
    Only files with a known source extension are kept.

    Raises:
        FileSystemError: project_path does not exist
    """
    if not project_path.is_dir():
        raise FileSystemError("Path not found", project_path, ErrorCode.DIRECTORY_NOT_FOUND)

    directories, all_files = _walk(project_path, depth)
    files = [
        f for f in all_files
        if detect_language(f) and _matches(f, include) and not (exclude and _matches(f, exclude))
    ]
    if language:
        files = [f for f in files if detect_language(f) == language.lower()]

    languages: dict[str, int] = {}
    total_lines = 0
    for index, file in enumerate(files, 1):
        lang = detect_language(file)
        languages[lang] = languages.get(lang, 0) + 1
        total_lines += _count_lines(project_path / file)
        if on_progress:
            on_progress(file, index, len(files))

    avg = total_lines // len(files) if files else 0
    logger.info(f"[reverse] scanned {project_path}: {len(files)} source file(s)")

    return ScanResult(
        path=str(project_path),
        files=files,
        directories=directories,
        languages=dict(sorted(languages.items(), key=lambda kv: kv[1], reverse=True)),
        domains=infer_domains(files),
        complexity=Complexity(total_lines, avg, complexity_grade(total_lines, avg, len(files))),
    )


def format_scan_result(result: ScanResult) -> str:
    lines = ["", "Project scan", "=" * 50, "", f"Files: {result.file_count}", ""]
    if result.languages:
        lines.append("Languages:")
        lines += [f"  {lang}: {count} file(s)" for lang, count in list(result.languages.items())[:5]]
        lines.append("")
    if result.domains:
        lines.append("Suggested domains:")
        for domain in result.domains:
            lines.append(f"  {domain.name} ({domain.path}) files: {domain.file_count}, "
                         f"confidence: {domain.confidence}%")
        lines.append("")
    c = result.complexity
    lines += [
        "Complexity:",
        f"  Lines: {c.total_lines}",
        f"  Average file size: {c.avg_file_size} lines",
        f"  Grade: {c.grade.upper()}",
    ]
    return "\n".join(lines)
