"""
Requirement extraction from specs and REQ-xxx reference scanning in code and tests.

Code references are `@spec` annotations:

    # @spec REQ-001, REQ-002
    // @spec: REQ-003

Test references are additionally picked up from test names and
descriptions (`def test_...`, `it("REQ-001 ...")`).
"""

import fnmatch
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sdd.lib.frontmatter import split_frontmatter
from sdd.spec.locate import spec_id_for, specs_dir

logger = logging.getLogger(__name__)

REQ_ID_RE = re.compile(r'\bREQ-[A-Za-z0-9]+\b', re.IGNORECASE)
REQ_HEADER_RE = re.compile(r'^#{2,4}\s*(REQ-[A-Za-z0-9]+):\s*(.+)$', re.IGNORECASE)
RFC_KEYWORD_RE = re.compile(r'\b(SHALL NOT|MUST NOT|SHALL|MUST|SHOULD|MAY)\b')
SPEC_ANNOTATION_RE = re.compile(r'@spec:?\s+(REQ-[A-Za-z0-9]+(?:\s*,\s*REQ-[A-Za-z0-9]+)*)', re.IGNORECASE)
TEST_DECL_RE = re.compile(
    r'(?:\b(?:it|test|describe)\s*\(\s*[\'"`]([^\'"`]*)|\bdef\s+(test\w*)|\bclass\s+(Test\w*))'
)

DEFAULT_CODE_SUFFIXES = [".py", ".ts", ".tsx", ".js", ".jsx"]
DEFAULT_EXCLUDE_DIRS = {"node_modules", "dist", "build", ".git", "coverage", "__pycache__", ".venv", "venv", ".sdd"}
TEST_FILE_PATTERNS = ["test_*.py", "*_test.py", "*.test.ts", "*.test.js", "*.spec.ts", "*.spec.js", "*.test.tsx"]
TEST_DIR_NAMES = {"test", "tests", "__tests__"}


@dataclass
class SpecRequirement:
    id: str
    spec_id: str
    line: int
    title: str = ""
    description: str = ""
    keyword: Optional[str] = None


@dataclass
class CodeReference:
    req_id: str
    file: str
    line: int
    type: str  # code, test
    context: str = ""


def _normalize_id(raw: str) -> str:
    return raw.upper()


def extract_requirements(content: str, spec_id: str) -> list[SpecRequirement]:
    """REQ ids declared or mentioned in a spec, first occurrence wins."""
    _, body = split_frontmatter(content)
    # Line numbers count from the top of the file, frontmatter included
    offset = content[:len(content) - len(body)].count("\n")
    lines = body.splitlines()
    requirements = []
    seen: set[str] = set()

    for index, line in enumerate(lines):
        header = REQ_HEADER_RE.match(line)
        if header:
            req_id = _normalize_id(header.group(1))
            if req_id not in seen:
                seen.add(req_id)
                keyword = None
                for following in lines[index:index + 5]:
                    match = RFC_KEYWORD_RE.search(following)
                    if match:
                        keyword = match.group(1)
                        break
                requirements.append(SpecRequirement(req_id, spec_id, offset + index + 1,
                                                    title=header.group(2).strip(), keyword=keyword))
            continue

        for match in REQ_ID_RE.finditer(line):
            req_id = _normalize_id(match.group(0))
            if req_id in seen:
                continue
            seen.add(req_id)
            keyword = RFC_KEYWORD_RE.search(line)
            requirements.append(SpecRequirement(req_id, spec_id, offset + index + 1, description=line.strip(),
                                                keyword=keyword.group(1) if keyword else None))
    return requirements


class SpecRequirementParser:
    """Requirements from every spec.md under .sdd/specs."""

    def __init__(self, sdd_dir: Path):
        self.sdd_dir = sdd_dir

    def spec_files(self, spec_id: Optional[str] = None) -> list[Path]:
        root = specs_dir(self.sdd_dir)
        if spec_id:
            root = root / spec_id
        if not root.is_dir():
            return []
        return sorted(root.rglob("spec.md"))

    def parse(self, spec_id: Optional[str] = None) -> list[SpecRequirement]:
        requirements = []
        for path in self.spec_files(spec_id):
            requirements += extract_requirements(path.read_text(encoding="utf-8"), spec_id_for(self.sdd_dir, path))
        return requirements


def _walk(root: Path, exclude_dirs: set[str]) -> list[Path]:
    if root.is_file():
        return [root]
    if not root.is_dir():
        return []
    return sorted(
        p for p in root.rglob("*")
        if p.is_file() and not any(part in exclude_dirs for part in p.relative_to(root).parts[:-1])
    )


def is_test_file(path: Path, base: Optional[Path] = None) -> bool:
    if any(fnmatch.fnmatch(path.name, pattern) for pattern in TEST_FILE_PATTERNS):
        return True
    if base is not None and path.is_relative_to(base):
        path = path.relative_to(base)
    return any(part in TEST_DIR_NAMES for part in path.parts[:-1])


def _read_lines(path: Path) -> list[str]:
    try:
        return path.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"[sync] skipping {path}: {e}")
        return []


class CodeScanner:
    """`@spec REQ-xxx` annotations in source files (test files excluded)."""

    def __init__(self, project_root: Path, src_dir: Optional[Path] = None,
                 suffixes: Optional[list[str]] = None, exclude: Optional[list[str]] = None):
        self.project_root = project_root
        self.src_dir = src_dir or project_root / "src"
        self.suffixes = suffixes or DEFAULT_CODE_SUFFIXES
        self.exclude = exclude or []

    def files(self) -> list[Path]:
        return [
            p for p in _walk(self.src_dir, DEFAULT_EXCLUDE_DIRS)
            if p.suffix in self.suffixes and not is_test_file(p, self.project_root)
            and not any(fnmatch.fnmatch(p.as_posix(), pattern) for pattern in self.exclude)
        ]

    def scan_file(self, path: Path) -> list[CodeReference]:
        refs = []
        rel = path.relative_to(self.project_root).as_posix() if path.is_relative_to(self.project_root) else str(path)
        for number, line in enumerate(_read_lines(path), 1):
            for annotation in SPEC_ANNOTATION_RE.finditer(line):
                for req in REQ_ID_RE.finditer(annotation.group(1)):
                    refs.append(CodeReference(_normalize_id(req.group(0)), rel, number, "code", line.strip()))
        return refs

    def scan(self) -> list[CodeReference]:
        refs = []
        for path in self.files():
            refs += self.scan_file(path)
        logger.debug(f"[sync] code scan: {len(refs)} reference(s) in {self.src_dir}")
        return refs


class TestScanner:
    """REQ ids in test names/descriptions and `@spec` annotations inside test files."""

    __test__ = False

    def __init__(self, project_root: Path, test_dirs: Optional[list[Path]] = None):
        self.project_root = project_root
        self.test_dirs = test_dirs or [project_root]

    def files(self) -> list[Path]:
        found: dict[Path, None] = {}
        for directory in self.test_dirs:
            for path in _walk(directory, DEFAULT_EXCLUDE_DIRS):
                if path.suffix in DEFAULT_CODE_SUFFIXES and is_test_file(path, self.project_root):
                    found[path] = None
        return list(found)

    def scan_file(self, path: Path) -> list[CodeReference]:
        refs = []
        rel = path.relative_to(self.project_root).as_posix() if path.is_relative_to(self.project_root) else str(path)
        for number, line in enumerate(_read_lines(path), 1):
            seen: set[str] = set()
            for decl in TEST_DECL_RE.finditer(line):
                name = next(g for g in decl.groups() if g is not None)
                # test_req_001_login -> REQ-001
                text = re.sub(r'(?i)req_([a-z0-9]+)', r' REQ-\1 ', name)
                for req in REQ_ID_RE.finditer(text):
                    req_id = _normalize_id(req.group(0))
                    if req_id not in seen:
                        seen.add(req_id)
                        refs.append(CodeReference(req_id, rel, number, "test", name.strip()))
            for annotation in SPEC_ANNOTATION_RE.finditer(line):
                for req in REQ_ID_RE.finditer(annotation.group(1)):
                    req_id = _normalize_id(req.group(0))
                    if req_id not in seen:
                        seen.add(req_id)
                        refs.append(CodeReference(req_id, rel, number, "test", line.strip()))
        return refs

    def scan(self) -> list[CodeReference]:
        refs = []
        for path in self.files():
            refs += self.scan_file(path)
        logger.debug(f"[sync] test scan: {len(refs)} reference(s)")
        return refs
