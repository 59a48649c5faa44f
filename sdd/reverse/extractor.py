"""
Regex-based draft extraction, review and finalization.

Each source module in a suggested domain becomes one draft spec. Drafts
are stored as JSON under .sdd/.reverse-drafts/ until they are reviewed
and finalized into .sdd/specs/<domain>/<module>/spec.md.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from sdd.lib import validate
from sdd.lib.errors import ErrorCode, FileSystemError, SddError
from sdd.lib.fsutil import ensure_dir, list_files, now_iso, today, write_text
from sdd.new.spec_template import generate_feature_id
from sdd.reverse.meta import update_extraction_status
from sdd.reverse.scanner import ScanResult

logger = logging.getLogger(__name__)

DRAFTS_DIRNAME = ".reverse-drafts"
DRAFT_STATUSES = ["pending", "approved", "rejected", "finalized"]

SYMBOL_PATTERNS = [
    ("class", re.compile(r'^class\s+([A-Za-z_]\w*)')),
    ("function", re.compile(r'^(?:async\s+)?def\s+([A-Za-z_]\w*)')),
    ("class", re.compile(r'^(?:export\s+)?(?:default\s+)?(?:abstract\s+)?class\s+([A-Za-z_$][\w$]*)')),
    ("function", re.compile(r'^(?:export\s+)?(?:default\s+)?(?:async\s+)?function\s*\*?\s*([A-Za-z_$][\w$]*)')),
    ("function", re.compile(r'^export\s+const\s+([A-Za-z_$][\w$]*)\s*=\s*(?:async\s*)?\(')),
    ("interface", re.compile(r'^(?:export\s+)?interface\s+([A-Za-z_$][\w$]*)')),
    ("function", re.compile(r'^func\s+(?:\([^)]*\)\s*)?([A-Za-z_]\w*)')),
    ("function", re.compile(r'^(?:pub\s+)?fn\s+([A-Za-z_]\w*)')),
]

VERB_SCENARIOS = {
    "get": ("the requested item exists", "it is fetched", "the item is returned"),
    "find": ("matching items exist", "a search is made", "the matches are returned"),
    "list": ("several items exist", "they are listed", "all items are returned"),
    "create": ("valid input", "creation is requested", "a new item is stored"),
    "add": ("valid input", "an item is added", "the item is stored"),
    "update": ("an existing item", "an update is requested", "the item reflects the change"),
    "delete": ("an existing item", "deletion is requested", "the item no longer exists"),
    "remove": ("an existing item", "removal is requested", "the item no longer exists"),
    "validate": ("input to check", "validation runs", "invalid input is reported"),
    "is": ("a subject to test", "the condition is checked", "a boolean answer is returned"),
    "has": ("a subject to test", "membership is checked", "a boolean answer is returned"),
    "can": ("a subject and an action", "permission is checked", "a boolean answer is returned"),
}


@dataclass
class Symbol:
    name: str
    kind: str
    file: str
    line: int
    documented: bool = False


@dataclass
class Draft:
    id: str
    domain: str
    name: str
    status: str
    confidence: int
    content: str
    source_files: list[str] = field(default_factory=list)
    reviewed_at: Optional[str] = None
    comment: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "domain": self.domain,
            "name": self.name,
            "status": self.status,
            "confidence": self.confidence,
            "sourceFiles": self.source_files,
            "content": self.content,
            "reviewedAt": self.reviewed_at,
            "comment": self.comment,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Draft":
        return cls(
            id=data["id"],
            domain=data["domain"],
            name=data["name"],
            status=data["status"],
            confidence=data["confidence"],
            content=data["content"],
            source_files=list(data.get("sourceFiles", [])),
            reviewed_at=data.get("reviewedAt"),
            comment=data.get("comment"),
        )


def extract_symbols(source: str, file: str) -> list[Symbol]:
    """Top-level classes, functions and interfaces. Private names (leading _) are skipped."""
    lines = source.splitlines()
    symbols = []
    for index, line in enumerate(lines):
        for kind, pattern in SYMBOL_PATTERNS:
            match = pattern.match(line)
            if match:
                name = match.group(1)
                if not name.startswith("_"):
                    following = "\n".join(lines[index + 1:index + 3])
                    preceding = lines[index - 1].strip() if index else ""
                    documented = '"""' in following or "'''" in following or preceding.startswith(("//", "/*", "*", "#"))
                    symbols.append(Symbol(name, kind, file, index + 1, documented))
                break
    return symbols


def _verb(name: str) -> str:
    snake = re.sub(r'(?<!^)(?=[A-Z])', '_', name).lower()
    return snake.split("_", 1)[0]


def _humanize(name: str) -> str:
    return re.sub(r'(?<!^)(?=[A-Z])', ' ', name).replace("_", " ").strip().lower()


def confidence_score(symbols: list[Symbol]) -> int:
    if not symbols:
        return 0
    documented = sum(1 for s in symbols if s.documented) / len(symbols)
    return min(100, 40 + min(len(symbols) * 5, 40) + round(documented * 20))


def generate_draft_spec(domain: str, module: str, symbols: list[Symbol]) -> str:
    requirements = []
    scenarios = []
    for index, symbol in enumerate(symbols, 1):
        action = _humanize(symbol.name)
        requirements.append(
            f"### REQ-{index:02d}: {symbol.name}\n\n"
            f"The system SHALL provide `{symbol.name}` ({symbol.kind}) to {action}.\n\n"
            f"Source: `{symbol.file}:{symbol.line}`\n"
        )
        template = VERB_SCENARIOS.get(_verb(symbol.name))
        if template:
            given, when, then = template
            scenarios.append(
                f"### Scenario {len(scenarios) + 1}: {action}\n\n"
                f"- **GIVEN** {given}\n"
                f"- **WHEN** {when} via `{symbol.name}`\n"
                f"- **THEN** {then}\n"
            )

    if not scenarios:
        first = symbols[0].name
        scenarios.append(
            f"### Scenario 1: {_humanize(first)}\n\n"
            f"- **GIVEN** the {module} module is loaded\n"
            f"- **WHEN** `{first}` is used\n"
            f"- **THEN** it behaves as documented\n"
        )

    return f"""---
id: {domain}/{module}
title: {module}
status: draft
created: {today()}
domain: {domain}
tags: [reverse-extracted]
---

# {module}

> Draft extracted from {len({s.file for s in symbols})} source file(s) in {domain}. Review before approval.

## Requirements

{chr(10).join(requirements)}
## Scenarios

{chr(10).join(scenarios)}"""


def drafts_dir(sdd_dir: Path) -> Path:
    return sdd_dir / DRAFTS_DIRNAME


def _draft_path(sdd_dir: Path, draft_id: str) -> Path:
    return drafts_dir(sdd_dir) / f"{draft_id.replace('/', '--')}.json"


def save_draft(sdd_dir: Path, draft: Draft) -> Path:
    path = _draft_path(sdd_dir, draft.id)
    ensure_dir(path.parent)
    validate.write_json(path, draft.to_dict(), "reverse-draft")
    return path


def load_drafts(sdd_dir: Path, status: Optional[str] = None) -> list[Draft]:
    drafts = []
    for path in list_files(drafts_dir(sdd_dir), ".json", recursive=False):
        try:
            drafts.append(Draft.from_dict(validate.validate_file(path, "reverse-draft")))
        except validate.ValidationError as e:
            logger.warning(f"[reverse] skipping invalid draft {path.name}: {e}")
    return [d for d in drafts if status is None or d.status == status]


def get_draft(sdd_dir: Path, draft_id: str) -> Draft:
    path = _draft_path(sdd_dir, draft_id)
    if not path.exists():
        raise FileSystemError("Draft not found", draft_id, ErrorCode.FILE_NOT_FOUND)
    return Draft.from_dict(validate.validate_file(path, "reverse-draft"))


def _refresh_status(sdd_dir: Path) -> None:
    drafts = load_drafts(sdd_dir)
    counts = {s: sum(1 for d in drafts if d.status == s) for s in DRAFT_STATUSES}
    update_extraction_status(
        sdd_dir,
        extractedCount=len(drafts),
        pendingReviewCount=counts["pending"],
        approvedCount=counts["approved"],
        rejectedCount=counts["rejected"],
        finalizedCount=counts["finalized"],
    )


def extract_drafts(
    sdd_dir: Path,
    scan: ScanResult,
    domain: Optional[str] = None,
    min_confidence: int = 0,
) -> tuple[list[Draft], int]:
    """
    Write one pending draft per module of each suggested domain.

    Returns (drafts written, modules skipped for low confidence).
    """
    root = Path(scan.path)
    written, skipped = [], 0

    for suggested in scan.domains:
        if domain and suggested.name != domain:
            continue
        domain_id = generate_feature_id(suggested.name) or "unknown"
        for file in suggested.files:
            try:
                source = (root / file).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.debug(f"[reverse] skipping {file}: {e}")
                continue
            symbols = extract_symbols(source, file)
            if not symbols:
                continue
            confidence = confidence_score(symbols)
            if confidence < min_confidence:
                skipped += 1
                continue
            module = generate_feature_id(Path(file).stem) or "module"
            draft = Draft(
                id=f"{domain_id}/{module}",
                domain=domain_id,
                name=module,
                status="pending",
                confidence=confidence,
                content=generate_draft_spec(domain_id, module, symbols),
                source_files=[file],
            )
            save_draft(sdd_dir, draft)
            written.append(draft)

    _refresh_status(sdd_dir)
    logger.info(f"[reverse] extracted {len(written)} draft(s), skipped {skipped}")
    return written, skipped


def review_draft(sdd_dir: Path, draft_id: str, approve: bool, comment: Optional[str] = None) -> Draft:
    draft = get_draft(sdd_dir, draft_id)
    if draft.status == "finalized":
        raise SddError(f"Draft {draft_id} is already finalized", ErrorCode.INVALID_ARGUMENT)
    draft.status = "approved" if approve else "rejected"
    draft.reviewed_at = now_iso()
    draft.comment = comment
    save_draft(sdd_dir, draft)
    _refresh_status(sdd_dir)
    logger.info(f"[reverse] {draft_id}: {draft.status}")
    return draft


def finalize_drafts(sdd_dir: Path, draft_id: Optional[str] = None, force: bool = False) -> list[Path]:
    """Write approved drafts into specs/<domain>/<name>/spec.md. Existing specs are kept unless force."""
    targets = [get_draft(sdd_dir, draft_id)] if draft_id else load_drafts(sdd_dir, "approved")
    written = []
    for draft in targets:
        if draft.status != "approved":
            logger.warning(f"[reverse] {draft.id} is {draft.status}, not approved; skipping")
            continue
        spec_path = sdd_dir / "specs" / draft.domain / draft.name / "spec.md"
        if spec_path.exists() and not force:
            logger.warning(f"[reverse] {spec_path} exists; skipping {draft.id}")
            continue
        write_text(spec_path, draft.content)
        draft.status = "finalized"
        save_draft(sdd_dir, draft)
        written.append(spec_path)
    _refresh_status(sdd_dir)
    return written


def draft_summary(drafts: list[Draft]) -> str:
    return json.dumps([{"id": d.id, "status": d.status, "confidence": d.confidence} for d in drafts], indent=2)
