"""Reverse-extraction metadata (.sdd/.reverse-meta.json)."""

import logging
import secrets
import time
from pathlib import Path
from typing import Optional

from sdd.lib import validate
from sdd.lib.fsutil import now_iso
from sdd.reverse.scanner import ScanResult

logger = logging.getLogger(__name__)

META_FILENAME = ".reverse-meta.json"
MAX_HISTORY = 10

STATUS_KEYS = ["extractedCount", "pendingReviewCount", "approvedCount", "rejectedCount", "finalizedCount"]


def default_meta() -> dict:
    now = now_iso()
    return {
        "version": "1.0",
        "lastScan": None,
        "scanHistory": [],
        "extractionStatus": {key: 0 for key in STATUS_KEYS},
        "createdAt": now,
        "updatedAt": now,
    }


def load_meta(sdd_dir: Path) -> dict:
    path = sdd_dir / META_FILENAME
    if not path.exists():
        return default_meta()
    return validate.validate_file(path, "reverse-meta")


def save_meta(sdd_dir: Path, meta: dict) -> None:
    meta["updatedAt"] = now_iso()
    validate.write_json(sdd_dir / META_FILENAME, meta, "reverse-meta")


def _scan_id() -> str:
    return f"scan-{int(time.time() * 1000):x}-{secrets.token_hex(2)}"


def record_scan(sdd_dir: Path, result: ScanResult, options: Optional[dict] = None) -> dict:
    """Add a scan to the history (newest first, MAX_HISTORY kept) and make it lastScan."""
    meta = load_meta(sdd_dir)
    entry = {
        "id": _scan_id(),
        "path": result.path,
        "scannedAt": now_iso(),
        "options": {k: v for k, v in (options or {}).items() if v is not None},
        "summary": {
            "fileCount": result.file_count,
            "symbolCount": 0,
            "suggestedDomains": [d.name for d in result.domains],
            "complexityGrade": result.complexity.grade,
        },
    }
    meta["scanHistory"] = [entry] + meta["scanHistory"][:MAX_HISTORY - 1]
    meta["lastScan"] = entry
    save_meta(sdd_dir, meta)
    logger.info(f"[reverse] recorded scan {entry['id']}")
    return entry


def get_last_scan(sdd_dir: Path) -> Optional[dict]:
    return load_meta(sdd_dir).get("lastScan")


def get_scan_history(sdd_dir: Path, limit: int = MAX_HISTORY) -> list[dict]:
    return load_meta(sdd_dir)["scanHistory"][:limit]


def update_extraction_status(sdd_dir: Path, **counts: int) -> dict:
    meta = load_meta(sdd_dir)
    meta["extractionStatus"].update(counts)
    save_meta(sdd_dir, meta)
    return meta["extractionStatus"]
