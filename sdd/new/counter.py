"""
Feature number counter (.sdd/counter.json).

Numbered features are named 001-name, 002-name, ... and get the
branch feature/001-name.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sdd.lib import validate
from sdd.lib.fsutil import now_iso

logger = logging.getLogger(__name__)

COUNTER_FILENAME = "counter.json"

FEATURE_ID_RE = re.compile(r'^\d{3}-[a-z0-9]+(-[a-z0-9]+)*$')
BRANCH_NUMBER_RE = re.compile(r'(?:feature/)?(\d{3})-')


@dataclass
class NumberedFeature:
    number: int
    full_id: str
    branch_name: str


def generate_branch_name(feature_id: str) -> str:
    return f"feature/{feature_id}"


def _default_counter() -> dict:
    return {"nextFeatureNumber": 1, "lastUpdated": now_iso(), "history": []}


def read_counter(sdd_dir: Path) -> dict:
    """
    Load counter.json, or a fresh counter if the file is missing.

    Raises:
        ValidationError: file is not valid JSON or doesn't match schema
    """
    path = sdd_dir / COUNTER_FILENAME
    if not path.exists():
        return _default_counter()
    return validate.validate_file(path, "counter")


def save_counter(sdd_dir: Path, data: dict) -> None:
    data["lastUpdated"] = now_iso()
    validate.write_json(sdd_dir / COUNTER_FILENAME, data, "counter")


def next_feature_number(sdd_dir: Path, feature_name: str) -> NumberedFeature:
    """Allocate the next number for feature_name and record it in history."""
    data = read_counter(sdd_dir)
    number = data["nextFeatureNumber"]
    full_id = f"{number:03d}-{feature_name}"

    data["nextFeatureNumber"] = number + 1
    data["history"].append({
        "number": number,
        "name": feature_name,
        "fullId": full_id,
        "createdAt": now_iso(),
    })
    save_counter(sdd_dir, data)
    logger.info(f"[counter] allocated {full_id}")

    return NumberedFeature(number=number, full_id=full_id, branch_name=generate_branch_name(full_id))


def peek_next_feature_number(sdd_dir: Path) -> int:
    return read_counter(sdd_dir)["nextFeatureNumber"]


def get_feature_history(sdd_dir: Path) -> list[dict]:
    return read_counter(sdd_dir)["history"]


def set_next_feature_number(sdd_dir: Path, number: int) -> None:
    if number < 1:
        raise ValueError("Feature number must be at least 1")
    data = read_counter(sdd_dir)
    data["nextFeatureNumber"] = number
    save_counter(sdd_dir, data)


def extract_feature_number(branch_name: str) -> Optional[int]:
    match = BRANCH_NUMBER_RE.search(branch_name)
    return int(match.group(1)) if match else None


def is_valid_feature_id(feature_id: str) -> bool:
    return FEATURE_ID_RE.match(feature_id) is not None
