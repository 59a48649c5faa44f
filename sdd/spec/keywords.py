"""RFC 2119 keyword detection and strength ordering."""

import re
from typing import Optional

# Requirement levels in detection priority order
LEVELS = ["SHALL", "MUST", "SHOULD", "MAY"]

KEYWORD_PATTERN = re.compile(
    r'\b(SHALL NOT|SHALL|MUST NOT|MUST|SHOULD NOT|SHOULD|REQUIRED|RECOMMENDED|OPTIONAL|MAY)\b'
)

KEYWORD_STRENGTH = {
    "SHALL": 3,
    "MUST": 3,
    "REQUIRED": 3,
    "SHALL NOT": 3,
    "MUST NOT": 3,
    "SHOULD": 2,
    "RECOMMENDED": 2,
    "SHOULD NOT": 2,
    "MAY": 1,
    "OPTIONAL": 1,
}

_LEVEL_PATTERNS = [(level, re.compile(rf'\b{level}\b')) for level in LEVELS]


def detect_level(text: str) -> Optional[str]:
    """
    Strongest requirement level in text, or None.

    Only upper-case keywords count. SHALL NOT and MUST NOT map to
    SHALL and MUST.
    """
    for level, pattern in _LEVEL_PATTERNS:
        if pattern.search(text):
            return level
    return None


def has_keyword(text: str) -> bool:
    return detect_level(text) is not None


def extract_keywords(text: str) -> list[str]:
    """All keywords in order of appearance, NOT variants kept whole."""
    return [m.group(1) for m in KEYWORD_PATTERN.finditer(text)]


def keyword_impact(before: str, after: str) -> str:
    """Classify a keyword change as strengthened, weakened or changed."""
    before_strength = KEYWORD_STRENGTH.get(before, 0)
    after_strength = KEYWORD_STRENGTH.get(after, 0)
    if after_strength > before_strength:
        return "strengthened"
    if after_strength < before_strength:
        return "weakened"
    return "changed"
