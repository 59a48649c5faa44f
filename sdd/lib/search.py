"""
Spec search.

Builds an in-memory index of specs/**/spec.md, filters it by metadata
and scores free-text matches:

    title match   +50
    id match      +30
    each line     +10
    capped at 100
"""

import json
import logging
import re
import time
from dataclasses import asdict, dataclass, field
from datetime import date
from pathlib import Path
from typing import Optional

import yaml

from sdd.lib.errors import ErrorCode, SddError
from sdd.lib.frontmatter import split_frontmatter
from sdd.lib.fsutil import read_text
from sdd.spec.locate import iter_spec_files, spec_id_for, specs_dir
from sdd.spec.parser import get_spec_title

logger = logging.getLogger(__name__)

SORT_FIELDS = ("relevance", "created", "updated", "title", "status")
MAX_MATCHES = 5

STATUS_ICONS = {
    "draft": "📝",
    "review": "👀",
    "approved": "✅",
    "implemented": "🚀",
    "deprecated": "⚠️",
}


@dataclass
class IndexItem:
    id: str
    path: str
    title: str
    content: str
    status: str = "unknown"
    phase: str = "unknown"
    author: str = ""
    created: str = ""
    updated: str = ""
    depends: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)


@dataclass
class SearchMatch:
    line: int
    content: str


@dataclass
class SearchHit:
    id: str
    path: str
    title: str
    status: str
    phase: str
    author: str
    created: str
    updated: str
    depends: list[str]
    tags: list[str]
    score: int
    matches: list[SearchMatch] = field(default_factory=list)


@dataclass
class SearchOptions:
    query: Optional[str] = None
    status: list[str] = field(default_factory=list)
    phase: list[str] = field(default_factory=list)
    author: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    created_after: Optional[str] = None
    created_before: Optional[str] = None
    updated_after: Optional[str] = None
    updated_before: Optional[str] = None
    depends_on: Optional[str] = None
    regex: bool = False
    case_sensitive: bool = False
    sort_by: str = "relevance"
    ascending: bool = False
    limit: Optional[int] = None


@dataclass
class SearchResult:
    query: str
    total: int
    items: list[SearchHit]
    duration_ms: int

    def to_dict(self) -> dict:
        return {
            "query": self.query,
            "totalCount": self.total,
            "durationMs": self.duration_ms,
            "items": [asdict(item) for item in self.items],
        }


def _as_list(value) -> list[str]:
    if not value:
        return []
    if isinstance(value, list):
        return [str(v) for v in value if v]
    return [v.strip() for v in str(value).split(",") if v.strip()]


def build_index(sdd_dir: Path) -> list[IndexItem]:
    index = []
    for path in iter_spec_files(sdd_dir):
        content = read_text(path)
        try:
            metadata, _ = split_frontmatter(content)
        except yaml.YAMLError:
            logger.warning(f"[search] {path}: invalid frontmatter, indexing content only")
            metadata = {}
        spec_id = spec_id_for(sdd_dir, path)
        updated = metadata.get("updated") or date.fromtimestamp(path.stat().st_mtime).isoformat()
        index.append(IndexItem(
            id=spec_id,
            path=path.relative_to(specs_dir(sdd_dir)).as_posix(),
            title=metadata.get("title") or get_spec_title(content) or spec_id,
            content=content,
            status=str(metadata.get("status") or "unknown"),
            phase=str(metadata.get("phase") or "unknown"),
            author=str(metadata.get("author") or ""),
            created=str(metadata.get("created") or ""),
            updated=str(updated),
            depends=_as_list(metadata.get("depends")),
            tags=_as_list(metadata.get("tags")),
        ))
    return index


def matches_filters(item: IndexItem, options: SearchOptions) -> bool:
    if options.status and item.status not in options.status:
        return False
    if options.phase and item.phase not in options.phase:
        return False
    if options.author and options.author.lower() not in item.author.lower():
        return False
    if item.created:
        if options.created_after and item.created < options.created_after:
            return False
        if options.created_before and item.created > options.created_before:
            return False
    if item.updated:
        if options.updated_after and item.updated < options.updated_after:
            return False
        if options.updated_before and item.updated > options.updated_before:
            return False
    if options.depends_on and options.depends_on not in item.depends:
        return False
    if options.tags:
        wanted = {t.lower() for t in options.tags}
        if not wanted & {t.lower() for t in item.tags}:
            return False
    return True


def compile_query(query: str, regex: bool = False, case_sensitive: bool = False) -> re.Pattern:
    """Invalid regular expressions fall back to a literal search."""
    flags = 0 if case_sensitive else re.IGNORECASE
    if regex:
        try:
            return re.compile(query, flags)
        except re.error as e:
            logger.warning(f"[search] invalid regex {query!r} ({e}); searching literally")
    return re.compile(re.escape(query), flags)


def _hit(item: IndexItem, score: int, matches: list[SearchMatch]) -> SearchHit:
    data = asdict(item)
    data.pop("content")
    return SearchHit(**data, score=min(100, score), matches=matches[:MAX_MATCHES])


def score_item(item: IndexItem, pattern: re.Pattern) -> Optional[SearchHit]:
    score = 0
    if pattern.search(item.title):
        score += 50
    if pattern.search(item.id):
        score += 30

    matches = []
    for number, line in enumerate(item.content.split("\n"), 1):
        if pattern.search(line):
            score += 10
            matches.append(SearchMatch(number, pattern.sub(lambda m: f"**{m.group(0)}**", line).strip()))

    return _hit(item, score, matches) if score else None


def sort_hits(hits: list[SearchHit], sort_by: str = "relevance", ascending: bool = False) -> list[SearchHit]:
    if sort_by not in SORT_FIELDS:
        raise SddError(f"Unknown sort field: {sort_by} (use {', '.join(SORT_FIELDS)})", ErrorCode.INVALID_ARGUMENT)
    key = "score" if sort_by == "relevance" else sort_by
    return sorted(hits, key=lambda h: getattr(h, key) or "", reverse=not ascending)


def search_specs(sdd_dir: Path, options: SearchOptions) -> SearchResult:
    """
    Raises:
        SddError: specs directory is missing or the sort field is unknown
    """
    started = time.monotonic()
    if not specs_dir(sdd_dir).is_dir():
        raise SddError(f"Specs directory not found: {specs_dir(sdd_dir)}", ErrorCode.DIRECTORY_NOT_FOUND)

    candidates = [item for item in build_index(sdd_dir) if matches_filters(item, options)]
    if options.query:
        pattern = compile_query(options.query, options.regex, options.case_sensitive)
        hits = [hit for hit in (score_item(item, pattern) for item in candidates) if hit]
    else:
        hits = [_hit(item, 100, []) for item in candidates]

    hits = sort_hits(hits, options.sort_by, options.ascending)
    if options.limit and options.limit > 0:
        hits = hits[:options.limit]

    logger.debug(f"[search] {len(candidates)} candidate(s), {len(hits)} hit(s)")
    return SearchResult(
        query=options.query or "*",
        total=len(hits),
        items=hits,
        duration_ms=int((time.monotonic() - started) * 1000),
    )


def _score_bar(score: int) -> str:
    filled = round(score / 10)
    return "█" * filled + "░" * (10 - filled) + f" {score}%"


def format_search_result(result: SearchResult) -> str:
    lines = [f'Search: "{result.query}"', f"   {result.total} found ({result.duration_ms}ms)", ""]
    if not result.items:
        lines.append("   No matching specs.")
        return "\n".join(lines)

    for hit in result.items:
        lines.append(f"{STATUS_ICONS.get(hit.status, '📄')} {hit.id}")
        if hit.title != hit.id:
            lines.append(f"   Title: {hit.title}")
        lines.append(f"   Status: {hit.status} | Phase: {hit.phase} | Score: {_score_bar(hit.score)}")
        if hit.matches:
            lines.append("   Matches:")
            for match in hit.matches[:3]:
                text = match.content if len(match.content) <= 60 else match.content[:60] + "..."
                lines.append(f"     L{match.line}: {text}")
        lines.append("")
    return "\n".join(lines)


def format_search_json(result: SearchResult) -> str:
    return json.dumps(result.to_dict(), indent=2, ensure_ascii=False)
