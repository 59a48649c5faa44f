"""
Spec parse cache.

LRU keyed by file path and invalidated by mtime. Values must be
JSON-serializable so the cache can be snapshotted to .sdd/cache.json
between invocations.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from sdd.lib import validate
from sdd.lib.config import SddConfig

logger = logging.getLogger(__name__)

CACHE_FILENAME = "cache.json"


@dataclass
class CacheStats:
    hits: int
    misses: int
    entries: int
    max_entries: int

    @property
    def hit_ratio(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class SpecCache:
    def __init__(self, max_entries: int = 100):
        self.max_entries = max_entries
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, path: Path) -> Optional[Any]:
        key = str(path)
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        try:
            mtime = path.stat().st_mtime
        except OSError:
            del self._entries[key]
            self.misses += 1
            return None
        if mtime > entry[0]:
            del self._entries[key]
            self.misses += 1
            return None
        self._entries.move_to_end(key)
        self.hits += 1
        return entry[1]

    def set(self, path: Path, value: Any) -> None:
        try:
            mtime = path.stat().st_mtime
        except OSError as e:
            logger.debug(f"[cache] not caching {path}: {e}")
            return
        key = str(path)
        self._entries[key] = (mtime, value)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"[cache] evicted {evicted}")

    def get_or_parse(self, path: Path, parser: Callable[[Path], Any]) -> Any:
        value = self.get(path)
        if value is None:
            value = parser(path)
            self.set(path, value)
        return value

    def invalidate(self, path: Path) -> bool:
        return self._entries.pop(str(path), None) is not None

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def stats(self) -> CacheStats:
        return CacheStats(self.hits, self.misses, len(self._entries), self.max_entries)

    def to_dict(self) -> dict:
        return {
            "version": 1,
            "entries": {k: {"mtime": m, "value": v} for k, (m, v) in self._entries.items()},
            "stats": {"hits": self.hits, "misses": self.misses},
        }

    def load_dict(self, data: dict) -> None:
        self._entries = OrderedDict(
            (k, (e["mtime"], e["value"])) for k, e in data["entries"].items()
        )
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
        self.hits = data["stats"]["hits"]
        self.misses = data["stats"]["misses"]


def load_cache(sdd_dir: Path, config: SddConfig) -> Optional[SpecCache]:
    """The project cache, or None when caching is disabled. A corrupt snapshot starts empty."""
    if not config.cache_enabled:
        return None
    cache = SpecCache(config.cache_max_entries)
    path = sdd_dir / CACHE_FILENAME
    if path.exists():
        try:
            cache.load_dict(validate.validate_file(path, "cache"))
        except validate.ValidationError as e:
            logger.warning(f"[cache] ignoring snapshot: {e}")
    return cache


def save_cache(sdd_dir: Path, cache: SpecCache) -> None:
    validate.write_json(sdd_dir / CACHE_FILENAME, cache.to_dict(), "cache")


def clear_cache(sdd_dir: Path) -> bool:
    path = sdd_dir / CACHE_FILENAME
    if path.exists():
        path.unlink()
        return True
    return False
