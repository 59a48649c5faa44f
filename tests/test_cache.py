"""Tests for sdd.lib.cache."""

import json
import os

from sdd.lib.cache import SpecCache, clear_cache, load_cache, save_cache
from sdd.lib.config import SddConfig


class TestSpecCache:
    """Test the LRU cache."""

    def test_miss_then_hit(self, tmp_path):
        path = tmp_path / "spec.md"
        path.write_text("a")
        cache = SpecCache()
        assert cache.get(path) is None
        cache.set(path, {"v": 1})
        assert cache.get(path) == {"v": 1}
        assert (cache.hits, cache.misses) == (1, 1)

    def test_newer_mtime_invalidates(self, tmp_path):
        path = tmp_path / "spec.md"
        path.write_text("a")
        cache = SpecCache()
        cache.set(path, "old")
        stat = path.stat()
        os.utime(path, (stat.st_atime, stat.st_mtime + 10))
        assert cache.get(path) is None
        assert len(cache) == 0

    def test_deleted_file_is_a_miss(self, tmp_path):
        path = tmp_path / "spec.md"
        path.write_text("a")
        cache = SpecCache()
        cache.set(path, "x")
        path.unlink()
        assert cache.get(path) is None

    def test_evicts_least_recently_used(self, tmp_path):
        paths = []
        for name in ("a", "b", "c"):
            path = tmp_path / f"{name}.md"
            path.write_text(name)
            paths.append(path)
        cache = SpecCache(max_entries=2)
        cache.set(paths[0], "a")
        cache.set(paths[1], "b")
        cache.get(paths[0])
        cache.set(paths[2], "c")
        assert cache.get(paths[1]) is None
        assert cache.get(paths[0]) == "a"

    def test_get_or_parse_calls_parser_once(self, tmp_path):
        path = tmp_path / "spec.md"
        path.write_text("a")
        calls = []
        cache = SpecCache()

        def parser(p):
            calls.append(p)
            return "parsed"

        assert cache.get_or_parse(path, parser) == "parsed"
        assert cache.get_or_parse(path, parser) == "parsed"
        assert calls == [path]

    def test_set_on_missing_file_is_ignored(self, tmp_path):
        cache = SpecCache()
        cache.set(tmp_path / "missing.md", "x")
        assert len(cache) == 0

    def test_stats(self, tmp_path):
        cache = SpecCache(max_entries=10)
        stats = cache.stats()
        assert (stats.entries, stats.max_entries, stats.hit_ratio) == (0, 10, 0.0)


class TestCacheSnapshot:
    """Test saving and loading .sdd/cache.json."""

    def test_round_trip(self, tmp_path):
        path = tmp_path / "spec.md"
        path.write_text("a")
        cache = SpecCache()
        cache.set(path, {"valid": True})
        cache.get(path)
        save_cache(tmp_path, cache)

        loaded = load_cache(tmp_path, SddConfig())
        assert loaded.get(path) == {"valid": True}
        assert loaded.hits == 2

    def test_disabled_returns_none(self, tmp_path):
        assert load_cache(tmp_path, SddConfig(cache_enabled=False)) is None

    def test_corrupt_snapshot_starts_empty(self, tmp_path, caplog):
        (tmp_path / "cache.json").write_text(json.dumps({"version": 2}))
        cache = load_cache(tmp_path, SddConfig())
        assert len(cache) == 0
        assert "ignoring snapshot" in caplog.text

    def test_clear_cache(self, tmp_path):
        save_cache(tmp_path, SpecCache())
        assert clear_cache(tmp_path) is True
        assert clear_cache(tmp_path) is False
