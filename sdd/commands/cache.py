"""
sdd cache - Inspect and control the spec parse cache (.sdd/cache.json).
"""

import json
from pathlib import Path

from sdd.lib.cache import clear_cache, load_cache
from sdd.lib.config import set_config_value
from sdd.lib.errors import ExitCode, SddError

CACHE_ENABLED_KEY = "SDD_CACHE_ENABLED"


def cmd_cache_stats(args, sdd_dir: Path, config) -> int:
    cache = load_cache(sdd_dir, config)
    if cache is None:
        if args.json:
            print(json.dumps({"enabled": False}, indent=2))
        else:
            print("Cache is disabled (sdd cache enable to turn it on).")
        return ExitCode.SUCCESS

    stats = cache.stats()
    if args.json:
        print(json.dumps({
            "enabled": True,
            "entries": stats.entries,
            "maxEntries": stats.max_entries,
            "hits": stats.hits,
            "misses": stats.misses,
            "hitRatio": round(stats.hit_ratio, 3),
        }, indent=2))
        return ExitCode.SUCCESS

    print(f"Entries:   {stats.entries}/{stats.max_entries}")
    print(f"Hits:      {stats.hits}")
    print(f"Misses:    {stats.misses}")
    print(f"Hit ratio: {stats.hit_ratio:.1%}")
    return ExitCode.SUCCESS


def cmd_cache_clear(args, sdd_dir: Path, config) -> int:
    print("Cache cleared." if clear_cache(sdd_dir) else "Cache was already empty.")
    return ExitCode.SUCCESS


def cmd_cache_enable(args, sdd_dir: Path, config) -> int:
    set_config_value(sdd_dir, CACHE_ENABLED_KEY, "true")
    print("Cache enabled.")
    return ExitCode.SUCCESS


def cmd_cache_disable(args, sdd_dir: Path, config) -> int:
    set_config_value(sdd_dir, CACHE_ENABLED_KEY, "false")
    clear_cache(sdd_dir)
    print("Cache disabled.")
    return ExitCode.SUCCESS


HANDLERS = {
    "stats": cmd_cache_stats,
    "clear": cmd_cache_clear,
    "enable": cmd_cache_enable,
    "disable": cmd_cache_disable,
}


def cmd_cache(args, sdd_dir: Path, config) -> int:
    try:
        return HANDLERS[args.cache_cmd or "stats"](args, sdd_dir, config)
    except SddError as e:
        print(f"ERROR: {e.message}")
        return e.exit_code
