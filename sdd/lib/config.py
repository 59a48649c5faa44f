"""
Configuration loader for SDD.

Loads .sdd/sdd.env (optional) and overlays SDD_* process environment
variables, which take precedence.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from . import envparse
from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "sdd.env"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class SddConfig:
    """Project configuration from .sdd/sdd.env"""
    log_level: str = "WARNING"
    cache_enabled: bool = True
    cache_max_entries: int = 100
    sync_threshold: float = 80.0
    watch_debounce_ms: int = 500
    default_author: str = ""
    serena_available: bool = False
    serena_project: str = ""


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _as_int(env: dict, key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got '{raw}'") from None


def _as_float(env: dict, key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got '{raw}'") from None


def load_config(sdd_dir: Optional[Path] = None, environ: Optional[dict] = None) -> SddConfig:
    """Load SddConfig from sdd_dir/sdd.env and the environment.

    Missing file means defaults. A malformed file raises ConfigError.
    """
    env: dict = {}
    if sdd_dir is not None:
        env_path = sdd_dir / CONFIG_FILENAME
        if env_path.exists():
            try:
                env.update(envparse.load_env(env_path))
            except ValueError as e:
                raise ConfigError(f"{env_path}: {e}") from None
            logger.debug(f"loaded config from {env_path}")

    source = os.environ if environ is None else environ
    env.update({k: v for k, v in source.items() if k.startswith("SDD_")})

    log_level = env.get("SDD_LOG_LEVEL", "WARNING").upper()
    if log_level not in LOG_LEVELS:
        raise ConfigError(f"SDD_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")

    return SddConfig(
        log_level=log_level,
        cache_enabled=_as_bool(env.get("SDD_CACHE_ENABLED", "true")),
        cache_max_entries=_as_int(env, "SDD_CACHE_MAX_ENTRIES", 100),
        sync_threshold=_as_float(env, "SDD_SYNC_THRESHOLD", 80.0),
        watch_debounce_ms=_as_int(env, "SDD_WATCH_DEBOUNCE_MS", 500),
        default_author=env.get("SDD_DEFAULT_AUTHOR", ""),
        serena_available=_as_bool(env.get("SDD_SERENA_AVAILABLE", "false")),
        serena_project=env.get("SDD_SERENA_PROJECT", ""),
    )


def set_config_value(sdd_dir: Path, key: str, value: str) -> None:
    """Set KEY=value in sdd.env, preserving other lines."""
    if not envparse.KEY_PATTERN.match(key):
        raise ConfigError(f"Invalid config key '{key}'")
    env_path = sdd_dir / CONFIG_FILENAME
    lines = env_path.read_text().splitlines() if env_path.exists() else []

    new_line = f'{key}="{value}"'
    for i, line in enumerate(lines):
        if line.strip().startswith(f"{key}="):
            lines[i] = new_line
            break
    else:
        lines.append(new_line)

    env_path.write_text("\n".join(lines) + "\n")
