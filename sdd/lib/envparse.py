"""
Reader for .sdd/sdd.env.

The file holds SDD_* settings as KEY=value lines. It is parsed, never
sourced, so shell syntax in a value is an error rather than something
that silently does nothing.
"""

import re
from pathlib import Path
from typing import Optional

KEY_PATTERN = re.compile(r'^[A-Z][A-Z0-9_]*$')

# backticks, $( ), ${ }, and ; && || chaining
SHELL_SYNTAX = re.compile(r'`|\$\(|\$\{|;|&&|\|\|')


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def parse_line(line: str, lineno: int) -> Optional[tuple[str, str]]:
    """Return (key, value) for a setting line, None for blanks and comments."""
    line = line.strip()
    if not line or line.startswith('#'):
        return None
    # tolerated so the file can still be sourced by hand
    line = line.removeprefix('export ').lstrip()

    key, sep, value = line.partition('=')
    if not sep:
        raise ValueError(f"Line {lineno}: Invalid syntax (no '=')")
    key = key.strip()
    if not KEY_PATTERN.match(key):
        raise ValueError(f"Line {lineno}: Invalid key '{key}'")

    value = _unquote(value.strip())
    if SHELL_SYNTAX.search(value):
        raise ValueError(f"Line {lineno}: Forbidden pattern in value for {key}")
    return key, value


def parse_env(text: str) -> dict[str, str]:
    settings = {}
    for lineno, line in enumerate(text.splitlines(), 1):
        parsed = parse_line(line, lineno)
        if parsed:
            settings[parsed[0]] = parsed[1]
    return settings


def load_env(filepath) -> dict[str, str]:
    """
    Parse an env file into a dict.

    Raises:
        FileNotFoundError: if the file doesn't exist
        ValueError: on a malformed line or shell syntax in a value
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Env file not found: {filepath}")
    return parse_env(path.read_text(encoding="utf-8"))
