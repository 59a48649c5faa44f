"""
JSON Schema checks for SDD data.

Every state file under .sdd/ (counter, context, cache, reverse meta and
drafts) and every frontmatter block (spec metadata, proposals, deltas)
goes through one of the schemas shipped in sdd/schemas. Writers call
write_json so an invalid document never reaches disk.
"""

import json
from functools import lru_cache
from pathlib import Path

import jsonschema

from sdd.lib.errors import ErrorCode, ExitCode, SddError
from sdd.lib.fsutil import read_text, write_text

SCHEMAS_DIR = Path(__file__).resolve().parent.parent / "schemas"


class ValidationError(SddError):
    """A document did not match its SDD schema."""

    exit_code = ExitCode.FILE_SYSTEM_ERROR

    def __init__(self, schema_name: str, message: str, path: str = None):
        self.schema_name = schema_name
        self.path = path
        self.detail = message
        where = f" at {path}" if path else ""
        super().__init__(f"[{schema_name}] {message}{where}", ErrorCode.FILE_READ_ERROR)


@lru_cache(maxsize=None)
def _validator(schema_name: str) -> jsonschema.Draft7Validator:
    schema_file = SCHEMAS_DIR / f"{schema_name}.schema.json"
    if not schema_file.is_file():
        raise ValidationError(schema_name, f"Schema file not found: {schema_file}")
    return jsonschema.Draft7Validator(json.loads(schema_file.read_text(encoding="utf-8")))


def _location(error: jsonschema.ValidationError) -> str:
    return ".".join(str(part) for part in error.absolute_path) or "(root)"


def _errors(data, schema_name: str) -> list[jsonschema.ValidationError]:
    found = _validator(schema_name).iter_errors(data)
    return sorted(found, key=lambda e: [str(p) for p in e.absolute_path])


def validate(data: dict, schema_name: str) -> None:
    """
    Check data against a named schema ("spec-metadata", "counter", ...).

    Raises:
        ValidationError: for the first offending field, with its dotted path
    """
    errors = _errors(data, schema_name)
    if errors:
        first = errors[0]
        raise ValidationError(schema_name, first.message, _location(first))


def iter_errors(data: dict, schema_name: str) -> list[str]:
    """Every problem with data, formatted as '<path>: <message>'."""
    return [f"{_location(e)}: {e.message}" for e in _errors(data, schema_name)]


def validate_file(filepath: Path, schema_name: str) -> dict:
    """Read a JSON state file and return it once it matches its schema."""
    try:
        data = json.loads(read_text(filepath))
    except json.JSONDecodeError as e:
        raise ValidationError(schema_name, f"Invalid JSON in {filepath}: {e}") from None
    validate(data, schema_name)
    return data


def validate_before_write(data: dict, schema_name: str, filepath: Path) -> None:
    try:
        validate(data, schema_name)
    except ValidationError as e:
        raise ValidationError(
            schema_name, f"Refusing to write invalid data to {filepath}: {e.detail}", e.path
        ) from None


def write_json(filepath: Path, data: dict, schema_name: str) -> None:
    """Validate then write data as indented JSON."""
    validate_before_write(data, schema_name, filepath)
    write_text(filepath, json.dumps(data, indent=2, ensure_ascii=False) + "\n")
