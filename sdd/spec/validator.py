"""
Spec validation.

Error codes:
- E102: file could not be read
- E201-E203: parse failures (frontmatter, title)
- E204: no requirement with an RFC 2119 keyword
- E205: no complete GIVEN-WHEN-THEN scenario

Warning codes:
- W001: frontmatter has no created date
- W002: requirement block has no RFC 2119 keyword
- W003: scenario is missing GIVEN, WHEN or THEN
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from sdd.lib.cache import SpecCache
from sdd.lib.errors import ErrorCode, SddError
from sdd.lib.fsutil import list_files
from sdd.spec.parser import parse_spec

logger = logging.getLogger(__name__)


@dataclass
class Issue:
    code: str
    message: str
    file: str = ""

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


@dataclass
class FileValidationResult:
    file: str
    valid: bool = True
    errors: list[Issue] = field(default_factory=list)
    warnings: list[Issue] = field(default_factory=list)


@dataclass
class ValidationSummary:
    passed: int = 0
    failed: int = 0
    warnings: int = 0
    files: list[FileValidationResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def to_dict(self) -> dict:
        return {
            "passed": self.passed,
            "failed": self.failed,
            "warnings": self.warnings,
            "files": [result_to_dict(r) for r in self.files],
        }


def validate_spec(text: str, file: str = "", strict: bool = False) -> FileValidationResult:
    """Validate spec content. Never raises for content problems."""
    result = FileValidationResult(file=file)

    try:
        spec = parse_spec(text)
    except SddError as e:
        result.valid = False
        result.errors.append(Issue(e.code, e.message, file))
        return result

    if not spec.requirements:
        result.valid = False
        result.errors.append(Issue(
            ErrorCode.RFC2119_VIOLATION,
            "Requirements have no RFC 2119 keyword (SHALL, MUST, SHOULD, MAY)",
            file,
        ))

    if not any(s.complete for s in spec.scenarios):
        result.valid = False
        result.errors.append(Issue(
            ErrorCode.GWT_INVALID_FORMAT,
            "No scenario in GIVEN-WHEN-THEN format",
            file,
        ))

    if not spec.metadata.get("created"):
        result.warnings.append(Issue("W001", "Frontmatter has no created date", file))

    for req_id in spec.untyped_requirements:
        result.warnings.append(Issue("W002", f"{req_id} has no RFC 2119 keyword", file))

    for scenario in spec.scenarios:
        if not scenario.complete:
            result.warnings.append(Issue(
                "W003", f"Scenario '{scenario.name}' is missing GIVEN, WHEN or THEN", file
            ))

    return apply_strict(result) if strict else result


def apply_strict(result: FileValidationResult) -> FileValidationResult:
    """Strict mode: every warning also counts as an error."""
    if result.warnings:
        result.valid = False
        result.errors.extend(
            Issue(w.code, f"[STRICT] {w.message}", w.file) for w in result.warnings
        )
    return result


def result_to_dict(result: FileValidationResult) -> dict:
    return {
        "file": result.file,
        "valid": result.valid,
        "errors": [{"code": e.code, "message": e.message} for e in result.errors],
        "warnings": [{"code": w.code, "message": w.message} for w in result.warnings],
    }


def result_from_dict(data: dict) -> FileValidationResult:
    file = data["file"]
    return FileValidationResult(
        file=file,
        valid=data["valid"],
        errors=[Issue(e["code"], e["message"], file) for e in data["errors"]],
        warnings=[Issue(w["code"], w["message"], file) for w in data["warnings"]],
    )


def _validate_path(path: Path) -> FileValidationResult:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        return FileValidationResult(
            file=str(path),
            valid=False,
            errors=[Issue(ErrorCode.FILE_READ_ERROR, f"Cannot read file: {e.strerror}", str(path))],
        )
    return validate_spec(text, file=str(path))


def validate_spec_file(path: Path, strict: bool = False, cache: Optional[SpecCache] = None) -> FileValidationResult:
    """Validate one file. With a cache, unchanged files reuse their last result."""
    if cache is None:
        result = _validate_path(path)
    else:
        result = result_from_dict(cache.get_or_parse(path, lambda p: result_to_dict(_validate_path(p))))
    return apply_strict(result) if strict else result


def find_spec_files(target: Path) -> list[Path]:
    """spec.md files under target; a file target is returned as is."""
    if target.is_file():
        return [target]
    return [p for p in list_files(target, ".md") if p.name == "spec.md"]


def validate_specs(target: Path, strict: bool = False, cache: Optional[SpecCache] = None) -> ValidationSummary:
    """Validate every spec.md under target (or a single file)."""
    summary = ValidationSummary()
    for path in find_spec_files(target):
        result = validate_spec_file(path, strict=strict, cache=cache)
        summary.files.append(result)
        if result.valid:
            summary.passed += 1
        else:
            summary.failed += 1
        summary.warnings += len(result.warnings)

    logger.info(f"validated {len(summary.files)} spec(s): {summary.passed} passed, {summary.failed} failed")
    return summary
