"""
Spec parsing for export.

Export is lenient: metadata is not schema-checked, requirements without a
keyword are kept, and AND steps are kept apart from GIVEN/THEN so they can
be rendered as written.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from sdd.lib.errors import SddError
from sdd.lib.frontmatter import split_frontmatter
from sdd.lib.fsutil import read_text
from sdd.spec.keywords import KEYWORD_STRENGTH, extract_keywords
from sdd.spec.locate import iter_spec_files, spec_id_for, specs_dir
from sdd.spec.parser import (
    BULLET_PREFIX_RE,
    DESCRIPTION_RE,
    REQUIREMENT_HEADER_RE,
    SCENARIO_HEADER_RE,
    STEP_RE,
    TITLE_RE,
    iter_blocks,
)

logger = logging.getLogger(__name__)

PRIORITY_BY_STRENGTH = {3: "high", 2: "medium", 1: "low"}


@dataclass
class ExportRequirement:
    id: str
    title: str
    description: str
    keyword: Optional[str] = None
    priority: Optional[str] = None


@dataclass
class ExportScenario:
    id: str
    title: str
    given: list[str] = field(default_factory=list)
    when: list[str] = field(default_factory=list)
    then: list[str] = field(default_factory=list)
    and_: list[str] = field(default_factory=list)


@dataclass
class ExportSpec:
    id: str
    title: str
    description: str
    metadata: dict
    requirements: list[ExportRequirement]
    scenarios: list[ExportScenario]
    dependencies: list[str]
    raw_content: str = ""

    @property
    def status(self) -> Optional[str]:
        return self.metadata.get("status")

    def to_dict(self, include_raw: bool = False) -> dict:
        data = {
            "id": self.id,
            "title": self.title,
            "status": self.status,
            "created": self.metadata.get("created"),
            "author": self.metadata.get("author"),
            "description": self.description,
            "requirements": [vars(r).copy() for r in self.requirements],
            "scenarios": [
                {
                    "id": s.id,
                    "title": s.title,
                    "given": s.given,
                    "when": s.when,
                    "then": s.then,
                    **({"and": s.and_} if s.and_ else {}),
                }
                for s in self.scenarios
            ],
            "dependencies": self.dependencies,
            "metadata": self.metadata,
        }
        if include_raw:
            data["rawContent"] = self.raw_content
        return data


def priority_for(keyword: Optional[str]) -> Optional[str]:
    if not keyword:
        return None
    return PRIORITY_BY_STRENGTH.get(KEYWORD_STRENGTH.get(keyword, 0))


def dependencies_of(metadata: dict) -> list[str]:
    deps = metadata.get("depends", metadata.get("dependencies"))
    if isinstance(deps, list):
        return [str(d) for d in deps]
    if isinstance(deps, str):
        return [d.strip() for d in deps.split(",") if d.strip()]
    return []


def _requirements(body: str) -> list[ExportRequirement]:
    requirements = []
    for header, lines in iter_blocks(body.split("\n"), REQUIREMENT_HEADER_RE):
        text = "\n".join(lines).strip()
        keywords = extract_keywords(text)
        keyword = keywords[0] if keywords else None
        description = "\n".join(BULLET_PREFIX_RE.sub("", l) for l in lines).strip()
        requirements.append(ExportRequirement(
            id=header.group(1),
            title=header.group(2).strip(),
            description=description,
            keyword=keyword,
            priority=priority_for(keyword),
        ))
    return requirements


def _scenarios(body: str) -> list[ExportScenario]:
    scenarios = []
    for index, (header, lines) in enumerate(iter_blocks(body.split("\n"), SCENARIO_HEADER_RE), 1):
        scenario = ExportScenario(id=f"scenario-{index}", title=header.group(1).strip())
        for line in lines:
            match = STEP_RE.match(line)
            if match:
                step = match.group(1).upper()
                target = scenario.and_ if step == "AND" else getattr(scenario, step.lower())
                target.append(match.group(2).strip())
        scenarios.append(scenario)
    return scenarios


def parse_export_spec(text: str, spec_id: str) -> ExportSpec:
    """
    Raises:
        SddError: frontmatter is not valid YAML
    """
    try:
        metadata, body = split_frontmatter(text)
    except yaml.YAMLError as e:
        raise SddError(f"{spec_id}: invalid frontmatter: {e}") from None

    title_match = TITLE_RE.search(body)
    desc_match = DESCRIPTION_RE.search(body)
    return ExportSpec(
        id=metadata.get("id") or spec_id,
        title=metadata.get("title") or (title_match.group(1).strip() if title_match else spec_id),
        description=desc_match.group(1).strip() if desc_match else "",
        metadata=metadata,
        requirements=_requirements(body),
        scenarios=_scenarios(body),
        dependencies=dependencies_of(metadata),
        raw_content=body,
    )


def load_export_specs(sdd_dir: Path, spec_ids: Optional[list[str]] = None) -> list[ExportSpec]:
    """Parse the given specs (all when spec_ids is empty). Unreadable specs are skipped."""
    if spec_ids:
        paths = [specs_dir(sdd_dir) / spec_id / "spec.md" for spec_id in spec_ids]
    else:
        paths = iter_spec_files(sdd_dir)

    specs = []
    for path in paths:
        if not path.exists():
            logger.warning(f"[export] spec not found: {path}")
            continue
        try:
            specs.append(parse_export_spec(read_text(path), spec_id_for(sdd_dir, path)))
        except SddError as e:
            logger.warning(f"[export] skipping {path}: {e}")
    return specs
