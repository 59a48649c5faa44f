"""
Working context (.sdd/context.json).

The context narrows work to a set of active domains. Their transitive
dependencies are pulled in as read-only domains unless disabled.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from sdd.lib import validate
from sdd.lib.domains import DomainError, DomainGraph, DomainInfo, load_domains_config
from sdd.lib.fsutil import now_iso

logger = logging.getLogger(__name__)

CONTEXT_FILENAME = "context.json"


@dataclass
class ContextInfo:
    active_domains: list[str]
    read_only_domains: list[str]
    include_dependencies: bool = True
    updated_at: Optional[str] = None
    active_infos: list[DomainInfo] = field(default_factory=list)
    read_only_infos: list[DomainInfo] = field(default_factory=list)

    @property
    def total_specs(self) -> int:
        return sum(len(d.specs) for d in self.active_infos + self.read_only_infos)

    @property
    def is_active(self) -> bool:
        return bool(self.active_domains)

    def to_dict(self) -> dict:
        return {
            "activeDomains": self.active_domains,
            "readOnlyDomains": self.read_only_domains,
            "includeDependencies": self.include_dependencies,
            "updatedAt": self.updated_at,
            "totalSpecs": self.total_specs,
        }


def _empty() -> dict:
    return {"activeDomains": [], "readOnlyDomains": [], "includeDependencies": True}


def load_context_data(sdd_dir: Path) -> dict:
    path = sdd_dir / CONTEXT_FILENAME
    if not path.exists():
        return _empty()
    return validate.validate_file(path, "context")


def _build_info(sdd_dir: Path, data: dict) -> ContextInfo:
    graph = DomainGraph(load_domains_config(sdd_dir))
    return ContextInfo(
        active_domains=data["activeDomains"],
        read_only_domains=data["readOnlyDomains"],
        include_dependencies=data["includeDependencies"],
        updated_at=data.get("updatedAt"),
        active_infos=[graph.domains[d] for d in data["activeDomains"] if d in graph.domains],
        read_only_infos=[graph.domains[d] for d in data["readOnlyDomains"] if d in graph.domains],
    )


def get_context(sdd_dir: Path) -> ContextInfo:
    return _build_info(sdd_dir, load_context_data(sdd_dir))


def set_context(sdd_dir: Path, domain_ids: list[str], include_dependencies: bool = True) -> ContextInfo:
    """
    Replace the active domains.

    Raises:
        DomainError: a domain id is not defined in domains.yml
    """
    graph = DomainGraph(load_domains_config(sdd_dir))
    unknown = [d for d in domain_ids if d not in graph.domains]
    if unknown:
        raise DomainError(f"Unknown domain(s): {', '.join(unknown)}")

    active = list(dict.fromkeys(domain_ids))
    read_only = graph.transitive_dependencies(active) if include_dependencies else []

    data = {
        "activeDomains": active,
        "readOnlyDomains": read_only,
        "includeDependencies": include_dependencies,
        "updatedAt": now_iso(),
    }
    validate.write_json(sdd_dir / CONTEXT_FILENAME, data, "context")
    logger.info(f"[context] active={active} read_only={read_only}")
    return _build_info(sdd_dir, data)


def add_domain(sdd_dir: Path, domain_id: str) -> ContextInfo:
    data = load_context_data(sdd_dir)
    if domain_id in data["activeDomains"]:
        return _build_info(sdd_dir, data)
    return set_context(sdd_dir, data["activeDomains"] + [domain_id], data["includeDependencies"])


def remove_domain(sdd_dir: Path, domain_id: str) -> ContextInfo:
    data = load_context_data(sdd_dir)
    if domain_id not in data["activeDomains"]:
        return _build_info(sdd_dir, data)
    remaining = [d for d in data["activeDomains"] if d != domain_id]
    return set_context(sdd_dir, remaining, data["includeDependencies"])


def clear_context(sdd_dir: Path) -> None:
    path = sdd_dir / CONTEXT_FILENAME
    if path.exists():
        path.unlink()
    logger.info("[context] cleared")


def context_specs(sdd_dir: Path) -> tuple[list[str], list[str]]:
    """(active spec ids, read-only spec ids) for the current context."""
    info = get_context(sdd_dir)
    active = [s for d in info.active_infos for s in d.specs]
    read_only = [s for d in info.read_only_infos for s in d.specs]
    return active, read_only


def active_domain(sdd_dir: Path) -> Optional[str]:
    """The single active domain, used as the default for new features."""
    try:
        data = load_context_data(sdd_dir)
    except validate.ValidationError as e:
        logger.warning(f"[context] ignoring unreadable context: {e}")
        return None
    if len(data["activeDomains"]) == 1:
        return data["activeDomains"][0]
    return None
