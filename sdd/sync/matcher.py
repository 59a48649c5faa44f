"""Matching spec requirements against code and test references."""

from dataclasses import asdict, dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sdd.sync.scanner import CodeReference, SpecRequirement


@dataclass
class Location:
    file: str
    line: int
    type: str
    text: str = ""


@dataclass
class RequirementStatus:
    id: str
    spec_id: str
    status: str  # implemented, missing
    title: str = ""
    keyword: Optional[str] = None
    locations: list[Location] = field(default_factory=list)


@dataclass
class SpecSummary:
    id: str
    requirement_count: int
    implemented_count: int
    missing_count: int
    sync_rate: float


@dataclass
class SyncResult:
    specs: list[SpecSummary]
    requirements: list[RequirementStatus]
    sync_rate: float
    implemented: list[str]
    missing: list[str]
    orphans: list[Location]
    total_requirements: int
    total_implemented: int

    def to_dict(self) -> dict:
        return asdict(self)


def sync_rate(implemented: int, total: int) -> float:
    """Percentage rounded half up to 2 decimals. No requirements counts as fully synced."""
    if total == 0:
        return 100.0
    rate = Decimal(str(implemented / total * 100))
    return float(rate.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


class SyncMatcher:
    def match(
        self,
        requirements: list[SpecRequirement],
        code_refs: list[CodeReference],
        test_refs: list[CodeReference],
    ) -> SyncResult:
        all_refs = code_refs + test_refs
        statuses = [self._status(req, all_refs) for req in requirements]

        implemented = [s.id for s in statuses if s.status == "implemented"]
        missing = [s.id for s in statuses if s.status == "missing"]

        return SyncResult(
            specs=self._spec_summaries(statuses),
            requirements=statuses,
            sync_rate=sync_rate(len(implemented), len(requirements)),
            implemented=implemented,
            missing=missing,
            orphans=self._orphans(requirements, all_refs),
            total_requirements=len(requirements),
            total_implemented=len(implemented),
        )

    def _status(self, req: SpecRequirement, refs: list[CodeReference]) -> RequirementStatus:
        matching = [r for r in refs if r.req_id == req.id]
        return RequirementStatus(
            id=req.id,
            spec_id=req.spec_id,
            status="implemented" if matching else "missing",
            title=req.title,
            keyword=req.keyword,
            locations=[Location(r.file, r.line, r.type, r.context) for r in matching],
        )

    def _spec_summaries(self, statuses: list[RequirementStatus]) -> list[SpecSummary]:
        summaries = []
        for spec_id in dict.fromkeys(s.spec_id for s in statuses):
            spec_statuses = [s for s in statuses if s.spec_id == spec_id]
            done = sum(1 for s in spec_statuses if s.status == "implemented")
            summaries.append(SpecSummary(
                id=spec_id,
                requirement_count=len(spec_statuses),
                implemented_count=done,
                missing_count=len(spec_statuses) - done,
                sync_rate=sync_rate(done, len(spec_statuses)),
            ))
        return summaries

    def _orphans(self, requirements: list[SpecRequirement], refs: list[CodeReference]) -> list[Location]:
        """References to ids no spec declares, one per file and id."""
        known = {r.id for r in requirements}
        seen: set[tuple[str, str]] = set()
        orphans = []
        for ref in refs:
            if ref.req_id in known or (ref.file, ref.req_id) in seen:
                continue
            seen.add((ref.file, ref.req_id))
            orphans.append(Location(ref.file, ref.line, ref.type, f"{ref.req_id}: {ref.context}"))
        return orphans
