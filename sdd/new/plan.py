"""plan.md generation and parsing."""

import re
from dataclasses import dataclass, field
from typing import Optional

from sdd.lib.fsutil import today

IMPACT_ICONS = {"high": "🔴", "medium": "🟡", "low": "🟢"}

DEFAULT_PHASES = [
    ("Foundation", "[Describe the base structure]"),
    ("Core Features", "[Describe the core functionality]"),
    ("Integration & Testing", "[Describe integration and testing]"),
]


@dataclass
class TechDecision:
    decision: str
    rationale: str
    alternatives: list[str] = field(default_factory=list)


@dataclass
class Phase:
    name: str
    description: str = ""
    deliverables: list[str] = field(default_factory=list)


@dataclass
class Risk:
    risk: str
    mitigation: str
    impact: str = "medium"


@dataclass
class Plan:
    overview: str
    decisions: list[TechDecision] = field(default_factory=list)
    phases: list[Phase] = field(default_factory=list)


def generate_plan(
    feature_id: str,
    feature_title: str,
    overview: str,
    decisions: Optional[list[TechDecision]] = None,
    phases: Optional[list[Phase]] = None,
    risks: Optional[list[Risk]] = None,
    testing_strategy: Optional[str] = None,
    constitution_compliance: Optional[list[str]] = None,
) -> str:
    """Render plan.md. Missing sections get placeholders."""
    content = f"""---
feature: {feature_id}
created: {today()}
status: draft
---

# Implementation Plan: {feature_title}

> {overview}

---

## Overview

{overview}

---

## Technical Decisions

"""
    decisions = decisions or [TechDecision("[Technical decision]", "[Why this decision]",
                                           ["[Alternative 1]", "[Alternative 2]"])]
    for index, td in enumerate(decisions, 1):
        content += f"### Decision {index}: {td.decision}\n\n**Rationale:** {td.rationale}\n\n"
        if td.alternatives:
            content += "**Alternatives:**\n" + "\n".join(f"- {a}" for a in td.alternatives) + "\n\n"

    content += "---\n\n## Implementation Phases\n\n"
    phases = phases or [Phase(name, desc, ["[Deliverable 1]", "[Deliverable 2]"]) for name, desc in DEFAULT_PHASES]
    for index, phase in enumerate(phases, 1):
        content += f"### Phase {index}: {phase.name}\n\n{phase.description}\n\n"
        content += "\n".join(f"- [ ] {d}" for d in phase.deliverables) + "\n\n"

    content += "---\n\n## Risk Analysis\n\n| Risk | Impact | Mitigation |\n|------|--------|------------|\n"
    risks = risks or [Risk("[Risk 1]", "[Mitigation]", "medium")]
    for r in risks:
        content += f"| {r.risk} | {IMPACT_ICONS.get(r.impact, '')} {r.impact.upper()} | {r.mitigation} |\n"

    content += "\n---\n\n## Testing Strategy\n\n"
    if testing_strategy:
        content += f"{testing_strategy}\n\n"
    else:
        content += """### Unit Tests

- Unit tests for each module
- Coverage target: 80% or more

### Integration Tests

- Scenario-based integration tests

"""

    if constitution_compliance:
        content += "---\n\n## Constitution Compliance\n\n"
        content += "\n".join(f"- {c}" for c in constitution_compliance) + "\n\n"

    content += """---

## Next Steps

1. [ ] Review and approve this plan
2. [ ] Break the work down with `sdd new tasks`
3. [ ] Start implementation
"""
    return content


OVERVIEW_RE = re.compile(r'## Overview\s*\n\n(.*?)(?=\n---|\n##)', re.DOTALL)
DECISION_RE = re.compile(
    r'### Decision \d+: ([^\n]+)\s*\n\n\*\*Rationale:\*\* ([^\n]+)(?:\n\n\*\*Alternatives:\*\*\n((?:- [^\n]+\n?)+))?'
)
PHASE_RE = re.compile(r'### Phase \d+: ([^\n]+)\n(.*?)(?=\n###|\n---|\Z)', re.DOTALL)


def parse_plan(content: str) -> Optional[Plan]:
    """Parse plan.md. Returns None if it has no Overview section."""
    overview = OVERVIEW_RE.search(content)
    if not overview:
        return None

    decisions = []
    for match in DECISION_RE.finditer(content):
        alternatives = []
        if match.group(3):
            alternatives = [l[2:].strip() for l in match.group(3).splitlines() if l.startswith("- ")]
        decisions.append(TechDecision(match.group(1).strip(), match.group(2).strip(), alternatives))

    phases = []
    for match in PHASE_RE.finditer(content):
        body = match.group(2)
        deliverables = re.findall(r'^- \[[ x]\] (.+)$', body, re.MULTILINE)
        description = "\n".join(
            l for l in body.strip().splitlines() if l.strip() and not l.startswith("- [")
        )
        phases.append(Phase(match.group(1).strip(), description, deliverables))

    return Plan(overview=overview.group(1).strip(), decisions=decisions, phases=phases)
