"""Workflow checklists (checklist.md)."""

import re
from dataclasses import dataclass

CATEGORY_TITLES = {
    "pre-spec": "Before writing the spec",
    "post-spec": "After writing the spec",
    "pre-plan": "Before planning",
    "post-plan": "After planning",
    "pre-impl": "Before implementation",
    "post-impl": "After implementation",
    "pre-review": "Before review",
    "post-review": "After review",
}

DEFAULT_CHECKLISTS = {
    "pre-spec": [
        "Functional requirements are clearly defined",
        "User stories are written",
        "Discussed with the relevant stakeholders",
        "Checked for conflicts with existing features",
    ],
    "post-spec": [
        "RFC 2119 keywords used (SHALL, MUST, SHOULD, MAY)",
        "GIVEN-WHEN-THEN scenarios included",
        "Non-functional requirements stated",
        "sdd validate passes",
    ],
    "pre-plan": [
        "Spec is approved",
        "Tech stack decided",
        "Architecture reviewed",
        "Dependencies checked",
    ],
    "post-plan": [
        "Implementation phases clearly defined",
        "Risk analysis done",
        "Testing strategy set",
        "Constitution compliance checked",
    ],
    "pre-impl": [
        "Work broken down (tasks.md)",
        "Branch created",
        "Development environment ready",
        "Test environment checked",
    ],
    "post-impl": [
        "All tasks completed",
        "Unit tests written and passing",
        "Integration tests passing",
        "Coverage target met (80%+)",
        "Lint and type checks pass",
    ],
    "pre-review": [
        "Self review done",
        "Documentation updated",
        "PR description written",
        "Test results attached",
    ],
    "post-review": [
        "Review feedback addressed",
        "Final tests pass",
        "Spec status updated",
        "Ready for archive",
    ],
}

ITEM_RE = re.compile(r'^- \[([ xX])\] (.+)$', re.MULTILINE)


@dataclass
class ChecklistItem:
    id: str
    text: str
    checked: bool
    category: str


def create_checklist(category: str) -> list[ChecklistItem]:
    if category not in DEFAULT_CHECKLISTS:
        raise ValueError(f"Unknown checklist category '{category}'")
    return [
        ChecklistItem(f"{category}-{i:02d}", text, False, category)
        for i, text in enumerate(DEFAULT_CHECKLISTS[category], 1)
    ]


def checklist_to_markdown(items: list[ChecklistItem], title: str = "") -> str:
    content = f"## {title}\n\n" if title else ""
    for item in items:
        content += f"- [{'x' if item.checked else ' '}] {item.text}\n"
    return content


def parse_checklist(content: str, category: str) -> list[ChecklistItem]:
    return [
        ChecklistItem(f"{category}-{i:02d}", m.group(2).strip(), m.group(1) != " ", category)
        for i, m in enumerate(ITEM_RE.finditer(content), 1)
    ]


def checklist_progress(items: list[ChecklistItem]) -> tuple[int, int, int]:
    """(completed, total, percentage)."""
    completed = sum(1 for i in items if i.checked)
    total = len(items)
    return completed, total, round(completed / total * 100) if total else 0


def generate_full_checklist() -> str:
    content = "# SDD Workflow Checklist\n\n> Items to check at each stage.\n\n---\n\n"
    for category, title in CATEGORY_TITLES.items():
        content += checklist_to_markdown(create_checklist(category), title)
        content += "\n---\n\n"
    return content
