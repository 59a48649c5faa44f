"""
tasks.md generation and parsing.

Task block format:

    ### auth-task-001: Set up base structure

    - **Status:** pending
    - **Priority:** 🔴 HIGH
    - **Description:** ...
    - **Files:** `src/auth.py`
    - **Dependencies:** auth-task-000
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from sdd.lib.fsutil import today

TASK_STATUSES = ["pending", "in_progress", "completed", "blocked"]
PRIORITIES = ["high", "medium", "low"]

PRIORITY_LABELS = {
    "high": "🔴 HIGH",
    "medium": "🟡 MEDIUM",
    "low": "🟢 LOW",
}

DEFAULT_TASKS = [
    {"title": "Set up base structure", "priority": "high"},
    {"title": "Implement core functionality", "priority": "high"},
    {"title": "Write tests", "priority": "medium"},
    {"title": "Update documentation", "priority": "low"},
]

TASK_BLOCK_RE = re.compile(r'^### ([A-Za-z0-9-]+): ([^\n]+)\s*\n(.*?)(?=\n###|\n---|\Z)', re.MULTILINE | re.DOTALL)
STATUS_RE = re.compile(r'\*\*Status:\*\*\s*(\w+)')
PRIORITY_RE = re.compile(r'\*\*Priority:\*\*.*?(HIGH|MEDIUM|LOW)', re.IGNORECASE)
DESCRIPTION_RE = re.compile(r'\*\*Description:\*\*\s*(.+)')
FILES_RE = re.compile(r'\*\*Files:\*\*\s*(.+)')
DEPENDENCIES_RE = re.compile(r'\*\*Dependencies:\*\*\s*(.+)')
PROGRESS_RE = re.compile(r'(## Progress\s*\n).*?(?=\n---|\n## |\Z)', re.DOTALL)


@dataclass
class TaskItem:
    id: str
    title: str
    status: str = "pending"
    priority: str = "medium"
    description: str = ""
    files: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)


def generate_task_id(feature_id: str, index: int) -> str:
    """Deterministic task id: <feature>-task-NNN."""
    return f"{feature_id}-task-{index:03d}"


def _progress_block(tasks: list[TaskItem]) -> str:
    counts = {s: sum(1 for t in tasks if t.status == s) for s in TASK_STATUSES}
    return (
        f"- Pending: {counts['pending']}\n"
        f"- In progress: {counts['in_progress']}\n"
        f"- Completed: {counts['completed']}\n"
        f"- Blocked: {counts['blocked']}\n"
    )


def _task_block(task: TaskItem) -> str:
    lines = [
        f"### {task.id}: {task.title}",
        "",
        f"- **Status:** {task.status}",
        f"- **Priority:** {PRIORITY_LABELS.get(task.priority, task.priority)}",
    ]
    if task.description:
        lines.append(f"- **Description:** {task.description}")
    if task.files:
        lines.append(f"- **Files:** {', '.join(f'`{f}`' for f in task.files)}")
    if task.dependencies:
        lines.append(f"- **Dependencies:** {', '.join(task.dependencies)}")
    return "\n".join(lines) + "\n"


def build_tasks(feature_id: str, specs: Optional[list[dict]] = None) -> list[TaskItem]:
    """TaskItems from dicts with title/priority/description/files/dependencies."""
    specs = specs or DEFAULT_TASKS
    return [
        TaskItem(
            id=generate_task_id(feature_id, index),
            title=spec["title"],
            priority=spec.get("priority", "medium"),
            description=spec.get("description", ""),
            files=list(spec.get("files", [])),
            dependencies=list(spec.get("dependencies", [])),
        )
        for index, spec in enumerate(specs, 1)
    ]


def generate_tasks(feature_id: str, feature_title: str, tasks: Optional[list[TaskItem]] = None) -> str:
    """Render tasks.md for a feature."""
    tasks = tasks if tasks is not None else build_tasks(feature_id)
    completed = sum(1 for t in tasks if t.status == "completed")

    content = f"""---
feature: {feature_id}
created: {today()}
total: {len(tasks)}
completed: {completed}
---

# Tasks: {feature_title}

> {len(tasks)} tasks total

---

## Progress

{_progress_block(tasks)}
---

## Tasks

"""
    content += "\n".join(_task_block(t) for t in tasks)
    content += """
---

## Completion Criteria

- [ ] All tasks completed
- [ ] Tests passing
- [ ] Code review done
- [ ] Spec status updated

---

## Next Steps

1. Start with the highest-priority pending task
2. Update each task's **Status:** as work progresses
"""
    return content


def _split_list(value: str) -> list[str]:
    return [v.strip().strip("`") for v in value.split(",") if v.strip()]


def parse_tasks(content: str) -> list[TaskItem]:
    tasks = []
    for match in TASK_BLOCK_RE.finditer(content):
        body = match.group(3)
        status = STATUS_RE.search(body)
        priority = PRIORITY_RE.search(body)
        description = DESCRIPTION_RE.search(body)
        files = FILES_RE.search(body)
        deps = DEPENDENCIES_RE.search(body)
        tasks.append(TaskItem(
            id=match.group(1),
            title=match.group(2).strip(),
            status=status.group(1) if status else "pending",
            priority=priority.group(1).lower() if priority else "medium",
            description=description.group(1).strip() if description else "",
            files=_split_list(files.group(1)) if files else [],
            dependencies=_split_list(deps.group(1)) if deps else [],
        ))
    return tasks


def update_task_status(content: str, task_id: str, status: str) -> str:
    """
    Set a task's status, then refresh the progress block and the
    completed: count in the frontmatter.

    Raises:
        ValueError: unknown status or task id
    """
    if status not in TASK_STATUSES:
        raise ValueError(f"Unknown task status '{status}'")

    header = re.compile(rf'^### {re.escape(task_id)}: .*$', re.MULTILINE)
    header_match = header.search(content)
    if not header_match:
        raise ValueError(f"Task '{task_id}' not found")

    block_end = re.compile(r'\n###|\n---').search(content, header_match.end())
    end = block_end.start() if block_end else len(content)
    block = STATUS_RE.sub(f"**Status:** {status}", content[header_match.start():end], count=1)
    content = content[:header_match.start()] + block + content[end:]

    tasks = parse_tasks(content)
    content = PROGRESS_RE.sub(lambda m: m.group(1) + _progress_block(tasks), content, count=1)
    completed = sum(1 for t in tasks if t.status == "completed")
    return re.sub(r'^completed: \d+$', f"completed: {completed}", content, count=1, flags=re.MULTILINE)


def get_next_task(tasks: list[TaskItem]) -> Optional[TaskItem]:
    """
    The task to work on next.

    An in-progress task wins; otherwise the highest-priority pending task
    whose dependencies are all completed.
    """
    for task in tasks:
        if task.status == "in_progress":
            return task

    done = {t.id for t in tasks if t.status == "completed"}
    ready = [
        t for t in tasks
        if t.status == "pending" and all(d in done for d in t.dependencies)
    ]
    if not ready:
        return None
    return min(ready, key=lambda t: PRIORITIES.index(t.priority) if t.priority in PRIORITIES else len(PRIORITIES))
