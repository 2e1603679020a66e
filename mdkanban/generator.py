"""
Board → Markdown generator.

The inverse of parser.parse_markdown: renders a Board in the canonical
dialect so that parsing the output yields the same board (ids aside).
Total and deterministic; absent fields simply produce no line.
"""

from __future__ import annotations

from .domain import Board, Column, Task, TaskHeaderStyle
from .parser import CHECKBOX_TOKENS, is_property_line

INDENT = "    "


def generate_markdown(
    board: Board,
    task_header: TaskHeaderStyle | str = TaskHeaderStyle.TITLE,
) -> str:
    """
    Render ``board`` as markdown.

    Args:
        task_header: ``title`` writes ``### Task``, ``list`` writes ``- Task``.
    """
    style = TaskHeaderStyle(task_header)
    parts: list[str] = []

    if board.title:
        parts.append(f"# {board.title}\n\n")

    for column in board.columns:
        parts.append(_column_header(column))
        for task in column.tasks:
            parts.append(_task_block(task, style))

    return "".join(parts)


def _column_header(column: Column) -> str:
    title = f"{column.title} [Archived]" if column.archived else column.title
    return f"## {title}\n\n"


def _task_block(task: Task, style: TaskHeaderStyle) -> str:
    if style is TaskHeaderStyle.TITLE:
        out = f"### {task.title}\n\n"
    else:
        out = f"- {_list_title(task.title)}\n"

    out += "".join(f"{line}\n" for line in _property_lines(task))

    if task.description and task.description.strip():
        out += f"{INDENT}```md\n"
        for line in task.description.strip().split("\n"):
            out += f"{INDENT}{line}\n"
        out += f"{INDENT}```\n"

    return out + "\n"


def _property_lines(task: Task) -> list[str]:
    lines: list[str] = []
    if task.due_date:
        lines.append(f"  - due: {task.due_date}")
    if task.tags:
        lines.append(f"  - tags: [{', '.join(task.tags)}]")
    if task.priority:
        lines.append(f"  - priority: {task.priority.value}")
    if task.workload:
        lines.append(f"  - workload: {task.workload.value}")
    if task.default_expanded is not None:
        lines.append(f"  - defaultExpanded: {'true' if task.default_expanded else 'false'}")
    if task.steps is not None:
        lines.append("  - steps:")
        for step in task.steps:
            mark = "[x]" if step.completed else "[ ]"
            lines.append(f"      - {mark} {step.text}")
    return lines


def _list_title(title: str) -> str:
    """Prefix an empty checkbox where a bare ``- title`` would read back differently."""
    if title.startswith(CHECKBOX_TOKENS) or is_property_line(f"- {title}"):
        return f"[ ] {title}"
    return title
