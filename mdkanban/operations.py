"""
Board mutation operations.

Plain functions that change a Board in place and return it. They are
applied one at a time against the latest board; none of them raises for a
stale reference — an unknown column/task id or an out-of-range index is a
no-op, since UI state and document state can briefly disagree.

Ids are only generated on insertion (add_task, add_column); moving, editing
and reordering keep them.
"""

from __future__ import annotations

from dataclasses import fields
from typing import Any

from loguru import logger

from .domain import (
    Board,
    Column,
    IdFactory,
    Priority,
    Step,
    Task,
    TaskData,
    Workload,
    new_id,
)

EDITABLE_FIELDS = tuple(f.name for f in fields(TaskData))


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


def find_column(board: Board, column_id: str) -> Column | None:
    return next((c for c in board.columns if c.id == column_id), None)


def find_task(board: Board, column_id: str, task_id: str) -> tuple[Column, Task, int] | None:
    """Return (column, task, index) for a task inside a specific column."""
    column = find_column(board, column_id)
    if column is None:
        return None
    for index, task in enumerate(column.tasks):
        if task.id == task_id:
            return column, task, index
    return None


def locate_task(board: Board, task_id: str) -> tuple[Column, Task, int] | None:
    """Find a task in any column."""
    for column in board.columns:
        for index, task in enumerate(column.tasks):
            if task.id == task_id:
                return column, task, index
    return None


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


def move_task(
    board: Board,
    task_id: str,
    from_column_id: str,
    to_column_id: str,
    new_index: int,
) -> Board:
    """
    Move a task between columns (or within one).

    ``new_index`` refers to the target list with the task already removed.
    """
    source = find_column(board, from_column_id)
    target = find_column(board, to_column_id)
    if source is None or target is None:
        logger.debug("move_task: unknown column {} or {}", from_column_id, to_column_id)
        return board

    index = next((i for i, t in enumerate(source.tasks) if t.id == task_id), -1)
    if index == -1:
        logger.debug("move_task: task {} not in column {}", task_id, from_column_id)
        return board

    task = source.tasks.pop(index)
    target.tasks.insert(new_index, task)
    logger.debug("Moved task {} → {}[{}]", task_id, to_column_id, new_index)
    return board


def reorder_task(board: Board, column_id: str, old_index: int, new_index: int) -> Board:
    column = find_column(board, column_id)
    if column is None or not 0 <= old_index < len(column.tasks):
        return board
    task = column.tasks.pop(old_index)
    column.tasks.insert(new_index, task)
    return board


def add_task(
    board: Board,
    column_id: str,
    data: TaskData,
    id_factory: IdFactory = new_id,
) -> Board:
    column = find_column(board, column_id)
    if column is None:
        logger.debug("add_task: unknown column {}", column_id)
        return board

    task = Task(id=id_factory(), title=data.title)
    _assign(task, data)
    column.tasks.append(task)
    logger.debug("Added task {} to column {}", task.id, column_id)
    return board


def delete_task(board: Board, task_id: str, column_id: str) -> Board:
    found = find_task(board, column_id, task_id)
    if found is None:
        return board
    column, _, index = found
    del column.tasks[index]
    logger.debug("Deleted task {} from column {}", task_id, column_id)
    return board


def edit_task(board: Board, task_id: str, column_id: str, data: TaskData) -> Board:
    """Replace every editable field of a task; fields missing from ``data`` reset."""
    found = find_task(board, column_id, task_id)
    if found is None:
        return board
    _assign(found[1], data)
    return board


def update_task(board: Board, task_id: str, updates: dict[str, Any]) -> Board:
    """
    Partial update of a task found in any column.

    Unknown keys are ignored; invalid priority/workload values leave the
    field as it was.
    """
    found = locate_task(board, task_id)
    if found is None:
        return board
    task = found[1]

    for key, value in updates.items():
        if key not in EDITABLE_FIELDS:
            logger.debug("update_task: ignoring unknown field {!r}", key)
            continue
        if key == "priority":
            value = Priority.coerce(value)
            if value is None and updates[key] is not None:
                continue
        elif key == "workload":
            value = Workload.coerce(value)
            if value is None and updates[key] is not None:
                continue
        elif key == "description" and value is not None:
            value = value.strip() or None
        elif key == "tags":
            value = list(value or [])
        elif key == "steps" and value is not None:
            value = [s if isinstance(s, Step) else Step(**s) for s in value]
        setattr(task, key, value)
    return board


def _assign(task: Task, data: TaskData) -> None:
    task.title = data.title
    task.description = data.description
    task.tags = list(data.tags)
    task.priority = data.priority
    task.workload = data.workload
    task.due_date = data.due_date
    task.default_expanded = data.default_expanded
    task.steps = [Step(s.text, s.completed) for s in data.steps] if data.steps is not None else None


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


def update_task_step(
    board: Board,
    task_id: str,
    column_id: str,
    step_index: int,
    completed: bool,
) -> Board:
    found = find_task(board, column_id, task_id)
    if found is None:
        return board
    steps = found[1].steps
    if not steps or not 0 <= step_index < len(steps):
        return board
    steps[step_index].completed = completed
    return board


def reorder_task_steps(
    board: Board,
    task_id: str,
    column_id: str,
    new_order: list[int],
) -> Board:
    """
    Rebuild the step list from ``new_order``.

    Indices outside the current list are dropped, and steps whose index is
    missing from ``new_order`` are removed — a partial order deletes steps.
    """
    found = find_task(board, column_id, task_id)
    if found is None or found[1].steps is None:
        return board
    task = found[1]
    original = list(task.steps)
    task.steps = [original[i] for i in new_order if 0 <= i < len(original)]
    return board


# ---------------------------------------------------------------------------
# Columns
# ---------------------------------------------------------------------------


def add_column(board: Board, title: str, id_factory: IdFactory = new_id) -> Board:
    column = Column(id=id_factory(), title=title)
    board.columns.append(column)
    logger.debug("Added column {} {!r}", column.id, title)
    return board


def move_column(board: Board, from_index: int, to_index: int) -> Board:
    columns = board.columns
    if from_index == to_index or not 0 <= from_index < len(columns):
        return board
    column = columns.pop(from_index)
    columns.insert(to_index, column)
    return board


def toggle_column_archive(board: Board, column_id: str, archived: bool) -> Board:
    column = find_column(board, column_id)
    if column is not None:
        column.archived = archived
    return board
