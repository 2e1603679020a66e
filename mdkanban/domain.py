"""
Core domain: Board, Column, Task, Step, id generation and board exceptions.

Nothing here imports from the rest of the package — this is the
innermost layer and has zero side-effects.
"""

from __future__ import annotations

import itertools
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable


# ---------------------------------------------------------------------------
# Ids
# ---------------------------------------------------------------------------

IdFactory = Callable[[], str]


def new_id() -> str:
    """Session-local identifier. Never written to the markdown file."""
    return uuid.uuid4().hex[:9]


def counter_ids(prefix: str = "id") -> IdFactory:
    """Deterministic id factory: ``prefix-1``, ``prefix-2``, …"""
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def coerce(cls, value: Any) -> Priority | None:
        """Return the matching member, or None for anything not in the enum."""
        try:
            return cls(value)
        except ValueError:
            return None


class Workload(str, Enum):
    EASY = "Easy"
    NORMAL = "Normal"
    HARD = "Hard"
    EXTREME = "Extreme"

    @classmethod
    def coerce(cls, value: Any) -> Workload | None:
        try:
            return cls(value)
        except ValueError:
            return None


class TaskHeaderStyle(str, Enum):
    """How task headers are written: ``### Title`` or ``- Title``."""

    TITLE = "title"
    LIST = "list"


# ---------------------------------------------------------------------------
# Step / Task / Column / Board
# ---------------------------------------------------------------------------


@dataclass
class Step:
    """A checkbox sub-item of a task."""

    text: str
    completed: bool = False


@dataclass
class Task:
    """
    A single card on the board.

    Attributes:
        id: Session-local identifier (regenerated on every parse).
        title: Header text of the task.
        description: Trimmed multi-line text, or None. Never an empty string.
        tags: Tags in insertion order; duplicates are kept.
        priority: One of low/medium/high, or None.
        workload: One of Easy/Normal/Hard/Extreme, or None.
        due_date: Free-form due date, not validated.
        default_expanded: Whether the card opens expanded; None when unset.
        steps: Checklist; None when the task has no ``steps:`` property.
    """

    id: str
    title: str
    description: str | None = None
    tags: list[str] = field(default_factory=list)
    priority: Priority | None = None
    workload: Workload | None = None
    due_date: str | None = None
    default_expanded: bool | None = None
    steps: list[Step] | None = None

    def to_dict(self, include_ids: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "title": self.title,
            "description": self.description,
            "tags": list(self.tags),
            "priority": self.priority.value if self.priority else None,
            "workload": self.workload.value if self.workload else None,
            "due_date": self.due_date,
            "default_expanded": self.default_expanded,
            "steps": (
                [{"text": s.text, "completed": s.completed} for s in self.steps]
                if self.steps is not None
                else None
            ),
        }
        if include_ids:
            data = {"id": self.id, **data}
        return data


@dataclass
class Column:
    id: str
    title: str
    tasks: list[Task] = field(default_factory=list)
    archived: bool = False

    def to_dict(self, include_ids: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "title": self.title,
            "archived": self.archived,
            "tasks": [t.to_dict(include_ids) for t in self.tasks],
        }
        if include_ids:
            data = {"id": self.id, **data}
        return data


@dataclass
class Board:
    """Root value: a title plus an ordered list of columns."""

    title: str = ""
    columns: list[Column] = field(default_factory=list)

    def to_dict(self, include_ids: bool = True) -> dict[str, Any]:
        return {
            "title": self.title,
            "columns": [c.to_dict(include_ids) for c in self.columns],
        }

    def strip_ids(self) -> dict[str, Any]:
        """Plain structure without ids, for comparing two parses of one text."""
        return self.to_dict(include_ids=False)


ERROR_BOARD_TITLE = "Error Loading Board"


def error_board() -> Board:
    return Board(title=ERROR_BOARD_TITLE)


def fingerprint(board: Board | None) -> str:
    """Cheap structural digest: column ids, archive flags and task id order."""
    if board is None:
        return ""
    return "|".join(
        f"{col.id}:{'A' if col.archived else ''}[{','.join(t.id for t in col.tasks)}]"
        for col in board.columns
    )


# ---------------------------------------------------------------------------
# TaskData
# ---------------------------------------------------------------------------


@dataclass
class TaskData:
    """
    Editable fields of a task, as sent by a client for add/edit.

    Enum fields accept raw strings; values outside the enum are dropped.
    """

    title: str = ""
    description: str | None = None
    tags: list[str] = field(default_factory=list)
    priority: Priority | str | None = None
    workload: Workload | str | None = None
    due_date: str | None = None
    default_expanded: bool | None = None
    steps: list[Step] | None = None

    def __post_init__(self) -> None:
        self.priority = Priority.coerce(self.priority)
        self.workload = Workload.coerce(self.workload)
        if self.description is not None:
            self.description = self.description.strip() or None
        if self.steps is not None:
            self.steps = [
                s if isinstance(s, Step) else Step(**s) for s in self.steps
            ]


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class BoardError(Exception):
    """Base for all board-specific errors."""


class ParseError(BoardError):
    """Raised when the parser reaches a state it should never be in."""

    def __init__(self, message: str, line: int | None = None) -> None:
        where = f" (line {line})" if line is not None else ""
        super().__init__(f"{message}{where}")
        self.message = message
        self.line = line


class InvalidTaskHeaderError(BoardError):
    def __init__(self, value: str) -> None:
        allowed = ", ".join(s.value for s in TaskHeaderStyle)
        super().__init__(f"Unknown task header style '{value}' (allowed: {allowed}).")
        self.value = value


class InvalidBoardNameError(BoardError):
    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Invalid board name '{name}': {reason}.")
        self.name = name


class BoardFileExistsError(BoardError):
    def __init__(self, path: Any) -> None:
        super().__init__(f"File {path} already exists.")
        self.path = path
