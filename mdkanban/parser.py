"""
Markdown → Board parser.

A single forward pass over the document's lines with a small amount of
scanner state (current column, current task, three mode flags). Lines that
don't fit the open task finalize it and are classified again, so a
hand-edited document degrades gracefully instead of failing.

Dialect:

    # Board title

    ## Column title [Archived]

    ### Task title            (or "- Task title")
    #inline #tags
      - due: 2024-05-01
      - tags: [a, b]
      - priority: low|medium|high
      - workload: Easy|Normal|Hard|Extreme
      - defaultExpanded: true|false
      - steps:
          - [ ] open step
          - [x] finished step
        ```md
        Description, indented by four spaces.
        ```
"""

from __future__ import annotations

import re

from loguru import logger

from .domain import (
    Board,
    Column,
    IdFactory,
    ParseError,
    Priority,
    Step,
    Task,
    Workload,
    new_id,
)


# ---------------------------------------------------------------------------
# Line patterns
# ---------------------------------------------------------------------------

PROPERTY_KEYS = ("due", "tags", "priority", "workload", "steps", "defaultExpanded")

_KEYS = "|".join(PROPERTY_KEYS)
_PROPERTY = re.compile(rf"^\s+- ({_KEYS}):\s*(.*)$")
_PROPERTY_KEY = re.compile(rf"^\s*- ({_KEYS}):")
_STEP = re.compile(r"^\s{6,}- \[([ x])\]\s*(.*)$")
_STEP_MARKER = re.compile(r"^\s{6,}- \[[ x]\]")
_HASHTAG = re.compile(r"#[\w\-@$%]+")
_TAG_LIST = re.compile(r"\[(.*)\]")
_ARCHIVED = re.compile(r"\s*\[Archived\]$")
_FENCE = re.compile(r"^```\w*$")  # matched against the trimmed line
_FENCE_OPEN = re.compile(r"^\s+```\w*\s*$")
_DESCRIPTION_INDENT = re.compile(r"^ {1,4}")

ARCHIVED_MARKER = "[Archived]"
CHECKBOX_TOKENS = ("[ ] ", "[x] ")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_markdown(text: str, id_factory: IdFactory = new_id) -> Board:
    """
    Parse a kanban markdown document into a fresh Board.

    Every call generates new column and task ids via ``id_factory``.

    Raises:
        ParseError: Only on an internal scanner defect, never for odd input.
    """
    board = _Scanner(id_factory).run(text)
    logger.debug(
        "Parsed board {!r}: {} columns, {} tasks",
        board.title,
        len(board.columns),
        sum(len(c.tasks) for c in board.columns),
    )
    return board


def split_lines(text: str) -> list[str]:
    """Normalise CRLF / CR line endings and split."""
    return text.replace("\r\n", "\n").replace("\r", "\n").split("\n")


# ---------------------------------------------------------------------------
# Scanner
# ---------------------------------------------------------------------------


class _Scanner:
    def __init__(self, id_factory: IdFactory) -> None:
        self._new_id = id_factory
        self.board = Board()
        self.column: Column | None = None
        self.task: Task | None = None
        self.in_properties = False
        self.in_description = False
        self.in_code_block = False
        self._description: list[str] = []

    def run(self, text: str) -> Board:
        lines = split_lines(text)
        i = 0
        while i < len(lines):
            try:
                consumed = self._line(lines[i])
            except ParseError:
                raise
            except Exception as exc:
                raise ParseError(f"Unexpected parser state: {exc}", line=i + 1) from exc
            # Not consumed: the open task was finalized, classify the line again.
            if consumed:
                i += 1

        self._finalize_task()
        self._push_column()
        return self.board

    # ------------------------------------------------------------------
    # Line classification
    # ------------------------------------------------------------------

    def _line(self, line: str) -> bool:
        trimmed = line.strip()

        if self.in_code_block and not self.in_description:
            raise ParseError("Fenced block open outside a task description")

        if self.in_description and _FENCE.match(trimmed):
            self.in_code_block = not self.in_code_block
            return True

        if self.in_code_block:
            self._description.append(_DESCRIPTION_INDENT.sub("", line))
            return True

        if trimmed.startswith("# ") and not self.board.title:
            self.board.title = trimmed[2:].strip()
            self._finalize_task()
            return True

        if trimmed.startswith("## "):
            self._open_column(trimmed[3:].strip())
            return True

        if _is_task_header(line, trimmed):
            self._open_task(_task_title(trimmed))
            return True

        if self.task is not None and self.in_properties:
            if self._property_line(line, trimmed):
                return True

        if not trimmed:
            return True

        if self.task is not None and (self.in_properties or self.in_description):
            self._finalize_task()
            return False

        return True

    def _property_line(self, line: str, trimmed: str) -> bool:
        task = self.task
        assert task is not None

        if trimmed.startswith("#"):
            tags = [m[1:] for m in _HASHTAG.findall(trimmed)]
            if tags:
                task.tags.extend(tags)
                return True

        m = _PROPERTY.match(line)
        if m:
            _apply_property(task, m.group(1), m.group(2).strip())
            return True

        if task.steps is not None:
            m = _STEP.match(line)
            if m:
                task.steps.append(Step(text=m.group(2).strip(), completed=m.group(1) == "x"))
                return True

        if _FENCE_OPEN.match(line):
            self.in_properties = False
            self.in_description = True
            self.in_code_block = True
            return True

        return False

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def _open_column(self, header: str) -> None:
        self._finalize_task()
        self._push_column()

        archived = header.endswith(ARCHIVED_MARKER)
        if archived:
            header = _ARCHIVED.sub("", header).strip()

        self.column = Column(id=self._new_id(), title=header, archived=archived)

    def _open_task(self, title: str) -> None:
        self._finalize_task()
        self.task = Task(id=self._new_id(), title=title)
        self.in_properties = True

    def _finalize_task(self) -> None:
        task, column = self.task, self.column
        self.task = None
        self.in_properties = False
        self.in_description = False

        if task is None:
            return

        description = "\n".join(self._description).strip()
        self._description = []
        task.description = description or None

        if column is None:
            logger.debug("Dropping task {!r} declared before any column", task.title)
            return
        column.tasks.append(task)

    def _push_column(self) -> None:
        if self.column is not None:
            self.board.columns.append(self.column)
            self.column = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _is_task_header(line: str, trimmed: str) -> bool:
    # A bare "###" is a task with an empty title.
    if trimmed.startswith("### ") or trimmed == "###":
        return True
    if not line.startswith("- "):
        return False
    # "- due: …" at column zero is a misplaced property, not a task.
    return not (is_property_line(trimmed) or _STEP_MARKER.match(line))


def is_property_line(text: str) -> bool:
    """True for ``- due: …``-style lines, which never open a task."""
    return _PROPERTY_KEY.match(text) is not None


def _task_title(trimmed: str) -> str:
    if trimmed.startswith("###"):
        return trimmed[3:].strip()
    title = trimmed[2:].strip()
    if title.startswith(CHECKBOX_TOKENS):
        title = title[4:].strip()
    return title


def _apply_property(task: Task, key: str, value: str) -> None:
    """Set one structured property. Invalid values leave the field untouched."""
    if key == "due":
        task.due_date = value or None
    elif key == "tags":
        m = _TAG_LIST.search(value)
        if m:
            task.tags.extend(t.strip() for t in m.group(1).split(","))
    elif key == "priority":
        priority = Priority.coerce(value)
        if priority is not None:
            task.priority = priority
    elif key == "workload":
        workload = Workload.coerce(value)
        if workload is not None:
            task.workload = workload
    elif key == "defaultExpanded":
        task.default_expanded = value.lower() == "true"
    elif key == "steps":
        task.steps = []
