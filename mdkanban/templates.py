"""
Starter document for new boards and the ``<name>.kanban.md`` naming rule.
"""

from __future__ import annotations

from .domain import InvalidBoardNameError

KANBAN_SUFFIX = ".kanban.md"

KANBAN_TEMPLATE = """# New Kanban Board

## To Do

### Welcome to Markdown Kanban
  - tags: [getting-started]
  - priority: high
    ```md
    This is your first kanban board! You can:
    - Drag tasks between columns
    - Add tags, priorities, and due dates
    - Create steps with checkboxes
    - Archive completed columns
    ```

### Create your first task
  - tags: [todo]
  - priority: medium
  - steps:
      - [ ] Click on a task to edit it
      - [ ] Drag tasks to move them
      - [ ] Add new columns as needed

## In Progress

## Done

"""


def board_file_name(name: str) -> str:
    """
    Turn a user-supplied board name into ``<name>.kanban.md``.

    A trailing ``.kanban.md`` or ``.md`` is dropped first, so "roadmap",
    "roadmap.md" and "roadmap.kanban.md" all give the same file.

    Raises:
        InvalidBoardNameError: Empty name, or one containing a path separator.
    """
    if "/" in name or "\\" in name:
        raise InvalidBoardNameError(name, "must not contain path separators")
    stem = name.strip()
    if stem.endswith(KANBAN_SUFFIX):
        stem = stem[: -len(KANBAN_SUFFIX)]
    if stem.endswith(".md"):
        stem = stem[:-3]
    if not stem.strip():
        raise InvalidBoardNameError(name, "must not be empty")
    return f"{stem}{KANBAN_SUFFIX}"
