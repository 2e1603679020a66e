"""
Environment configuration.

    KANBAN_FILE          Markdown document served by the API (default: board.kanban.md)
    KANBAN_TASK_HEADER   "title" (### Task) or "list" (- Task), default "title"
    KANBAN_LOG_LEVEL     loguru level, default INFO
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, field_validator

from .domain import InvalidTaskHeaderError, TaskHeaderStyle


class Settings(BaseModel):
    file: Path = Path("board.kanban.md")
    task_header: TaskHeaderStyle = TaskHeaderStyle.TITLE
    log_level: str = "INFO"

    @field_validator("task_header", mode="before")
    @classmethod
    def _check_task_header(cls, value: object) -> object:
        if isinstance(value, str) and value not in {s.value for s in TaskHeaderStyle}:
            raise InvalidTaskHeaderError(value)
        return value

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            file=Path(os.getenv("KANBAN_FILE", "board.kanban.md")),
            task_header=os.getenv("KANBAN_TASK_HEADER", TaskHeaderStyle.TITLE.value),
            log_level=os.getenv("KANBAN_LOG_LEVEL", "INFO").upper(),
        )


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level)
