from pathlib import Path

import pytest

from mdkanban.config import Settings
from mdkanban.domain import InvalidTaskHeaderError, TaskHeaderStyle


def test_defaults(monkeypatch):
    for var in ("KANBAN_FILE", "KANBAN_TASK_HEADER", "KANBAN_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)

    settings = Settings.from_env()

    assert settings.file == Path("board.kanban.md")
    assert settings.task_header is TaskHeaderStyle.TITLE
    assert settings.log_level == "INFO"


def test_from_env(monkeypatch):
    monkeypatch.setenv("KANBAN_FILE", "/tmp/work.md")
    monkeypatch.setenv("KANBAN_TASK_HEADER", "list")
    monkeypatch.setenv("KANBAN_LOG_LEVEL", "debug")

    settings = Settings.from_env()

    assert settings.file == Path("/tmp/work.md")
    assert settings.task_header is TaskHeaderStyle.LIST
    assert settings.log_level == "DEBUG"


def test_unknown_task_header(monkeypatch):
    monkeypatch.setenv("KANBAN_TASK_HEADER", "table")

    with pytest.raises(InvalidTaskHeaderError, match="table"):
        Settings.from_env()
