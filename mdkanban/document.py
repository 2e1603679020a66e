"""
KanbanDocument — one board bound to one markdown document.

Responsibilities:
  - Load: parse document text into a Board (error board on parser defects)
  - Create: write the starter board to a new file, never over an existing one
  - Apply mutation operations to the latest board
  - Persist: regenerate the whole text and hand it to a write sink
  - Keep saves strictly FIFO with at most one write in flight
  - Ignore external re-reads while local saves are still queued
  - Fire hooks (board update, saved, save failed, load error)

Mutations are synchronous and take effect immediately; only the writes are
queued. A failed write is logged and releases the queue, and the in-memory
board keeps its state.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable

from loguru import logger

from .domain import (
    Board,
    BoardError,
    BoardFileExistsError,
    IdFactory,
    ParseError,
    TaskHeaderStyle,
    error_board,
    fingerprint,
    new_id,
)
from .generator import generate_markdown
from .hooks import AsyncHookFn, HookRegistry
from .parser import parse_markdown
from .templates import KANBAN_TEMPLATE


WriteSink = Callable[[str], Awaitable[None]]
Operation = Callable[..., Board]


class NoBoardLoadedError(BoardError):
    def __init__(self) -> None:
        super().__init__("No board loaded; call load() first.")


def file_sink(path: Path) -> WriteSink:
    """Write sink replacing the whole file with UTF-8 text."""

    async def write(text: str) -> None:
        await asyncio.to_thread(path.write_text, text, encoding="utf-8")
        logger.debug("Persisted → {}", path)

    return write


class KanbanDocument:
    """
    Args:
        sink:         Async callable receiving the full regenerated text.
                      Pass ``None`` to disable persistence (useful in tests).
        task_header:  Task header style used when generating markdown.
        id_factory:   Id generator for parsing and insertions.
        hooks:        Initial hook registrations, keyed by event name.
    """

    def __init__(
        self,
        sink: WriteSink | None = None,
        task_header: TaskHeaderStyle | str = TaskHeaderStyle.TITLE,
        id_factory: IdFactory = new_id,
        hooks: dict[str, list[AsyncHookFn]] | None = None,
    ) -> None:
        self._board: Board | None = None
        self.path: Path | None = None
        self._sink = sink
        self._task_header = TaskHeaderStyle(task_header)
        self._id_factory = id_factory
        self._lock = asyncio.Lock()
        self._tail: asyncio.Task[None] | None = None
        self._pending = 0
        self._last_sent = ""
        self._hook_registry = HookRegistry()
        if hooks:
            for event, hook_list in hooks.items():
                for hook in hook_list:
                    self._hook_registry.register(event, hook)

    @classmethod
    async def open(cls, path: Path, **kwargs: Any) -> KanbanDocument:
        """Load ``path`` (empty board if missing) and save back to it."""
        doc = cls(sink=file_sink(path), **kwargs)
        doc.path = path
        text = path.read_text(encoding="utf-8") if path.exists() else ""
        await doc.load(text)
        logger.info("Board loaded from {}", path)
        return doc

    @classmethod
    async def create(cls, path: Path, **kwargs: Any) -> KanbanDocument:
        """
        Write the starter board to ``path`` and open it.

        Raises:
            BoardFileExistsError: ``path`` already exists; it is left untouched.
        """
        if path.exists():
            raise BoardFileExistsError(path)
        await file_sink(path)(KANBAN_TEMPLATE)
        logger.info("Created new kanban board {}", path)
        return await cls.open(path, **kwargs)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def board(self) -> Board:
        if self._board is None:
            raise NoBoardLoadedError()
        return self._board

    @property
    def task_header(self) -> TaskHeaderStyle:
        return self._task_header

    @property
    def id_factory(self) -> IdFactory:
        return self._id_factory

    @property
    def pending_saves(self) -> int:
        return self._pending

    @property
    def is_saving(self) -> bool:
        """True while any queued save has not finished."""
        return self._pending > 0

    async def load(self, text: str) -> Board:
        """
        Replace the board with a fresh parse of ``text``.

        A parser defect never propagates: the board falls back to
        "Error Loading Board" and ``on_load_error`` fires.
        """
        try:
            board = parse_markdown(text, self._id_factory)
        except ParseError as exc:
            logger.error("Kanban parsing error: {}", exc)
            self._board = error_board()
            await self._hook_registry.fire("on_load_error", self._board)
        else:
            self._board = board
        await self._notify(force=True)
        return self._board

    async def external_change(self, text: str) -> bool:
        """
        React to the document being re-read from outside.

        Returns False (and keeps the in-memory board) while local saves are
        queued, since the re-read may be older than the board.
        """
        if self.is_saving:
            logger.warning(
                "Ignoring external change: {} save(s) still pending", self._pending
            )
            return False
        await self.load(text)
        return True

    async def apply(self, operation: Operation, *args: Any, **kwargs: Any) -> Board:
        """
        Run a mutation from ``operations`` against the latest board and queue a save.

        Example:
            await doc.apply(operations.move_task, task_id, src, dst, 0)
        """
        board = self.board
        operation(board, *args, **kwargs)
        logger.debug("Applied {}", getattr(operation, "__name__", operation))
        self._enqueue_save()
        await self._notify()
        return board

    def markdown(self) -> str:
        return generate_markdown(self.board, self._task_header)

    async def drain(self) -> None:
        """Wait until every queued save has finished."""
        while self._tail is not None and not self._tail.done():
            await asyncio.wait([self._tail])

    # ------------------------------------------------------------------
    # Save queue
    # ------------------------------------------------------------------

    def _enqueue_save(self) -> None:
        self._pending += 1
        self._tail = asyncio.create_task(self._save_after(self._tail))

    async def _save_after(self, previous: asyncio.Task[None] | None) -> None:
        try:
            if previous is not None:
                # asyncio.wait never re-raises the previous save's outcome
                await asyncio.wait([previous])
            async with self._lock:
                await self._write()
        except Exception as exc:
            logger.error("Error saving board: {}", exc)
            await self._hook_registry.fire("on_save_failed", self.board)
        else:
            await self._hook_registry.fire("on_saved", self.board)
        finally:
            self._pending -= 1

    async def _write(self) -> None:
        if self._sink is None or self._board is None:
            return
        await self._sink(generate_markdown(self._board, self._task_header))

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    async def _notify(self, force: bool = False) -> None:
        """Fire on_board_update when the board structure changed."""
        current = fingerprint(self._board)
        if not force and current == self._last_sent:
            return
        self._last_sent = current
        await self._hook_registry.fire("on_board_update", self.board)
