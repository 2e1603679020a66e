"""
Hooks system — decouple side effects from document logic.

The document fires events; listeners react (push the board to a view,
show a notification, …). Nothing inside document.py knows or cares
what happens downstream.
"""

from __future__ import annotations

from typing import Awaitable, Callable

from loguru import logger

from .domain import Board


AsyncHookFn = Callable[[Board], Awaitable[None]]

EVENTS = ("on_board_update", "on_saved", "on_save_failed", "on_load_error")


class HookRegistry:
    """Maps event names to lists of async callables."""

    def __init__(self) -> None:
        self._hooks: dict[str, list[AsyncHookFn]] = {event: [] for event in EVENTS}

    def register(self, event: str, hook: AsyncHookFn) -> None:
        if event not in self._hooks:
            raise ValueError(f"Unknown hook event: {event}")
        self._hooks[event].append(hook)

    async def fire(self, event: str, board: Board) -> None:
        for hook in self._hooks.get(event, []):
            try:
                await hook(board)
            except Exception as e:
                logger.error(f"Hook {event} failed: {e}")


async def log_board_update(board: Board) -> None:
    """Built-in hook: logs every structural board change."""
    logger.info(
        f"Board {board.title!r} updated: "
        f"{', '.join(f'{c.title}({len(c.tasks)})' for c in board.columns)}"
    )
