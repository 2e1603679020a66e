"""
FastAPI REST API — thin HTTP wrapper over KanbanDocument.

Responsibilities (only):
  - Parse and validate HTTP input (via Pydantic request schemas)
  - Delegate to the document / board operations
  - Translate board exceptions → HTTP status codes
  - Serialise Board → response schema

Parsing, generation and mutation semantics live in parser.py,
generator.py and operations.py — nothing is duplicated here. Requests for
unknown ids are no-ops and return the unchanged board.

Endpoints:
  GET    /board                                   Board (ids included)
  GET    /board/markdown                          Current markdown text
  POST   /board/reload                            Re-read text from outside
  POST   /columns                                 Add a column
  POST   /columns/move                            Move a column by index
  POST   /columns/{id}/archive                    Set archived flag
  POST   /columns/{id}/reorder                    Reorder a task inside a column
  POST   /columns/{id}/tasks                      Add a task
  PUT    /columns/{cid}/tasks/{tid}               Edit a task (all fields)
  DELETE /columns/{cid}/tasks/{tid}               Delete a task
  POST   /columns/{cid}/tasks/{tid}/steps/reorder Reorder / drop steps
  POST   /columns/{cid}/tasks/{tid}/steps/{i}     Check / uncheck a step
  POST   /tasks/{id}/move                         Move a task between columns
  PATCH  /tasks/{id}                              Partial task update
  POST   /boards                                  Create <name>.kanban.md and switch to it
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from . import operations
from .config import Settings, configure_logging
from .document import KanbanDocument, NoBoardLoadedError
from .domain import (
    Board,
    BoardError,
    BoardFileExistsError,
    Column,
    InvalidBoardNameError,
    InvalidTaskHeaderError,
    Priority,
    Step,
    Task,
    TaskData,
    Workload,
)
from .hooks import AsyncHookFn, log_board_update
from .templates import board_file_name


# ---------------------------------------------------------------------------
# Shared document instance (created once at startup)
# ---------------------------------------------------------------------------

_document: KanbanDocument | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _document
    settings = Settings.from_env()
    configure_logging(settings.log_level)

    _document = await KanbanDocument.open(
        settings.file,
        task_header=settings.task_header,
        hooks=_default_hooks(),
    )

    yield

    # Flush queued saves before shutdown
    await _document.drain()


def _default_hooks() -> dict[str, list[AsyncHookFn]]:
    return {"on_board_update": [log_board_update]}


def get_document() -> KanbanDocument:
    assert _document is not None, "Document not initialised"
    return _document


DocumentDep = Annotated[KanbanDocument, Depends(get_document)]


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------


# Titles, tags, due dates and step texts each occupy one markdown line.
SINGLE_LINE = r"^[^\n\r]*$"
SingleLine = Annotated[str, Field(pattern=SINGLE_LINE)]


class StepModel(BaseModel):
    text: SingleLine
    completed: bool = False


class TaskPayload(BaseModel):
    """
    Request body for adding or editing a task.

    Priority and workload values outside their enums are dropped rather
    than rejected.
    """

    title: str = Field(..., min_length=1, pattern=SINGLE_LINE)
    description: str | None = None
    tags: list[SingleLine] = Field(default_factory=list)
    priority: str | None = None
    workload: str | None = None
    due_date: SingleLine | None = None
    default_expanded: bool | None = None
    steps: list[StepModel] | None = None

    def to_task_data(self) -> TaskData:
        return TaskData(
            title=self.title,
            description=self.description,
            tags=self.tags,
            priority=self.priority,
            workload=self.workload,
            due_date=self.due_date,
            default_expanded=self.default_expanded,
            steps=(
                [Step(s.text, s.completed) for s in self.steps]
                if self.steps is not None
                else None
            ),
        )


class TaskUpdate(BaseModel):
    """Partial update: only fields present in the body are applied."""

    title: str | None = Field(default=None, min_length=1, pattern=SINGLE_LINE)
    description: str | None = None
    tags: list[SingleLine] | None = None
    priority: str | None = None
    workload: str | None = None
    due_date: SingleLine | None = None
    default_expanded: bool | None = None
    steps: list[StepModel] | None = None


class MoveTaskRequest(BaseModel):
    from_column_id: str
    to_column_id: str
    new_index: int = Field(..., ge=0)


class ReorderTaskRequest(BaseModel):
    old_index: int = Field(..., ge=0)
    new_index: int = Field(..., ge=0)


class AddColumnRequest(BaseModel):
    title: str = Field(..., min_length=1, pattern=SINGLE_LINE)


class NewBoardRequest(BaseModel):
    name: str = Field(..., min_length=1, pattern=SINGLE_LINE)


class MoveColumnRequest(BaseModel):
    from_index: int = Field(..., ge=0)
    to_index: int = Field(..., ge=0)


class ArchiveRequest(BaseModel):
    archived: bool


class StepUpdateRequest(BaseModel):
    completed: bool


class StepOrderRequest(BaseModel):
    new_order: list[int]


class ReloadRequest(BaseModel):
    text: str


class TaskResponse(BaseModel):
    id: str
    title: str
    description: str | None
    tags: list[str]
    priority: Priority | None
    workload: Workload | None
    due_date: str | None
    default_expanded: bool | None
    steps: list[StepModel] | None

    @classmethod
    def from_task(cls, task: Task) -> "TaskResponse":
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            tags=task.tags,
            priority=task.priority,
            workload=task.workload,
            due_date=task.due_date,
            default_expanded=task.default_expanded,
            steps=(
                [StepModel(text=s.text, completed=s.completed) for s in task.steps]
                if task.steps is not None
                else None
            ),
        )


class ColumnResponse(BaseModel):
    id: str
    title: str
    archived: bool
    tasks: list[TaskResponse]

    @classmethod
    def from_column(cls, column: Column) -> "ColumnResponse":
        return cls(
            id=column.id,
            title=column.title,
            archived=column.archived,
            tasks=[TaskResponse.from_task(t) for t in column.tasks],
        )


class BoardResponse(BaseModel):
    title: str
    columns: list[ColumnResponse]

    @classmethod
    def from_board(cls, board: Board) -> "BoardResponse":
        return cls(
            title=board.title,
            columns=[ColumnResponse.from_column(c) for c in board.columns],
        )


class ReloadResponse(BaseModel):
    reloaded: bool
    board: BoardResponse


# ---------------------------------------------------------------------------
# Exception → HTTP translation
# ---------------------------------------------------------------------------


def _http(exc: BoardError) -> HTTPException:
    """Map domain exceptions to appropriate HTTP status codes."""
    if isinstance(exc, NoBoardLoadedError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, BoardFileExistsError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, (InvalidTaskHeaderError, InvalidBoardNameError)):
        return HTTPException(status_code=422, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


async def _apply(doc: KanbanDocument, operation, *args) -> BoardResponse:
    try:
        board = await doc.apply(operation, *args)
    except BoardError as exc:
        raise _http(exc)
    return BoardResponse.from_board(board)


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Markdown Kanban API",
    version="1.0.0",
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/board", response_model=BoardResponse)
def get_board(doc: DocumentDep) -> BoardResponse:
    try:
        return BoardResponse.from_board(doc.board)
    except BoardError as exc:
        raise _http(exc)


@app.get("/board/markdown", response_class=PlainTextResponse)
def get_markdown(doc: DocumentDep) -> str:
    try:
        return doc.markdown()
    except BoardError as exc:
        raise _http(exc)


@app.post("/board/reload", response_model=ReloadResponse)
async def reload_board(body: ReloadRequest, doc: DocumentDep) -> ReloadResponse:
    """
    Hand the document text as re-read from outside.

    Ignored (``reloaded: false``) while local saves are still pending.
    """
    reloaded = await doc.external_change(body.text)
    return ReloadResponse(reloaded=reloaded, board=BoardResponse.from_board(doc.board))


@app.post("/columns", response_model=BoardResponse, status_code=201)
async def add_column(body: AddColumnRequest, doc: DocumentDep) -> BoardResponse:
    return await _apply(doc, operations.add_column, body.title)


@app.post("/columns/move", response_model=BoardResponse)
async def move_column(body: MoveColumnRequest, doc: DocumentDep) -> BoardResponse:
    return await _apply(doc, operations.move_column, body.from_index, body.to_index)


@app.post("/columns/{column_id}/archive", response_model=BoardResponse)
async def archive_column(
    column_id: str, body: ArchiveRequest, doc: DocumentDep
) -> BoardResponse:
    return await _apply(doc, operations.toggle_column_archive, column_id, body.archived)


@app.post("/columns/{column_id}/reorder", response_model=BoardResponse)
async def reorder_task(
    column_id: str, body: ReorderTaskRequest, doc: DocumentDep
) -> BoardResponse:
    return await _apply(
        doc, operations.reorder_task, column_id, body.old_index, body.new_index
    )


@app.post("/columns/{column_id}/tasks", response_model=BoardResponse, status_code=201)
async def add_task(column_id: str, body: TaskPayload, doc: DocumentDep) -> BoardResponse:
    return await _apply(
        doc, operations.add_task, column_id, body.to_task_data(), doc.id_factory
    )


@app.put("/columns/{column_id}/tasks/{task_id}", response_model=BoardResponse)
async def edit_task(
    column_id: str, task_id: str, body: TaskPayload, doc: DocumentDep
) -> BoardResponse:
    return await _apply(
        doc, operations.edit_task, task_id, column_id, body.to_task_data()
    )


@app.delete("/columns/{column_id}/tasks/{task_id}", response_model=BoardResponse)
async def delete_task(column_id: str, task_id: str, doc: DocumentDep) -> BoardResponse:
    return await _apply(doc, operations.delete_task, task_id, column_id)


@app.post(
    "/columns/{column_id}/tasks/{task_id}/steps/reorder", response_model=BoardResponse
)
async def reorder_steps(
    column_id: str, task_id: str, body: StepOrderRequest, doc: DocumentDep
) -> BoardResponse:
    return await _apply(
        doc, operations.reorder_task_steps, task_id, column_id, body.new_order
    )


@app.post(
    "/columns/{column_id}/tasks/{task_id}/steps/{step_index}",
    response_model=BoardResponse,
)
async def update_step(
    column_id: str,
    task_id: str,
    step_index: int,
    body: StepUpdateRequest,
    doc: DocumentDep,
) -> BoardResponse:
    return await _apply(
        doc, operations.update_task_step, task_id, column_id, step_index, body.completed
    )


@app.post("/tasks/{task_id}/move", response_model=BoardResponse)
async def move_task(task_id: str, body: MoveTaskRequest, doc: DocumentDep) -> BoardResponse:
    return await _apply(
        doc,
        operations.move_task,
        task_id,
        body.from_column_id,
        body.to_column_id,
        body.new_index,
    )


@app.patch("/tasks/{task_id}", response_model=BoardResponse)
async def update_task(task_id: str, body: TaskUpdate, doc: DocumentDep) -> BoardResponse:
    updates = body.model_dump(exclude_unset=True)
    return await _apply(doc, operations.update_task, task_id, updates)


@app.post("/boards", response_model=BoardResponse, status_code=201)
async def new_board(body: NewBoardRequest, doc: DocumentDep) -> BoardResponse:
    """
    Create ``<name>.kanban.md`` from the starter template next to the current
    document, then serve it instead. An existing file is never overwritten.
    """
    global _document
    directory = doc.path.parent if doc.path is not None else Path(".")
    try:
        path = directory / board_file_name(body.name)
        created = await KanbanDocument.create(
            path, task_header=doc.task_header, hooks=_default_hooks()
        )
    except BoardError as exc:
        raise _http(exc)

    await doc.drain()
    _document = created
    return BoardResponse.from_board(created.board)
