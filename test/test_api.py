from pathlib import Path
import tempfile

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from mdkanban.api import AddColumnRequest, BoardResponse, TaskPayload, app
from mdkanban.domain import Priority


SAMPLE = """# API Board

## To Do

### First
  - priority: high
  - steps:
      - [ ] a
      - [ ] b
      - [ ] c

### Second

## Done

"""


@pytest.fixture
def temp_markdown_path():
    """Create a temporary markdown document with sample content."""
    with tempfile.NamedTemporaryFile(delete=False, suffix=".md") as f:
        path = Path(f.name)
    path.write_text(SAMPLE, encoding="utf-8")
    yield path
    if path.exists():
        path.unlink()


@pytest.fixture
def client(temp_markdown_path, monkeypatch):
    """Create a test client serving the temporary document."""
    monkeypatch.setenv("KANBAN_FILE", str(temp_markdown_path))
    monkeypatch.setenv("KANBAN_TASK_HEADER", "title")

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def ids(client):
    """Column and task ids of the freshly loaded board."""
    board = client.get("/board").json()
    todo, done = board["columns"]
    return {
        "todo": todo["id"],
        "done": done["id"],
        "first": todo["tasks"][0]["id"],
        "second": todo["tasks"][1]["id"],
    }


def test_get_board(client):
    response = client.get("/board")

    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "API Board"
    assert [c["title"] for c in data["columns"]] == ["To Do", "Done"]
    first = data["columns"][0]["tasks"][0]
    assert first["priority"] == "high"
    assert [s["text"] for s in first["steps"]] == ["a", "b", "c"]


def test_get_markdown(client):
    response = client.get("/board/markdown")

    assert response.status_code == 200
    assert response.text.startswith("# API Board\n\n## To Do\n\n### First\n")


def test_add_column(client):
    response = client.post("/columns", json={"title": "Later"})

    assert response.status_code == 201
    assert [c["title"] for c in response.json()["columns"]] == ["To Do", "Done", "Later"]


def test_add_column_empty_title_rejected(client):
    response = client.post("/columns", json={"title": ""})
    assert response.status_code == 422


def test_move_column(client):
    response = client.post("/columns/move", json={"from_index": 1, "to_index": 0})
    assert [c["title"] for c in response.json()["columns"]] == ["Done", "To Do"]


def test_archive_column(client, ids):
    response = client.post(f"/columns/{ids['done']}/archive", json={"archived": True})

    assert response.json()["columns"][1]["archived"] is True
    assert "## Done [Archived]" in client.get("/board/markdown").text


def test_add_task(client, ids):
    response = client.post(
        f"/columns/{ids['done']}/tasks",
        json={"title": "Shipped", "tags": ["v1"], "priority": "urgent", "workload": "Easy"},
    )

    assert response.status_code == 201
    task = response.json()["columns"][1]["tasks"][0]
    assert task["title"] == "Shipped"
    assert task["tags"] == ["v1"]
    assert task["priority"] is None
    assert task["workload"] == "Easy"
    assert task["id"] not in ids.values()


def test_edit_task(client, ids):
    response = client.put(
        f"/columns/{ids['todo']}/tasks/{ids['second']}",
        json={"title": "Second (edited)", "description": "Details here"},
    )

    task = response.json()["columns"][0]["tasks"][1]
    assert task["id"] == ids["second"]
    assert task["title"] == "Second (edited)"
    assert task["description"] == "Details here"
    assert "    ```md\n    Details here\n    ```" in client.get("/board/markdown").text


def test_delete_task(client, ids):
    response = client.delete(f"/columns/{ids['todo']}/tasks/{ids['first']}")
    assert [t["id"] for t in response.json()["columns"][0]["tasks"]] == [ids["second"]]


def test_move_task(client, ids):
    response = client.post(
        f"/tasks/{ids['first']}/move",
        json={"from_column_id": ids["todo"], "to_column_id": ids["done"], "new_index": 0},
    )

    todo, done = response.json()["columns"]
    assert [t["id"] for t in todo["tasks"]] == [ids["second"]]
    assert [t["id"] for t in done["tasks"]] == [ids["first"]]


def test_move_task_unknown_id_returns_unchanged_board(client, ids):
    before = client.get("/board").json()
    response = client.post(
        "/tasks/nope/move",
        json={"from_column_id": ids["todo"], "to_column_id": ids["done"], "new_index": 0},
    )

    assert response.status_code == 200
    assert response.json() == before


def test_move_task_negative_index_rejected(client, ids):
    response = client.post(
        f"/tasks/{ids['first']}/move",
        json={"from_column_id": ids["todo"], "to_column_id": ids["done"], "new_index": -1},
    )
    assert response.status_code == 422


def test_reorder_task(client, ids):
    response = client.post(
        f"/columns/{ids['todo']}/reorder", json={"old_index": 0, "new_index": 1}
    )
    assert [t["id"] for t in response.json()["columns"][0]["tasks"]] == [
        ids["second"],
        ids["first"],
    ]


def test_update_task_partial(client, ids):
    response = client.patch(f"/tasks/{ids['first']}", json={"due_date": "2024-12-24"})

    task = response.json()["columns"][0]["tasks"][0]
    assert task["due_date"] == "2024-12-24"
    assert task["priority"] == "high"


def test_update_step(client, ids):
    response = client.post(
        f"/columns/{ids['todo']}/tasks/{ids['first']}/steps/1", json={"completed": True}
    )

    steps = response.json()["columns"][0]["tasks"][0]["steps"]
    assert [s["completed"] for s in steps] == [False, True, False]
    assert "      - [x] b" in client.get("/board/markdown").text


def test_reorder_steps_partial(client, ids):
    response = client.post(
        f"/columns/{ids['todo']}/tasks/{ids['first']}/steps/reorder",
        json={"new_order": [2, 0]},
    )

    steps = response.json()["columns"][0]["tasks"][0]["steps"]
    assert [s["text"] for s in steps] == ["c", "a"]


def test_reload_replaces_board(client):
    response = client.post("/board/reload", json={"text": "# Other\n\n## Only\n"})

    assert response.status_code == 200
    data = response.json()
    assert data["reloaded"] is True
    assert data["board"]["title"] == "Other"


def test_changes_are_written_to_file(temp_markdown_path, monkeypatch):
    monkeypatch.setenv("KANBAN_FILE", str(temp_markdown_path))

    with TestClient(app) as client:
        client.post("/columns", json={"title": "Persisted"})

    assert "## Persisted" in temp_markdown_path.read_text(encoding="utf-8")


def test_list_header_style(temp_markdown_path, monkeypatch):
    monkeypatch.setenv("KANBAN_FILE", str(temp_markdown_path))
    monkeypatch.setenv("KANBAN_TASK_HEADER", "list")

    with TestClient(app) as client:
        text = client.get("/board/markdown").text

    assert "- First\n  - priority: high\n" in text


def test_task_payload_validation():
    with pytest.raises(ValidationError):
        TaskPayload(title="")

    data = TaskPayload(title="ok", priority="medium").to_task_data()
    assert data.priority is Priority.MEDIUM


def test_add_column_request_validation():
    with pytest.raises(ValidationError):
        AddColumnRequest()


def test_board_response_schema(client):
    board = BoardResponse.model_validate(client.get("/board").json())
    assert board.columns[0].tasks[0].title == "First"


@pytest.mark.parametrize("payload", [
    {"title": "x\n## Evil"},
    {"title": "ok", "due_date": "friday\n## Evil"},
    {"title": "ok", "tags": ["fine", "bad\ntag"]},
    {"title": "ok", "steps": [{"text": "one\r\n### Evil"}]},
])
def test_add_task_rejects_line_breaks_in_single_line_fields(client, ids, payload):
    response = client.post(f"/columns/{ids['todo']}/tasks", json=payload)

    assert response.status_code == 422
    todo = client.get("/board").json()["columns"][0]
    assert [t["title"] for t in todo["tasks"]] == ["First", "Second"]


def test_update_task_rejects_line_breaks(client, ids):
    response = client.patch(f"/tasks/{ids['first']}", json={"title": "a\nb"})
    assert response.status_code == 422


def test_add_column_rejects_line_breaks(client):
    response = client.post("/columns", json={"title": "Later\n### Sneaky"})
    assert response.status_code == 422


def test_multiline_description_is_accepted(client, ids):
    response = client.post(
        f"/columns/{ids['todo']}/tasks",
        json={"title": "Notes", "description": "line one\nline two"},
    )
    assert response.status_code == 201
    assert response.json()["columns"][0]["tasks"][-1]["description"] == "line one\nline two"


# ---------------------------------------------------------------------------
# New boards
# ---------------------------------------------------------------------------


@pytest.fixture
def board_dir(monkeypatch):
    """Serve a document inside a throwaway directory so new boards land there."""
    with tempfile.TemporaryDirectory() as tmp:
        directory = Path(tmp)
        (directory / "main.kanban.md").write_text(SAMPLE, encoding="utf-8")
        monkeypatch.setenv("KANBAN_FILE", str(directory / "main.kanban.md"))
        monkeypatch.setenv("KANBAN_TASK_HEADER", "title")
        yield directory


def test_new_board_creates_file_and_switches(board_dir):
    with TestClient(app) as client:
        response = client.post("/boards", json={"name": "roadmap.md"})

        assert response.status_code == 201
        data = response.json()
        assert data["title"] == "New Kanban Board"
        assert [c["title"] for c in data["columns"]] == ["To Do", "In Progress", "Done"]
        assert client.get("/board").json()["title"] == "New Kanban Board"

        client.post("/columns", json={"title": "Later"})

    created = (board_dir / "roadmap.kanban.md").read_text(encoding="utf-8")
    assert "## Later" in created
    assert "## Later" not in (board_dir / "main.kanban.md").read_text(encoding="utf-8")


def test_new_board_refuses_existing_file(board_dir):
    (board_dir / "taken.kanban.md").write_text("# Mine\n", encoding="utf-8")

    with TestClient(app) as client:
        response = client.post("/boards", json={"name": "taken"})

        assert response.status_code == 409
        assert client.get("/board").json()["title"] == "API Board"

    assert (board_dir / "taken.kanban.md").read_text(encoding="utf-8") == "# Mine\n"


@pytest.mark.parametrize("name", ["../escape", "a\\b", ".kanban.md", "   "])
def test_new_board_rejects_bad_names(board_dir, name):
    with TestClient(app) as client:
        response = client.post("/boards", json={"name": name})
        assert response.status_code == 422

    assert sorted(p.name for p in board_dir.iterdir()) == ["main.kanban.md"]
