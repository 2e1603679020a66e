import asyncio
import os
from pathlib import Path

import httpx
import uvicorn

from mdkanban.api import app

SAMPLE = """# Demo Board

## To Do

### Write parser
#core
  - priority: high
  - steps:
      - [x] scanner
      - [ ] property lines

## Done

"""


async def send_mock_requests():
    base_url = "http://127.0.0.1:8000"

    async with httpx.AsyncClient(timeout=30.0) as client:
        response = await client.get(f"{base_url}/board")
        print(f"Board: {response.status_code} - {response.json()}")
        todo, done = (c["id"] for c in response.json()["columns"])

        response = await client.post(
            f"{base_url}/columns/{todo}/tasks",
            json={"title": "Write generator", "priority": "medium", "tags": ["core"]},
        )
        print(f"Add task: {response.status_code}")
        task_id = response.json()["columns"][0]["tasks"][-1]["id"]

        response = await client.post(
            f"{base_url}/tasks/{task_id}/move",
            json={"from_column_id": todo, "to_column_id": done, "new_index": 0},
        )
        print(f"Move task: {response.status_code}")

        response = await client.post(f"{base_url}/columns", json={"title": "Later"})
        print(f"Add column: {response.status_code}")

        response = await client.get(f"{base_url}/board/markdown")
        print(f"Markdown:\n{response.text}")


async def main():
    path = Path(os.environ.setdefault("KANBAN_FILE", "demo.kanban.md"))
    if not path.exists():
        path.write_text(SAMPLE, encoding="utf-8")

    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host="127.0.0.1",
            port=8000,
            log_level="info",
        )
    )

    async def run_server():
        await server.serve()

    server_task = asyncio.create_task(run_server())

    await asyncio.sleep(2)

    await send_mock_requests()

    server.should_exit = True
    await server_task


if __name__ == "__main__":
    asyncio.run(main())
