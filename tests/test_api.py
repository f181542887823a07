# tests/test_api.py

from __future__ import annotations

from dataclasses import replace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from tasklist.app.main import create_app
from tasklist.config import Settings
from tasklist.domain.errors import StorageUnavailableError

from fakes import FlakyStore


@pytest.fixture()
def client(settings: Settings):
    with TestClient(create_app(settings)) as c:
        yield c


def test_health_reports_loaded(client: TestClient) -> None:
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "state": "loaded"}


def test_task_crud_flow(client: TestClient) -> None:
    a = client.post("/api/tasks", json={"title": "Buy milk"}).json()
    b = client.post("/api/tasks", json={"title": "Walk dog"}).json()

    r = client.patch(f"/api/tasks/{a['id']}", json={"title": "Buy oat milk"})
    assert r.status_code == 200
    assert r.json() == {"id": a["id"], "title": "Buy oat milk"}

    r = client.delete(f"/api/tasks/{b['id']}")
    assert r.status_code == 204

    assert client.get("/api/tasks").json() == [{"id": a["id"], "title": "Buy oat milk"}]
    assert client.post("/api/tasks/reload").json() == [{"id": a["id"], "title": "Buy oat milk"}]


def test_request_id_header_is_echoed(client: TestClient) -> None:
    r = client.get("/api/tasks", headers={"x-request-id": "req-1"})
    assert r.headers["X-Request-ID"] == "req-1"


@pytest.mark.parametrize("title", ["", "   "])
def test_blank_titles_are_rejected(client: TestClient, title: str) -> None:
    assert client.post("/api/tasks", json={"title": title}).status_code == 422
    assert client.get("/api/tasks").json() == []


def test_unknown_task_is_404(client: TestClient) -> None:
    assert client.patch("/api/tasks/nope", json={"title": "x"}).status_code == 404
    assert client.delete("/api/tasks/nope").status_code == 404


def test_tasks_survive_restart(settings: Settings) -> None:
    with TestClient(create_app(settings)) as c:
        c.post("/api/tasks", json={"title": "persisted"})

    with TestClient(create_app(settings)) as c:
        assert [t["title"] for t in c.get("/api/tasks").json()] == ["persisted"]


def test_background_flushes_deferred_writes(settings: Settings) -> None:
    with TestClient(create_app(replace(settings, autosave=False))) as c:
        c.post("/api/tasks", json={"title": "buffered"})
        assert c.post("/api/lifecycle/background").json() == {"flushed": True}
        assert c.post("/api/lifecycle/background").json() == {"flushed": False}


def test_store_failure_maps_to_503(settings: Settings) -> None:
    store = FlakyStore()
    with TestClient(create_app(settings, store=store)) as c:
        task = c.post("/api/tasks", json={"title": "kept"}).json()
        store.fail_writes = True

        assert c.post("/api/tasks", json={"title": "lost"}).status_code == 503
        assert c.patch(f"/api/tasks/{task['id']}", json={"title": "x"}).status_code == 503
        assert c.delete(f"/api/tasks/{task['id']}").status_code == 503
        assert c.get("/api/tasks").json() == [task]


def test_startup_fails_when_store_cannot_open(settings: Settings) -> None:
    settings.db_path.mkdir(parents=True)

    with pytest.raises(StorageUnavailableError):
        with TestClient(create_app(settings)):
            pass


def test_row_events_stream_over_websocket(client: TestClient) -> None:
    first = client.post("/api/tasks", json={"title": "A"}).json()

    with client.websocket_connect("/ws/rows") as ws:
        assert ws.receive_json() == {"type": "reload", "tasks": [first]}

        second = client.post("/api/tasks", json={"title": "B"}).json()
        assert ws.receive_json() == {"type": "insert", "index": 1, "task": second}

        client.patch(f"/api/tasks/{first['id']}", json={"title": "A2"})
        assert ws.receive_json() == {"type": "update", "index": 0, "task": {"id": first["id"], "title": "A2"}}

        client.delete(f"/api/tasks/{second['id']}")
        assert ws.receive_json() == {"type": "remove", "index": 1}


def test_failed_background_flush_reloads_from_store(settings: Settings) -> None:
    app = create_app(replace(settings, autosave=False))
    with TestClient(app) as c:
        c.post("/api/tasks", json={"title": "buffered"})

        async def broken_commit():
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        app.state.store._session.commit = broken_commit

        assert c.post("/api/lifecycle/background").status_code == 503
        assert c.get("/api/tasks").json() == []
