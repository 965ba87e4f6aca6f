"""Tests for the /api HTTP endpoints."""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from animated_todo.crud import TaskStorage
from animated_todo.database import get_engine
from animated_todo.main import create_app
from animated_todo.models import as_utc

TOO_BIG = 2**70


@pytest.fixture
def storage(tmp_path):
    return TaskStorage(get_engine(f"sqlite:///{tmp_path / 'todos.db'}"))


@pytest.fixture
def client(storage):
    return TestClient(create_app(storage))


def create(client, **fields):
    response = client.post("/api/todos", json=fields)
    assert response.status_code == 201, response.text
    return response.json()


def parse_timestamp(value):
    return as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def listed_ids(client, **params):
    response = client.get("/api/todos", params=params)
    assert response.status_code == 200
    return [task["id"] for task in response.json()]


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_ready(client):
    response = client.get("/api/ready")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_ready_reports_unavailable_database(client, monkeypatch):
    monkeypatch.setattr("animated_todo.api.health.ping", lambda engine: False)

    response = client.get("/api/ready")
    assert response.status_code == 503
    assert response.json() == {"ok": False}


def test_create_task_defaults(client):
    task = create(client, title="  Water plants ")

    assert task["title"] == "Water plants"
    assert task["notes"] == ""
    assert task["priority"] == "medium"
    assert task["due_date"] is None
    assert task["tags"] == ""
    assert task["is_completed"] is False
    assert task["deleted_at"] is None
    assert task["created_at"] == task["updated_at"]


def test_create_task_with_fields(client):
    task = create(
        client,
        title="Plan trip",
        notes="book hotel",
        priority="high",
        due_date="2025-07-04",
        tags=["travel", "summer"],
    )

    assert task["priority"] == "high"
    assert task["due_date"] == "2025-07-04"
    assert task["tags"] == "travel,summer"


@pytest.mark.parametrize("body", [{}, {"title": ""}, {"title": "   "}, {"title": None}])
def test_create_requires_title(client, storage, body):
    response = client.post("/api/todos", json=body)

    assert response.status_code == 400
    assert response.json() == {"detail": "Title is required"}
    assert storage.list_tasks() == []


def test_create_rejects_bad_priority(client, storage):
    response = client.post("/api/todos", json={"title": "x", "priority": "urgent"})
    assert response.status_code == 400
    assert storage.list_tasks() == []


def test_create_rejects_out_of_range_sort_order(client, storage):
    response = client.post("/api/todos", json={"title": "y", "sort_order": TOO_BIG})

    assert response.status_code == 400
    assert response.json()["detail"][0]["loc"] == ["body", "sort_order"]
    assert storage.list_tasks() == []


def test_patch_rejects_out_of_range_sort_order(client, storage):
    task = create(client, title="Keep")

    response = client.patch(f"/api/todos/{task['id']}", json={"sort_order": TOO_BIG})

    assert response.status_code == 400
    assert storage.get_task_by_id(task["id"]).sort_order == task["sort_order"]


def test_get_task(client):
    task = create(client, title="Read")

    response = client.get(f"/api/todos/{task['id']}")
    assert response.status_code == 200
    assert response.json() == task


@pytest.mark.parametrize("task_id", ["999", "abc", "1.5", "-1", "99999999999999999999999"])
def test_get_missing_task(client, task_id):
    response = client.get(f"/api/todos/{task_id}")
    assert response.status_code == 404
    assert response.json() == {"detail": "Task not found"}


def test_list_filters(client):
    work = create(client, title="Report", tags="work,personal", priority="high")
    create(client, title="Homework", tags="homework")
    done = create(client, title="Done report", is_completed=True)

    assert listed_ids(client, tag="work") == [work["id"]]
    assert listed_ids(client, q="REPORT") == [work["id"], done["id"]]
    assert listed_ids(client, status="completed") == [done["id"]]
    assert listed_ids(client, priority="high") == [work["id"]]
    assert listed_ids(client, priority="", status="") == listed_ids(client)


@pytest.mark.parametrize("params", [{"status": "pending"}, {"priority": "urgent"}])
def test_list_rejects_unknown_choices(client, params):
    response = client.get("/api/todos", params=params)
    assert response.status_code == 400


def test_patch_task(client):
    task = create(client, title="Draft", notes="v1", due_date="2025-01-01", tags="a")

    response = client.patch(
        f"/api/todos/{task['id']}",
        json={"is_completed": True, "due_date": "", "tags": ["b", "c"]},
    )
    assert response.status_code == 200
    updated = response.json()
    assert updated["is_completed"] is True
    assert updated["due_date"] is None
    assert updated["tags"] == "b,c"
    assert updated["notes"] == "v1"
    assert updated["title"] == "Draft"
    assert parse_timestamp(updated["updated_at"]) > parse_timestamp(task["updated_at"])


def test_patch_allows_blank_title(client):
    task = create(client, title="Draft")

    response = client.patch(f"/api/todos/{task['id']}", json={"title": "  "})
    assert response.status_code == 200
    assert response.json()["title"] == ""


@pytest.mark.parametrize("task_id", ["999", "abc"])
def test_patch_missing_task(client, task_id):
    response = client.patch(f"/api/todos/{task_id}", json={"title": "x"})
    assert response.status_code == 404


def test_delete_task(client):
    task = create(client, title="Temporary")

    response = client.delete(f"/api/todos/{task['id']}")
    assert response.status_code == 204
    assert response.content == b""

    assert listed_ids(client) == []
    fetched = client.get(f"/api/todos/{task['id']}").json()
    assert fetched["deleted_at"] is not None

    assert client.delete(f"/api/todos/{task['id']}").status_code == 204
    assert client.get(f"/api/todos/{task['id']}").json() == fetched


@pytest.mark.parametrize("task_id", ["999", "abc"])
def test_delete_missing_task(client, task_id):
    assert client.delete(f"/api/todos/{task_id}").status_code == 204


def test_reorder(client):
    one = create(client, title="One")
    two = create(client, title="Two")
    three = create(client, title="Three")

    response = client.post("/api/todos/reorder", json={"ids": [three["id"], one["id"], two["id"]]})
    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert listed_ids(client) == [three["id"], one["id"], two["id"]]


@pytest.mark.parametrize("body", [
    {},
    {"ids": "1,2"},
    {"ids": [1, "two"]},
    {"ids": None},
    {"ids": [1, TOO_BIG]},
    {"ids": [-TOO_BIG]},
])
def test_reorder_rejects_bad_payload(client, storage, body):
    one = create(client, title="One")
    two = create(client, title="Two")

    response = client.post("/api/todos/reorder", json=body)
    assert response.status_code == 400
    assert storage.get_task_by_id(one["id"]).sort_order == one["sort_order"]
    assert storage.get_task_by_id(two["id"]).sort_order == two["sort_order"]


def test_purge(client):
    gone = create(client, title="Gone")
    kept = create(client, title="Kept")
    client.delete(f"/api/todos/{gone['id']}")

    response = client.post("/api/todos/purge")
    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert client.get(f"/api/todos/{gone['id']}").status_code == 404
    assert client.get(f"/api/todos/{kept['id']}").status_code == 200


def test_database_errors_are_opaque(client, storage, monkeypatch):
    def broken(**kwargs):
        raise OperationalError("SELECT * FROM todos", {}, Exception("disk I/O error"))

    monkeypatch.setattr(storage, "list_tasks", broken)

    response = client.get("/api/todos")
    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
