import json
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from todo_assistant.errors import NotFoundError, StorageError, ValidationError
from todo_assistant.importer import import_seed, load_seed_file, parse_seed
from todo_assistant.main import create_app
from todo_assistant.settings import Settings

from conftest import NOW

SEED = {
    "user_profile": {
        "name": "Alex",
        "timezone": "Asia/Shanghai",
        "work_schedule": {"start_time": "09:00", "end_time": "18:00", "work_days": ["Monday", "Tuesday"]},
    },
    "todos": [
        {
            "id": 3,
            "title": "Prepare Q3 presentation for Friday meeting",
            "priority": "high",
            "status": "in_progress",
            "category": "work",
            "created_date": "2025-03-01T09:00:00",
            "due_date": "2025-03-21T17:00:00",
            "last_updated": "2025-03-02T09:00:00",
            "estimated_duration": "4 hours",
        },
        {"id": 7, "title": "Buy groceries", "priority": "", "status": ""},
    ],
}


def write_seed(tmp_path, doc=SEED):
    path = tmp_path / "data.json"
    path.write_text(json.dumps(doc), encoding="utf-8")
    return str(path)


class TestParseSeed:
    def test_todos_keep_ids_and_timestamps(self):
        seed = parse_seed(json.dumps(SEED), now=NOW)
        first, second = seed.todos
        assert first["id"] == 3
        assert first["created_date"] == datetime(2025, 3, 1, 9)
        assert first["last_updated"] == datetime(2025, 3, 2, 9)
        assert first["due_date"] == datetime(2025, 3, 21, 17)
        assert second["priority"] == "medium"
        assert second["status"] == "pending"
        assert second["category"] == "personal"
        assert second["created_date"] == NOW
        assert second["last_updated"] == NOW

    def test_profile(self):
        seed = parse_seed(json.dumps(SEED), now=NOW)
        assert seed.profile == SEED["user_profile"]

    def test_nameless_profile_is_absent(self):
        seed = parse_seed(json.dumps({"user_profile": {"name": ""}, "todos": []}))
        assert seed.profile is None

    def test_last_updated_not_before_created(self):
        doc = {"todos": [{"id": 1, "title": "x", "created_date": "2025-03-02", "last_updated": "2025-03-01"}]}
        (todo,) = parse_seed(json.dumps(doc)).todos
        assert todo["last_updated"] == todo["created_date"]

    @pytest.mark.parametrize("raw", ["not json", '{"todos": [{"title": "no id"}]}', '{"todos": 5}'])
    def test_malformed(self, raw):
        with pytest.raises(ValidationError):
            parse_seed(raw)


class TestLoadAndImport:
    def test_missing_file(self, tmp_path):
        with pytest.raises(StorageError):
            load_seed_file(str(tmp_path / "absent.json"))

    def test_import_recovers_numbering(self, repo, tmp_path):
        count = import_seed(repo, load_seed_file(write_seed(tmp_path)))
        assert count == 2
        assert repo.get_user_profile()["name"] == "Alex"
        assert [t["id"] for t in repo.list_todos()] == [3, 7]
        assert repo.create_todo({"title": "next"})["id"] == 8


class TestStartupImport:
    def test_app_imports_seed_on_startup(self, tmp_path):
        settings = Settings(
            persistence_backend="sqlite",
            sqlite_db_path=str(tmp_path / "todos.db"),
            seed_data_path=write_seed(tmp_path),
            cors_allow_origins=["*"],
            log_level="WARNING",
            log_format="console",
        )
        with TestClient(create_app(settings=settings)) as client:
            assert client.get("/").json()["backend"] == "sqlite"
            assert [t["id"] for t in client.get("/api/todos").json()] == [3, 7]
            assert client.get("/api/profile").json()["timezone"] == "Asia/Shanghai"
            assert client.post("/api/todos", json={"title": "after seed"}).json()["id"] == 8

    def test_seeded_todo_accepts_partial_update(self, tmp_path):
        settings = Settings(
            persistence_backend="memory",
            sqlite_db_path=str(tmp_path / "unused.db"),
            seed_data_path=write_seed(tmp_path),
            cors_allow_origins=["*"],
            log_level="WARNING",
            log_format="console",
        )
        with TestClient(create_app(settings=settings)) as client:
            res = client.patch("/api/todos/7", json={"category": "errands"})
            assert res.status_code == 200
            assert res.json()["category"] == "errands"
            assert res.json()["title"] == "Buy groceries"


class TestSeedRules:
    @pytest.mark.parametrize(
        "bad",
        [
            {"id": 1, "title": "", "priority": "low"},
            {"id": 1, "title": "x", "priority": "critical"},
            {"id": 1, "title": "x", "status": "done"},
        ],
    )
    def test_invalid_todo_rejects_whole_seed(self, repo, bad):
        doc = {"user_profile": SEED["user_profile"], "todos": [SEED["todos"][1], bad]}
        with pytest.raises(ValidationError):
            import_seed(repo, parse_seed(json.dumps(doc), now=NOW))
        assert repo.list_todos() == []
        with pytest.raises(NotFoundError):
            repo.get_user_profile()
