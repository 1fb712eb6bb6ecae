import threading
from datetime import datetime, timedelta

import pytest

from todo_assistant.errors import NotFoundError, TodoNotFoundError, ValidationError
from todo_assistant.repositories import IdAllocator, InMemoryRepository

from conftest import NOW


def stored(todo_id, title="Seeded", priority="medium", due=None):
    return {
        "id": todo_id,
        "title": title,
        "description": "",
        "priority": priority,
        "status": "pending",
        "category": "personal",
        "created_date": NOW - timedelta(days=1),
        "due_date": due,
        "last_updated": NOW - timedelta(days=1),
        "estimated_duration": "",
    }


def profile():
    return {
        "name": "Alex",
        "timezone": "Asia/Shanghai",
        "work_schedule": {"start_time": "09:00", "end_time": "18:00", "work_days": ["Monday", "Tuesday"]},
    }


class TestIdAllocator:
    def test_empty_store_starts_at_one(self):
        assert IdAllocator().allocate() == 1

    def test_resumes_after_highest_id(self):
        ids = IdAllocator([1, 3, 7])
        assert ids.peek() == 8
        assert ids.allocate() == 8
        assert ids.allocate() == 9

    def test_observe_only_moves_forward(self):
        ids = IdAllocator([5])
        ids.observe(2)
        assert ids.peek() == 6
        ids.observe(10)
        assert ids.peek() == 11


class TestCreate:
    def test_defaults_are_injected(self, repo):
        created = repo.create_todo({"title": "x"})
        assert created["priority"] == "medium"
        assert created["status"] == "pending"
        assert created["category"] == "personal"
        assert created["description"] == ""
        assert created["due_date"] is None

    def test_empty_strings_get_defaults(self, repo):
        created = repo.create_todo({"title": "x", "priority": "", "status": "", "category": ""})
        assert (created["priority"], created["status"], created["category"]) == ("medium", "pending", "personal")

    def test_caller_id_and_timestamps_are_ignored(self, repo, clock):
        created = repo.create_todo(
            {"id": 42, "title": "x", "created_date": datetime(2000, 1, 1), "last_updated": datetime(2000, 1, 1)}
        )
        assert created["id"] == 1
        assert created["created_date"] == clock.now
        assert created["last_updated"] == clock.now

    def test_round_trip(self, repo):
        created = repo.create_todo(
            {
                "title": "Write report",
                "description": "Quarterly numbers",
                "priority": "high",
                "status": "in_progress",
                "category": "work",
                "due_date": "2025-03-20T17:30:00",
                "estimated_duration": "3 hours",
            }
        )
        assert repo.get_todo(created["id"]) == created
        assert created["due_date"] == datetime(2025, 3, 20, 17, 30)

    def test_title_is_required(self, repo):
        with pytest.raises(ValidationError):
            repo.create_todo({"title": "   "})
        with pytest.raises(ValidationError):
            repo.create_todo({})
        assert repo.list_todos() == []

    @pytest.mark.parametrize(
        "field,value",
        [("priority", "critical"), ("status", "done"), ("due_date", "next tuesday")],
    )
    def test_malformed_values_are_rejected(self, repo, field, value):
        with pytest.raises(ValidationError):
            repo.create_todo({"title": "x", field: value})
        assert repo.list_todos() == []
        # A rejected create does not consume an id
        assert repo.create_todo({"title": "y"})["id"] == 1

    def test_ids_are_unique_across_deletes(self, repo):
        first = [repo.create_todo({"title": f"t{i}"})["id"] for i in range(3)]
        for todo_id in first:
            repo.delete_todo(todo_id)
        later = [repo.create_todo({"title": f"u{i}"})["id"] for i in range(3)]
        assert first == [1, 2, 3]
        assert later == [4, 5, 6]

    def test_concurrent_creates_get_distinct_ids(self, repo):
        results = []
        lock = threading.Lock()

        def worker(n):
            for i in range(20):
                todo_id = repo.create_todo({"title": f"w{n}-{i}"})["id"]
                with lock:
                    results.append(todo_id)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(results) == list(range(1, 101))
        assert len(repo.list_todos()) == 100


class TestReadAndList:
    def test_get_unknown_id(self, repo):
        with pytest.raises(TodoNotFoundError) as exc:
            repo.get_todo(999)
        assert exc.value.todo_id == 999
        assert exc.value.kind == "NotFound"
        assert exc.value.detail == "Todo not found"

    def test_list_orders_by_priority_then_due_date(self, repo):
        a = repo.create_todo({"title": "A", "priority": "high", "due_date": "2025-03-16"})
        b = repo.create_todo({"title": "B", "priority": "urgent", "due_date": "2025-03-19"})
        c = repo.create_todo({"title": "C", "priority": "high", "due_date": "2025-03-15"})
        assert [t["id"] for t in repo.list_todos()] == [b["id"], c["id"], a["id"]]

    def test_list_keeps_undated_item_in_place(self, repo):
        d = repo.create_todo({"title": "D", "priority": "medium"})
        e = repo.create_todo({"title": "E", "priority": "medium", "due_date": "2025-03-15"})
        assert [t["id"] for t in repo.list_todos()] == [d["id"], e["id"]]

    def test_list_returns_copies(self, repo):
        created = repo.create_todo({"title": "original"})
        listed = repo.list_todos()
        listed[0]["title"] = "mutated"
        listed.clear()
        assert repo.get_todo(created["id"])["title"] == "original"

    def test_get_returns_copy(self, repo):
        created = repo.create_todo({"title": "original"})
        fetched = repo.get_todo(created["id"])
        fetched["priority"] = "low"
        assert repo.get_todo(created["id"])["priority"] == "medium"


class TestUpdate:
    def test_full_replace_keeps_created_date(self, repo, clock):
        created = repo.create_todo({"title": "draft", "priority": "low", "category": "work"})
        clock.advance(hours=2)
        updated = repo.update_todo(
            {
                "id": created["id"],
                "title": "final",
                "priority": "urgent",
                "status": "completed",
                "created_date": datetime(1999, 1, 1),
                "last_updated": datetime(1999, 1, 1),
            }
        )
        assert updated["created_date"] == created["created_date"]
        assert updated["last_updated"] == clock.now
        assert updated["title"] == "final"
        assert updated["status"] == "completed"
        # Not a patch: omitted fields fall back to defaults
        assert updated["category"] == "personal"
        assert repo.get_todo(created["id"]) == updated

    def test_last_updated_never_moves_back(self, repo, clock):
        created = repo.create_todo({"title": "x"})
        clock.advance(hours=-3)
        updated = repo.update_todo({"id": created["id"], "title": "y"})
        assert updated["last_updated"] >= created["last_updated"]
        assert updated["last_updated"] >= updated["created_date"]

    def test_unknown_id(self, repo):
        with pytest.raises(NotFoundError):
            repo.update_todo({"id": 999, "title": "x"})

    def test_missing_id(self, repo):
        with pytest.raises(ValidationError):
            repo.update_todo({"title": "x"})

    def test_invalid_update_leaves_record_untouched(self, repo):
        created = repo.create_todo({"title": "keep me"})
        with pytest.raises(ValidationError):
            repo.update_todo({"id": created["id"], "title": "x", "priority": "someday"})
        assert repo.get_todo(created["id"]) == created

    def test_update_loses_race_with_delete(self, repo):
        created = repo.create_todo({"title": "x"})
        repo.delete_todo(created["id"])
        with pytest.raises(NotFoundError):
            repo.update_todo({"id": created["id"], "title": "y"})


class TestDelete:
    def test_delete_unknown_id_leaves_collection(self, repo):
        repo.create_todo({"title": "a"})
        repo.create_todo({"title": "b"})
        with pytest.raises(NotFoundError):
            repo.delete_todo(999)
        assert len(repo.list_todos()) == 2

    def test_delete_is_permanent(self, repo):
        created = repo.create_todo({"title": "a"})
        repo.delete_todo(created["id"])
        with pytest.raises(NotFoundError):
            repo.get_todo(created["id"])
        with pytest.raises(NotFoundError):
            repo.delete_todo(created["id"])


class TestProfile:
    def test_unset_profile(self, repo):
        with pytest.raises(NotFoundError) as exc:
            repo.get_user_profile()
        assert not isinstance(exc.value, TodoNotFoundError)
        assert exc.value.detail == "user profile not found"

    def test_set_and_get(self, repo):
        repo.set_user_profile(profile())
        assert repo.get_user_profile() == profile()

    def test_profile_is_returned_as_copy(self, repo):
        repo.set_user_profile(profile())
        fetched = repo.get_user_profile()
        fetched["work_schedule"]["work_days"].append("Sunday")
        assert repo.get_user_profile()["work_schedule"]["work_days"] == ["Monday", "Tuesday"]

    def test_set_replaces_previous(self, repo):
        repo.set_user_profile(profile())
        other = profile()
        other["name"] = "Sam"
        repo.set_user_profile(other)
        assert repo.get_user_profile()["name"] == "Sam"


class TestImport:
    def test_import_keeps_ids_and_advances_numbering(self, repo):
        count = repo.import_todos([stored(1), stored(3), stored(7)])
        assert count == 3
        assert repo.get_todo(3)["created_date"] == NOW - timedelta(days=1)
        assert repo.create_todo({"title": "next"})["id"] == 8

    def test_import_replaces_existing_id(self, repo):
        repo.import_todos([stored(1, title="old")])
        repo.import_todos([stored(1, title="new")])
        assert repo.get_todo(1)["title"] == "new"
        assert len(repo.list_todos()) == 1

    def test_import_sets_profile_with_todos(self, repo):
        repo.import_todos([stored(2)], profile=profile())
        assert repo.get_user_profile() == profile()
        assert repo.get_todo(2)["title"] == "Seeded"

    def test_import_fills_empty_enumerations(self, repo):
        record = stored(1)
        record.update(priority="", status="", category="")
        repo.import_todos([record])
        todo = repo.get_todo(1)
        assert (todo["priority"], todo["status"], todo["category"]) == ("medium", "pending", "personal")

    @pytest.mark.parametrize(
        "field,value",
        [("title", ""), ("title", "   "), ("priority", "critical"), ("status", "done"), ("id", None)],
    )
    def test_import_rejects_invalid_records(self, repo, field, value):
        bad = stored(2)
        bad[field] = value
        with pytest.raises(ValidationError):
            repo.import_todos([stored(1), bad], profile=profile())
        # Nothing from the batch is written, profile included
        assert repo.list_todos() == []
        with pytest.raises(NotFoundError):
            repo.get_user_profile()

    def test_imported_record_can_be_updated(self, repo):
        repo.import_todos([stored(4, title="legacy", priority="low")])
        merged = dict(repo.get_todo(4), category="work")
        assert repo.update_todo(merged)["category"] == "work"


class TestInMemorySeeding:
    def test_id_recovery_from_snapshot(self):
        repo = InMemoryRepository(todos=[stored(1), stored(3), stored(7)])
        assert repo.create_todo({"title": "x"})["id"] == 8

    def test_snapshot_is_copied(self):
        seed = [stored(1)]
        repo = InMemoryRepository(todos=seed)
        seed[0]["title"] = "changed outside"
        assert repo.get_todo(1)["title"] == "Seeded"
        assert len(repo) == 1
