import json
import os
import stat
import threading
from datetime import datetime, timedelta, timezone

import pytest

from todo_api import services
from todo_api.errors import NotFoundError, StoreUnavailableError, ValidationError
from todo_api.models import Todo
from todo_api.repositories import PAGE_SIZE, FlatFileRepository, ListQuery, get_repository


def seed(repo, names, start=None):
    base = start or datetime(2025, 1, 1, tzinfo=timezone.utc)
    todos = []
    for i, name in enumerate(names):
        todo = Todo.create(name, now=base + timedelta(minutes=i))
        repo.save(todo)
        todos.append(todo)
    return todos


def seed_records(repo, names, start=None):
    """Save todos built directly, so names shorter than the create() minimum work too."""
    base = start or datetime(2025, 1, 1, tzinfo=timezone.utc)
    for i, name in enumerate(names):
        ts = base + timedelta(minutes=i)
        repo.save(Todo(id=f"todo-{i}", name=name, created_at=ts, updated_at=ts))


def read_snapshot(path):
    with open(path, encoding="utf-8") as f:
        return json.load(f)


class TestSnapshotFile:
    def test_missing_file_reads_as_empty(self, repo, store_path):
        assert not store_path.exists()
        assert len(repo.find_all()) == 0

    def test_first_save_creates_flat_array(self, repo, store_path):
        todo = Todo.create("abc")
        repo.save(todo)
        data = read_snapshot(store_path)
        assert isinstance(data, list)
        assert data == [todo.to_dto()]

    def test_parent_directory_created_on_write(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "todos.json"
        repo = FlatFileRepository(str(path))
        repo.save(Todo.create("abc"))
        assert path.exists()

    def test_no_temp_files_left_behind(self, repo, store_path):
        seed(repo, ["aaa", "bbb", "ccc"])
        repo.remove(repo.find_all().todos[0].id)
        assert sorted(os.listdir(store_path.parent)) == ["todos.json"]

    def test_malformed_json_is_store_error(self, repo, store_path):
        store_path.write_text("{not json", encoding="utf-8")
        with pytest.raises(StoreUnavailableError):
            repo.find_all()

    def test_non_array_snapshot_is_store_error(self, repo, store_path):
        store_path.write_text(json.dumps({"todos": []}), encoding="utf-8")
        with pytest.raises(StoreUnavailableError):
            repo.find_by_id("anything")

    def test_malformed_record_is_store_error(self, repo, store_path):
        store_path.write_text(json.dumps([{"id": "x"}]), encoding="utf-8")
        with pytest.raises(StoreUnavailableError):
            repo.save(Todo.create("abc"))

    def test_unreadable_path_is_store_error(self, tmp_path):
        repo = FlatFileRepository(str(tmp_path))
        with pytest.raises(StoreUnavailableError):
            repo.find_all()

    def test_failed_write_keeps_previous_snapshot(self, repo, store_path, monkeypatch):
        seed(repo, ["aaa"])
        before = store_path.read_text(encoding="utf-8")

        def broken_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", broken_replace)
        with pytest.raises(StoreUnavailableError):
            repo.save(Todo.create("bbb"))
        monkeypatch.undo()

        assert store_path.read_text(encoding="utf-8") == before
        assert sorted(os.listdir(store_path.parent)) == ["todos.json"]


class TestSave:
    def test_rewrite_keeps_file_mode(self, repo, store_path):
        seed(repo, ["aaa"])
        os.chmod(store_path, 0o640)
        repo.save(Todo.create("bbb"))
        assert stat.S_IMODE(os.stat(store_path).st_mode) == 0o640

    def test_new_snapshot_is_world_readable(self, repo, store_path):
        seed(repo, ["aaa"])
        assert stat.S_IMODE(os.stat(store_path).st_mode) == 0o644

    def test_save_replaces_existing_record(self, repo, store_path):
        (todo,) = seed(repo, ["abc"])
        repo.save(todo.mark_done())
        data = read_snapshot(store_path)
        assert len(data) == 1
        assert data[0]["isDone"] is True

    def test_concurrent_saves_lose_nothing(self, repo, store_path):
        def worker(n):
            for i in range(10):
                repo.save(Todo.create(f"worker {n} item {i}"))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        data = read_snapshot(store_path)
        assert len(data) == 80
        assert len({d["id"] for d in data}) == 80


class TestFindAll:
    def test_sort_by_name(self, repo):
        seed_records(repo, ["b", "a", "c"])
        asc = repo.find_all(ListQuery(field="name", order="asc"))
        desc = repo.find_all(ListQuery(field="name", order="desc"))
        assert [t.name for t in asc] == ["a", "b", "c"]
        assert [t.name for t in desc] == ["c", "b", "a"]

    def test_name_sort_ignores_case(self, repo):
        seed(repo, ["banana", "Apple", "cherry"])
        assert [t.name for t in repo.find_all()] == ["Apple", "banana", "cherry"]

    def test_name_sort_ignores_accents(self, repo):
        seed(repo, ["zebra", "Éclair", "apple", "eclair"])
        asc = repo.find_all(ListQuery(field="name", order="asc"))
        assert [t.name for t in asc] == ["apple", "eclair", "Éclair", "zebra"]

    def test_sort_by_created_at(self, repo):
        seed(repo, ["zzz", "yyy", "xxx"])
        asc = repo.find_all(ListQuery(field="createdAt", order="asc"))
        desc = repo.find_all(ListQuery(field="createdAt", order="desc"))
        assert [t.name for t in asc] == ["zzz", "yyy", "xxx"]
        assert [t.name for t in desc] == ["xxx", "yyy", "zzz"]

    def test_sort_by_updated_at_and_is_done(self, repo):
        first, second, third = seed(repo, ["aaa", "bbb", "ccc"])
        repo.save(first.mark_done(now=datetime(2030, 1, 1, tzinfo=timezone.utc)))

        by_updated = repo.find_all(ListQuery(field="updatedAt", order="desc"))
        assert [t.name for t in by_updated] == ["aaa", "ccc", "bbb"]

        by_done = repo.find_all(ListQuery(field="isDone", order="asc"))
        assert [t.is_done for t in by_done] == [False, False, True]

    def test_pagination(self, repo):
        seed(repo, [f"task {i:02d}" for i in range(15)])
        page1 = repo.find_all(ListQuery(page=1))
        page2 = repo.find_all(ListQuery(page=2))
        page3 = repo.find_all(ListQuery(page=3))

        assert len(page1) == PAGE_SIZE == 10
        assert [t.name for t in page1] == [f"task {i:02d}" for i in range(10)]
        assert [t.name for t in page2] == [f"task {i:02d}" for i in range(10, 15)]
        assert len(page3) == 0

    def test_is_done_survives_listing(self, repo):
        (todo,) = seed(repo, ["abc"])
        repo.save(todo.mark_done())
        (listed,) = repo.find_all().todos
        assert listed.is_done is True

    def test_listed_records_round_trip(self, repo):
        (todo,) = seed(repo, ["abc"])
        (listed,) = repo.find_all().todos
        assert listed == todo

    @pytest.mark.parametrize(
        "query",
        [
            ListQuery(field="title"),
            ListQuery(field="id"),
            ListQuery(order="up"),
            ListQuery(page=0),
        ],
    )
    def test_invalid_query_rejected(self, repo, query):
        with pytest.raises(ValidationError):
            repo.find_all(query)


class TestFindAndRemove:
    def test_find_by_id(self, repo):
        _, todo, _ = seed(repo, ["aaa", "bbb", "ccc"])
        assert repo.find_by_id(todo.id) == todo

    def test_find_by_unknown_id(self, repo):
        seed(repo, ["aaa"])
        with pytest.raises(NotFoundError):
            repo.find_by_id("does-not-exist")

    def test_remove(self, repo, store_path):
        keep, drop = seed(repo, ["keep", "drop"])
        assert repo.remove(drop.id) is True
        assert [d["id"] for d in read_snapshot(store_path)] == [keep.id]

    def test_remove_unknown_id_is_noop(self, repo, store_path):
        seed(repo, ["aaa"])
        before = store_path.read_text(encoding="utf-8")
        assert repo.remove("does-not-exist") is False
        assert store_path.read_text(encoding="utf-8") == before


class TestServices:
    def test_create_then_list(self, repo):
        created = services.create_todo(repo, "abc")
        for field in ("name", "createdAt", "updatedAt", "isDone"):
            listed = services.list_todos(repo, page=1, field=field, order="asc")["todos"]
            matching = [t for t in listed if t["name"] == "abc"]
            assert len(matching) == 1
            assert matching[0]["isDone"] is False
            assert matching[0]["id"] == created["id"]

    def test_create_rejects_short_name(self, repo, store_path):
        with pytest.raises(ValidationError):
            services.create_todo(repo, "ab")
        assert not store_path.exists()

    def test_complete_is_idempotent(self, repo, store_path):
        created = services.create_todo(repo, "abc")
        first = services.complete_todo(repo, created["id"])
        second = services.complete_todo(repo, created["id"])

        assert repo.find_by_id(created["id"]).is_done is True
        assert first["isDone"] is True and second["isDone"] is True
        assert first["updatedAt"] == second["updatedAt"]
        assert len(read_snapshot(store_path)) == 1

    def test_complete_unknown_id(self, repo):
        with pytest.raises(NotFoundError):
            services.complete_todo(repo, "nope")

    def test_get_todo(self, repo):
        created = services.create_todo(repo, "abc")
        assert services.get_todo(repo, created["id"]) == created

    def test_remove_then_find(self, repo):
        created = services.create_todo(repo, "abc")
        services.remove_todo(repo, created["id"])
        with pytest.raises(NotFoundError):
            repo.find_by_id(created["id"])
        # second removal is a no-op
        services.remove_todo(repo, created["id"])


class TestGetRepository:
    def test_same_instance_per_path(self, store_path):
        assert get_repository() is get_repository()
        assert get_repository().path == os.path.abspath(str(store_path))

    def test_follows_configured_path(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TODO_STORE_PATH", str(tmp_path / "a.json"))
        first = get_repository()
        monkeypatch.setenv("TODO_STORE_PATH", str(tmp_path / "b.json"))
        assert get_repository() is not first
