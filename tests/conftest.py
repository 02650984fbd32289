import pytest
from fastapi.testclient import TestClient

from todo_api.main import app
from todo_api.repositories import FlatFileRepository


@pytest.fixture
def store_path(tmp_path, monkeypatch):
    """
    Point the service at a fresh snapshot file for each test. The file itself is
    not created; the first write does that.
    """
    path = tmp_path / "todos.json"
    monkeypatch.setenv("TODO_STORE_PATH", str(path))
    return path


@pytest.fixture
def repo(store_path):
    return FlatFileRepository(str(store_path))


@pytest.fixture
def client(store_path):
    """A TestClient whose repository dependency resolves to the per-test snapshot."""
    return TestClient(app)
