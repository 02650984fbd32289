from __future__ import annotations

import json
import logging
import os
import stat
import tempfile
import unicodedata
from contextlib import contextmanager
from dataclasses import dataclass
from functools import lru_cache
from threading import RLock
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from .errors import NotFoundError, StoreUnavailableError, ValidationError
from .models import Todo, TodoCollection, TodoDTO
from .settings import get_settings
from .utils import page_bounds

logger = logging.getLogger(__name__)

PAGE_SIZE = 10

SORT_ORDERS = ("asc", "desc")

DEFAULT_FILE_MODE = 0o644


def _name_sort_key(todo: Todo) -> Tuple[str, str]:
    """
    Collation-style key: accents and case are ignored, the raw name breaks ties.
    """
    decomposed = unicodedata.normalize("NFKD", todo.name)
    folded = "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()
    return folded, todo.name


# Allow-listed sortable fields (wire names) mapped to their sort keys
SORT_KEYS: Dict[str, Callable[[Todo], Any]] = {
    "name": _name_sort_key,
    "createdAt": lambda t: t.created_at,
    "updatedAt": lambda t: t.updated_at,
    "isDone": lambda t: t.is_done,
}


@dataclass(frozen=True)
class ListQuery:
    """
    Query parameters for listing todos.
    """
    page: int = 1
    field: str = "name"  # allowed: name, createdAt, updatedAt, isDone
    order: str = "asc"  # allowed: asc, desc

    def validate(self) -> None:
        errors = []
        if self.field not in SORT_KEYS:
            errors.append(
                {
                    "loc": ["query", "field"],
                    "msg": f"field must be one of: {', '.join(SORT_KEYS)}",
                    "type": "value_error",
                }
            )
        if self.order not in SORT_ORDERS:
            errors.append(
                {"loc": ["query", "order"], "msg": "order must be 'asc' or 'desc'", "type": "value_error"}
            )
        if self.page < 1:
            errors.append({"loc": ["query", "page"], "msg": "page must be >= 1", "type": "value_error"})
        if errors:
            raise ValidationError("Invalid list query", errors=errors)


class FlatFileRepository:
    """
    Todo store backed by a single JSON file holding the full snapshot.

    Every operation reads the whole file; mutations rewrite it through a temp
    file and an atomic rename. All operations on one instance are serialized
    by a re-entrant lock.
    """

    def __init__(self, path: str) -> None:
        self._path = path
        self._lock = RLock()

    @property
    def path(self) -> str:
        return self._path

    @contextmanager
    def locked(self) -> Iterator["FlatFileRepository"]:
        """
        Hold the store lock across several operations (e.g. find then save).
        """
        with self._lock:
            yield self

    def _read_snapshot(self) -> List[Dict[str, Any]]:
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            # Created by the first write
            return []
        except (OSError, ValueError) as exc:
            logger.exception("Failed to read todo snapshot %s", self._path)
            raise StoreUnavailableError(f"Cannot read todo snapshot {self._path}") from exc

        if not isinstance(data, list):
            logger.error("Todo snapshot %s is not a JSON array", self._path)
            raise StoreUnavailableError(f"Todo snapshot {self._path} is not a JSON array")
        return data

    def _load(self) -> List[Todo]:
        raw = self._read_snapshot()
        try:
            return [Todo.from_dto(item) for item in raw]
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.exception("Malformed record in todo snapshot %s", self._path)
            raise StoreUnavailableError(f"Malformed record in todo snapshot {self._path}") from exc

    def _file_mode(self) -> int:
        # Keep the permissions of the snapshot being replaced
        try:
            return stat.S_IMODE(os.stat(self._path).st_mode)
        except FileNotFoundError:
            return DEFAULT_FILE_MODE

    def _write(self, todos: List[Todo]) -> None:
        payload: List[TodoDTO] = [t.to_dto() for t in todos]
        directory = os.path.dirname(os.path.abspath(self._path))
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=directory,
                prefix=f".{os.path.basename(self._path)}.",
                suffix=".tmp",
                delete=False,
            ) as tf:
                tmp_path = tf.name
                json.dump(payload, tf, ensure_ascii=False)
                tf.flush()
                os.fsync(tf.fileno())
            os.chmod(tmp_path, self._file_mode())
            os.replace(tmp_path, self._path)
        except OSError as exc:
            logger.exception("Failed to write todo snapshot %s", self._path)
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise StoreUnavailableError(f"Cannot write todo snapshot {self._path}") from exc
        logger.debug("Wrote %d todos to %s", len(payload), self._path)

    def save(self, todo: Todo) -> Todo:
        """
        Insert the todo, or replace the stored record with the same id.
        """
        with self._lock:
            todos = self._load()
            for i, existing in enumerate(todos):
                if existing.id == todo.id:
                    todos[i] = todo
                    break
            else:
                todos.append(todo)
            self._write(todos)
        logger.info("Saved todo %s", todo.id)
        return todo

    def find_all(self, query: Optional[ListQuery] = None) -> TodoCollection:
        """
        Return one page of todos after sorting the whole snapshot.

        Raises:
            ValidationError: unknown sort field/order or page < 1.
        """
        q = query or ListQuery()
        q.validate()
        with self._lock:
            todos = self._load()

        items_sorted = sorted(todos, key=SORT_KEYS[q.field], reverse=q.order == "desc")
        start, end = page_bounds(q.page, PAGE_SIZE)

        collection = TodoCollection()
        for todo in items_sorted[start:end]:
            collection.add(todo)
        return collection

    def find_by_id(self, todo_id: str) -> Todo:
        with self._lock:
            todos = self._load()
        for todo in todos:
            if todo.id == todo_id:
                return todo
        raise NotFoundError(todo_id)

    def remove(self, todo_id: str) -> bool:
        """
        Drop the todo with the given id. Returns False (and leaves the file alone)
        when no such todo exists.
        """
        with self._lock:
            todos = self._load()
            remaining = [t for t in todos if t.id != todo_id]
            if len(remaining) == len(todos):
                return False
            self._write(remaining)
        logger.info("Removed todo %s", todo_id)
        return True


@lru_cache(maxsize=None)
def _repository_for(path: str) -> FlatFileRepository:
    return FlatFileRepository(path)


# PUBLIC_INTERFACE
def get_repository() -> FlatFileRepository:
    """
    Return the process-wide repository for the configured snapshot path.

    One instance per path so every request shares the same lock.
    """
    settings = get_settings()
    return _repository_for(os.path.abspath(settings.store_path))
