from __future__ import annotations

from typing import Any, Dict, List, Optional


class TodoError(Exception):
    """Base class for errors raised by the todo domain and store."""


# PUBLIC_INTERFACE
class ValidationError(TodoError):
    """
    Raised when input has the wrong shape or is out of range.

    `errors` mirrors the pydantic/FastAPI error list format so the HTTP layer can
    report domain and request validation failures the same way.
    """

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors if errors is not None else [{"loc": [], "msg": message, "type": "value_error"}]


# PUBLIC_INTERFACE
class NotFoundError(TodoError):
    """Raised when a todo id is not present in the snapshot."""

    def __init__(self, todo_id: str) -> None:
        super().__init__(f"Todo {todo_id!r} not found")
        self.todo_id = todo_id


# PUBLIC_INTERFACE
class StoreUnavailableError(TodoError):
    """Raised when the snapshot file cannot be read, parsed or written."""
