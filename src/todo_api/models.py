from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional, TypedDict

from .errors import ValidationError

NAME_MIN_LENGTH = 3
NAME_MAX_LENGTH = 255


# PUBLIC_INTERFACE
class TodoDTO(TypedDict):
    """
    Storage and wire representation of a Todo.

    Fields:
    - id: Opaque unique identifier (UUID4 string)
    - name: Human readable label (3..255 chars)
    - createdAt: ISO8601 creation timestamp
    - updatedAt: ISO8601 last mutation timestamp
    - isDone: Completion flag
    """

    id: str
    name: str
    createdAt: str
    updatedAt: str
    isDone: bool


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: str) -> datetime:
    # fromisoformat only understands a trailing 'Z' from 3.11 on
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class Todo:
    """
    A single todo record. Instances are immutable; state changes return a new Todo.
    """

    id: str
    name: str
    created_at: datetime
    updated_at: datetime
    is_done: bool = False

    @classmethod
    def create(cls, name: str, now: Optional[datetime] = None) -> "Todo":
        """
        Build a new, not-done Todo with a fresh id.

        Raises:
            ValidationError: if the name length is outside 3..255.
        """
        if not isinstance(name, str) or not (NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH):
            raise ValidationError(
                f"name length must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters",
                errors=[
                    {
                        "loc": ["name"],
                        "msg": f"name length must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters",
                        "type": "value_error",
                    }
                ],
            )
        ts = now or _utcnow()
        return cls(id=str(uuid.uuid4()), name=name, created_at=ts, updated_at=ts, is_done=False)

    def mark_done(self, now: Optional[datetime] = None) -> "Todo":
        """
        Return this todo marked as done. Already-done todos come back unchanged.
        """
        if self.is_done:
            return self
        return replace(self, is_done=True, updated_at=now or _utcnow())

    def to_dto(self) -> TodoDTO:
        return {
            "id": self.id,
            "name": self.name,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "isDone": self.is_done,
        }

    @classmethod
    def from_dto(cls, dto: Dict) -> "Todo":
        """
        Rebuild a Todo from its stored form. Every field is carried over.

        Raises KeyError/TypeError/ValueError on malformed input.
        """
        is_done = dto.get("isDone", False)
        if not isinstance(is_done, bool):
            raise TypeError("isDone must be a boolean")
        return cls(
            id=str(dto["id"]),
            name=str(dto["name"]),
            created_at=_parse_timestamp(dto["createdAt"]),
            updated_at=_parse_timestamp(dto["updatedAt"]),
            is_done=is_done,
        )


# PUBLIC_INTERFACE
@dataclass
class TodoCollection:
    """Ordered, transient group of todos returned by list queries."""

    todos: List[Todo] = field(default_factory=list)

    def add(self, todo: Todo) -> None:
        # No duplicate-id check; order is insertion order
        self.todos.append(todo)

    def __iter__(self) -> Iterator[Todo]:
        return iter(self.todos)

    def __len__(self) -> int:
        return len(self.todos)

    def to_dto(self) -> Dict[str, List[TodoDTO]]:
        return {"todos": [t.to_dto() for t in self.todos]}
