from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from .models import NAME_MAX_LENGTH, NAME_MIN_LENGTH


# PUBLIC_INTERFACE
class TodoCreate(BaseModel):
    """
    Schema for creating a new Todo item.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Buy groceries",
            }
        }
    )

    name: str = Field(
        ...,
        description="Human readable label for the todo item",
        min_length=NAME_MIN_LENGTH,
        max_length=NAME_MAX_LENGTH,
    )


# PUBLIC_INTERFACE
class TodoOut(BaseModel):
    """
    Schema returned by the API for a Todo item. Wire names are camelCase.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "0b6f4a52-5a1e-4a8e-9d1c-3f0f3c8f9a11",
                "name": "Buy groceries",
                "createdAt": "2025-01-25T10:15:30.123456+00:00",
                "updatedAt": "2025-01-26T09:00:00.000001+00:00",
                "isDone": False,
            }
        },
    )

    id: str = Field(..., description="Unique identifier of the todo item")
    name: str = Field(..., description="Human readable label for the todo item")
    created_at: datetime = Field(..., alias="createdAt", description="Creation timestamp")
    updated_at: datetime = Field(..., alias="updatedAt", description="Last update timestamp")
    is_done: bool = Field(..., alias="isDone", description="Completion status flag")

    @field_serializer("created_at", "updated_at")
    def serialize_timestamp(self, value: datetime) -> str:
        """
        Render timestamps exactly as they are stored in the snapshot file.
        """
        return value.isoformat()


# PUBLIC_INTERFACE
class TodoList(BaseModel):
    """
    Envelope for list responses.
    """

    todos: List[TodoOut] = Field(..., description="One page of todo items")


# PUBLIC_INTERFACE
class MessageOut(BaseModel):
    """
    Plain message response, e.g. for deletions.
    """

    message: str = Field(..., description="Human readable status message")
