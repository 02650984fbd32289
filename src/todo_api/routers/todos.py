from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from .. import services
from ..repositories import FlatFileRepository, get_repository
from ..schemas import MessageOut, TodoCreate, TodoList, TodoOut

router = APIRouter(
    prefix="/todos",
    tags=["todos"],
)


def _get_repo(repo: FlatFileRepository = Depends(get_repository)) -> FlatFileRepository:
    """
    Dependency wrapper for repository to keep signatures clean.
    """
    return repo


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=TodoList,
    summary="List Todos",
    description=(
        "List one page of todos.\n\n"
        "Query parameters:\n"
        "- field: sort field, one of name, createdAt, updatedAt, isDone (default name)\n"
        "- order: asc or desc (default asc)\n"
        "- page: 1-indexed page number, 10 items per page (default 1)"
    ),
    responses={
        200: {"description": "List retrieved successfully"},
        400: {"description": "Invalid query parameters"},
    },
)
def list_todos(
    field: str = Query("name", description="Sort field: name, createdAt, updatedAt, isDone"),
    order: str = Query("asc", description="Sort direction: 'asc' or 'desc'"),
    page: int = Query(1, ge=1, description="Page number, starting at 1"),
    repo: FlatFileRepository = Depends(_get_repo),
) -> TodoList:
    """
    List todos sorted and paginated.
    """
    return TodoList(**services.list_todos(repo, page=page, field=field.strip(), order=order.strip().lower()))


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TodoOut,
    summary="Create Todo",
    description="Create a new Todo item and return the created resource.",
    responses={
        200: {"description": "Todo created successfully"},
        400: {"description": "Validation error"},
    },
)
def create_todo(payload: TodoCreate, repo: FlatFileRepository = Depends(_get_repo)) -> TodoOut:
    """
    Create a new Todo.
    """
    return TodoOut(**services.create_todo(repo, payload.name))


# PUBLIC_INTERFACE
@router.get(
    "/{todo_id}",
    response_model=TodoOut,
    summary="Get Todo",
    description="Get a single Todo item by ID.",
    responses={
        200: {"description": "Todo found"},
        404: {"description": "Todo not found"},
    },
)
def get_todo(todo_id: str, repo: FlatFileRepository = Depends(_get_repo)) -> TodoOut:
    """
    Retrieve a single Todo item by its ID.
    """
    return TodoOut(**services.get_todo(repo, todo_id))


# PUBLIC_INTERFACE
@router.put(
    "/{todo_id}",
    response_model=TodoOut,
    summary="Complete Todo",
    description="Mark a Todo item as done. Completing an already-done item is a no-op.",
    responses={
        200: {"description": "Todo marked as done"},
        404: {"description": "Todo not found"},
    },
)
def complete_todo(todo_id: str, repo: FlatFileRepository = Depends(_get_repo)) -> TodoOut:
    """
    Mark a Todo as done.
    """
    return TodoOut(**services.complete_todo(repo, todo_id))


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    response_model=MessageOut,
    summary="Delete Todo",
    description="Delete a Todo item by ID. Succeeds whether or not the item existed.",
    responses={
        200: {"description": "Todo removed"},
    },
)
def delete_todo(todo_id: str, repo: FlatFileRepository = Depends(_get_repo)) -> MessageOut:
    """
    Delete a Todo.
    """
    services.remove_todo(repo, todo_id)
    return MessageOut(message="removed")
