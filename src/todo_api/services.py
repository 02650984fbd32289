"""
Todo use-cases composing the Todo model with the flat-file repository.

Each operation takes the repository explicitly so the HTTP layer can inject it
and tests can point it at a temporary snapshot.
"""
from __future__ import annotations

import logging
from typing import Dict, List

from .models import Todo, TodoDTO
from .repositories import FlatFileRepository, ListQuery

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def create_todo(repo: FlatFileRepository, name: str) -> TodoDTO:
    """Create a todo, persist it and return its serialized form."""
    todo = Todo.create(name)
    repo.save(todo)
    return todo.to_dto()


# PUBLIC_INTERFACE
def complete_todo(repo: FlatFileRepository, todo_id: str) -> TodoDTO:
    """
    Mark a todo as done. Idempotent for todos that are already done.

    Raises:
        NotFoundError: if the id is unknown.
    """
    with repo.locked():
        todo = repo.find_by_id(todo_id)
        done = todo.mark_done()
        if done is not todo:
            repo.save(done)
    return done.to_dto()


# PUBLIC_INTERFACE
def get_todo(repo: FlatFileRepository, todo_id: str) -> TodoDTO:
    """Return a single todo by id, raising NotFoundError when missing."""
    return repo.find_by_id(todo_id).to_dto()


# PUBLIC_INTERFACE
def list_todos(
    repo: FlatFileRepository,
    page: int = 1,
    field: str = "name",
    order: str = "asc",
) -> Dict[str, List[TodoDTO]]:
    """Return one sorted page of todos wrapped in a {"todos": [...]} envelope."""
    return repo.find_all(ListQuery(page=page, field=field, order=order)).to_dto()


# PUBLIC_INTERFACE
def remove_todo(repo: FlatFileRepository, todo_id: str) -> None:
    """Remove a todo. Unknown ids are ignored."""
    if not repo.remove(todo_id):
        logger.debug("Remove requested for unknown todo %s", todo_id)
