from __future__ import annotations

from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Query, status

from ..dependencies import get_repository
from ..repositories import Repository
from ..schemas import DeleteResult, Priority, Status, TodoCreate, TodoOut, TodoUpdate

log = structlog.get_logger()

router = APIRouter(
    prefix="/api/todos",
    tags=["todos"],
)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[TodoOut],
    summary="List Todos",
    description=(
        "List every todo ordered by priority (urgent first), then by due date among "
        "items of equal priority that both have one.\n\n"
        "Query parameters:\n"
        "- status: keep only todos with this status\n"
        "- priority: keep only todos with this priority\n"
        "- category: keep only todos in this category"
    ),
    responses={200: {"description": "List retrieved successfully"}},
)
def list_todos(
    status_filter: Optional[Status] = Query(None, alias="status", description="Filter by status"),
    priority: Optional[Priority] = Query(None, description="Filter by priority"),
    category: Optional[str] = Query(None, description="Filter by category"),
    repo: Repository = Depends(get_repository),
) -> List[TodoOut]:
    """
    List todos in display order.
    """
    items = repo.list_todos()
    if status_filter:
        items = [t for t in items if t["status"] == status_filter]
    if priority:
        items = [t for t in items if t["priority"] == priority]
    if category:
        items = [t for t in items if t["category"] == category]
    return [TodoOut(**t) for t in items]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TodoOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Todo",
    description="Create a new Todo item and return the created resource.",
    responses={
        201: {"description": "Todo created successfully"},
        422: {"description": "Validation error"},
    },
)
def create_todo(payload: TodoCreate, repo: Repository = Depends(get_repository)) -> TodoOut:
    """
    Create a new Todo. Empty priority, status and category get their defaults.
    """
    created = repo.create_todo(payload.to_record())
    log.info("todo created", todo_id=created["id"], priority=created["priority"])
    return TodoOut(**created)


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
def get_todo(todo_id: int, repo: Repository = Depends(get_repository)) -> TodoOut:
    """
    Retrieve a single Todo item by its ID.
    """
    return TodoOut(**repo.get_todo(todo_id))


# PUBLIC_INTERFACE
@router.put(
    "/{todo_id}",
    response_model=TodoOut,
    summary="Replace Todo",
    description=(
        "Replace an existing Todo item. Any fields omitted will be set to their default "
        "equivalent as per the schema. created_date is always kept."
    ),
    responses={
        200: {"description": "Todo updated"},
        404: {"description": "Todo not found"},
    },
)
def put_todo(todo_id: int, payload: TodoCreate, repo: Repository = Depends(get_repository)) -> TodoOut:
    """
    Full update (replace) of a Todo item.
    """
    record = payload.to_record()
    record["id"] = todo_id
    updated = repo.update_todo(record)
    log.info("todo replaced", todo_id=todo_id)
    return TodoOut(**updated)


# PUBLIC_INTERFACE
@router.patch(
    "/{todo_id}",
    response_model=TodoOut,
    summary="Update Todo",
    description="Partially update fields of a Todo item.",
    responses={
        200: {"description": "Todo updated"},
        404: {"description": "Todo not found"},
    },
)
def patch_todo(todo_id: int, payload: TodoUpdate, repo: Repository = Depends(get_repository)) -> TodoOut:
    """
    Partial update implemented as read-modify-write over the full-replace store update.
    """
    existing = repo.get_todo(todo_id)
    updated = repo.update_todo(payload.merge_into(existing))
    log.info("todo updated", todo_id=todo_id, fields=sorted(payload.model_fields_set))
    return TodoOut(**updated)


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    response_model=DeleteResult,
    summary="Delete Todo",
    description="Delete a Todo item by ID.",
    responses={
        200: {"description": "Todo deleted"},
        404: {"description": "Todo not found"},
    },
)
def delete_todo(todo_id: int, repo: Repository = Depends(get_repository)) -> DeleteResult:
    """
    Delete a Todo. Returns {"success": true}, 404 if not found.
    """
    repo.delete_todo(todo_id)
    log.info("todo deleted", todo_id=todo_id)
    return DeleteResult(success=True)
