from enum import Enum
from typing import List, Optional, Type

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ..crud import TaskStorage
from ..dependencies.storage import get_storage
from ..models import MAX_DB_INTEGER, Task, TaskPriority, TaskStatusFilter
from ..schemas.task import OkResponse, ReorderRequest, TaskCreate, TaskUpdate

router = APIRouter()


def _task_id_or_none(task_id: str) -> Optional[int]:
    """Path ids that aren't storable integers can't name a task."""
    if not task_id.isdecimal():
        return None
    value = int(task_id)
    return value if value <= MAX_DB_INTEGER else None


def _parse_task_id(task_id: str) -> int:
    value = _task_id_or_none(task_id)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    return value


def _parse_choice(enum_cls: Type[Enum], value: Optional[str], name: str):
    if not value:
        return None
    try:
        return enum_cls(value.lower())
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{name} must be one of: {choices}"
        )


@router.get("", response_model=List[Task])
def list_tasks(
    q: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    tag: Optional[str] = None,
    storage: TaskStorage = Depends(get_storage),
):
    return storage.list_tasks(
        q=q,
        status=_parse_choice(TaskStatusFilter, status, "status") or TaskStatusFilter.ALL,
        priority=_parse_choice(TaskPriority, priority, "priority"),
        tag=tag,
    )


@router.post("", response_model=Task, status_code=status.HTTP_201_CREATED)
def create_task(task: TaskCreate, storage: TaskStorage = Depends(get_storage)):
    if not task.title or not task.title.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Title is required"
        )
    return storage.add_task(**task.model_dump())


@router.post("/reorder", response_model=OkResponse)
def reorder_tasks(payload: ReorderRequest, storage: TaskStorage = Depends(get_storage)):
    storage.reorder(payload.ids)
    return OkResponse()


@router.post("/purge", response_model=OkResponse)
def purge_tasks(storage: TaskStorage = Depends(get_storage)):
    storage.purge_deleted()
    return OkResponse()


@router.get("/{task_id}", response_model=Task)
def get_task(task_id: str, storage: TaskStorage = Depends(get_storage)):
    task = storage.get_task_by_id(_parse_task_id(task_id))
    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    return task


@router.patch("/{task_id}", response_model=Task)
def update_task(
    task_id: str,
    task_update: TaskUpdate,
    storage: TaskStorage = Depends(get_storage),
):
    return storage.update_task(
        _parse_task_id(task_id),
        **task_update.model_dump(exclude_unset=True)
    )


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(task_id: str, storage: TaskStorage = Depends(get_storage)):
    # Unknown or malformed ids are a no-op, like deleting twice
    value = _task_id_or_none(task_id)
    if value is not None:
        storage.soft_delete(value)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
