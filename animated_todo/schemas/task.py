from datetime import date
from typing import Annotated, List, Optional, Union
from pydantic import BaseModel, Field, field_validator
from ..models import MAX_DB_INTEGER, MIN_DB_INTEGER, TaskPriority

# Integers the database can store; anything wider is a client error
DbInteger = Annotated[int, Field(ge=MIN_DB_INTEGER, le=MAX_DB_INTEGER)]


class TaskCreate(BaseModel):
    # Blank titles are rejected by the endpoint with a 400, not by the schema
    title: Optional[str] = None
    notes: Optional[str] = ""
    priority: Optional[TaskPriority] = TaskPriority.MEDIUM
    due_date: Optional[date] = None
    tags: Optional[Union[List[str], str]] = None
    is_completed: bool = False
    sort_order: Optional[DbInteger] = None

    @field_validator("due_date", mode="before")
    @classmethod
    def empty_due_date(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    notes: Optional[str] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[date] = None
    tags: Optional[Union[List[str], str]] = None
    is_completed: Optional[bool] = None
    sort_order: Optional[DbInteger] = None

    @field_validator("due_date", mode="before")
    @classmethod
    def empty_due_date(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ReorderRequest(BaseModel):
    ids: List[DbInteger]


class OkResponse(BaseModel):
    ok: bool = True
