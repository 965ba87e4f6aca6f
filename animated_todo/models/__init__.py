"""Models package."""
from .task import (
    MAX_DB_INTEGER,
    MIN_DB_INTEGER,
    Task,
    TaskPriority,
    TaskStatusFilter,
    as_utc,
    split_tags,
    utcnow,
)

__all__ = [
    "MAX_DB_INTEGER",
    "MIN_DB_INTEGER",
    "Task",
    "TaskPriority",
    "TaskStatusFilter",
    "as_utc",
    "split_tags",
    "utcnow",
]
