from datetime import date, datetime, timezone
from typing import Optional
from enum import Enum
from sqlalchemy import BigInteger
from sqlmodel import Field, SQLModel


class TaskPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TaskStatusFilter(str, Enum):
    """Completion filter accepted by the list operation."""
    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"


# Largest value a SQLite INTEGER column can hold
MAX_DB_INTEGER = 2**63 - 1
MIN_DB_INTEGER = -(2**63)


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to timestamps a backend hands back without an offset."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class Task(SQLModel, table=True):
    """A single to-do item.

    Attributes:
        id: Unique identifier, never reused (AUTOINCREMENT)
        title: Task title (required, trimmed)
        notes: Free-form notes
        priority: Priority level (low, medium, high)
        due_date: Optional due date
        tags: Comma-joined tag tokens, e.g. "work,personal"
        is_completed: Whether the task is done
        sort_order: Explicit display position among tasks
        created_at: Timestamp when the task was created
        updated_at: Timestamp of the last mutation
        deleted_at: Set when the task is soft-deleted
    """
    __tablename__ = "todos"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    notes: str = Field(default="")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM)
    due_date: Optional[date] = Field(default=None)
    tags: str = Field(default="")
    is_completed: bool = Field(default=False, index=True)
    sort_order: int = Field(default=0, index=True, sa_type=BigInteger)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    deleted_at: Optional[datetime] = Field(default=None)

    def tag_list(self) -> list[str]:
        """Split the stored tags into tokens."""
        return split_tags(self.tags)


def split_tags(tags: Optional[str]) -> list[str]:
    if not tags:
        return []
    return [token.strip() for token in tags.split(",") if token.strip()]
