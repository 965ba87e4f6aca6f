"""Storage layer for persisting tasks to the relational store."""

import logging
import threading
import time
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Optional, Union

from sqlalchemy import delete, update
from sqlalchemy.engine import Engine
from sqlmodel import Session, col, select

from .database import create_db_and_tables
from .exceptions import TaskNotFoundError, TaskValidationError
from .models import Task, TaskPriority, TaskStatusFilter, as_utc, split_tags, utcnow

logger = logging.getLogger(__name__)

REORDER_STEP = 100

TagsInput = Union[str, Iterable[str], None]


def normalize_tags(tags: TagsInput) -> str:
    """Render tags as the stored comma-joined form.

    Args:
        tags: A sequence of tag strings or an already joined string

    Returns:
        Comma-joined tag tokens without surrounding whitespace
    """
    if tags is None:
        return ""
    if isinstance(tags, str):
        return ",".join(split_tags(tags))
    return ",".join(str(tag).strip() for tag in tags if str(tag).strip())


def _coerce_priority(value: Any) -> TaskPriority:
    if value is None:
        return TaskPriority.MEDIUM
    try:
        return TaskPriority(value.lower() if isinstance(value, str) else value)
    except ValueError:
        raise TaskValidationError(f"Invalid priority: {value!r}")


def _coerce_due_date(value: Any) -> Optional[date]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise TaskValidationError(f"Invalid due date: {value!r}")


def _like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _now_after(previous: Optional[datetime]) -> datetime:
    now = utcnow()
    previous = as_utc(previous)
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now


class TaskStorage:
    """Handles reading and writing tasks through a SQLAlchemy engine.

    Each public method runs in its own session and transaction. Writes are
    serialized with a lock so a multi-row change such as reorder is never
    interleaved with another writer.

    Attributes:
        engine: Engine the tasks table lives in
    """

    def __init__(self, engine: Engine):
        """Initialize the storage and make sure the table exists.

        Args:
            engine: SQLAlchemy engine, see database.get_engine()
        """
        self.engine = engine
        self._write_lock = threading.Lock()
        create_db_and_tables(engine)

    def list_tasks(
        self,
        q: Optional[str] = None,
        status: Union[TaskStatusFilter, str, None] = TaskStatusFilter.ALL,
        priority: Union[TaskPriority, str, None] = None,
        tag: Optional[str] = None,
    ) -> list[Task]:
        """List active (not deleted) tasks matching every supplied filter.

        Args:
            q: Case-insensitive text matched against title or notes
            status: 'all', 'active' or 'completed'
            priority: Restrict to one priority level
            tag: Restrict to tasks carrying this exact tag token

        Returns:
            Tasks ordered incomplete first, then by sort_order, then those
            with a due date (earliest first) before those without one
        """
        statement = select(Task).where(col(Task.deleted_at).is_(None))

        if q:
            pattern = _like_pattern(q)
            statement = statement.where(
                col(Task.title).ilike(pattern, escape="\\")
                | col(Task.notes).ilike(pattern, escape="\\")
            )
        if priority:
            statement = statement.where(Task.priority == _coerce_priority(priority))

        try:
            status = TaskStatusFilter(status or TaskStatusFilter.ALL)
        except ValueError:
            raise TaskValidationError(f"Invalid status: {status!r}")
        if status == TaskStatusFilter.ACTIVE:
            statement = statement.where(col(Task.is_completed).is_(False))
        elif status == TaskStatusFilter.COMPLETED:
            statement = statement.where(col(Task.is_completed).is_(True))

        wanted_tag = tag.strip().lower() if tag else ""
        if wanted_tag:
            # Narrow in SQL; whole-token match is checked below.
            statement = statement.where(
                col(Task.tags).ilike(_like_pattern(wanted_tag), escape="\\")
            )

        statement = statement.order_by(
            col(Task.is_completed),
            col(Task.sort_order),
            col(Task.due_date).is_(None),
            col(Task.due_date),
            col(Task.id),
        )

        with Session(self.engine) as session:
            tasks = list(session.exec(statement).all())

        if wanted_tag:
            tasks = [
                task for task in tasks
                if wanted_tag in (token.lower() for token in task.tag_list())
            ]
        return tasks

    def add_task(
        self,
        title: Optional[str],
        notes: Optional[str] = "",
        priority: Union[TaskPriority, str, None] = TaskPriority.MEDIUM,
        due_date: Union[date, str, None] = None,
        tags: TagsInput = None,
        is_completed: bool = False,
        sort_order: Optional[int] = None,
    ) -> Task:
        """Add a new task.

        Args:
            title: Task title, required and non-blank after trimming
            notes: Optional notes
            priority: Priority level, medium when omitted
            due_date: Optional due date (date or ISO string)
            tags: Sequence of tags or a comma-joined string
            is_completed: Initial completion state
            sort_order: Explicit position; defaults to the creation time in ms

        Returns:
            The newly created Task

        Raises:
            TaskValidationError: If the title is missing or blank
        """
        clean_title = str(title if title is not None else "").strip()
        if not clean_title:
            raise TaskValidationError("Title is required")

        now = utcnow()
        task = Task(
            title=clean_title,
            notes=notes or "",
            priority=_coerce_priority(priority),
            due_date=_coerce_due_date(due_date),
            tags=normalize_tags(tags),
            is_completed=bool(is_completed),
            sort_order=sort_order if _is_integer(sort_order) else int(time.time() * 1000),
            created_at=now,
            updated_at=now,
        )
        with self._write_lock, Session(self.engine) as session:
            session.add(task)
            session.commit()
            session.refresh(task)

        logger.info(f"Created task {task.id}")
        return task

    def get_task_by_id(self, task_id: int) -> Optional[Task]:
        """Get a task by ID, including soft-deleted ones.

        Args:
            task_id: The task ID to find

        Returns:
            Task if found, None otherwise
        """
        with Session(self.engine) as session:
            return session.get(Task, task_id)

    def update_task(self, task_id: int, **updates: Any) -> Task:
        """Merge the supplied fields over a task.

        Fields not passed keep their value. A blank title is not rejected
        here; callers validate it if they need to.

        Args:
            task_id: The task ID to update
            **updates: Field names and new values

        Returns:
            Updated Task

        Raises:
            TaskNotFoundError: If no task has this id
            TaskValidationError: If priority or due_date cannot be parsed
        """
        with self._write_lock, Session(self.engine) as session:
            task = session.get(Task, task_id)
            if task is None:
                raise TaskNotFoundError(task_id)

            if updates.get("title") is not None:
                task.title = str(updates["title"]).strip()
            if "notes" in updates:
                task.notes = updates["notes"] or ""
            if "priority" in updates:
                task.priority = _coerce_priority(updates["priority"])
            if "due_date" in updates:
                task.due_date = _coerce_due_date(updates["due_date"])
            if updates.get("tags") is not None:
                task.tags = normalize_tags(updates["tags"])
            if updates.get("is_completed") is not None:
                task.is_completed = bool(updates["is_completed"])
            if _is_integer(updates.get("sort_order")):
                task.sort_order = updates["sort_order"]

            task.updated_at = _now_after(task.updated_at)
            session.add(task)
            session.commit()
            session.refresh(task)

        logger.info(f"Updated task {task_id}: {sorted(updates)}")
        return task

    def reorder(self, ids: Iterable[int]) -> None:
        """Rewrite sort_order so tasks follow the given id sequence.

        The first id gets REORDER_STEP, the next twice that, and so on.
        Ids that don't exist are ignored; tasks not listed keep their
        position. Either every listed task is moved or none is.

        Args:
            ids: Task ids in the desired order
        """
        ids = list(ids)
        with self._write_lock, Session(self.engine) as session:
            now = utcnow()
            for position, task_id in enumerate(ids, start=1):
                session.exec(
                    update(Task)
                    .where(col(Task.id) == task_id)
                    .values(sort_order=position * REORDER_STEP, updated_at=now)
                )
            session.commit()

        logger.info(f"Reordered {len(ids)} tasks")

    def soft_delete(self, task_id: int) -> bool:
        """Mark a task as deleted without removing it.

        Deleting an already deleted task leaves it untouched.

        Args:
            task_id: The task ID to delete

        Returns:
            True if a task was newly marked deleted, False otherwise
        """
        with self._write_lock, Session(self.engine) as session:
            task = session.get(Task, task_id)
            if task is None or task.deleted_at is not None:
                return False
            now = _now_after(task.updated_at)
            task.deleted_at = now
            task.updated_at = now
            session.add(task)
            session.commit()

        logger.info(f"Soft-deleted task {task_id}")
        return True

    def purge_deleted(self) -> int:
        """Permanently remove every soft-deleted task.

        Returns:
            Number of tasks removed
        """
        with self._write_lock, Session(self.engine) as session:
            result = session.exec(delete(Task).where(col(Task.deleted_at).is_not(None)))
            session.commit()
            removed = result.rowcount

        logger.info(f"Purged {removed} deleted tasks")
        return removed
