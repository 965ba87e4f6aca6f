"""Errors raised by the task store."""


class TaskValidationError(ValueError):
    """Required input is missing or malformed."""


class TaskNotFoundError(LookupError):
    """No task exists with the requested id."""

    def __init__(self, task_id: int):
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id
