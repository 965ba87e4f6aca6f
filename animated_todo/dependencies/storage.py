from fastapi import Request
from ..crud import TaskStorage


def get_storage(request: Request) -> TaskStorage:
    """Return the TaskStorage the application was created with."""
    return request.app.state.storage
