"""Health and readiness endpoints."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..crud import TaskStorage
from ..database import ping
from ..dependencies.storage import get_storage

router = APIRouter()


@router.get("/health")
def health_check():
    """
    Liveness check.
    Returns 200 OK if the service is running.
    """
    return {"ok": True}


@router.get("/ready")
def readiness_check(storage: TaskStorage = Depends(get_storage)):
    """
    Readiness check.
    Returns 200 OK when the database answers, 503 otherwise.
    """
    if not ping(storage.engine):
        return JSONResponse(status_code=503, content={"ok": False})
    return {"ok": True}
