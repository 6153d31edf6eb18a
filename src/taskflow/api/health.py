"""Liveness and readiness endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlmodel import Session

from ..db.session import get_session

router = APIRouter()


@router.get("/health")
@router.get("/api/health")
async def health_check():
    """
    Liveness check. Returns 200 OK if the service is running.
    """
    return {"status": "healthy", "service": "taskflow"}


@router.get("/ready")
async def readiness_check(session: Session = Depends(get_session)):
    """
    Readiness check. Returns 200 OK once the database answers a query.
    """
    session.connection().execute(text("SELECT 1"))
    return {"status": "ready", "service": "taskflow"}
