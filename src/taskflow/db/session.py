"""Database engine and session management for TaskFlow."""

from functools import lru_cache
from typing import Generator, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from ..config import get_settings

# Import models so they're registered with SQLModel.metadata
from ..models import Task, TaskDocument, User  # noqa: F401


@lru_cache
def get_engine() -> Engine:
    """Create the database engine from DATABASE_URL."""
    settings = get_settings()
    connect_args = {}
    if settings.database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(settings.database_url, echo=settings.sql_echo, connect_args=connect_args)


def create_db_and_tables(engine: Optional[Engine] = None) -> None:
    """Create all database tables."""
    SQLModel.metadata.create_all(engine or get_engine())


def get_session() -> Generator[Session, None, None]:
    """Get a database session.

    Yields:
        Session: Database session, closed when the request finishes
    """
    with Session(get_engine()) as session:
        yield session
