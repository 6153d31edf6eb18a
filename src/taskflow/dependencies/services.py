"""Dependency providers for the service layer."""

from fastapi import Depends
from sqlmodel import Session

from ..config import Settings, get_settings
from ..db.session import get_session
from ..services.storage import DocumentStorage
from ..services.tasks import TaskService
from ..services.users import UserService


def get_storage(settings: Settings = Depends(get_settings)) -> DocumentStorage:
    return DocumentStorage(settings.upload_dir)


def get_task_service(
    session: Session = Depends(get_session),
    storage: DocumentStorage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
) -> TaskService:
    return TaskService(session, storage, max_documents=settings.max_documents_per_task)


def get_user_service(
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> UserService:
    return UserService(session, settings)
