"""Task lifecycle and attachment reconciliation."""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from sqlalchemy import case, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload
from sqlmodel import Session, col, select

from ..config import ALLOWED_DOCUMENT_MIMETYPES, MAX_DOCUMENTS_PER_TASK
from ..models import Task, TaskDocument, TaskPriority, TaskStatus, User
from ..schemas.task import (
    DocumentRead,
    SortOrder,
    TaskCreate,
    TaskFilters,
    TaskPatch,
    TaskRead,
    TaskSortField,
    UserRef,
)
from .access import Actor, Operation, ensure_allowed, listing_scope
from .errors import (
    AssignedUserNotFound,
    DocumentNotFound,
    FileMissingOnDisk,
    InvalidDocument,
    StorageFailure,
    TaskNotFound,
    TooManyDocuments,
)
from .storage import DocumentStorage, StoredFile

logger = logging.getLogger(__name__)

_PRIORITY_RANK = {priority.value: rank for rank, priority in enumerate(TaskPriority)}
_STATUS_RANK = {status.value: rank for rank, status in enumerate(TaskStatus)}


@dataclass(frozen=True)
class DocumentDownload:
    """Everything the caller needs to stream a document back."""
    path: Path
    filename: str
    mimetype: str


class TaskService:
    """Creates, reads, updates and deletes tasks together with their documents.

    Attributes:
        session: Database session used for every query
        storage: Where the attached files live
        max_documents: Attachment cap per task
    """

    def __init__(
        self,
        session: Session,
        storage: DocumentStorage,
        max_documents: int = MAX_DOCUMENTS_PER_TASK,
    ):
        self.session = session
        self.storage = storage
        self.max_documents = max_documents

    @contextmanager
    def _storage_errors(self) -> Iterator[None]:
        """Translate database and filesystem failures into StorageFailure."""
        try:
            yield
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Database failure: {e}")
            raise StorageFailure(f"Database failure: {e}") from e
        except OSError as e:
            self.session.rollback()
            logger.error(f"File storage failure: {e}")
            raise StorageFailure(f"File storage failure: {e}") from e

    def _get_task(self, task_id: int) -> Task:
        task = self.session.get(Task, task_id)
        if task is None:
            raise TaskNotFound()
        return task

    def _ensure_assignee_exists(self, user_id: int) -> None:
        if self.session.get(User, user_id) is None:
            raise AssignedUserNotFound()

    def _build_documents(self, uploads: Sequence[StoredFile]) -> List[TaskDocument]:
        documents = []
        for stored in uploads:
            if stored.mimetype not in ALLOWED_DOCUMENT_MIMETYPES:
                raise InvalidDocument()
            documents.append(
                TaskDocument(
                    filename=stored.original_name,
                    stored_name=stored.stored_name,
                    path=str(stored.path),
                    mimetype=stored.mimetype,
                )
            )
        return documents

    def _remove_files(self, documents: Iterable[TaskDocument]) -> None:
        for document in documents:
            if self.storage.remove(document.path):
                logger.info(f"Removed file {document.stored_name}")

    def _to_read(self, task: Task, users: Optional[Dict[int, User]] = None) -> TaskRead:
        if users is None:
            users = self._load_users([task])
        return TaskRead(
            id=task.id,
            title=task.title,
            description=task.description,
            status=task.status,
            priority=task.priority,
            due_date=task.due_date,
            assigned_to=self._user_ref(task.assigned_to, users),
            created_by=self._user_ref(task.created_by, users),
            attached_documents=[
                DocumentRead(
                    id=document.id,
                    filename=document.filename,
                    stored_name=document.stored_name,
                    mimetype=document.mimetype,
                )
                for document in task.documents
            ],
            created_at=task.created_at,
            updated_at=task.updated_at,
        )

    def _load_users(self, tasks: Iterable[Task]) -> Dict[int, User]:
        ids = set()
        for task in tasks:
            ids.update((task.assigned_to, task.created_by))
        if not ids:
            return {}
        users = self.session.exec(select(User).where(col(User.id).in_(ids))).all()
        return {user.id: user for user in users}

    @staticmethod
    def _user_ref(user_id: int, users: Dict[int, User]) -> UserRef:
        # Users can be deleted without touching their tasks.
        user = users.get(user_id)
        return UserRef(id=user_id, email=user.email if user else None)

    def create_task(
        self,
        data: TaskCreate,
        actor: Actor,
        uploads: Sequence[StoredFile] = (),
    ) -> TaskRead:
        """Create a task owned by `actor` with the given uploads attached.

        Uploads are discarded from storage if the task cannot be created.

        Raises:
            TooManyDocuments: More uploads than the attachment cap
            AssignedUserNotFound: `assigned_to` does not reference a user
        """
        try:
            with self._storage_errors():
                if len(uploads) > self.max_documents:
                    raise TooManyDocuments(self.max_documents)
                self._ensure_assignee_exists(data.assigned_to)

                task = Task(
                    title=data.title,
                    description=data.description,
                    status=data.status.value,
                    priority=data.priority.value,
                    due_date=data.due_date,
                    assigned_to=data.assigned_to,
                    created_by=actor.id,
                )
                documents = self._build_documents(uploads)
                for position, document in enumerate(documents):
                    document.position = position
                task.documents = documents

                self.session.add(task)
                self.session.commit()
                self.session.refresh(task)
        except Exception:
            self.session.rollback()
            self.storage.discard(uploads)
            raise

        logger.info(f"Created task {task.id} for user {actor.id} with {len(uploads)} document(s)")
        return self._to_read(task)

    def list_tasks(self, filters: TaskFilters, actor: Actor) -> List[TaskRead]:
        """List tasks visible to `actor` matching `filters`, sorted and paginated."""
        statement = select(Task).options(selectinload(Task.documents))

        if filters.status is not None:
            statement = statement.where(Task.status == filters.status.value)
        if filters.priority is not None:
            statement = statement.where(Task.priority == filters.priority.value)
        if filters.due_date_before is not None:
            statement = statement.where(col(Task.due_date) <= filters.due_date_before)
        if filters.assigned_to is not None:
            statement = statement.where(Task.assigned_to == filters.assigned_to)
        if filters.search:
            statement = statement.where(
                or_(
                    col(Task.title).icontains(filters.search, autoescape=True),
                    col(Task.description).icontains(filters.search, autoescape=True),
                )
            )

        scope = listing_scope(actor)
        if scope is not None:
            statement = statement.where(
                or_(Task.created_by == scope, Task.assigned_to == scope)
            )

        sort_key = self._sort_expression(filters.sort_by)
        if filters.sort_order == SortOrder.ASC:
            statement = statement.order_by(sort_key.asc(), col(Task.id).asc())
        else:
            statement = statement.order_by(sort_key.desc(), col(Task.id).desc())

        statement = statement.offset((filters.page - 1) * filters.limit).limit(filters.limit)

        with self._storage_errors():
            tasks = self.session.exec(statement).all()
            users = self._load_users(tasks)
            return [self._to_read(task, users) for task in tasks]

    @staticmethod
    def _sort_expression(sort_by: TaskSortField):
        if sort_by == TaskSortField.PRIORITY:
            return case(_PRIORITY_RANK, value=col(Task.priority), else_=len(_PRIORITY_RANK))
        if sort_by == TaskSortField.STATUS:
            return case(_STATUS_RANK, value=col(Task.status), else_=len(_STATUS_RANK))
        columns = {
            TaskSortField.CREATED_AT: Task.created_at,
            TaskSortField.DUE_DATE: Task.due_date,
            TaskSortField.TITLE: Task.title,
        }
        return col(columns[sort_by])

    def get_task(self, task_id: int, actor: Actor) -> TaskRead:
        with self._storage_errors():
            task = self._get_task(task_id)
            ensure_allowed(actor, task, Operation.VIEW)
            return self._to_read(task)

    def update_task(
        self,
        task_id: int,
        patch: TaskPatch,
        actor: Actor,
        retained_document_ids: Optional[Iterable[int]] = None,
        uploads: Sequence[StoredFile] = (),
    ) -> TaskRead:
        """Apply field changes and reconcile the attachment set.

        Documents whose id is not in `retained_document_ids` are removed from
        storage before the cap is checked; leaving the retain set out removes
        every existing document. Removals are not undone if the update then
        fails. New uploads are discarded whenever the update is rejected.

        Raises:
            TaskNotFound: No task with this id
            UpdateForbidden: Actor is neither the creator nor an admin
            TooManyDocuments: Retained plus new documents exceed the cap
            AssignedUserNotFound: The new assignee does not exist
        """
        retain = set(retained_document_ids or ())
        try:
            with self._storage_errors():
                task = self._get_task(task_id)
                ensure_allowed(actor, task, Operation.UPDATE)

                current = list(task.documents)
                to_remove = [document for document in current if document.id not in retain]
                self._remove_files(to_remove)

                to_keep = [document for document in current if document.id in retain]
                combined = to_keep + self._build_documents(uploads)
                if len(combined) > self.max_documents:
                    raise TooManyDocuments(self.max_documents)

                if patch.assigned_to is not None and patch.assigned_to != task.assigned_to:
                    self._ensure_assignee_exists(patch.assigned_to)

                self._apply_patch(task, patch)
                for position, document in enumerate(combined):
                    document.position = position
                task.documents = combined
                task.updated_at = datetime.now(timezone.utc)

                self.session.add(task)
                self.session.commit()
                self.session.refresh(task)
        except Exception:
            self.session.rollback()
            self.storage.discard(uploads)
            raise

        logger.info(
            f"Updated task {task.id} by user {actor.id}: "
            f"kept {len(to_keep)}, removed {len(to_remove)}, added {len(uploads)} document(s)"
        )
        return self._to_read(task)

    @staticmethod
    def _apply_patch(task: Task, patch: TaskPatch) -> None:
        if patch.title is not None:
            task.title = patch.title
        if patch.description is not None:
            task.description = patch.description
        if patch.status is not None:
            task.status = patch.status.value
        if patch.priority is not None:
            task.priority = patch.priority.value
        if patch.due_date is not None:
            task.due_date = patch.due_date
        if patch.assigned_to is not None:
            task.assigned_to = patch.assigned_to

    def delete_task(self, task_id: int, actor: Actor) -> None:
        """Delete a task after removing its files from storage."""
        with self._storage_errors():
            task = self._get_task(task_id)
            ensure_allowed(actor, task, Operation.DELETE)

            self._remove_files(task.documents)
            self.session.delete(task)
            self.session.commit()

        logger.info(f"Deleted task {task_id} by user {actor.id}")

    def resolve_document_for_download(self, stored_name: str, actor: Actor) -> DocumentDownload:
        """Find the document stored under `stored_name` and check the actor may read it.

        Raises:
            ValidationFailed: The name points outside the upload directory
            DocumentNotFound: No task references this stored name
            DownloadForbidden: Actor cannot view the owning task
            FileMissingOnDisk: The record exists but the file does not
        """
        self.storage.locate(stored_name)
        with self._storage_errors():
            document = self.session.exec(
                select(TaskDocument).where(TaskDocument.stored_name == stored_name)
            ).first()
            if document is None or document.task is None:
                raise DocumentNotFound()
            ensure_allowed(actor, document.task, Operation.DOWNLOAD)

        if not self.storage.exists(document.path):
            logger.warning(f"Document {stored_name} is referenced by task {document.task_id} but missing on disk")
            raise FileMissingOnDisk()

        return DocumentDownload(
            path=Path(document.path),
            filename=document.filename,
            mimetype=document.mimetype,
        )
