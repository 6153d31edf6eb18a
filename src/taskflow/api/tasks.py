import json
from datetime import date
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import FileResponse

from ..config import Settings, get_settings
from ..dependencies.auth import get_current_actor
from ..dependencies.services import get_storage, get_task_service
from ..dependencies.uploads import accept_uploads
from ..models import TaskPriority, TaskStatus
from ..schemas.task import (
    SortOrder,
    TaskCreate,
    TaskFilters,
    TaskPatch,
    TaskRead,
    TaskSortField,
)
from ..services.access import Actor
from ..services.errors import ValidationFailed
from ..services.storage import DocumentStorage
from ..services.tasks import TaskService

router = APIRouter()


def _document_id(value: Any) -> Optional[int]:
    if isinstance(value, dict):
        value = value.get("id", value.get("_id"))
    # bool is an int subclass; true/false are not ids
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.isascii() and value.isdigit():
        return int(value)
    return None


def parse_retained_documents(values: Optional[List[str]]) -> Optional[List[int]]:
    """Read document ids from `existing_documents` form values.

    Each value is a bare id, a JSON object with an `id` (or `_id`) key, or a
    JSON list of either. Any other keys, such as a client-supplied path, are
    ignored.

    Raises:
        ValidationFailed: A value is not a whole-number id reference
    """
    if values is None:
        return None
    ids = []
    for raw in values:
        raw = raw.strip()
        if not raw:
            continue
        try:
            value = json.loads(raw)
        except ValueError:
            raise ValidationFailed(f"Invalid existing document reference: {raw!r}")
        for item in value if isinstance(value, list) else [value]:
            document_id = _document_id(item)
            if document_id is None:
                raise ValidationFailed(f"Invalid existing document reference: {raw!r}")
            ids.append(document_id)
    return ids


@router.post("", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(
    title: str = Form(..., min_length=1, max_length=100),
    description: str = Form(..., min_length=1, max_length=1000),
    task_status: TaskStatus = Form(TaskStatus.TODO, alias="status"),
    priority: TaskPriority = Form(TaskPriority.LOW),
    due_date: date = Form(...),
    assigned_to: int = Form(...),
    attached_documents: Optional[List[UploadFile]] = File(None),
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
    storage: DocumentStorage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    data = TaskCreate(
        title=title,
        description=description,
        status=task_status,
        priority=priority,
        due_date=due_date,
        assigned_to=assigned_to,
    )
    uploads = await accept_uploads(attached_documents, storage, settings)
    return service.create_task(data, actor, uploads)


@router.get("", response_model=List[TaskRead])
async def get_tasks(
    task_status: Optional[TaskStatus] = Query(None, alias="status"),
    priority: Optional[TaskPriority] = None,
    due_date_before: Optional[date] = None,
    assigned_to: Optional[int] = None,
    search: Optional[str] = None,
    sort_by: TaskSortField = TaskSortField.CREATED_AT,
    sort_order: SortOrder = SortOrder.DESC,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
):
    filters = TaskFilters(
        status=task_status,
        priority=priority,
        due_date_before=due_date_before,
        assigned_to=assigned_to,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return service.list_tasks(filters, actor)


@router.get("/documents/{stored_name}")
async def download_document(
    stored_name: str,
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
):
    document = service.resolve_document_for_download(stored_name, actor)
    return FileResponse(document.path, media_type=document.mimetype, filename=document.filename)


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(
    task_id: int,
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
):
    return service.get_task(task_id, actor)


@router.put("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: int,
    title: Optional[str] = Form(None, min_length=1, max_length=100),
    description: Optional[str] = Form(None, min_length=1, max_length=1000),
    task_status: Optional[TaskStatus] = Form(None, alias="status"),
    priority: Optional[TaskPriority] = Form(None),
    due_date: Optional[date] = Form(None),
    assigned_to: Optional[int] = Form(None),
    existing_documents: Optional[List[str]] = Form(None),
    attached_documents: Optional[List[UploadFile]] = File(None),
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
    storage: DocumentStorage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    patch = TaskPatch(
        title=title,
        description=description,
        status=task_status,
        priority=priority,
        due_date=due_date,
        assigned_to=assigned_to,
    )
    retained = parse_retained_documents(existing_documents)
    uploads = await accept_uploads(attached_documents, storage, settings)
    return service.update_task(task_id, patch, actor, retained, uploads)


@router.delete("/{task_id}")
async def delete_task(
    task_id: int,
    actor: Actor = Depends(get_current_actor),
    service: TaskService = Depends(get_task_service),
):
    service.delete_task(task_id, actor)
    return {"message": "Task deleted successfully."}
