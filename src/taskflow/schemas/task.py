from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models import TaskPriority, TaskStatus


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.LOW
    due_date: date
    assigned_to: int
    # created_by is always the acting user, never part of the payload


class TaskPatch(BaseModel):
    """Field changes for an update. Fields left as None are not touched."""
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=1000)
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[date] = None
    assigned_to: Optional[int] = None


class TaskSortField(str, Enum):
    CREATED_AT = "created_at"
    DUE_DATE = "due_date"
    PRIORITY = "priority"
    STATUS = "status"
    TITLE = "title"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class TaskFilters(BaseModel):
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date_before: Optional[date] = None
    assigned_to: Optional[int] = None
    search: Optional[str] = None
    sort_by: TaskSortField = TaskSortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)


class UserRef(BaseModel):
    """Minimal user projection embedded in task responses."""
    id: int
    email: Optional[str] = None


class DocumentRead(BaseModel):
    id: int
    filename: str
    stored_name: str
    mimetype: str


class TaskRead(BaseModel):
    id: int
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority
    due_date: date
    assigned_to: UserRef
    created_by: UserRef
    attached_documents: List[DocumentRead] = []
    created_at: datetime
    updated_at: datetime
