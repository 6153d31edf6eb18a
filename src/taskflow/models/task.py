from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional

from sqlalchemy import Index
from sqlmodel import Field, Relationship, SQLModel


class TaskStatus(str, Enum):
    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    DONE = "Done"


class TaskPriority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class Task(SQLModel, table=True):
    """A task owned by its creator and assigned to one user.

    Attributes:
        id: Unique identifier for the task
        title: Task title (required, at most 100 characters)
        description: Task description (required, at most 1000 characters)
        status: One of TaskStatus values
        priority: One of TaskPriority values
        due_date: Date the task is due
        assigned_to: User the task is assigned to
        created_by: User who created the task, never changed afterwards
        documents: Attached PDF documents, in display order
        created_at: Timestamp when task was created
        updated_at: Timestamp when task was last updated
    """
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_lookup", "status", "priority", "due_date", "assigned_to", "created_by"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=100)
    description: str = Field(max_length=1000)
    status: str = Field(default=TaskStatus.TODO.value, max_length=20)
    priority: str = Field(default=TaskPriority.LOW.value, max_length=10)
    due_date: date
    # Weak references: deleting a user leaves their tasks untouched.
    assigned_to: int = Field(index=True)
    created_by: int = Field(index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    documents: List["TaskDocument"] = Relationship(
        back_populates="task",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "order_by": "TaskDocument.position",
        },
    )


class TaskDocument(SQLModel, table=True):
    """PDF metadata embedded in a task.

    `filename` is the name the file was uploaded with; `stored_name` is the
    generated name in the upload directory and `path` its full location.
    """
    __tablename__ = "task_documents"

    id: Optional[int] = Field(default=None, primary_key=True)
    task_id: Optional[int] = Field(default=None, foreign_key="tasks.id", index=True)
    position: int = Field(default=0)
    filename: str = Field(max_length=255)
    stored_name: str = Field(max_length=255, unique=True, index=True)
    path: str
    mimetype: str = Field(default="application/pdf", max_length=100)

    task: Optional[Task] = Relationship(back_populates="documents")
