"""Unit tests for the Task and User models."""

from datetime import date, datetime, timedelta

from sqlalchemy import event

from taskflow.models import Task, TaskDocument, TaskPriority, TaskStatus, User, UserRole
from taskflow.schemas.task import TaskCreate, TaskPatch


def test_task_creation_minimal():
    """Test creating a task with only required fields."""
    task = Task(title="Test Task", description="Test", due_date=date(2025, 12, 31), assigned_to=1, created_by=1)

    assert task.id is None
    assert task.title == "Test Task"
    assert task.status == TaskStatus.TODO.value
    assert task.priority == TaskPriority.LOW.value
    assert isinstance(task.created_at, datetime)
    assert isinstance(task.updated_at, datetime)


def test_task_persists_documents_in_order(session):
    """Test that documents come back ordered by position."""
    task = Task(title="T", description="D", due_date=date(2025, 12, 31), assigned_to=1, created_by=1)
    task.documents = [
        TaskDocument(filename="b.pdf", stored_name="s-b.pdf", path="/x/s-b.pdf", position=1),
        TaskDocument(filename="a.pdf", stored_name="s-a.pdf", path="/x/s-a.pdf", position=0),
    ]
    session.add(task)
    session.commit()
    session.refresh(task)

    assert [d.filename for d in task.documents] == ["a.pdf", "b.pdf"]
    assert all(d.mimetype == "application/pdf" for d in task.documents)


def test_deleting_task_deletes_documents(session):
    task = Task(title="T", description="D", due_date=date(2025, 12, 31), assigned_to=1, created_by=1)
    task.documents = [TaskDocument(filename="a.pdf", stored_name="s-a.pdf", path="/x/s-a.pdf")]
    session.add(task)
    session.commit()

    session.delete(task)
    session.commit()

    assert session.get(TaskDocument, 1) is None


def test_user_defaults():
    user = User(email="someone@example.com", hashed_password="x")
    assert user.role == UserRole.USER.value


def test_timestamps_are_timezone_aware():
    task = Task(title="T", description="D", due_date=date(2025, 12, 31), assigned_to=1, created_by=1)
    user = User(email="someone@example.com", hashed_password="x")

    for value in (task.created_at, task.updated_at, user.created_at, user.updated_at):
        assert value.tzinfo is not None
        assert value.utcoffset() == timedelta(0)


def test_written_timestamps_are_timezone_aware(service, users):
    written = []

    def capture(mapper, connection, target):
        written.append(target.updated_at)

    event.listen(Task, "before_insert", capture)
    event.listen(Task, "before_update", capture)
    try:
        creator = users["creator"]
        data = TaskCreate(title="T", description="D", due_date=date(2025, 12, 31), assigned_to=creator.id)
        task = service.create_task(data, creator)
        service.update_task(task.id, TaskPatch(title="Renamed"), creator)
    finally:
        event.remove(Task, "before_insert", capture)
        event.remove(Task, "before_update", capture)

    assert len(written) == 2
    assert all(value.tzinfo is not None for value in written)
