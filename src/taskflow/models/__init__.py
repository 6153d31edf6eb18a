"""Models package."""
from .task import Task, TaskDocument, TaskStatus, TaskPriority
from .user import User, UserRole

__all__ = ["Task", "TaskDocument", "TaskStatus", "TaskPriority", "User", "UserRole"]
