"""Access rules for tasks, documents and user accounts.

Every function here is pure: it looks at the actor and the task (any
object with `created_by` and `assigned_to` attributes) and decides.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..models import UserRole
from .errors import (
    AdminRequired,
    DeleteForbidden,
    DownloadForbidden,
    Forbidden,
    UpdateForbidden,
    ViewForbidden,
)


class Operation(str, Enum):
    VIEW = "view"
    UPDATE = "update"
    DELETE = "delete"
    DOWNLOAD = "download"


@dataclass(frozen=True)
class Actor:
    """The authenticated user performing a request."""
    id: int
    role: UserRole = UserRole.USER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def _is_creator(actor: Actor, task) -> bool:
    return task.created_by == actor.id


def _is_assignee(actor: Actor, task) -> bool:
    return task.assigned_to == actor.id


def can_view(actor: Actor, task) -> bool:
    return actor.is_admin or _is_creator(actor, task) or _is_assignee(actor, task)


def can_update(actor: Actor, task) -> bool:
    # Being the assignee is not enough to modify a task.
    return actor.is_admin or _is_creator(actor, task)


def can_delete(actor: Actor, task) -> bool:
    return can_update(actor, task)


def can_download(actor: Actor, task) -> bool:
    return can_view(actor, task)


_RULES = {
    Operation.VIEW: (can_view, ViewForbidden),
    Operation.UPDATE: (can_update, UpdateForbidden),
    Operation.DELETE: (can_delete, DeleteForbidden),
    Operation.DOWNLOAD: (can_download, DownloadForbidden),
}


def ensure_allowed(actor: Actor, task, operation: Operation) -> None:
    """Raise the Forbidden kind matching `operation` if the actor is denied."""
    rule, error = _RULES[operation]
    if not rule(actor, task):
        raise error()


def listing_scope(actor: Actor) -> Optional[int]:
    """User id a task listing must be restricted to, or None for admins.

    A restricted listing only contains tasks created by or assigned to
    that user, in addition to whatever filters the caller supplied.
    """
    if actor.is_admin:
        return None
    return actor.id


def ensure_admin(actor: Actor) -> None:
    if not actor.is_admin:
        raise AdminRequired()


def can_manage_user(actor: Actor, user_id: int) -> bool:
    return actor.is_admin or actor.id == user_id


def ensure_can_manage_user(actor: Actor, user_id: int) -> None:
    if not can_manage_user(actor, user_id):
        raise Forbidden()
