"""User administration endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..dependencies.auth import get_current_actor
from ..dependencies.services import get_user_service
from ..models import UserRole
from ..schemas.user import UserOut, UserPage, UserUpdate
from ..services.access import Actor
from ..services.users import UserService

router = APIRouter()


@router.get("", response_model=UserPage)
async def list_users(
    role: Optional[UserRole] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    actor: Actor = Depends(get_current_actor),
    service: UserService = Depends(get_user_service),
):
    """List all users (admin only), newest first."""
    users, pagination = service.list_users(actor, role=role, page=page, limit=limit)
    return UserPage(
        data=[UserOut.model_validate(user, from_attributes=True) for user in users],
        pagination=pagination,
    )


@router.get("/{user_id}", response_model=UserOut)
async def get_user(
    user_id: int,
    actor: Actor = Depends(get_current_actor),
    service: UserService = Depends(get_user_service),
):
    return UserOut.model_validate(service.get_user(user_id, actor), from_attributes=True)


@router.put("/{user_id}", response_model=UserOut)
async def update_user(
    user_id: int,
    changes: UserUpdate,
    actor: Actor = Depends(get_current_actor),
    service: UserService = Depends(get_user_service),
):
    return UserOut.model_validate(service.update_user(user_id, changes, actor), from_attributes=True)


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    actor: Actor = Depends(get_current_actor),
    service: UserService = Depends(get_user_service),
):
    service.delete_user(user_id, actor)
    return {"message": "User deleted successfully."}
