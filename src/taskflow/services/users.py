"""User registration, authentication and administration."""

import logging
import math
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, col, select

from ..config import Settings
from ..models import User, UserRole
from ..schemas.user import Pagination, UserUpdate
from .access import Actor, ensure_admin, ensure_can_manage_user
from .errors import (
    AdminRequired,
    EmailAlreadyRegistered,
    InvalidCredentials,
    SelfModification,
    StorageFailure,
    UserNotFound,
)
from .security import get_password_hash, verify_password

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, session: Session, settings: Settings):
        self.session = session
        self.settings = settings

    def _find_by_email(self, email: str) -> Optional[User]:
        return self.session.exec(select(User).where(User.email == email.lower())).first()

    def _get(self, user_id: int) -> User:
        user = self.session.get(User, user_id)
        if user is None:
            raise UserNotFound()
        return user

    def _commit(self, user: User) -> User:
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise EmailAlreadyRegistered() from e
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageFailure(f"Database failure: {e}") from e
        self.session.refresh(user)
        return user

    def register(self, email: str, password: str, role: UserRole = UserRole.USER) -> User:
        """Create a new account.

        Raises:
            EmailAlreadyRegistered: The email is taken
            AdminRequired: An admin account was requested while admin
                registration is disabled
        """
        if role == UserRole.ADMIN and not self.settings.allow_admin_registration:
            raise AdminRequired("Registering administrator accounts is disabled.")
        if self._find_by_email(email) is not None:
            raise EmailAlreadyRegistered("User already exists.")

        user = self._commit(
            User(email=email.lower(), hashed_password=get_password_hash(password), role=role.value)
        )
        logger.info(f"Registered user {user.id} with role {user.role}")
        return user

    def authenticate(self, email: str, password: str) -> User:
        user = self._find_by_email(email)
        if user is None or not verify_password(password, user.hashed_password):
            raise InvalidCredentials()
        return user

    def get_user(self, user_id: int, actor: Actor) -> User:
        ensure_can_manage_user(actor, user_id)
        return self._get(user_id)

    def list_users(
        self,
        actor: Actor,
        role: Optional[UserRole] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[User], Pagination]:
        """Page through all users, newest first. Admin only."""
        ensure_admin(actor)

        statement = select(User)
        count_statement = select(func.count()).select_from(User)
        if role is not None:
            statement = statement.where(User.role == role.value)
            count_statement = count_statement.where(User.role == role.value)

        statement = (
            statement.order_by(col(User.created_at).desc(), col(User.id).desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        users = list(self.session.exec(statement).all())
        total = self.session.exec(count_statement).one()
        pagination = Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit))
        return users, pagination

    def update_user(self, user_id: int, changes: UserUpdate, actor: Actor) -> User:
        """Change a user's email and, for admins, role.

        Role changes from non-admins are ignored. Admins cannot change
        their own role.
        """
        ensure_can_manage_user(actor, user_id)
        user = self._get(user_id)

        if changes.email is not None and changes.email.lower() != user.email:
            existing = self._find_by_email(changes.email)
            if existing is not None and existing.id != user.id:
                raise EmailAlreadyRegistered()
            user.email = changes.email.lower()

        if changes.role is not None and actor.is_admin and changes.role.value != user.role:
            if actor.id == user.id:
                raise SelfModification("Administrators cannot change their own role.")
            user.role = changes.role.value

        user.updated_at = datetime.now(timezone.utc)
        user = self._commit(user)
        logger.info(f"User {user.id} updated by {actor.id}")
        return user

    def delete_user(self, user_id: int, actor: Actor) -> None:
        """Delete a user account. Admin only, never one's own.

        Tasks created by or assigned to the user are left in place.
        """
        ensure_admin(actor)
        if actor.id == user_id:
            raise SelfModification("Cannot delete your own account.")
        user = self._get(user_id)
        self.session.delete(user)
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageFailure(f"Database failure: {e}") from e
        logger.info(f"User {user_id} deleted by {actor.id}")
