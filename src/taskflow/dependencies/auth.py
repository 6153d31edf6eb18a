from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlmodel import Session

from ..config import Settings, get_settings
from ..db.session import get_session
from ..models import User, UserRole
from ..services.access import Actor
from ..services.security import InvalidToken, decode_access_token


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _extract_token(x_auth_token: Optional[str], authorization: Optional[str]) -> Optional[str]:
    if x_auth_token:
        return x_auth_token
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials:
            return credentials.strip()
    return None


async def get_current_user(
    x_auth_token: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None),
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> User:
    """Resolve the user behind the request's token.

    The token is read from the `x-auth-token` header or a Bearer
    `Authorization` header.
    """
    token = _extract_token(x_auth_token, authorization)
    if token is None:
        raise _unauthorized("No token, authorization denied.")
    try:
        payload = decode_access_token(token, settings)
    except InvalidToken:
        raise _unauthorized("Token is not valid.")

    user = session.get(User, payload["sub"])
    if user is None:
        raise _unauthorized("Token is not valid.")
    return user


async def get_current_actor(user: User = Depends(get_current_user)) -> Actor:
    # Role comes from the stored user, so demotions apply immediately.
    return Actor(id=user.id, role=UserRole(user.role))
