from fastapi import APIRouter, Depends, status

from ..config import Settings, get_settings
from ..dependencies.auth import get_current_user
from ..dependencies.services import get_user_service
from ..models import User
from ..schemas.user import RegisterResponse, Token, UserCreate, UserLogin, UserOut
from ..services.security import create_access_token
from ..services.users import UserService

router = APIRouter()


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: UserCreate, service: UserService = Depends(get_user_service)):
    user = service.register(payload.email, payload.password, payload.role)
    return RegisterResponse(message="User registered successfully.", user=UserOut.model_validate(user, from_attributes=True))


@router.post("/login", response_model=Token)
async def login(
    payload: UserLogin,
    service: UserService = Depends(get_user_service),
    settings: Settings = Depends(get_settings),
):
    user = service.authenticate(payload.email, payload.password)
    return Token(
        token=create_access_token(user, settings),
        user=UserOut.model_validate(user, from_attributes=True),
    )


@router.get("", response_model=UserOut)
async def read_logged_in_user(user: User = Depends(get_current_user)):
    """Return the authenticated user's details."""
    return UserOut.model_validate(user, from_attributes=True)
