from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from ..models import UserRole


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: UserRole = UserRole.USER


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None


class UserOut(BaseModel):
    id: int
    email: str
    role: UserRole
    created_at: datetime
    # password hash is never exposed


class RegisterResponse(BaseModel):
    message: str
    user: UserOut


class Token(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserOut


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class UserPage(BaseModel):
    data: List[UserOut]
    pagination: Pagination
