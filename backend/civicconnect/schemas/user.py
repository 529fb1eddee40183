"""Registration, login and profile schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from civicconnect.models.user import UserRole
from civicconnect.schemas.common import RequestModel, ResponseModel


class RegisterRequest(RequestModel):
    name: str = Field(..., max_length=255)
    email: str = Field(..., max_length=255)
    password: str = Field(..., max_length=256)


class LoginRequest(RequestModel):
    email: str = Field(..., max_length=255)
    password: str = Field(..., max_length=256)


class LoginUser(BaseModel):
    id: UUID
    name: str
    email: str


class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user: LoginUser


class UserProfile(ResponseModel):
    """The caller's own record, without the password hash."""

    id: UUID
    name: str
    email: str
    role: UserRole
    created_at: datetime
    updated_at: datetime
