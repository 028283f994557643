"""Auth request and response schemas."""

from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from backend.app.pipeline.validation import RequestSchema


class RegisterRequest(RequestSchema):
    """Body for POST /auth/register."""

    email: EmailStr
    password: Annotated[str, Field(min_length=8, max_length=128)]
    name: Annotated[str, Field(min_length=1, max_length=100)] | None = None


class LoginRequest(RequestSchema):
    """Body for POST /auth/login."""

    email: EmailStr
    password: Annotated[str, Field(min_length=1)]


class UserResponse(BaseModel):
    """User data returned to client (no sensitive fields)."""

    id: UUID
    email: str
    name: str | None
    last_organization_id: UUID | None = None


class TokenResponse(BaseModel):
    """Credential issued on register/login."""

    user: UserResponse
    token: str
    token_type: str = "bearer"
