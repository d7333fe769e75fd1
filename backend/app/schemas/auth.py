"""Auth request/response schemas."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.models.user import UserRole


# ── Login ──────────────────────────────────────────
class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    role: UserRole
    is_active: bool


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


# ── Register with invite ───────────────────────────
class RegisterRequest(BaseModel):
    name: str = Field(min_length=2, max_length=255)
    email: EmailStr
    password: str = Field(min_length=6, max_length=72)
    token: str = Field(min_length=1)


class InviteVerificationResponse(BaseModel):
    valid: bool = True
    email: str
    role: UserRole
    inviter_name: str


# ── Current User ───────────────────────────────────
class CurrentUser(BaseModel):
    id: UUID
    role: UserRole
