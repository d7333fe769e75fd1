"""User management schemas (admin)."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.models.user import UserRole


class UserListItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    role: UserRole
    is_active: bool
    created_at: datetime
    sales_count: int = 0


class UserListResponse(BaseModel):
    items: list[UserListItem]
    total: int
    page: int
    size: int


class UserDetail(UserListItem):
    invites_sent_count: int = 0


class UserUpdate(BaseModel):
    name: str | None = Field(None, min_length=2, max_length=255)
    email: EmailStr | None = None
    role: UserRole | None = None
    is_active: bool | None = None

    @field_validator("name", "email", "role", "is_active")
    @classmethod
    def not_null(cls, v):
        # Omit a field to leave it unchanged; null is not a value any column takes
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


class UserDeleteResponse(BaseModel):
    action: str  # "deleted" | "deactivated"
    message: str


class UserStats(BaseModel):
    total: int
    active: int
    inactive: int
    admins: int
    staff: int
