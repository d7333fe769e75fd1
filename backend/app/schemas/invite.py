"""Invite schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr

from app.models.invite import InviteStatus
from app.models.user import UserRole


class InviteCreate(BaseModel):
    email: EmailStr
    role: UserRole = UserRole.STAFF


class InviterInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    email: str


class InviteResponse(BaseModel):
    """Admin-facing view; the token is never returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    role: UserRole
    status: InviteStatus
    expires_at: datetime
    created_at: datetime
    inviter: InviterInfo | None = None


class InviteListResponse(BaseModel):
    items: list[InviteResponse]
    total: int
    page: int
    size: int


class InviteStats(BaseModel):
    pending: int
    accepted: int
    expired: int
    total: int


class RecentInvitesResponse(BaseModel):
    items: list[InviteResponse]


class MessageResponse(BaseModel):
    message: str
