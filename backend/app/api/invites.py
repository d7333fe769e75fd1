"""Invite management endpoints (admin only)."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.deps import get_invite_service, require_admin
from app.db.base import get_db
from app.models.invite import Invite, InviteStatus
from app.schemas.auth import CurrentUser
from app.schemas.invite import (
    InviteCreate,
    InviteListResponse,
    InviteResponse,
    InviteStats,
    MessageResponse,
    RecentInvitesResponse,
)
from app.services.invites import InviteService

router = APIRouter(prefix="/invites", tags=["invites"])


@router.get("", response_model=InviteListResponse)
async def list_invites(
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
    invite_status: InviteStatus | None = Query(None, alias="status"),
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    query = select(Invite)
    if invite_status:
        query = query.where(Invite.status == invite_status)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()

    query = (
        query.options(selectinload(Invite.inviter))
        .order_by(Invite.created_at.desc())
        .offset((page - 1) * size)
        .limit(size)
    )
    invites = (await db.execute(query)).scalars().all()

    return InviteListResponse(
        items=[InviteResponse.model_validate(i) for i in invites],
        total=total,
        page=page,
        size=size,
    )


@router.get("/stats", response_model=InviteStats)
async def invite_stats(
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Invite counts by stored status."""
    result = await db.execute(
        select(Invite.status, func.count(Invite.id)).group_by(Invite.status)
    )
    counts = {row[0]: row[1] for row in result.all()}
    pending = counts.get(InviteStatus.PENDING, 0)
    accepted = counts.get(InviteStatus.ACCEPTED, 0)
    expired = counts.get(InviteStatus.EXPIRED, 0)
    return InviteStats(
        pending=pending,
        accepted=accepted,
        expired=expired,
        total=pending + accepted + expired,
    )


@router.get("/recent", response_model=RecentInvitesResponse)
async def recent_invites(
    limit: int = Query(5, ge=1, le=50),
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Invite)
        .options(selectinload(Invite.inviter))
        .order_by(Invite.created_at.desc())
        .limit(limit)
    )
    return RecentInvitesResponse(
        items=[InviteResponse.model_validate(i) for i in result.scalars().all()]
    )


@router.post("", response_model=InviteResponse, status_code=status.HTTP_201_CREATED)
async def create_invite(
    body: InviteCreate,
    current_user: CurrentUser = Depends(require_admin),
    invites: InviteService = Depends(get_invite_service),
):
    """Create an invite and email the registration link."""
    invite = await invites.create_invite(body.email, body.role, current_user.id)
    return InviteResponse.model_validate(invite)


@router.post("/{invite_id}/resend", response_model=MessageResponse)
async def resend_invite(
    invite_id: UUID,
    current_user: CurrentUser = Depends(require_admin),
    invites: InviteService = Depends(get_invite_service),
):
    invite = await invites.resend_invite(invite_id)
    return MessageResponse(message=f"Invitation resent to {invite.email}")


@router.delete("/{invite_id}", response_model=MessageResponse)
async def cancel_invite(
    invite_id: UUID,
    current_user: CurrentUser = Depends(require_admin),
    invites: InviteService = Depends(get_invite_service),
):
    await invites.cancel_invite(invite_id)
    return MessageResponse(message="Invitation cancelled")
