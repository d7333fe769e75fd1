"""User management endpoints (admin only)."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.products import _escape_like
from app.core.deps import require_admin
from app.db.base import get_db
from app.models.invite import Invite
from app.models.sale import Sale
from app.models.user import User, UserRole
from app.schemas.auth import CurrentUser
from app.schemas.user import (
    UserDeleteResponse,
    UserDetail,
    UserListItem,
    UserListResponse,
    UserStats,
    UserUpdate,
)
from app.services.invites import normalize_email

router = APIRouter(prefix="/users", tags=["users"])


async def _get_user(db: AsyncSession, user_id: UUID) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return user


async def _count_sales(db: AsyncSession, user_id: UUID) -> int:
    return await db.scalar(select(func.count(Sale.id)).where(Sale.user_id == user_id))


async def _count_invites_sent(db: AsyncSession, user_id: UUID) -> int:
    return await db.scalar(select(func.count(Invite.id)).where(Invite.invited_by == user_id))


async def _detail(db: AsyncSession, user: User) -> UserDetail:
    detail = UserDetail.model_validate(user)
    detail.sales_count = await _count_sales(db, user.id)
    detail.invites_sent_count = await _count_invites_sent(db, user.id)
    return detail


@router.get("", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
    search: str | None = None,
    role: UserRole | None = None,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """List accounts, newest first, with how many sales each has recorded."""
    query = select(User)
    if search:
        like = f"%{_escape_like(search)}%"
        query = query.where(
            User.name.ilike(like, escape="\\") | User.email.ilike(like, escape="\\")
        )
    if role:
        query = query.where(User.role == role)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()

    sales_subquery = (
        select(Sale.user_id, func.count(Sale.id).label("sales_count"))
        .group_by(Sale.user_id)
        .subquery()
    )
    query = (
        query.add_columns(func.coalesce(sales_subquery.c.sales_count, 0))
        .outerjoin(sales_subquery, User.id == sales_subquery.c.user_id)
        .order_by(User.created_at.desc())
        .offset((page - 1) * size)
        .limit(size)
    )
    rows = (await db.execute(query)).all()

    items = []
    for user, sales_count in rows:
        item = UserListItem.model_validate(user)
        item.sales_count = sales_count
        items.append(item)

    return UserListResponse(items=items, total=total, page=page, size=size)


@router.get("/stats/overview", response_model=UserStats)
async def user_stats(
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(User.role, User.is_active, func.count(User.id)).group_by(User.role, User.is_active)
    )
    rows = result.all()
    total = sum(count for _, _, count in rows)
    active = sum(count for _, is_active, count in rows if is_active)
    return UserStats(
        total=total,
        active=active,
        inactive=total - active,
        admins=sum(count for role, _, count in rows if role == UserRole.ADMIN),
        staff=sum(count for role, _, count in rows if role == UserRole.STAFF),
    )


@router.get("/{user_id}", response_model=UserDetail)
async def get_user(
    user_id: UUID,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await _detail(db, await _get_user(db, user_id))


@router.patch("/{user_id}", response_model=UserDetail)
async def update_user(
    user_id: UUID,
    body: UserUpdate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Edit an account. Admins cannot deactivate or demote themselves."""
    update_data = body.model_dump(exclude_unset=True)

    if user_id == current_user.id:
        if update_data.get("is_active") is False:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot deactivate your own account",
            )
        if update_data.get("role") == UserRole.STAFF:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot change your own role to STAFF",
            )

    user = await _get_user(db, user_id)

    if "email" in update_data:
        update_data["email"] = normalize_email(update_data["email"])
        taken = await db.scalar(
            select(User.id).where(User.email == update_data["email"], User.id != user_id)
        )
        if taken:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Email '{update_data['email']}' is already in use",
            )

    for field, value in update_data.items():
        setattr(user, field, value)

    await db.commit()
    await db.refresh(user)
    return await _detail(db, user)


@router.delete("/{user_id}", response_model=UserDeleteResponse)
async def delete_user(
    user_id: UUID,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete an account; accounts with sales or sent invites are only deactivated."""
    if user_id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account",
        )

    user = await _get_user(db, user_id)

    if await _count_sales(db, user_id) or await _count_invites_sent(db, user_id):
        user.is_active = False
        await db.commit()
        return UserDeleteResponse(
            action="deactivated", message="User deactivated (has sales or invite records)"
        )

    await db.delete(user)
    await db.commit()
    return UserDeleteResponse(action="deleted", message="User deleted successfully")
