"""Dependency injection: auth, role enforcement and service wiring."""

from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import decode_access_token
from app.db.base import get_db
from app.models.user import User, UserRole
from app.schemas.auth import CurrentUser
from app.services.email import EmailSender, build_email_sender
from app.services.invites import InviteService
from app.services.notifications import Broadcaster
from app.services.sales import SalesService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """Resolve the bearer token to a live account.

    The token only names the user; the account is re-read on every request so
    a deactivated or deleted user loses access immediately and the role comes
    from the database, not the token. Raises 401 on a bad token or unknown
    user, 403 on a deactivated account.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_access_token(token)
        user_id = UUID(payload["sub"])
    except (JWTError, KeyError, ValueError, TypeError):
        raise credentials_exception

    user = await db.get(User, user_id)
    if user is None:
        raise credentials_exception
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )
    return CurrentUser(id=user.id, role=user.role)


def require_role(*allowed_roles: UserRole):
    """Dependency factory: checks the user has one of the allowed roles."""

    async def checker(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{user.role.value}' not allowed. Required: "
                f"{', '.join(r.value for r in allowed_roles)}",
            )
        return user

    return checker


require_admin = require_role(UserRole.ADMIN)
require_staff_or_admin = require_role(UserRole.ADMIN, UserRole.STAFF)


def get_broadcaster(request: Request) -> Broadcaster:
    return request.app.state.broadcaster


def get_email_sender() -> EmailSender:
    return build_email_sender(settings)


def get_sales_service(
    db: AsyncSession = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> SalesService:
    return SalesService(db, broadcaster)


def get_invite_service(
    db: AsyncSession = Depends(get_db),
    email_sender: EmailSender = Depends(get_email_sender),
) -> InviteService:
    return InviteService(db, email_sender)
