"""Authentication endpoints: login, invite registration, invite verification."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import get_current_user, get_invite_service
from app.core.security import create_access_token, verify_password
from app.db.base import get_db
from app.models.user import User
from app.schemas.auth import (
    CurrentUser,
    InviteVerificationResponse,
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from app.services.invites import InviteService, normalize_email

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_response(user: User) -> TokenResponse:
    token = create_access_token(user_id=user.id, role=user.role.value)
    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Authenticate via email + password, return JWT."""
    user = await db.scalar(select(User).where(User.email == normalize_email(body.email)))

    if not user or not verify_password(body.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )

    return _token_response(user)


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    invites: InviteService = Depends(get_invite_service),
):
    """Register with an invitation token; the new user is logged in straight away."""
    user = await invites.register(
        name=body.name, email=body.email, password=body.password, token=body.token
    )
    return _token_response(user)


@router.get("/verify-invite/{token}", response_model=InviteVerificationResponse)
async def verify_invite(token: str, invites: InviteService = Depends(get_invite_service)):
    result = await invites.verify_invite(token)
    return InviteVerificationResponse(
        email=result.email, role=result.role, inviter_name=result.inviter_name
    )


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Return full profile of the current authenticated user."""
    user = await db.get(User, current_user.id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserResponse.model_validate(user)
