"""Unit tests for auth: security utils + dependency logic."""

import uuid
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from fastapi import HTTPException
from jose import JWTError
from sqlalchemy import update

from app.core.deps import get_current_user, require_admin, require_staff_or_admin
from app.core.security import (
    create_access_token,
    decode_access_token,
    generate_invite_token,
    hash_password,
    verify_password,
)
from app.models.user import User, UserRole
from app.schemas.auth import CurrentUser


# ── Password hashing ──────────────────────────────

def test_hash_and_verify():
    plain = "SecurePass123!"
    hashed = hash_password(plain)
    assert hashed != plain
    assert verify_password(plain, hashed)
    assert not verify_password("wrong", hashed)


# ── JWT ────────────────────────────────────────────

def test_create_and_decode_token():
    uid = uuid.uuid4()
    token = create_access_token(user_id=uid, role="ADMIN")
    payload = decode_access_token(token)
    assert payload["sub"] == str(uid)
    assert payload["role"] == "ADMIN"


def test_expired_token():
    token = create_access_token(
        user_id=uuid.uuid4(),
        role="STAFF",
        expires_delta=timedelta(seconds=-1),
    )
    with pytest.raises(JWTError):
        decode_access_token(token)


# ── Invite tokens ─────────────────────────────────

def test_invite_token_is_64_hex_chars_and_unique():
    tokens = {generate_invite_token() for _ in range(50)}
    assert len(tokens) == 50
    for token in tokens:
        assert len(token) == 64
        int(token, 16)


# ── Dependencies ──────────────────────────────────

@pytest.mark.asyncio
async def test_current_user_from_token(db, staff):
    token = create_access_token(user_id=staff.id, role="STAFF")
    user = await get_current_user(token, db)
    assert user.id == staff.id
    assert user.role == UserRole.STAFF


@pytest.mark.asyncio
async def test_role_comes_from_the_account(db, staff):
    # A stale token claiming ADMIN does not outrank the stored role
    token = create_access_token(user_id=staff.id, role="ADMIN")
    user = await get_current_user(token, db)
    assert user.role == UserRole.STAFF


@pytest.mark.asyncio
async def test_garbage_token_is_401():
    mock_db = AsyncMock()
    with pytest.raises(HTTPException) as exc_info:
        await get_current_user("not-a-jwt", mock_db)
    assert exc_info.value.status_code == 401
    mock_db.get.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_user_is_401(db):
    token = create_access_token(user_id=uuid.uuid4(), role="STAFF")
    with pytest.raises(HTTPException) as exc_info:
        await get_current_user(token, db)
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_deactivated_user_is_403(db, session_factory, staff):
    async with session_factory() as session:
        await session.execute(
            update(User).where(User.id == staff.id).values(is_active=False)
        )
        await session.commit()

    token = create_access_token(user_id=staff.id, role="STAFF")
    with pytest.raises(HTTPException) as exc_info:
        await get_current_user(token, db)
    assert exc_info.value.status_code == 403


@pytest.mark.asyncio
async def test_role_gates():
    staff = CurrentUser(id=uuid.uuid4(), role=UserRole.STAFF)
    admin = CurrentUser(id=uuid.uuid4(), role=UserRole.ADMIN)

    assert await require_staff_or_admin(staff) is staff
    assert await require_admin(admin) is admin
    with pytest.raises(HTTPException) as exc_info:
        await require_admin(staff)
    assert exc_info.value.status_code == 403
