"""Invite lifecycle tests: creation, verification, single use, expiry."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from app.core.errors import (
    AlreadyUsedError,
    ConflictError,
    EmailDeliveryFailedError,
    EmailMismatchError,
    ExpiredError,
    InvalidStateError,
    NotFoundError,
)
from app.core.security import verify_password
from app.models.invite import Invite, InviteStatus
from app.models.user import User, UserRole
from app.services.invites import InviteService


class FrozenClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FrozenClock(datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def service(db, email_sender, clock):
    return InviteService(db, email_sender, expire_days=7, clock=clock)


async def _stored_invite(session_factory, invite_id) -> Invite:
    async with session_factory() as session:
        return await session.get(Invite, invite_id)


@pytest.mark.asyncio
async def test_create_invite_sends_email(service, email_sender, admin, clock):
    invite = await service.create_invite("  New.Hire@Example.com ", UserRole.STAFF, admin.id)

    assert invite.email == "new.hire@example.com"
    assert invite.status == InviteStatus.PENDING
    assert invite.role == UserRole.STAFF
    assert invite.expires_at == clock.now + timedelta(days=7)
    assert len(invite.token) == 64
    assert email_sender.sent == [
        {"email": "new.hire@example.com", "token": invite.token, "inviter_name": admin.name}
    ]


@pytest.mark.asyncio
async def test_duplicate_pending_invite_conflicts(service, admin):
    await service.create_invite("a@b.com", UserRole.STAFF, admin.id)
    with pytest.raises(ConflictError):
        await service.create_invite("a@b.com", UserRole.STAFF, admin.id)


@pytest.mark.asyncio
async def test_invite_for_existing_user_conflicts(service, admin, staff):
    with pytest.raises(ConflictError):
        await service.create_invite(staff.email.upper(), UserRole.STAFF, admin.id)


@pytest.mark.asyncio
async def test_lapsed_pending_invite_is_replaced(service, session_factory, admin, clock):
    old = await service.create_invite("a@b.com", UserRole.STAFF, admin.id)
    clock.advance(days=8)

    new = await service.create_invite("a@b.com", UserRole.ADMIN, admin.id)

    assert new.id != old.id
    assert (await _stored_invite(session_factory, old.id)).status == InviteStatus.EXPIRED
    assert (await _stored_invite(session_factory, new.id)).status == InviteStatus.PENDING


@pytest.mark.asyncio
async def test_email_failure_removes_invite(db, session_factory, email_sender, admin, clock):
    email_sender.fail = True
    service = InviteService(db, email_sender, expire_days=7, clock=clock)

    with pytest.raises(EmailDeliveryFailedError):
        await service.create_invite("a@b.com", UserRole.STAFF, admin.id)

    async with session_factory() as session:
        assert await session.scalar(select(func.count(Invite.id))) == 0

    # The address is free for a retry once email works again
    email_sender.fail = False
    invite = await service.create_invite("a@b.com", UserRole.STAFF, admin.id)
    assert invite.status == InviteStatus.PENDING


@pytest.mark.asyncio
async def test_unknown_inviter_not_found(service):
    with pytest.raises(NotFoundError):
        await service.create_invite("a@b.com", UserRole.STAFF, uuid.uuid4())


@pytest.mark.asyncio
async def test_verify_invite(service, admin):
    invite = await service.create_invite("a@b.com", UserRole.ADMIN, admin.id)

    result = await service.verify_invite(invite.token)

    assert result.email == "a@b.com"
    assert result.role == UserRole.ADMIN
    assert result.inviter_name == admin.name


@pytest.mark.asyncio
async def test_verify_unknown_token(service):
    with pytest.raises(NotFoundError):
        await service.verify_invite("0" * 64)


@pytest.mark.asyncio
async def test_consume_expired_invite(service, session_factory, admin, clock):
    invite = await service.create_invite("a@b.com", UserRole.STAFF, admin.id)
    # A failed register rolls the session back and expires ``invite``
    invite_id, token = invite.id, invite.token
    clock.advance(days=8)

    with pytest.raises(ExpiredError):
        await service.verify_invite(token)
    with pytest.raises(ExpiredError):
        await service.register("New Hire", "a@b.com", "secret123", token)

    # Expiry is computed, the stored status is untouched
    assert (await _stored_invite(session_factory, invite_id)).status == InviteStatus.PENDING


@pytest.mark.asyncio
async def test_invite_valid_until_just_before_expiry(service, admin, clock):
    invite = await service.create_invite("a@b.com", UserRole.STAFF, admin.id)
    clock.advance(days=7, seconds=-1)
    await service.verify_invite(invite.token)

    clock.advance(seconds=1)
    with pytest.raises(ExpiredError):
        await service.verify_invite(invite.token)


@pytest.mark.asyncio
async def test_register_consumes_invite_once(service, session_factory, admin):
    invite = await service.create_invite("a@b.com", UserRole.ADMIN, admin.id)
    invite_id, token = invite.id, invite.token

    user = await service.register("New Hire", "A@B.com", "secret123", token)

    assert user.email == "a@b.com"
    assert user.role == UserRole.ADMIN
    assert verify_password("secret123", user.hashed_password)
    assert (await _stored_invite(session_factory, invite_id)).status == InviteStatus.ACCEPTED

    with pytest.raises(AlreadyUsedError):
        await service.register("Someone Else", "a@b.com", "secret123", token)
    with pytest.raises(AlreadyUsedError):
        await service.verify_invite(token)


@pytest.mark.asyncio
async def test_register_with_other_email_rejected(service, session_factory, admin):
    invite = await service.create_invite("a@b.com", UserRole.STAFF, admin.id)
    invite_id, token = invite.id, invite.token

    with pytest.raises(EmailMismatchError):
        await service.register("Intruder", "x@y.com", "secret123", token)

    assert (await _stored_invite(session_factory, invite_id)).status == InviteStatus.PENDING
    async with session_factory() as session:
        assert await session.scalar(select(User.id).where(User.email == "x@y.com")) is None


@pytest.mark.asyncio
async def test_consume_in_two_sessions_only_one_wins(session_factory, email_sender, admin, clock):
    async with session_factory() as session:
        invite = await InviteService(session, email_sender, clock=clock).create_invite(
            "a@b.com", UserRole.STAFF, admin.id
        )

    async with session_factory() as first, session_factory() as second:
        role = await InviteService(first, email_sender, clock=clock).consume_invite(
            invite.token, "a@b.com"
        )
        await first.commit()
        assert role == UserRole.STAFF

        with pytest.raises(AlreadyUsedError):
            await InviteService(second, email_sender, clock=clock).consume_invite(
                invite.token, "a@b.com"
            )


@pytest.mark.asyncio
async def test_resend_extends_expiry(service, email_sender, session_factory, admin, clock):
    invite = await service.create_invite("a@b.com", UserRole.STAFF, admin.id)
    clock.advance(days=6)

    await service.resend_invite(invite.id)

    stored = await _stored_invite(session_factory, invite.id)
    assert stored.expires_at.replace(tzinfo=timezone.utc) == clock.now + timedelta(days=7)
    assert [m["token"] for m in email_sender.sent] == [invite.token, invite.token]


@pytest.mark.asyncio
async def test_resend_failure_keeps_new_expiry(service, email_sender, session_factory, admin, clock):
    invite = await service.create_invite("a@b.com", UserRole.STAFF, admin.id)
    clock.advance(days=3)
    email_sender.fail = True

    with pytest.raises(EmailDeliveryFailedError):
        await service.resend_invite(invite.id)

    stored = await _stored_invite(session_factory, invite.id)
    assert stored.expires_at.replace(tzinfo=timezone.utc) == clock.now + timedelta(days=7)


@pytest.mark.asyncio
async def test_cancel_then_resend_is_invalid(service, session_factory, admin):
    invite = await service.create_invite("a@b.com", UserRole.STAFF, admin.id)
    invite_id, token = invite.id, invite.token

    await service.cancel_invite(invite_id)
    assert (await _stored_invite(session_factory, invite_id)).status == InviteStatus.EXPIRED

    with pytest.raises(InvalidStateError):
        await service.resend_invite(invite_id)
    with pytest.raises(InvalidStateError):
        await service.cancel_invite(invite_id)
    with pytest.raises(AlreadyUsedError):
        await service.verify_invite(token)


@pytest.mark.asyncio
async def test_cancelled_invite_frees_the_email(service, admin):
    invite = await service.create_invite("a@b.com", UserRole.STAFF, admin.id)
    await service.cancel_invite(invite.id)

    replacement = await service.create_invite("a@b.com", UserRole.STAFF, admin.id)
    assert replacement.id != invite.id


@pytest.mark.asyncio
async def test_insert_race_surfaces_as_conflict(
    db, session_factory, email_sender, admin, clock, monkeypatch
):
    """A competing invite committed after our pending check hits the unique index."""
    service = InviteService(db, email_sender, expire_days=7, clock=clock)
    original_scalar = db.scalar
    competitor = {}

    async def scalar_then_competitor_commits(statement, *args, **kwargs):
        result = await original_scalar(statement, *args, **kwargs)
        entity = statement.column_descriptions[0]["entity"]
        if entity is Invite and not competitor:
            async with session_factory() as other:
                rival = await InviteService(other, email_sender, clock=clock).create_invite(
                    "a@b.com", UserRole.STAFF, admin.id
                )
                competitor["id"] = rival.id
        return result

    monkeypatch.setattr(db, "scalar", scalar_then_competitor_commits)

    with pytest.raises(ConflictError) as exc_info:
        await service.create_invite("a@b.com", UserRole.ADMIN, admin.id)

    assert isinstance(exc_info.value.__cause__, IntegrityError)
    async with session_factory() as session:
        pending = (
            await session.execute(
                select(Invite.id).where(
                    Invite.email == "a@b.com", Invite.status == InviteStatus.PENDING
                )
            )
        ).scalars().all()
    assert pending == [competitor["id"]]
    # Only the competitor's email went out
    assert len(email_sender.sent) == 1


@pytest.mark.asyncio
async def test_partial_index_allows_non_pending_duplicates(session_factory, admin):
    expires = datetime(2025, 3, 8, tzinfo=timezone.utc)

    def _invite(status):
        return Invite(
            email="a@b.com",
            token=uuid.uuid4().hex,
            role=UserRole.STAFF,
            status=status,
            expires_at=expires,
            invited_by=admin.id,
        )

    async with session_factory() as session:
        session.add_all([_invite(InviteStatus.EXPIRED), _invite(InviteStatus.ACCEPTED)])
        session.add(_invite(InviteStatus.PENDING))
        await session.commit()

    async with session_factory() as session:
        session.add(_invite(InviteStatus.PENDING))
        with pytest.raises(IntegrityError):
            await session.commit()
