"""Invite lifecycle: issue, verify, consume, resend and cancel registration invites.

State machine::

    PENDING --consume--> ACCEPTED
    PENDING --cancel---> EXPIRED

A PENDING invite past ``expires_at`` keeps its stored status but is rejected
by ``verify_invite`` and ``consume_invite``. ACCEPTED and EXPIRED are terminal.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.core.errors import (
    AlreadyUsedError,
    ConflictError,
    EmailDeliveryFailedError,
    EmailMismatchError,
    ExpiredError,
    InvalidStateError,
    NotFoundError,
)
from app.core.security import generate_invite_token, hash_password
from app.core.time_utils import utcnow
from app.db.base import atomic
from app.models.invite import Invite, InviteStatus
from app.models.user import User, UserRole
from app.services.email import EmailSender

logger = logging.getLogger(__name__)


@dataclass
class InviteVerification:
    email: str
    role: UserRole
    inviter_name: str


def normalize_email(email: str) -> str:
    return email.strip().lower()


class InviteService:
    def __init__(
        self,
        db: AsyncSession,
        email_sender: EmailSender,
        expire_days: int = settings.INVITE_EXPIRE_DAYS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.email_sender = email_sender
        self.expire_days = expire_days
        self.clock = clock

    async def create_invite(self, email: str, role: UserRole, invited_by: UUID) -> Invite:
        """Issue a new invite and mail it.

        If the email cannot be sent the invite row is deleted again and
        ``EmailDeliveryFailedError`` is raised.
        """
        email = normalize_email(email)
        now = self.clock()

        async with atomic(self.db):
            inviter = await self.db.get(User, invited_by)
            if inviter is None:
                raise NotFoundError("Inviting user does not exist")

            if await self.db.scalar(select(User.id).where(User.email == email)):
                raise ConflictError("A user with this email already exists")

            pending = await self.db.scalar(
                select(Invite).where(
                    Invite.email == email, Invite.status == InviteStatus.PENDING
                )
            )
            if pending is not None:
                if not pending.is_expired(now):
                    raise ConflictError("A pending invitation already exists for this email")
                # Lapsed invite: retire it so the new one can take the pending slot
                pending.status = InviteStatus.EXPIRED
                await self.db.flush()

            invite = Invite(
                email=email,
                token=generate_invite_token(),
                role=role,
                status=InviteStatus.PENDING,
                expires_at=now + timedelta(days=self.expire_days),
                created_at=now,
                inviter=inviter,
            )
            self.db.add(invite)
            try:
                await self.db.flush()
            except IntegrityError as exc:
                # Lost a race with a concurrent invite for the same email
                raise ConflictError("A pending invitation already exists for this email") from exc

        logger.info("Invite %s created for %s (role=%s) by %s", invite.id, email, role.value, inviter.id)

        try:
            await self.email_sender.send_invite_email(invite.email, invite.token, inviter.name)
        except Exception as exc:
            logger.error("Invite email to %s failed, removing invite %s: %s", email, invite.id, exc)
            async with atomic(self.db):
                await self.db.execute(
                    delete(Invite)
                    .where(Invite.id == invite.id)
                    .execution_options(synchronize_session=False)
                )
            raise EmailDeliveryFailedError(
                "Failed to send invitation email. Please check email configuration."
            ) from exc

        return invite

    async def verify_invite(self, token: str) -> InviteVerification:
        """Read-only check used before the registration form is shown."""
        invite = await self._get_by_token(token)
        self._ensure_usable(invite)
        return InviteVerification(
            email=invite.email, role=invite.role, inviter_name=invite.inviter.name
        )

    async def consume_invite(self, token: str, registering_email: str) -> UserRole:
        """Mark the invite ACCEPTED and return the role it grants.

        Does not commit: the caller wraps this and the user insert in one
        transaction (see ``register``).
        """
        invite = await self._get_by_token(token)
        self._ensure_usable(invite)
        if invite.email != normalize_email(registering_email):
            raise EmailMismatchError("Email does not match the invitation")

        result = await self.db.execute(
            update(Invite)
            .where(Invite.id == invite.id, Invite.status == InviteStatus.PENDING)
            .values(status=InviteStatus.ACCEPTED)
        )
        if result.rowcount == 0:
            raise AlreadyUsedError("This invitation has already been used")
        return invite.role

    async def register(self, name: str, email: str, password: str, token: str) -> User:
        """Create a user from an invite; invite consumption and user insert commit together."""
        email = normalize_email(email)

        async with atomic(self.db):
            role = await self.consume_invite(token, email)

            if await self.db.scalar(select(User.id).where(User.email == email)):
                raise ConflictError("A user with this email already exists")

            user = User(
                name=name.strip(),
                email=email,
                hashed_password=hash_password(password),
                role=role,
            )
            self.db.add(user)
            try:
                await self.db.flush()
            except IntegrityError as exc:
                raise ConflictError("A user with this email already exists") from exc

        logger.info("User %s registered via invite (role=%s)", user.id, role.value)
        return user

    async def resend_invite(self, invite_id: UUID) -> Invite:
        """Push the expiry out again and re-send the same token."""
        async with atomic(self.db):
            invite = await self._get(invite_id)
            expires_at = self.clock() + timedelta(days=self.expire_days)
            result = await self.db.execute(
                update(Invite)
                .where(Invite.id == invite_id, Invite.status == InviteStatus.PENDING)
                .values(expires_at=expires_at)
            )
            if result.rowcount == 0:
                raise InvalidStateError("Can only resend pending invitations")

        logger.info("Invite %s resent to %s", invite.id, invite.email)
        try:
            await self.email_sender.send_invite_email(invite.email, invite.token, invite.inviter.name)
        except Exception as exc:
            logger.error("Failed to resend invite %s: %s", invite.id, exc)
            raise EmailDeliveryFailedError("Failed to resend invitation email") from exc
        return invite

    async def cancel_invite(self, invite_id: UUID) -> Invite:
        async with atomic(self.db):
            invite = await self._get(invite_id)
            result = await self.db.execute(
                update(Invite)
                .where(Invite.id == invite_id, Invite.status == InviteStatus.PENDING)
                .values(status=InviteStatus.EXPIRED)
            )
            if result.rowcount == 0:
                raise InvalidStateError("Can only cancel pending invitations")

        logger.info("Invite %s cancelled", invite.id)
        return invite

    async def _get(self, invite_id: UUID) -> Invite:
        invite = await self.db.scalar(
            select(Invite)
            .where(Invite.id == invite_id)
            .options(selectinload(Invite.inviter))
            .execution_options(populate_existing=True)
        )
        if invite is None:
            raise NotFoundError("Invitation with this ID does not exist")
        return invite

    async def _get_by_token(self, token: str) -> Invite | None:
        return await self.db.scalar(
            select(Invite)
            .where(Invite.token == token)
            .options(selectinload(Invite.inviter))
            .execution_options(populate_existing=True)
        )

    def _ensure_usable(self, invite: Invite | None) -> None:
        if invite is None:
            raise NotFoundError("Invitation token not found")
        if invite.status != InviteStatus.PENDING:
            raise AlreadyUsedError("This invitation has already been used")
        if invite.is_expired(self.clock()):
            raise ExpiredError("This invitation has expired")
