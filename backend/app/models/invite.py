"""Invite model for invite-only registration."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import String, Enum, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.time_utils import ensure_utc, utcnow
from app.db.base import Base
from app.models.mixins import UUIDPrimaryKeyMixin
from app.models.user import UserRole


class InviteStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    EXPIRED = "EXPIRED"


class Invite(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "invites"
    __table_args__ = (
        # At most one PENDING invite per email, enforced by the database
        Index(
            "uq_invites_pending_email",
            "email",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
    )

    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    token: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role"), default=UserRole.STAFF, nullable=False
    )
    status: Mapped[InviteStatus] = mapped_column(
        Enum(InviteStatus, name="invite_status"),
        default=InviteStatus.PENDING,
        nullable=False,
        index=True,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    # Foreign keys
    invited_by: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True
    )

    # Relationships
    inviter = relationship("User", back_populates="invites_sent")

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) >= ensure_utc(self.expires_at)

    def __repr__(self) -> str:
        return f"<Invite {self.email} {self.status.value}>"
