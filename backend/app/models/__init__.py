"""SQLAlchemy models for the farm management backend."""

from app.models.user import User, UserRole
from app.models.product import Product
from app.models.sale import Sale
from app.models.invite import Invite, InviteStatus

__all__ = [
    "User",
    "UserRole",
    "Product",
    "Sale",
    "Invite",
    "InviteStatus",
]
