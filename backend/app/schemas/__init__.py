from app.schemas.product import (
    ProductCreate, ProductUpdate, ProductResponse, ProductListResponse,
)
from app.schemas.sale import (
    SaleCreate, SaleUpdate, SaleResponse, SaleListResponse,
)
from app.schemas.invite import (
    InviteCreate, InviteResponse, InviteListResponse, InviteStats,
)
from app.schemas.user import (
    UserUpdate, UserDetail, UserListResponse, UserStats,
)

__all__ = [
    "ProductCreate", "ProductUpdate", "ProductResponse", "ProductListResponse",
    "SaleCreate", "SaleUpdate", "SaleResponse", "SaleListResponse",
    "InviteCreate", "InviteResponse", "InviteListResponse", "InviteStats",
    "UserUpdate", "UserDetail", "UserListResponse", "UserStats",
]
