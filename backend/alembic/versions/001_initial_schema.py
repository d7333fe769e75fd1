"""Initial database schema - users, products, sales, invites

Revision ID: 001_initial
Revises: None
Create Date: 2025-02-07
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

USER_ROLES = ("ADMIN", "STAFF")
INVITE_STATUSES = ("PENDING", "ACCEPTED", "EXPIRED")

# Postgres enum types are created once up front, not per table
user_role_pg = postgresql.ENUM(*USER_ROLES, name="user_role", create_type=False)
invite_status_pg = postgresql.ENUM(*INVITE_STATUSES, name="invite_status", create_type=False)
user_role = sa.Enum(*USER_ROLES, name="user_role").with_variant(user_role_pg, "postgresql")
invite_status = sa.Enum(*INVITE_STATUSES, name="invite_status").with_variant(
    invite_status_pg, "postgresql"
)


def upgrade() -> None:
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        user_role_pg.create(bind, checkfirst=True)
        invite_status_pg.create(bind, checkfirst=True)

    # --- Users ---
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", user_role, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"])

    # --- Products ---
    op.create_table(
        "products",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("sku", sa.String(100), unique=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False, server_default="0"),
        sa.Column("threshold", sa.Integer, nullable=False, server_default="10"),
        sa.Column("image_url", sa.String(500)),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        sa.CheckConstraint("threshold >= 0", name="ck_products_threshold_non_negative"),
    )
    op.create_index("ix_products_name", "products", ["name"])
    op.create_index("ix_products_category", "products", ["category"])

    # --- Sales ---
    op.create_table(
        "sales",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("product_id", sa.Uuid, sa.ForeignKey("products.id"), nullable=False),
        sa.Column("user_id", sa.Uuid, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("quantity_sold", sa.Integer, nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("notes", sa.Text),
        sa.Column("sold_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("quantity_sold > 0", name="ck_sales_quantity_positive"),
    )
    op.create_index("ix_sales_product_id", "sales", ["product_id"])
    op.create_index("ix_sales_user_id", "sales", ["user_id"])
    op.create_index("ix_sales_sold_at", "sales", ["sold_at"])

    # --- Invites ---
    op.create_table(
        "invites",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("token", sa.String(128), nullable=False, unique=True),
        sa.Column("role", user_role, nullable=False),
        sa.Column("status", invite_status, nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("invited_by", sa.Uuid, sa.ForeignKey("users.id"), nullable=False),
    )
    op.create_index("ix_invites_email", "invites", ["email"])
    op.create_index("ix_invites_token", "invites", ["token"])
    op.create_index("ix_invites_status", "invites", ["status"])
    op.create_index("ix_invites_invited_by", "invites", ["invited_by"])
    # One PENDING invite per email
    op.create_index(
        "uq_invites_pending_email",
        "invites",
        ["email"],
        unique=True,
        postgresql_where=sa.text("status = 'PENDING'"),
        sqlite_where=sa.text("status = 'PENDING'"),
    )


def downgrade() -> None:
    op.drop_table("invites")
    op.drop_table("sales")
    op.drop_table("products")
    op.drop_table("users")
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        invite_status_pg.drop(bind, checkfirst=True)
        user_role_pg.drop(bind, checkfirst=True)
