"""Initial schema — all tables, constraints, and indexes.

Revision: 001_initial_schema
Created:  2026-10-19

Append-only:
  This file must NEVER be edited after it has been applied to any database.
  Schema changes go in a NEW migration file.

Creation order (FK dependencies):
  users → customers → categories → products → orders, then jwt_blacklist.

Status-like columns are plain VARCHAR; the allowed values live in the
model enums and the request schemas, which keeps the schema portable to
the SQLite database used by the test suite.

ON DELETE policies:
  customers.user_id      → CASCADE   (profile owned by user)
  categories.parent_id   → SET NULL  (children survive their parent)
  products.category_id   → RESTRICT  (category with products cannot go)
  orders.customer_id     → RESTRICT  (order history is kept)
  jwt_blacklist          → no FK     (entries outlive their user)
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: tuple | None = None
depends_on: tuple | None = None


def _identity_columns() -> list[sa.Column]:
    """id / public_id / timestamps shared by every client-visible table."""
    return [
        sa.Column("id", sa.String(24), nullable=False),
        sa.Column("public_id", sa.String(24), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:

    # ── users ──────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        *_identity_columns(),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="customer"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("avatar", sa.String(500), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint("role IN ('admin', 'customer')", name="ck_users_role"),
        sa.CheckConstraint("status IN ('active', 'inactive')", name="ck_users_status"),
    )

    # ── customers ──────────────────────────────────────────────────────────
    op.create_table(
        "customers",
        *_identity_columns(),
        sa.Column(
            "user_id",
            sa.String(24),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_customers_user"),
            nullable=False,
        ),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False, server_default=""),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("state", sa.String(100), nullable=True),
        sa.Column("zip_code", sa.String(20), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("marketing_consent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint("id", name="pk_customers"),
        sa.UniqueConstraint("user_id", name="uq_customers_user"),
    )

    # ── categories ─────────────────────────────────────────────────────────
    op.create_table(
        "categories",
        *_identity_columns(),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("slug", sa.String(140), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "parent_id",
            sa.String(24),
            sa.ForeignKey("categories.id", ondelete="SET NULL", name="fk_categories_parent"),
            nullable=True,
        ),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("meta_title", sa.String(255), nullable=True),
        sa.Column("meta_description", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_categories"),
        sa.UniqueConstraint("slug", name="uq_categories_slug"),
    )

    # ── products ───────────────────────────────────────────────────────────
    op.create_table(
        "products",
        *_identity_columns(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("slug", sa.String(220), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "category_id",
            sa.String(24),
            sa.ForeignKey("categories.id", ondelete="RESTRICT", name="fk_products_category"),
            nullable=True,
        ),
        sa.Column("sku", sa.String(64), nullable=False),
        sa.Column("stock_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("weight", sa.Numeric(10, 2), nullable=True),
        sa.Column("dimensions", sa.JSON(), nullable=True),
        sa.Column("meta_title", sa.String(255), nullable=True),
        sa.Column("meta_description", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_products"),
        sa.UniqueConstraint("slug", name="uq_products_slug"),
        sa.UniqueConstraint("sku", name="uq_products_sku"),
        sa.CheckConstraint("price >= 0", name="ck_products_price_nonnegative"),
        sa.CheckConstraint("stock_quantity >= 0", name="ck_products_stock_nonnegative"),
    )

    # ── orders ─────────────────────────────────────────────────────────────
    op.create_table(
        "orders",
        *_identity_columns(),
        sa.Column("order_number", sa.String(40), nullable=False),
        sa.Column(
            "customer_id",
            sa.String(24),
            sa.ForeignKey("customers.id", ondelete="RESTRICT", name="fk_orders_customer"),
            nullable=False,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("payment_method", sa.String(40), nullable=True),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("tax_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("shipping_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("discount_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("shipping_address", sa.JSON(), nullable=True),
        sa.Column("billing_address", sa.JSON(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_orders"),
        sa.UniqueConstraint("order_number", name="uq_orders_number"),
    )

    # ── jwt_blacklist ──────────────────────────────────────────────────────
    op.create_table(
        "jwt_blacklist",
        sa.Column("token_hash", sa.String(64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("user_id", sa.String(24), nullable=True),
        sa.Column("reason", sa.String(20), nullable=False, server_default="logout"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("token_hash", name="pk_jwt_blacklist"),
    )

    # ── Indexes ────────────────────────────────────────────────────────────
    # public_id is the only way clients address a row; each lookup is one
    # equality probe on these.
    for table in ("users", "customers", "categories", "products", "orders"):
        op.create_index(f"ix_{table}_public_id", table, ["public_id"], unique=True)

    op.create_index("ix_products_category_id", "products", ["category_id"])
    op.create_index("ix_orders_customer_id", "orders", ["customer_id"])

    # Cleanup deletes by expiry.
    op.create_index("ix_jwt_blacklist_expires_at", "jwt_blacklist", ["expires_at"])


def downgrade() -> None:
    """Drop everything created in upgrade(), in reverse dependency order."""
    op.drop_index("ix_jwt_blacklist_expires_at", table_name="jwt_blacklist")
    op.drop_index("ix_orders_customer_id", table_name="orders")
    op.drop_index("ix_products_category_id", table_name="products")
    for table in ("orders", "products", "categories", "customers", "users"):
        op.drop_index(f"ix_{table}_public_id", table_name=table)

    op.drop_table("jwt_blacklist")
    op.drop_table("orders")
    op.drop_table("products")
    op.drop_table("categories")
    op.drop_table("customers")
    op.drop_table("users")
