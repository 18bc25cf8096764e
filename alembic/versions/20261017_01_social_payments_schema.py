"""social payments schema

Revision ID: 20261017_01
Revises:
Create Date: 2026-10-17
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20261017_01"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _table_exists(inspector: sa.Inspector, table_name: str) -> bool:
    return table_name in inspector.get_table_names()


def _ensure_users_table(inspector: sa.Inspector) -> None:
    if _table_exists(inspector, "users"):
        return
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("external_id", sa.String(length=128), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("avatar", sa.String(length=512), nullable=True),
        sa.Column("personal_sign", sa.String(length=255), nullable=True),
        sa.Column("region", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_users_id", "users", ["id"], unique=False)
    op.create_index("ix_users_external_id", "users", ["external_id"], unique=True)


def _ensure_order_tables(inspector: sa.Inspector) -> None:
    if not _table_exists(inspector, "orders"):
        op.create_table(
            "orders",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("order_no", sa.String(length=32), nullable=False),
            sa.Column("product_type", sa.String(length=20), nullable=False),
            sa.Column("buyer_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("buyer_display_name", sa.String(length=255), nullable=False),
            sa.Column("recipient_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("amount", sa.Numeric(12, 2), nullable=False),
            sa.Column("vip_level", sa.Integer(), nullable=True),
            sa.Column("month", sa.Integer(), nullable=True),
            sa.Column("gold_coin", sa.Integer(), nullable=True),
            sa.Column("give_gold_coin", sa.Integer(), nullable=True),
            sa.Column("character_num", sa.Integer(), nullable=True),
            sa.Column("payment_method", sa.String(length=50), nullable=False),
            sa.Column("status", sa.SmallInteger(), nullable=False, server_default=sa.text("0")),
            sa.Column("external_payment_id", sa.String(length=255), nullable=True),
            sa.Column("pay_time", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        )
        op.create_index("ix_orders_id", "orders", ["id"], unique=False)
        op.create_index("ix_orders_order_no", "orders", ["order_no"], unique=True)
        op.create_index("ix_orders_product_type", "orders", ["product_type"], unique=False)
        op.create_index("ix_orders_buyer_user_id", "orders", ["buyer_user_id"], unique=False)

    if not _table_exists(inspector, "payment_confirmations"):
        op.create_table(
            "payment_confirmations",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("confirmation_id", sa.String(length=255), nullable=False),
            sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=False, unique=True),
            sa.Column("payment_method", sa.String(length=50), nullable=False),
            sa.Column("amount", sa.Numeric(12, 2), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        )
        op.create_index("ix_payment_confirmations_id", "payment_confirmations", ["id"], unique=False)
        op.create_index(
            "ix_payment_confirmations_confirmation_id",
            "payment_confirmations",
            ["confirmation_id"],
            unique=True,
        )


def _ensure_relation_tables(inspector: sa.Inspector) -> None:
    if not _table_exists(inspector, "friend_requests"):
        op.create_table(
            "friend_requests",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("from_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("to_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("remark", sa.String(length=255), nullable=False, server_default=""),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.Column("handled_at", sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index("ix_friend_requests_id", "friend_requests", ["id"], unique=False)
        op.create_index("ix_friend_requests_from_user_id", "friend_requests", ["from_user_id"], unique=False)
        op.create_index("ix_friend_requests_to_user_id", "friend_requests", ["to_user_id"], unique=False)

    if not _table_exists(inspector, "friendships"):
        op.create_table(
            "friendships",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("friend_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.UniqueConstraint("user_id", "friend_id", name="uq_friendships_pair"),
        )
        op.create_index("ix_friendships_id", "friendships", ["id"], unique=False)
        op.create_index("ix_friendships_user_id", "friendships", ["user_id"], unique=False)


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    _ensure_users_table(inspector)
    inspector = sa.inspect(bind)
    _ensure_order_tables(inspector)
    inspector = sa.inspect(bind)
    _ensure_relation_tables(inspector)


def downgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    # children first
    for table_name in ("friendships", "friend_requests", "payment_confirmations", "orders", "users"):
        if _table_exists(inspector, table_name):
            op.drop_table(table_name)
