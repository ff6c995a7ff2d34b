"""add_admin_notifications

Revision ID: 8b1e4d5c2a90
Revises: 3f9c2a71d0b4
Create Date: 2026-10-19 15:30:00.000000
"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "8b1e4d5c2a90"
down_revision = "3f9c2a71d0b4"
branch_labels = None
depends_on = None


admin_notification_type_enum = sa.Enum(
    "order_new",
    "order_cancelled",
    "product_low_stock",
    "product_out_of_stock",
    "product_back_in_stock",
    "inventory_updated",
    "payment_failed",
    "system_alert",
    name="admin_notification_type_enum",
)
admin_notification_related_type_enum = sa.Enum(
    "order",
    "product",
    "customer",
    "payment",
    name="admin_notification_related_type_enum",
)
admin_notification_priority_enum = sa.Enum(
    "low", "normal", "high", "urgent", name="admin_notification_priority_enum"
)


def upgrade() -> None:
    op.create_table(
        "admin_notifications",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("type", admin_notification_type_enum, nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("related_id", sa.String(length=255), nullable=True),
        sa.Column(
            "related_type", admin_notification_related_type_enum, nullable=True
        ),
        sa.Column(
            "priority",
            admin_notification_priority_enum,
            server_default="normal",
            nullable=False,
        ),
        sa.Column("read", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column(
            "dismissed", sa.Boolean(), server_default=sa.false(), nullable=False
        ),
        sa.Column("action_url", sa.String(length=500), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_admin_notifications")),
    )
    op.create_index(
        op.f("ix_admin_notifications_type"), "admin_notifications", ["type"]
    )
    op.create_index(
        op.f("ix_admin_notifications_created_at"),
        "admin_notifications",
        ["created_at"],
    )
    op.create_index(
        "ix_admin_notifications_unread", "admin_notifications", ["read", "dismissed"]
    )


def downgrade() -> None:
    op.drop_index("ix_admin_notifications_unread", table_name="admin_notifications")
    op.drop_index(
        op.f("ix_admin_notifications_created_at"), table_name="admin_notifications"
    )
    op.drop_index(op.f("ix_admin_notifications_type"), table_name="admin_notifications")
    op.drop_table("admin_notifications")

    bind = op.get_bind()
    for enum_type in (
        admin_notification_priority_enum,
        admin_notification_related_type_enum,
        admin_notification_type_enum,
    ):
        enum_type.drop(bind, checkfirst=True)
