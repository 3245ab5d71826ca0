"""Initial schema: capacity rules, pickup windows and slots, holds, orders, Stripe events, audit log.

pickup_slots: (day, start_ts) unique so slot generation can insert with ON CONFLICT DO NOTHING.
reserved <= capacity is enforced by a check constraint as well as by the ledger's conditional update.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ORDER_STATUS = sa.Enum("pending", "paid", "ready", "collected", "canceled", name="order_status")


def upgrade() -> None:
    op.create_table(
        "capacity_rules",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("weekday", sa.Integer(), nullable=False),
        sa.Column("base_pickups", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("occupied_pickups", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("weekday"),
        sa.CheckConstraint("weekday >= 0 AND weekday <= 6", name="ck_capacity_rules_weekday"),
        sa.CheckConstraint("base_pickups >= 0 AND occupied_pickups >= 0", name="ck_capacity_rules_non_negative"),
    )

    op.create_table(
        "airbnb_occupancy",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("occupied", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("imported_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_airbnb_occupancy_day", "airbnb_occupancy", ["day"], unique=True)

    op.create_table(
        "pickup_windows",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("weekday", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("slot_minutes", sa.Integer(), nullable=False, server_default="15"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("weekday >= 0 AND weekday <= 6", name="ck_pickup_windows_weekday"),
    )
    op.create_index("ix_pickup_windows_weekday", "pickup_windows", ["weekday"], unique=False)

    op.create_table(
        "pickup_slots",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("start_ts", sa.DateTime(timezone=True), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("reserved", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("hold_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("held_by_session", sa.String(255), nullable=True),
        sa.Column("notes", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("day", "start_ts", name="uq_pickup_slots_day_start_ts"),
        sa.CheckConstraint("capacity >= 0", name="ck_pickup_slots_capacity"),
        sa.CheckConstraint("reserved >= 0 AND reserved <= capacity", name="ck_pickup_slots_reserved"),
    )
    op.create_index("ix_pickup_slots_day", "pickup_slots", ["day"], unique=False)

    op.create_table(
        "slot_holds",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("slot_id", sa.Integer(), nullable=False),
        sa.Column("qty", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.String(255), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="held"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("release_reason", sa.String(64), nullable=True),
        sa.ForeignKeyConstraint(["slot_id"], ["pickup_slots.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_slot_holds_slot_id", "slot_holds", ["slot_id"], unique=False)
    op.create_index("ix_slot_holds_session_id", "slot_holds", ["session_id"], unique=False)
    op.create_index("ix_slot_holds_status", "slot_holds", ["status"], unique=False)
    op.create_index("ix_slot_holds_expires_at", "slot_holds", ["expires_at"], unique=False)

    op.create_table(
        "global_settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("panic_mode", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("auto_pause_threshold", sa.Integer(), nullable=False, server_default="80"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_by", sa.String(64), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "auto_pause_threshold >= 0 AND auto_pause_threshold <= 100",
            name="ck_global_settings_threshold",
        ),
    )

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("stripe_session_id", sa.String(255), nullable=False),
        sa.Column("status", ORDER_STATUS, nullable=False),
        sa.Column("pickup_slot_id", sa.Integer(), nullable=True),
        sa.Column("pickup_qty", sa.Integer(), nullable=True),
        sa.Column("customer_email", sa.String(255), nullable=True),
        sa.Column("customer_name", sa.String(255), nullable=True),
        sa.Column("total_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("notes", sa.String(1000), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("collected_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["pickup_slot_id"], ["pickup_slots.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_orders_stripe_session_id", "orders", ["stripe_session_id"], unique=True)
    op.create_index("ix_orders_pickup_slot_id", "orders", ["pickup_slot_id"], unique=False)

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.String(64), nullable=False),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("stripe_price_id", sa.String(255), nullable=True),
        sa.Column("qty", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("unit_price_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"], unique=False)

    op.create_table(
        "stripe_events",
        sa.Column("id", sa.String(255), nullable=False),
        sa.Column("type", sa.String(64), nullable=False),
        sa.Column("received_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("processed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("ts", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("actor", sa.String(64), nullable=False),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("entity", sa.String(64), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=True),
        sa.Column("old_values", JSONB, nullable=True),
        sa.Column("new_values", JSONB, nullable=True),
        sa.Column("meta", JSONB, nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_log_ts", "audit_log", ["ts"], unique=False)
    op.create_index("ix_audit_log_action", "audit_log", ["action"], unique=False)
    op.create_index("ix_audit_log_entity", "audit_log", ["entity"], unique=False)

    op.create_table(
        "blackout_days",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("reason", sa.String(255), nullable=True),
        sa.Column("created_by", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("day"),
    )


def downgrade() -> None:
    op.drop_table("blackout_days")
    op.drop_index("ix_audit_log_entity", table_name="audit_log")
    op.drop_index("ix_audit_log_action", table_name="audit_log")
    op.drop_index("ix_audit_log_ts", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_table("stripe_events")
    op.drop_index("ix_order_items_order_id", table_name="order_items")
    op.drop_table("order_items")
    op.drop_index("ix_orders_pickup_slot_id", table_name="orders")
    op.drop_index("ix_orders_stripe_session_id", table_name="orders")
    op.drop_table("orders")
    ORDER_STATUS.drop(op.get_bind(), checkfirst=True)
    op.drop_table("global_settings")
    op.drop_index("ix_slot_holds_expires_at", table_name="slot_holds")
    op.drop_index("ix_slot_holds_status", table_name="slot_holds")
    op.drop_index("ix_slot_holds_session_id", table_name="slot_holds")
    op.drop_index("ix_slot_holds_slot_id", table_name="slot_holds")
    op.drop_table("slot_holds")
    op.drop_index("ix_pickup_slots_day", table_name="pickup_slots")
    op.drop_table("pickup_slots")
    op.drop_index("ix_pickup_windows_weekday", table_name="pickup_windows")
    op.drop_table("pickup_windows")
    op.drop_index("ix_airbnb_occupancy_day", table_name="airbnb_occupancy")
    op.drop_table("airbnb_occupancy")
    op.drop_table("capacity_rules")
