"""Orders record whether they hold pickup capacity; waitlist; tracked links and their hits.

orders.capacity_reserved: false for orders paid after their slot filled up, so canceling them
does not give back capacity they never took. Existing paid/ready orders with a slot are backfilled true.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column(
        "orders",
        sa.Column("capacity_reserved", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.execute(
        "UPDATE orders SET capacity_reserved = true "
        "WHERE pickup_slot_id IS NOT NULL AND status IN ('paid', 'ready', 'collected')"
    )

    op.create_table(
        "waitlist",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("product_id", sa.String(64), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("notified_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id", "email", name="uq_waitlist_product_email"),
    )
    op.create_index("ix_waitlist_product_id", "waitlist", ["product_id"], unique=False)

    op.create_table(
        "links",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("label", sa.String(255), nullable=True),
        sa.Column("target_url", sa.Text(), nullable=False),
        sa.Column("short_slug", sa.String(32), nullable=False),
        sa.Column("utm_source", sa.String(128), nullable=True),
        sa.Column("utm_medium", sa.String(128), nullable=True),
        sa.Column("utm_campaign", sa.String(128), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_links_short_slug", "links", ["short_slug"], unique=True)

    op.create_table(
        "link_hits",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("link_id", sa.Integer(), nullable=False),
        sa.Column("ts", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("ip", sa.String(64), nullable=True),
        sa.Column("ua", sa.String(512), nullable=True),
        sa.ForeignKeyConstraint(["link_id"], ["links.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_link_hits_link_id", "link_hits", ["link_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_link_hits_link_id", table_name="link_hits")
    op.drop_table("link_hits")
    op.drop_index("ix_links_short_slug", table_name="links")
    op.drop_table("links")
    op.drop_index("ix_waitlist_product_id", table_name="waitlist")
    op.drop_table("waitlist")
    op.drop_column("orders", "capacity_reserved")
