"""galleries and gift auto-hide

Revision ID: 7d2e4a91c5b3
Revises: 3b1f7c2a9d40
Create Date: 2025-11-16 10:41:37.208114

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "7d2e4a91c5b3"
down_revision: Union[str, Sequence[str], None] = "3b1f7c2a9d40"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add galleries, link posts and media to them, and the gift hide horizon."""
    op.create_table(
        "gallery",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("event_id", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("order_index", sa.Integer(), nullable=False),
        sa.Column("upload_enabled", sa.Boolean(), nullable=False),
        sa.Column("require_approval", sa.Boolean(), nullable=False),
        sa.Column("auto_approve_until", sa.DateTime(), nullable=True),
        sa.Column("upload_default_hours", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_gallery_event_id", "gallery", ["event_id"])

    with op.batch_alter_table("post") as batch_op:
        batch_op.add_column(sa.Column("gallery_id", sa.Integer(), nullable=True))
        batch_op.create_foreign_key(
            "fk_post_gallery_id", "gallery", ["gallery_id"], ["id"], ondelete="SET NULL"
        )

    with op.batch_alter_table("media_item") as batch_op:
        batch_op.add_column(sa.Column("gallery_id", sa.Integer(), nullable=True))
        batch_op.create_foreign_key(
            "fk_media_item_gallery_id", "gallery", ["gallery_id"], ["id"], ondelete="SET NULL"
        )

    with op.batch_alter_table("event_settings") as batch_op:
        batch_op.add_column(
            sa.Column("gift_auto_hide_after_hours", sa.Integer(), nullable=True)
        )


def downgrade() -> None:
    """Drop the gallery links, the gallery table and the gift hide horizon."""
    with op.batch_alter_table("event_settings") as batch_op:
        batch_op.drop_column("gift_auto_hide_after_hours")

    with op.batch_alter_table("media_item") as batch_op:
        batch_op.drop_constraint("fk_media_item_gallery_id", type_="foreignkey")
        batch_op.drop_column("gallery_id")

    with op.batch_alter_table("post") as batch_op:
        batch_op.drop_constraint("fk_post_gallery_id", type_="foreignkey")
        batch_op.drop_column("gallery_id")

    op.drop_index("ix_gallery_event_id", table_name="gallery")
    op.drop_table("gallery")
