"""initial schema

Revision ID: 3b1f7c2a9d40
Revises:
Create Date: 2025-11-02 18:04:12.512309

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3b1f7c2a9d40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create posts, media items, settings, rules, reactions and admins."""
    op.create_table(
        "post",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("event_id", sa.Text(), nullable=False),
        sa.Column("kind", sa.Text(), nullable=False),
        sa.Column("author_name", sa.Text(), nullable=True),
        sa.Column("text", sa.Text(), nullable=True),
        sa.Column("media_url", sa.Text(), nullable=True),
        sa.Column("media_path", sa.Text(), nullable=True),
        sa.Column("video_url", sa.Text(), nullable=True),
        sa.Column("link_url", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("pending_reason", sa.Text(), nullable=True),
        sa.Column("moderation_flagged", sa.Boolean(), nullable=False),
        sa.Column("moderation_provider", sa.Text(), nullable=True),
        sa.Column("moderation_raw", sa.JSON(), nullable=True),
        sa.Column("content_rule_hit", sa.JSON(), nullable=True),
        sa.Column("device_id", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_post_device_kind_created", "post", ["device_id", "kind", "created_at"]
    )
    op.create_index("ix_post_event_kind_status", "post", ["event_id", "kind", "status"])

    op.create_table(
        "media_item",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("event_id", sa.Text(), nullable=False),
        sa.Column("post_id", sa.Integer(), nullable=True),
        sa.Column("kind", sa.Text(), nullable=True),
        sa.Column("storage_path", sa.Text(), nullable=False),
        sa.Column("public_url", sa.Text(), nullable=True),
        sa.Column("mime_type", sa.Text(), nullable=True),
        sa.Column("uploader_device_id", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("archived_at", sa.DateTime(), nullable=True),
        sa.Column("delete_after_at", sa.DateTime(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("drive_file_id", sa.Text(), nullable=True),
        sa.Column("drive_preview_url", sa.Text(), nullable=True),
        sa.Column("synced_at", sa.DateTime(), nullable=True),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["post_id"], ["post.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("storage_path"),
    )
    op.create_index(
        "ix_media_item_event_archive",
        "media_item",
        ["event_id", "archived_at", "deleted_at"],
    )
    op.create_index(
        "ix_media_item_event_delete_after", "media_item", ["event_id", "delete_after_at"]
    )

    op.create_table(
        "event_settings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("event_id", sa.Text(), nullable=False),
        sa.Column("event_name", sa.Text(), nullable=False),
        sa.Column("start_at", sa.DateTime(), nullable=True),
        sa.Column("require_approval", sa.Boolean(), nullable=False),
        sa.Column("approval_lock_after_days", sa.Integer(), nullable=False),
        sa.Column("approval_opened_at", sa.DateTime(), nullable=True),
        sa.Column("max_blessing_lines", sa.Integer(), nullable=False),
        sa.Column("archive_after_days", sa.Integer(), nullable=False),
        sa.Column("delete_after_hours", sa.Integer(), nullable=False),
        sa.Column("verify_drive_before_delete", sa.Boolean(), nullable=False),
        sa.Column("gift_enabled", sa.Boolean(), nullable=False),
        sa.Column("gift_bit_url", sa.Text(), nullable=True),
        sa.Column("gift_paybox_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("event_id"),
    )

    op.create_table(
        "content_rule",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("rule_type", sa.Text(), nullable=False),
        sa.Column("scope", sa.Text(), nullable=False),
        sa.Column("event_id", sa.Text(), nullable=True),
        sa.Column("match_type", sa.Text(), nullable=False),
        sa.Column("expression", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("rule_type IN ('block', 'allow')", name="ck_content_rule_type"),
        sa.CheckConstraint("scope IN ('event', 'global')", name="ck_content_rule_scope"),
        sa.CheckConstraint(
            "match_type IN ('exact', 'contains', 'word')",
            name="ck_content_rule_match_type",
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "reaction",
        sa.Column("post_id", sa.Integer(), nullable=False),
        sa.Column("device_id", sa.Text(), nullable=False),
        sa.Column("emoji", sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(["post_id"], ["post.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("post_id", "device_id", "emoji"),
    )
    op.create_index("ix_reaction_post_id", "reaction", ["post_id"])

    op.create_table(
        "admin_user",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("event_id", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("role", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("permissions", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )


def downgrade() -> None:
    """Drop every table created by this revision."""
    op.drop_table("admin_user")
    op.drop_index("ix_reaction_post_id", table_name="reaction")
    op.drop_table("reaction")
    op.drop_table("content_rule")
    op.drop_table("event_settings")
    op.drop_index("ix_media_item_event_delete_after", table_name="media_item")
    op.drop_index("ix_media_item_event_archive", table_name="media_item")
    op.drop_table("media_item")
    op.drop_index("ix_post_event_kind_status", table_name="post")
    op.drop_index("ix_post_device_kind_created", table_name="post")
    op.drop_table("post")
