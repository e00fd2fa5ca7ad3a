"""Initial schema: users, templates, channels, bots and notice schedules.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("role", sa.String(16), nullable=False, server_default="USERS"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "templates",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False, unique=True),
        sa.Column("contents", sa.Text(), nullable=False),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "channel_groups",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "channel_details",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("slack_channel_id", sa.String(64), nullable=False, unique=True),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "channel_group_mappings",
        sa.Column(
            "channel_group_id",
            sa.Uuid(),
            sa.ForeignKey("channel_groups.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "channel_detail_id",
            sa.Uuid(),
            sa.ForeignKey("channel_details.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "slackbot_configs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("bot_token", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "notice_schedules",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False, unique=True),
        sa.Column("template_id", sa.Uuid(), sa.ForeignKey("templates.id"), nullable=True),
        sa.Column("message_kind", sa.String(16), nullable=False, server_default="TEMPLATED"),
        sa.Column("contents", sa.Text(), nullable=False),
        sa.Column("here_mention", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("channel_mention", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column(
            "channel_group_id", sa.Uuid(), sa.ForeignKey("channel_groups.id"), nullable=False
        ),
        sa.Column(
            "slackbot_id", sa.Uuid(), sa.ForeignKey("slackbot_configs.id"), nullable=False
        ),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("notice_time", sa.Time(), nullable=False),
        sa.Column("interval_days", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("start_date <= end_date", name="ck_notice_schedules_date_window"),
        sa.CheckConstraint("interval_days >= 1", name="ck_notice_schedules_interval"),
        sa.CheckConstraint(
            "message_kind IN ('TEMPLATED', 'PLAIN')", name="ck_notice_schedules_kind"
        ),
    )
    op.create_index(
        "ix_notice_schedules_window", "notice_schedules", ["start_date", "end_date"]
    )


def downgrade() -> None:
    op.drop_index("ix_notice_schedules_window", table_name="notice_schedules")
    op.drop_table("notice_schedules")
    op.drop_table("slackbot_configs")
    op.drop_table("channel_group_mappings")
    op.drop_table("channel_details")
    op.drop_table("channel_groups")
    op.drop_table("templates")
    op.drop_table("users")
