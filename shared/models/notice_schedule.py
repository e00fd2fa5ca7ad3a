"""Recurring notice definitions read by the scheduler on every tick."""

from __future__ import annotations

import enum
import uuid
from datetime import date, datetime, time, timezone

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
)
from sqlalchemy.orm import Mapped, mapped_column

from shared.models.base import Base


class MessageKind(str, enum.Enum):
    TEMPLATED = "TEMPLATED"  # attachment built from a Template
    PLAIN = "PLAIN"  # raw text, template ignored


class NoticeSchedule(Base):
    __tablename__ = "notice_schedules"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(200), unique=True)

    # What to send
    template_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("templates.id"), default=None
    )
    message_kind: Mapped[str] = mapped_column(String(16), default=MessageKind.TEMPLATED.value)
    # JSON document: {"title": ..., "content": ..., "refer": ...}
    contents: Mapped[str] = mapped_column(Text)
    here_mention: Mapped[bool] = mapped_column(default=False)
    channel_mention: Mapped[bool] = mapped_column(default=False)

    # Where and as whom
    channel_group_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("channel_groups.id"))
    slackbot_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("slackbot_configs.id"))

    # When: every ``interval_days`` days from start_date, at notice_time
    start_date: Mapped[date] = mapped_column(Date)
    end_date: Mapped[date] = mapped_column(Date)
    notice_time: Mapped[time] = mapped_column(Time)
    interval_days: Mapped[int] = mapped_column(Integer, default=1)

    created_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="ck_notice_schedules_date_window"),
        CheckConstraint("interval_days >= 1", name="ck_notice_schedules_interval"),
        CheckConstraint(
            "message_kind IN ('TEMPLATED', 'PLAIN')", name="ck_notice_schedules_kind"
        ),
        Index("ix_notice_schedules_window", "start_date", "end_date"),
    )

    @property
    def is_plain(self) -> bool:
        return self.message_kind == MessageKind.PLAIN.value
