"""Read-only lookups against the notice configuration tables.

Every method opens its own session so that lookups for one notice can run
concurrently on the shared connection pool.
"""

from __future__ import annotations

import uuid
from datetime import date

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from modules.notifier.errors import (
    BotTokenNotFoundError,
    NoticeNotFoundError,
    TemplateNotFoundError,
)
from shared.models.channel import ChannelDetail, ChannelGroupMapping
from shared.models.notice_schedule import NoticeSchedule
from shared.models.slackbot import SlackbotConfig
from shared.models.template import Template

logger = structlog.get_logger()


class NoticeRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_notice(self, notice_id: uuid.UUID) -> NoticeSchedule:
        async with self.session_factory() as session:
            result = await session.execute(
                select(NoticeSchedule).where(NoticeSchedule.id == notice_id)
            )
            notice = result.scalar_one_or_none()
        if notice is None:
            raise NoticeNotFoundError(f"Notice {notice_id} not found", notice_id=notice_id)
        return notice

    async def get_template(self, template_id: uuid.UUID | None) -> Template:
        if template_id is None:
            raise TemplateNotFoundError("Notice has no template configured")
        async with self.session_factory() as session:
            result = await session.execute(
                select(Template).where(Template.id == template_id)
            )
            template = result.scalar_one_or_none()
        if template is None:
            raise TemplateNotFoundError(f"Template {template_id} not found")
        return template

    async def resolve_group_channels(self, group_id: uuid.UUID) -> list[str]:
        """Return the Slack channel IDs mapped to a channel group.

        An empty group is not an error; it is logged and yields ``[]``.
        """
        async with self.session_factory() as session:
            result = await session.execute(
                select(ChannelDetail.slack_channel_id)
                .join(
                    ChannelGroupMapping,
                    ChannelGroupMapping.channel_detail_id == ChannelDetail.id,
                )
                .where(ChannelGroupMapping.channel_group_id == group_id)
            )
            channel_ids = list(result.scalars().all())
        if not channel_ids:
            logger.warning("channel_group_empty", channel_group_id=str(group_id))
        return channel_ids

    async def resolve_bot_token(self, bot_id: uuid.UUID) -> str:
        async with self.session_factory() as session:
            result = await session.execute(
                select(SlackbotConfig.bot_token).where(
                    SlackbotConfig.id == bot_id,
                    SlackbotConfig.bot_token.is_not(None),
                )
            )
            token = result.scalar_one_or_none()
        if not token:
            raise BotTokenNotFoundError(f"No bot token configured for slackbot {bot_id}")
        return token

    async def get_active_notices(self, today: date) -> list[NoticeSchedule]:
        """Notices that have not ended yet, soonest-ending first."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(NoticeSchedule)
                .where(NoticeSchedule.end_date >= today)
                .order_by(NoticeSchedule.end_date.asc())
            )
            return list(result.scalars().all())
