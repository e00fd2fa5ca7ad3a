"""Notice dispatch: resolve configuration, assemble once, fan out per channel."""

from __future__ import annotations

import asyncio
import uuid
from typing import Callable

import structlog

from modules.notifier.assembler import assemble_message
from modules.notifier.errors import DeliveryError, ResolutionError
from modules.notifier.repository import NoticeRepository
from modules.notifier.slack_client import SlackNotifier
from shared.config import Settings
from shared.models.notice_schedule import NoticeSchedule
from shared.models.template import Template
from shared.schemas.notices import AssembledMessage, DispatchReport, TestSendResponse

logger = structlog.get_logger()

NotifierFactory = Callable[[str], SlackNotifier]


class NoticeDispatcher:
    """Delivers a notice to every channel of its group, or to one operator.

    ``dispatch`` raises ``NoticeError`` subclasses when the notice cannot be
    sent at all (missing token, template or malformed content).  Failures
    on individual channels are logged and recorded in the returned report.
    """

    def __init__(
        self,
        repository: NoticeRepository,
        settings: Settings,
        notifier_factory: NotifierFactory | None = None,
    ):
        self.repository = repository
        self.settings = settings
        self.notifier_factory = notifier_factory or self._default_notifier

    def _default_notifier(self, token: str) -> SlackNotifier:
        return SlackNotifier(token, timeout=self.settings.slack_timeout_seconds)

    async def _resolve(
        self, notice: NoticeSchedule
    ) -> tuple[str, list[str], Template | None]:
        """Look up bot token, channels and (for templated notices) the template.

        The lookups run concurrently; all of them must succeed.
        """
        lookups = [
            self.repository.resolve_bot_token(notice.slackbot_id),
            self.repository.resolve_group_channels(notice.channel_group_id),
        ]
        if not notice.is_plain:
            lookups.append(self.repository.get_template(notice.template_id))

        results = await asyncio.gather(*lookups, return_exceptions=True)
        for r in results:
            if isinstance(r, ResolutionError):
                r.notice_id = notice.id
                raise r
            if isinstance(r, Exception):
                raise ResolutionError(
                    f"Configuration lookup failed: {r}", notice_id=notice.id
                ) from r
            if isinstance(r, BaseException):
                raise r

        token, channel_ids = results[0], results[1]
        template = results[2] if len(results) > 2 else None
        return token, channel_ids, template

    async def dispatch(self, notice: NoticeSchedule) -> DispatchReport:
        log = logger.bind(
            notice_id=str(notice.id),
            notice_title=notice.title,
            slackbot_id=str(notice.slackbot_id),
        )
        log.info("notice_dispatch_started", message_kind=notice.message_kind)

        token, channel_ids, template = await self._resolve(notice)
        report = DispatchReport(notice_id=notice.id)
        if not channel_ids:
            log.warning("notice_has_no_channels", channel_group_id=str(notice.channel_group_id))
            return report

        message = assemble_message(notice, template)
        notifier = self.notifier_factory(token)

        outcomes = await asyncio.gather(
            *(self._deliver(notifier, message, ch) for ch in channel_ids)
        )
        for channel_id, delivered in zip(channel_ids, outcomes):
            (report.delivered if delivered else report.failed).append(channel_id)

        log.info(
            "notice_dispatch_finished",
            delivered=len(report.delivered),
            failed=len(report.failed),
            ok=report.ok,
        )
        return report

    async def _deliver(
        self,
        notifier: SlackNotifier,
        message: AssembledMessage,
        channel_id: str,
    ) -> bool:
        """Send to one channel. Never raises; returns whether it succeeded."""
        try:
            await notifier.send(channel_id, message)
        except DeliveryError as e:
            logger.error(
                "notice_delivery_failed",
                notice_id=str(message.notice_id),
                channel_id=channel_id,
                error=str(e),
            )
            return False
        except Exception as e:
            logger.error(
                "notice_delivery_failed",
                notice_id=str(message.notice_id),
                channel_id=channel_id,
                error=str(e),
                exc_info=True,
            )
            return False

        logger.info(
            "notice_delivered",
            notice_id=str(message.notice_id),
            channel_id=channel_id,
            message_kind=message.kind.value,
        )
        return True

    async def test_send(self, notice_id: uuid.UUID, recipient: str) -> TestSendResponse:
        """Send one notice to a single operator's DM instead of its channel group.

        Raises the underlying ``NoticeError`` on any failure.
        """
        log = logger.bind(notice_id=str(notice_id), recipient=recipient)
        log.info("test_send_started")

        notice = await self.repository.get_notice(notice_id)
        token = await self.repository.resolve_bot_token(notice.slackbot_id)
        template = None
        if not notice.is_plain:
            template = await self.repository.get_template(notice.template_id)

        message = assemble_message(notice, template)
        notifier = self.notifier_factory(token)
        channel_id = await notifier.open_dm(recipient)
        try:
            await notifier.send(channel_id, message)
        except DeliveryError as e:
            log.error("test_send_failed", channel_id=channel_id, error=str(e))
            raise

        log.info("test_send_succeeded", channel_id=channel_id)
        return TestSendResponse(
            notice_id=notice_id,
            recipient=recipient,
            channel_id=channel_id,
        )
