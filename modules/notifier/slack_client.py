"""Outbound delivery through the Slack Web API."""

from __future__ import annotations

import asyncio

import aiohttp
import structlog
from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from modules.notifier.errors import DeliveryError, RecipientNotFoundError
from shared.schemas.notices import AssembledMessage

logger = structlog.get_logger()

# Transport-level failures that slack_sdk lets through untouched
_TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)


def _slack_error_code(e: SlackApiError) -> str:
    try:
        return str(e.response.get("error", "unknown_error"))
    except AttributeError:
        return "unknown_error"


class SlackNotifier:
    """Posts assembled notices with one bot's token."""

    def __init__(
        self,
        token: str,
        timeout: int = 30,
        client: AsyncWebClient | None = None,
    ):
        self.client = client or AsyncWebClient(token=token, timeout=timeout)

    async def send(self, channel_id: str, message: AssembledMessage) -> str:
        """Post ``message`` to ``channel_id`` and return the message timestamp.

        Plain notices are posted as text; templated notices post the mention
        and title as the notification text with the attachment as the body.
        """
        kwargs: dict = {"channel": channel_id}
        if isinstance(message.body, str):
            kwargs["text"] = message.plain_text
        else:
            kwargs["text"] = message.summary_text
            kwargs["attachments"] = [message.body.to_payload()]

        try:
            resp = await self.client.chat_postMessage(**kwargs)
        except SlackApiError as e:
            raise DeliveryError(
                f"Slack rejected the message: {_slack_error_code(e)}",
                notice_id=message.notice_id,
                channel_id=channel_id,
            ) from e
        except _TRANSPORT_ERRORS as e:
            raise DeliveryError(
                f"Slack request failed: {e!r}",
                notice_id=message.notice_id,
                channel_id=channel_id,
            ) from e
        return resp.get("ts", "")

    async def open_dm(self, email: str) -> str:
        """Resolve a user's email to a direct-message channel ID."""
        try:
            user_resp = await self.client.users_lookupByEmail(email=email)
            user_id = user_resp["user"]["id"]
            dm_resp = await self.client.conversations_open(users=[user_id])
            return dm_resp["channel"]["id"]
        except SlackApiError as e:
            raise RecipientNotFoundError(
                f"Could not open a DM with {email}: {_slack_error_code(e)}"
            ) from e
        except _TRANSPORT_ERRORS as e:
            raise DeliveryError(f"Slack request failed while opening a DM: {e!r}") from e
