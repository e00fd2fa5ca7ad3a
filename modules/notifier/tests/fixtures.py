"""Test doubles and sample templates for notifier tests."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

from modules.notifier.errors import DeliveryError


def make_result(rows=None, scalar=None) -> MagicMock:
    """A mock ``Result`` supporting ``scalars().all()`` and ``scalar_one_or_none()``."""
    result = MagicMock()
    result.scalars.return_value.all.return_value = list(rows or [])
    result.scalar_one_or_none.return_value = scalar
    return result


ATTACHMENT_TEMPLATE = json.dumps(
    {
        "Color": "#36a64f",
        "blocks": [
            {"type": "section", "text": {"type": "mrkdwn", "text": "<content>"}},
            {"type": "context", "elements": [{"type": "mrkdwn", "text": "<refer>"}]},
        ],
    }
)


class FakeNotifier:
    """Records sends; channels listed in ``fail_on`` raise DeliveryError."""

    def __init__(self, fail_on: set[str] | None = None, dm_channel: str = "D0TEST"):
        self.fail_on = fail_on or set()
        self.dm_channel = dm_channel
        self.sent: list[tuple[str, object]] = []
        self.dm_requests: list[str] = []

    async def send(self, channel_id, message):
        if channel_id in self.fail_on:
            raise DeliveryError(
                "channel_not_found", notice_id=message.notice_id, channel_id=channel_id
            )
        self.sent.append((channel_id, message))
        return "1700000000.000100"

    async def open_dm(self, email):
        self.dm_requests.append(email)
        return self.dm_channel
