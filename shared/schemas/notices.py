"""Schemas for assembled notices, delivery reports and the notifier API."""

from __future__ import annotations

import uuid
from datetime import date, time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from shared.models.notice_schedule import MessageKind


class SlackAttachment(BaseModel):
    """A legacy Slack message attachment, as produced from a template.

    Unknown keys are kept so that templates can use any attachment field
    Slack accepts.  Top-level keys are matched case-insensitively, so a
    template written with ``"Color"`` fills ``color``.
    """

    model_config = ConfigDict(extra="allow")

    color: str | None = None
    fallback: str | None = None
    pretext: str | None = None
    title: str | None = None
    title_link: str | None = None
    text: str | None = None
    blocks: list[dict[str, Any]] | None = None
    fields: list[dict[str, Any]] | None = None
    footer: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _lowercase_keys(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {str(k).lower(): v for k, v in data.items()}
        return data

    def to_payload(self) -> dict[str, Any]:
        """Return the dict passed as one entry of ``attachments=[...]``."""
        return self.model_dump(exclude_none=True)


class AssembledMessage(BaseModel):
    """The mention prefix, display title and body of one notice."""

    notice_id: uuid.UUID
    kind: MessageKind
    mention_prefix: str = ""
    display_title: str = ""
    body: str | SlackAttachment

    @property
    def summary_text(self) -> str:
        """Notification text: mention prefix followed by the display title."""
        return self.mention_prefix + self.display_title

    @property
    def plain_text(self) -> str:
        """Full text of a plain notice."""
        body = self.body if isinstance(self.body, str) else (self.body.text or "")
        return f"{self.summary_text}\n\n{body.strip()}"


class DispatchReport(BaseModel):
    """Per-channel outcome of one notice's fan-out."""

    notice_id: uuid.UUID
    delivered: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class TestSendRequest(BaseModel):
    """Send a single notice to one operator as a direct message."""

    __test__ = False  # not a pytest test class

    recipient: str  # Slack account email


class TestSendResponse(BaseModel):
    __test__ = False

    notice_id: uuid.UUID
    recipient: str
    channel_id: str
    status: str = "sent"


class DispatchRunResponse(BaseModel):
    started: int


class ActiveNotice(BaseModel):
    """Read-only listing row for notices that have not yet ended."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    message_kind: str
    start_date: date
    end_date: date
    notice_time: time
    interval_days: int
