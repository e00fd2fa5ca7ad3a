"""Exceptions raised while resolving, assembling and delivering notices."""

from __future__ import annotations

import uuid


class NoticeError(Exception):
    """Base class for failures scoped to a single notice."""

    def __init__(self, message: str, *, notice_id: uuid.UUID | None = None):
        super().__init__(message)
        self.notice_id = notice_id


class NoticeNotFoundError(NoticeError):
    """The notice schedule does not exist."""


class ResolutionError(NoticeError):
    """A configuration lookup needed for dispatch failed."""


class TemplateNotFoundError(ResolutionError):
    pass


class BotTokenNotFoundError(ResolutionError):
    pass


class RecipientNotFoundError(ResolutionError):
    """A test-send recipient could not be mapped to a Slack DM channel."""


class AssemblyError(NoticeError):
    """The content document or the substituted template is not valid JSON."""

    def __init__(
        self,
        message: str,
        *,
        notice_id: uuid.UUID | None = None,
        key: str | None = None,
    ):
        super().__init__(message, notice_id=notice_id)
        self.key = key


class DeliveryError(NoticeError):
    """Posting to a single Slack channel failed."""

    def __init__(
        self,
        message: str,
        *,
        notice_id: uuid.UUID | None = None,
        channel_id: str | None = None,
    ):
        super().__init__(message, notice_id=notice_id)
        self.channel_id = channel_id
