"""Pydantic schemas for the notifier."""

from shared.schemas.common import HealthResponse
from shared.schemas.notices import (
    ActiveNotice,
    AssembledMessage,
    DispatchReport,
    DispatchRunResponse,
    SlackAttachment,
    TestSendRequest,
    TestSendResponse,
)

__all__ = [
    "ActiveNotice",
    "AssembledMessage",
    "DispatchReport",
    "DispatchRunResponse",
    "HealthResponse",
    "SlackAttachment",
    "TestSendRequest",
    "TestSendResponse",
]
