"""SQLAlchemy models."""

from shared.models.base import Base
from shared.models.channel import ChannelDetail, ChannelGroup, ChannelGroupMapping
from shared.models.notice_schedule import MessageKind, NoticeSchedule
from shared.models.slackbot import SlackbotConfig
from shared.models.template import Template
from shared.models.user import User

__all__ = [
    "Base",
    "ChannelDetail",
    "ChannelGroup",
    "ChannelGroupMapping",
    "MessageKind",
    "NoticeSchedule",
    "SlackbotConfig",
    "Template",
    "User",
]
