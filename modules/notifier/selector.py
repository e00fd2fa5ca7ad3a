"""Due-notice selection.

A notice fires at ``now`` when today is inside its inclusive date window,
the wall-clock minute equals its ``notice_time`` minute, and a whole number
of ``interval_days`` has elapsed since ``start_date``.

Matching is per minute with no bookkeeping of past sends: a missed tick
loses that minute's notices, and two ticks inside the same minute send
them twice.
"""

from __future__ import annotations

from datetime import datetime, time

import structlog
from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shared.models.notice_schedule import NoticeSchedule

logger = structlog.get_logger()


def _minute_bounds(now: datetime) -> tuple[time, time]:
    start = time(now.hour, now.minute)
    return start, start.replace(second=59, microsecond=999999)


def build_due_query(now: datetime) -> Select:
    """Narrow candidates in SQL to the date window and the current minute.

    ``now`` must already be in the scheduler's wall-clock zone; stored
    dates and times are naive local values.
    """
    today = now.date()
    minute_start, minute_end = _minute_bounds(now)
    return select(NoticeSchedule).where(
        NoticeSchedule.start_date <= today,
        NoticeSchedule.end_date >= today,
        NoticeSchedule.notice_time.between(minute_start, minute_end),
        NoticeSchedule.interval_days > 0,
    )


def is_due(notice: NoticeSchedule, now: datetime) -> bool:
    """Return True when ``notice`` should fire in the minute containing ``now``."""
    interval = notice.interval_days
    if interval is None or interval <= 0:
        return False

    today = now.date()
    if not (notice.start_date <= today <= notice.end_date):
        return False

    if (notice.notice_time.hour, notice.notice_time.minute) != (now.hour, now.minute):
        return False

    return (today - notice.start_date).days % interval == 0


async def get_due_notices(
    session_factory: async_sessionmaker[AsyncSession],
    now: datetime,
) -> list[NoticeSchedule]:
    """Return every notice due at ``now``.

    The interval check runs in Python on the narrowed rows so the query
    needs no dialect-specific date arithmetic.  Store errors propagate.
    """
    async with session_factory() as session:
        result = await session.execute(build_due_query(now))
        candidates = list(result.scalars().all())

    due = [n for n in candidates if is_due(n, now)]
    logger.debug(
        "due_notices_selected",
        at=now.isoformat(timespec="minutes"),
        candidates=len(candidates),
        due=len(due),
    )
    return due
