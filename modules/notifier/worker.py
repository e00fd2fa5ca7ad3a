"""Scheduling timer: one tick per interval, one dispatch task per due notice."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Callable

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from modules.notifier.dispatcher import NoticeDispatcher
from modules.notifier.errors import NoticeError
from modules.notifier.selector import get_due_notices
from shared.config import Settings
from shared.models.notice_schedule import NoticeSchedule

logger = structlog.get_logger()


class NoticeScheduler:
    """Periodically selects due notices and dispatches them in the background.

    Ticks are spaced on a fixed monotonic schedule, so a slow tick does not
    push later ones back.  Dispatch tasks are detached from the tick that
    started them; ``stop`` only prevents new ticks, and ``shutdown`` also
    waits a bounded time for dispatches already in flight.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        dispatcher: NoticeDispatcher,
        settings: Settings,
        clock: Callable[[], datetime] | None = None,
    ):
        self.session_factory = session_factory
        self.dispatcher = dispatcher
        self.settings = settings
        self.clock = clock or (lambda: datetime.now(settings.tzinfo))
        self._loop_task: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    def start(self) -> None:
        """Begin ticking. Must be called from a running event loop."""
        if self.running:
            return
        self._loop_task = asyncio.create_task(self._run(), name="notice-scheduler")
        logger.info(
            "notice_scheduler_started",
            interval_seconds=self.settings.tick_interval_seconds,
            timezone=self.settings.timezone,
        )

    def stop(self) -> None:
        """Cease future ticks. Safe to call repeatedly; does not wait."""
        if self._loop_task is None:
            return
        if not self._loop_task.done():
            self._loop_task.cancel()
        self._loop_task = None
        logger.info("notice_scheduler_stopped", inflight=len(self._inflight))

    async def shutdown(self, grace_seconds: float | None = None) -> None:
        """Stop ticking, then give in-flight dispatches a bounded time to finish."""
        self.stop()
        pending = set(self._inflight)
        if not pending:
            return
        grace = self.settings.shutdown_grace_seconds if grace_seconds is None else grace_seconds
        _, still_pending = await asyncio.wait(pending, timeout=grace)
        if still_pending:
            logger.warning(
                "dispatch_grace_period_expired",
                pending=len(still_pending),
                grace_seconds=grace,
            )

    async def dispatch_due_notices_now(self) -> list[asyncio.Task]:
        """Run one tick: select due notices and start a task for each.

        Returns the started tasks without awaiting them.  A failing store
        query is logged and yields no tasks.
        """
        now = self.clock()
        logger.info("tick_started", at=now.isoformat(timespec="seconds"))
        try:
            notices = await get_due_notices(self.session_factory, now)
        except Exception as e:
            logger.error("tick_failed", error=str(e), exc_info=True)
            return []

        if not notices:
            logger.info("no_due_notices")
            return []

        logger.info("due_notices_found", count=len(notices))
        return [self._spawn(notice) for notice in notices]

    def _spawn(self, notice: NoticeSchedule) -> asyncio.Task:
        task = asyncio.create_task(
            self._dispatch_one(notice), name=f"notice-dispatch-{notice.id}"
        )
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def _dispatch_one(self, notice: NoticeSchedule) -> None:
        """Task boundary: nothing raised here reaches the timer or sibling tasks."""
        try:
            await self.dispatcher.dispatch(notice)
        except NoticeError as e:
            logger.error(
                "notice_dispatch_aborted",
                notice_id=str(notice.id),
                error_type=type(e).__name__,
                key=getattr(e, "key", None),
                error=str(e),
            )
        except Exception as e:
            logger.error(
                "notice_dispatch_aborted",
                notice_id=str(notice.id),
                error_type=type(e).__name__,
                error=str(e),
                exc_info=True,
            )

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        interval = self.settings.tick_interval_seconds
        next_tick = loop.time()

        while True:
            try:
                await self.dispatch_due_notices_now()
            except Exception:
                logger.exception("scheduler_loop_error")

            next_tick += interval
            behind = loop.time() - next_tick
            if behind > interval:
                # Whole ticks were lost; resume on the schedule rather than bursting
                skipped = int(behind // interval)
                next_tick += skipped * interval
                logger.warning("scheduler_ticks_skipped", skipped=skipped)
            await asyncio.sleep(max(next_tick - loop.time(), 0))
