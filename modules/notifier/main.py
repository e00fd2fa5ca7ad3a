"""Notifier service - FastAPI app with the background notice scheduler."""

from __future__ import annotations

import uuid
from datetime import datetime

import structlog
from fastapi import Depends, FastAPI, HTTPException

from modules.notifier.dispatcher import NoticeDispatcher
from modules.notifier.errors import (
    AssemblyError,
    DeliveryError,
    NoticeNotFoundError,
    ResolutionError,
)
from modules.notifier.repository import NoticeRepository
from modules.notifier.worker import NoticeScheduler
from shared.auth import require_service_auth
from shared.config import get_settings
from shared.database import dispose_engine, get_session_factory
from shared.schemas.common import HealthResponse
from shared.schemas.notices import (
    ActiveNotice,
    DispatchRunResponse,
    TestSendRequest,
    TestSendResponse,
)

structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ],
)

logger = structlog.get_logger()
app = FastAPI(title="Herald Notifier", version="1.0.0")

repository: NoticeRepository | None = None
dispatcher: NoticeDispatcher | None = None
scheduler: NoticeScheduler | None = None


@app.on_event("startup")
async def startup():
    global repository, dispatcher, scheduler
    settings = get_settings()
    session_factory = get_session_factory()
    repository = NoticeRepository(session_factory)
    dispatcher = NoticeDispatcher(repository, settings)
    scheduler = NoticeScheduler(session_factory, dispatcher, settings)

    if settings.scheduler_enabled:
        scheduler.start()
    else:
        logger.warning("notice_scheduler_disabled")
    logger.info("notifier_ready")


@app.on_event("shutdown")
async def shutdown():
    if scheduler is not None:
        await scheduler.shutdown()
    await dispose_engine()
    logger.info("notifier_shutdown")


def _require_ready() -> tuple[NoticeRepository, NoticeDispatcher, NoticeScheduler]:
    if repository is None or dispatcher is None or scheduler is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    return repository, dispatcher, scheduler


@app.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(status="ok")


@app.post("/notices/{notice_id}/test-send", response_model=TestSendResponse)
async def test_send(
    notice_id: uuid.UUID,
    req: TestSendRequest,
    _=Depends(require_service_auth),
):
    """Deliver a notice to one operator's DM for manual verification."""
    _, disp, _ = _require_ready()
    try:
        return await disp.test_send(notice_id, req.recipient)
    except NoticeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (ResolutionError, AssemblyError) as e:
        raise HTTPException(status_code=422, detail=str(e))
    except DeliveryError as e:
        raise HTTPException(status_code=502, detail=str(e))


@app.post("/dispatch/run", response_model=DispatchRunResponse)
async def run_dispatch(_=Depends(require_service_auth)):
    """Run one scheduler tick immediately; dispatches continue in the background."""
    _, _, sched = _require_ready()
    tasks = await sched.dispatch_due_notices_now()
    return DispatchRunResponse(started=len(tasks))


@app.get("/notices/active", response_model=list[ActiveNotice])
async def active_notices(_=Depends(require_service_auth)):
    """Notices whose end date has not passed, soonest-ending first."""
    repo, _, _ = _require_ready()
    today = datetime.now(get_settings().tzinfo).date()
    notices = await repo.get_active_notices(today)
    return [ActiveNotice.model_validate(n) for n in notices]
