"""Admin CLI for the notifier."""

from __future__ import annotations

import asyncio
import os
import uuid
from datetime import datetime

import click
import structlog


def run_async(coro):
    """Run an async function in a new event loop."""
    return asyncio.run(coro)


@click.group()
def cli():
    """Herald notice scheduler administration CLI."""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
    )


@cli.command()
@click.option("--host", default=None, help="Bind address (defaults to HOST setting)")
@click.option("--port", default=None, type=int, help="Port (defaults to PORT setting)")
def serve(host, port):
    """Run the HTTP service with the background scheduler."""
    import uvicorn

    from shared.config import get_settings

    settings = get_settings()
    uvicorn.run(
        "modules.notifier.main:app",
        host=host or settings.host,
        port=port or settings.port,
        log_level="info",
    )


@cli.command()
def migrate():
    """Run Alembic migrations up to head."""
    from alembic import command
    from alembic.config import Config

    here = os.path.dirname(os.path.abspath(__file__))
    for candidate in ["/app/alembic.ini", os.path.join(here, "..", "..", "alembic.ini")]:
        if os.path.exists(candidate):
            alembic_cfg = Config(candidate)
            script_dir = os.path.join(os.path.dirname(candidate), "alembic")
            if os.path.isdir(script_dir):
                alembic_cfg.set_main_option("script_location", script_dir)
            command.upgrade(alembic_cfg, "head")
            click.echo("Migrations applied.")
            return

    click.echo("Warning: alembic.ini not found, skipping migrations.")


@cli.command()
@click.option(
    "--at",
    "at",
    default=None,
    help="Local ISO timestamp to evaluate (defaults to now in the configured timezone)",
)
def due(at):
    """List notices that fire at an instant, without sending anything."""
    from shared.config import get_settings

    settings = get_settings()
    if at:
        try:
            now = datetime.fromisoformat(at)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="'--at'")
        if now.tzinfo is None:
            now = now.replace(tzinfo=settings.tzinfo)
        else:
            now = now.astimezone(settings.tzinfo)
    else:
        now = datetime.now(settings.tzinfo)

    run_async(_due(now))


async def _due(now: datetime):
    from modules.notifier.selector import get_due_notices
    from shared.database import dispose_engine, get_session_factory

    try:
        notices = await get_due_notices(get_session_factory(), now)
    finally:
        await dispose_engine()

    click.echo(f"Due at {now.isoformat(timespec='minutes')}: {len(notices)}")
    for n in notices:
        click.echo(f"  {n.id}  {n.title}  [{n.message_kind}] every {n.interval_days}d")


@cli.command()
def tick():
    """Run a single dispatch pass and wait for it to finish."""
    run_async(_tick())


async def _tick():
    from modules.notifier.dispatcher import NoticeDispatcher
    from modules.notifier.repository import NoticeRepository
    from modules.notifier.worker import NoticeScheduler
    from shared.config import get_settings
    from shared.database import dispose_engine, get_session_factory

    settings = get_settings()
    session_factory = get_session_factory()
    dispatcher = NoticeDispatcher(NoticeRepository(session_factory), settings)
    scheduler = NoticeScheduler(session_factory, dispatcher, settings)
    try:
        tasks = await scheduler.dispatch_due_notices_now()
        if tasks:
            await asyncio.gather(*tasks)
        click.echo(f"Dispatched {len(tasks)} notice(s).")
    finally:
        await dispose_engine()


@cli.command("test-send")
@click.argument("notice_id", type=click.UUID)
@click.argument("email")
def test_send(notice_id: uuid.UUID, email: str):
    """Send NOTICE_ID to the Slack user with EMAIL as a direct message."""
    run_async(_test_send(notice_id, email))


async def _test_send(notice_id: uuid.UUID, email: str):
    from modules.notifier.dispatcher import NoticeDispatcher
    from modules.notifier.errors import NoticeError
    from modules.notifier.repository import NoticeRepository
    from shared.config import get_settings
    from shared.database import dispose_engine, get_session_factory

    dispatcher = NoticeDispatcher(NoticeRepository(get_session_factory()), get_settings())
    try:
        result = await dispatcher.test_send(notice_id, email)
    except NoticeError as e:
        raise click.ClickException(str(e))
    finally:
        await dispose_engine()
    click.echo(f"Sent to {result.recipient} ({result.channel_id}).")


if __name__ == "__main__":
    cli()
