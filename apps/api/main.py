"""clubstatus API entrypoint: HTTP routes plus the presence tracker task."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress

import uvicorn
from fastapi import FastAPI

from clubstatus.application.services.presence_tracker import PresenceTracker
from clubstatus.config.settings import Settings, load_settings
from clubstatus.infrastructure.db.action_queries import SqlAlchemyActionQueries
from clubstatus.infrastructure.db.action_store import SqlAlchemyActionStore
from clubstatus.infrastructure.db.bootstrap import ensure_initial_state
from clubstatus.infrastructure.db.session import create_session_factory
from clubstatus.infrastructure.http.action_router import build_action_router
from clubstatus.infrastructure.http.auth_guard import PasswordGuard
from clubstatus.infrastructure.logging import configure_logging
from clubstatus.infrastructure.notify.queue_notifier import QueueActionNotifier

logger = logging.getLogger(__name__)


def build_action_store(
    settings: Settings,
    *,
    notifier: QueueActionNotifier | None = None,
) -> SqlAlchemyActionStore:
    """Build the SQLAlchemy action store for the configured database."""

    return SqlAlchemyActionStore(
        create_session_factory(settings.database_url),
        notifier=notifier,
    )


def build_presence_tracker(
    *,
    settings: Settings,
    store: SqlAlchemyActionStore,
) -> PresenceTracker:
    return PresenceTracker(
        store=store,
        inbox_size=settings.presence_inbox_size,
        cycle_seconds=settings.presence_cycle_seconds,
        timeout_seconds=settings.presence_timeout_seconds,
    )


async def log_notifications(notifier: QueueActionNotifier) -> None:
    """Drain the notification queue; each stored action is logged once."""

    while True:
        action = await notifier.next_action()
        logger.info(
            "action_published action_id=%s time=%s",
            action.action.id,
            action.action.time,
        )


async def _stop_task(task: asyncio.Task[None]) -> None:
    task.cancel()
    with suppress(asyncio.CancelledError):
        await task


def create_app(
    *,
    settings: Settings | None = None,
    store: SqlAlchemyActionStore | None = None,
    presence_tracker: PresenceTracker | None = None,
    notifier: QueueActionNotifier | None = None,
) -> FastAPI:
    """Create FastAPI app; startup seeds an empty log and starts the tracker loop."""

    if settings is None:
        settings = load_settings()
        configure_logging(level=settings.log_level)

    if store is None:
        if notifier is None and settings.notification_queue_size is not None:
            notifier = QueueActionNotifier(maxsize=settings.notification_queue_size)
        store = build_action_store(settings, notifier=notifier)
    if presence_tracker is None:
        presence_tracker = build_presence_tracker(settings=settings, store=store)

    action_store = store
    tracker = presence_tracker

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        seeded = await ensure_initial_state(action_store)
        logger.info(
            "api_startup_complete seeded_status_id=%s seeded_presence_id=%s",
            seeded.status_id,
            seeded.presence_id,
        )
        stop_event = asyncio.Event()
        tasks = [asyncio.create_task(tracker.run_until_stopped(stop_event))]
        if notifier is not None:
            tasks.append(asyncio.create_task(log_notifications(notifier)))
        try:
            yield
        finally:
            stop_event.set()
            for task in tasks:
                await _stop_task(task)
            logger.info("api_shutdown_complete")

    app = FastAPI(lifespan=lifespan)
    app.include_router(
        build_action_router(
            store=action_store,
            queries=SqlAlchemyActionQueries(action_store),
            presence_tracker=tracker,
            auth_guard=PasswordGuard(password=settings.api_password),
        )
    )
    return app


def run_asgi_server(settings: Settings) -> None:
    """Run the API as a long-lived ASGI process using application factory mode."""

    uvicorn.run(
        "apps.api.main:create_app",
        host=settings.api_host,
        port=settings.api_port,
        factory=True,
    )


def main() -> None:
    """Run clubstatus API runtime process."""

    settings = load_settings()
    configure_logging(level=settings.log_level)
    logger.info(
        "api_starting host=%s port=%s auth_enabled=%s",
        settings.api_host,
        settings.api_port,
        settings.api_password is not None,
    )
    run_asgi_server(settings)


if __name__ == "__main__":
    main()
