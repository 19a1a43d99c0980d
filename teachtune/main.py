# teachtune/main.py
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from teachtune.api.routes import alerts, dashboard, health, internal, lessons, students
from teachtune.core.clock import get_clock
from teachtune.core.config import get_settings
from teachtune.core.logging_setup import configure_logging
from teachtune.db.session import AsyncSessionLocal, init_db
from teachtune.services.alert_channels import InAppAlertFeed, build_dispatcher
from teachtune.services.upcoming_monitor import MonitorService


def create_app() -> FastAPI:
    """
    Application factory for the TeachTune scheduling service.
    """
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    alert_feed = InAppAlertFeed(max_size=settings.ALERT_FEED_SIZE)
    monitor_service = MonitorService(
        session_factory=AsyncSessionLocal,
        dispatcher=build_dispatcher(settings, alert_feed),
        clock=get_clock(),
        lookahead_minutes=settings.ALERT_LOOKAHEAD_MINUTES,
        scan_interval_seconds=settings.MONITOR_SCAN_INTERVAL_SECONDS,
        refresh_interval_seconds=settings.MONITOR_REFRESH_INTERVAL_SECONDS,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await init_db()
        if settings.MONITOR_ENABLED:
            await monitor_service.start()
        try:
            yield
        finally:
            await monitor_service.stop()

    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Scheduling backend for independent music teachers: students with\n"
            "recurring weekly lesson slots, generated lesson calendars kept in\n"
            "sync with each student's configuration, attendance/notes/repertoire\n"
            "tracking, and alerts shortly before each lesson starts."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.alert_feed = alert_feed
    app.state.monitor_service = monitor_service

    # Routers
    app.include_router(health.router)
    app.include_router(students.router)
    app.include_router(lessons.router)
    app.include_router(dashboard.router)
    app.include_router(alerts.router)
    app.include_router(internal.router)

    return app


app = create_app()
