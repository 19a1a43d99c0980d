# teachtune/api/routes/health.py
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from teachtune.core.config import get_settings

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    status: str = Field(..., examples=["ok"])
    app_name: str = Field(..., examples=["TeachTune Scheduler"])
    environment: str = Field(
        ...,
        description="APP_ENV of the running process (local/test/dev/stage/prod).",
        examples=["local"],
    )
    monitor_running: bool = Field(
        ...,
        description="True while the upcoming-lesson refresh/scan tasks are alive.",
        examples=[True],
    )
    alert_channels: list[str] = Field(
        default_factory=list,
        description="Alert channels wired into the dispatcher, primary first.",
        examples=[["in_app", "webhook"]],
    )
    checked_at: datetime = Field(
        ...,
        description="UTC instant of this check.",
        examples=["2024-03-04T13:50:00Z"],
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness probe",
    description=(
        "Report that the API process is up, whether the background "
        "upcoming-lesson monitor is running and which alert channels are "
        "configured. Needs no X-Teacher-Id header and never queries the "
        "database, so probes keep working while the database is down."
    ),
)
async def health_check(request: Request) -> HealthResponse:
    settings = get_settings()
    monitor_service = getattr(request.app.state, "monitor_service", None)

    channels: list[str] = []
    if monitor_service is not None:
        dispatcher = monitor_service.dispatcher
        channels = [dispatcher.primary.name] + [c.name for c in dispatcher.secondary]

    return HealthResponse(
        status="ok",
        app_name=settings.APP_NAME,
        environment=settings.APP_ENV,
        monitor_running=bool(monitor_service and monitor_service.running),
        alert_channels=channels,
        checked_at=datetime.now(tz=timezone.utc),
    )
