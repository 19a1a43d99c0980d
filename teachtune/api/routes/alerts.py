# teachtune/api/routes/alerts.py
from fastapi import APIRouter, Depends, Query

from teachtune.api.dependencies.teacher_scope import get_alert_feed, get_teacher_id
from teachtune.schemas.alert import LessonAlert
from teachtune.services.alert_channels import InAppAlertFeed

router = APIRouter(prefix="/alerts", tags=["Alerts"])


@router.get(
    "",
    response_model=list[LessonAlert],
    summary="List recent upcoming-lesson alerts",
    description=(
        "Return the in-app alerts raised for the calling teacher, most recent "
        "first. Each lesson produces at most one alert while the service "
        "is running; the feed is kept in memory and starts empty after a restart."
    ),
)
async def list_alerts(
    limit: int | None = Query(
        default=None,
        ge=1,
        description="Maximum number of alerts to return.",
        examples=[10],
    ),
    teacher_id: str = Depends(get_teacher_id),
    feed: InAppAlertFeed = Depends(get_alert_feed),
) -> list[LessonAlert]:
    return feed.recent(teacher_id, limit=limit)
