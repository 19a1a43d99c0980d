# teachtune/api/dependencies/teacher_scope.py
from typing import Optional

from fastapi import Header, HTTPException, Request, status

from teachtune.services.alert_channels import InAppAlertFeed
from teachtune.services.upcoming_monitor import MonitorService


async def get_teacher_id(
    teacher_id: Optional[str] = Header(
        default=None,
        alias="X-Teacher-Id",
        description=(
            "Identifier of the authenticated teacher, set by the upstream "
            "identity layer. Every student and lesson is scoped to it."
        ),
    ),
) -> str:
    """
    Dependency resolving the calling teacher.

    Identity itself is established before requests reach this service; a
    missing or blank header means the caller is not authenticated.
    """
    if teacher_id is None or not teacher_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Teacher-Id header.",
        )
    return teacher_id.strip()


def get_alert_feed(request: Request) -> InAppAlertFeed:
    return request.app.state.alert_feed


def get_monitor_service(request: Request) -> MonitorService:
    return request.app.state.monitor_service
