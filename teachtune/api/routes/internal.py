# teachtune/api/routes/internal.py
from fastapi import APIRouter, Depends, HTTPException
from http import HTTPStatus
from sqlalchemy.ext.asyncio import AsyncSession

from teachtune.api.dependencies.internal_auth import verify_internal_api_key
from teachtune.api.dependencies.teacher_scope import get_monitor_service
from teachtune.core.clock import Clock, get_clock
from teachtune.core.config import get_settings
from teachtune.core.errors import TransactionFailure
from teachtune.db.session import get_db
from teachtune.schemas.alert import ScanSummary
from teachtune.schemas.dashboard import RegenerationSummary
from teachtune.services.students import regenerate_all_schedules
from teachtune.services.upcoming_monitor import MonitorService

router = APIRouter(
    prefix="/internal",
    tags=["Internal"],
    dependencies=[Depends(verify_internal_api_key)],
)


@router.post(
    "/regenerate-schedules",
    response_model=RegenerationSummary,
    status_code=HTTPStatus.OK,
    summary="Re-synchronize the generated lessons of all students",
    description=(
        "Re-run schedule reconciliation for **every active student with a "
        "recurrence**, across all teachers.\n\n"
        "Useful after a deploy or a data repair to bring every generated "
        "calendar back in line with the stored recurrences. Future "
        "auto-generated lessons are recreated, so attendance or notes entered "
        "on them are discarded. Protected via the `X-Internal-Api-Key` header "
        "when configured."
    ),
    responses={
        401: {"description": "Missing or invalid internal API key (if configured)."},
        500: {"description": "A student's schedule could not be saved."},
    },
)
async def regenerate_schedules(
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
) -> RegenerationSummary:
    try:
        results = await regenerate_all_schedules(
            db,
            clock=clock,
            horizon_months=get_settings().SCHEDULE_HORIZON_MONTHS,
        )
    except TransactionFailure as exc:
        raise HTTPException(status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=str(exc))

    return RegenerationSummary(
        students_evaluated=len(results),
        lessons_removed=sum(r.removed for r in results),
        lessons_created=sum(r.created for r in results),
    )


@router.post(
    "/scan-upcoming",
    response_model=ScanSummary,
    status_code=HTTPStatus.OK,
    summary="Refresh the lesson snapshot and scan for upcoming lessons once",
    description=(
        "Reload pending lessons starting soon and run one upcoming-lesson scan "
        "for all teachers.\n\n"
        "Useful for deployments that disable the background monitor "
        "(`MONITOR_ENABLED=false`) and trigger scans from a scheduler instead. "
        "Lessons already alerted are never alerted again."
    ),
    responses={
        401: {"description": "Missing or invalid internal API key (if configured)."},
    },
)
async def scan_upcoming(
    clock: Clock = Depends(get_clock),
    monitor_service: MonitorService = Depends(get_monitor_service),
) -> ScanSummary:
    now = clock.now()
    loaded, alerts = await monitor_service.run_once(now)
    return ScanSummary(
        scanned_at=now,
        lessons_watched=loaded,
        alerts_raised=len(alerts),
        alerts=alerts,
    )
