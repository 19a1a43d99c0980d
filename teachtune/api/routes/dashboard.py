# teachtune/api/routes/dashboard.py
from fastapi import APIRouter, Depends
from http import HTTPStatus
from sqlalchemy.ext.asyncio import AsyncSession

from teachtune.api.dependencies.teacher_scope import get_teacher_id
from teachtune.core.clock import Clock, get_clock
from teachtune.db.session import get_db
from teachtune.schemas.dashboard import DashboardSummary
from teachtune.services.dashboard import compute_dashboard_summary

router = APIRouter(
    prefix="/dashboard",
    tags=["Dashboard"],
)


@router.get(
    "",
    response_model=DashboardSummary,
    status_code=HTTPStatus.OK,
    summary="Get the teacher's dashboard summary",
    description=(
        "Return headline numbers for the calling teacher:\n"
        "- Total and active students\n"
        "- Estimated monthly income (sum of the fees of active students)\n"
        "- Number of lessons today and how many still have PENDING attendance\n\n"
        "\"Today\" is the current calendar day in `LOCAL_TIMEZONE`. Today's "
        "lessons are included, ordered by start time."
    ),
)
async def get_dashboard(
    teacher_id: str = Depends(get_teacher_id),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
) -> DashboardSummary:
    return await compute_dashboard_summary(db, teacher_id, clock)
