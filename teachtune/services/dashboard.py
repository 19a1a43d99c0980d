# teachtune/services/dashboard.py
from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from teachtune.core.clock import Clock
from teachtune.schemas.dashboard import DashboardStats, DashboardSummary
from teachtune.schemas.lesson import Attendance
from teachtune.services.lessons import list_day
from teachtune.services.students import list_students


async def compute_dashboard_summary(
    db: AsyncSession,
    teacher_id: str,
    clock: Clock,
) -> DashboardSummary:
    """
    Compute the headline numbers of a teacher's dashboard.

    - total / active students
    - estimated monthly income = sum of the fees of active students
    - today's lessons (local calendar day) and how many are still PENDING
    """
    students = await list_students(db, teacher_id)
    active = [student for student in students if student.is_active]

    estimated_income = sum(float(student.monthly_fee or 0.0) for student in active)

    today = clock.today()
    lessons_today = await list_day(db, teacher_id, clock, today)
    pending_today = sum(
        1 for entry in lessons_today if entry.attendance == Attendance.PENDING
    )

    return DashboardSummary(
        day=today,
        stats=DashboardStats(
            total_students=len(students),
            active_students=len(active),
            estimated_monthly_income=round(estimated_income, 2),
            lessons_today=len(lessons_today),
            pending_lessons_today=pending_today,
        ),
        lessons_today=lessons_today,
    )
