# teachtune/schemas/dashboard.py
from datetime import date

from pydantic import BaseModel, Field

from teachtune.schemas.lesson import AgendaEntry


class DashboardStats(BaseModel):
    """
    Headline numbers for a teacher's dashboard.
    """

    total_students: int = Field(..., examples=[12])
    active_students: int = Field(..., examples=[10])
    estimated_monthly_income: float = Field(
        ...,
        description="Sum of the monthly fees of all active students.",
        examples=[2500.0],
    )
    lessons_today: int = Field(..., examples=[4])
    pending_lessons_today: int = Field(
        ...,
        description="Lessons of today whose attendance is still PENDING.",
        examples=[2],
    )


class DashboardSummary(BaseModel):
    """
    Payload returned by GET /dashboard.
    """

    day: date = Field(..., description="Local date the summary refers to.")
    stats: DashboardStats
    lessons_today: list[AgendaEntry] = Field(
        default_factory=list,
        description="Today's lessons ordered by start time.",
    )


class RegenerationSummary(BaseModel):
    """
    Summary payload returned by /internal/regenerate-schedules.
    """

    students_evaluated: int = Field(..., examples=[10])
    lessons_removed: int = Field(..., examples=[240])
    lessons_created: int = Field(..., examples=[260])
