# teachtune/schemas/alert.py
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class AlertSeverity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"


class LessonAlert(BaseModel):
    """
    Notification raised once for a lesson about to start.

    `dedupe_key` is the lesson id; downstream channels can use it to
    collapse repeated deliveries of the same alert.
    """

    message: str = Field(
        ...,
        description="Human-readable alert text.",
        examples=["Your lesson with Ana Souza starts in 10 minutes!"],
    )
    severity: AlertSeverity = Field(AlertSeverity.WARNING, examples=["WARNING"])
    dedupe_key: str = Field(..., description="Idempotency key (the lesson id).")
    teacher_id: str = Field(..., description="Teacher who owns the lesson.")
    lesson_id: str = Field(..., description="Lesson the alert refers to.")
    student_name: str = Field(..., examples=["Ana Souza"])
    scheduled_at: datetime = Field(..., description="Absolute start time of the lesson.")
    minutes_until: int = Field(
        ...,
        description="Whole minutes until the lesson starts, rounded up.",
        examples=[10],
    )
    raised_at: datetime = Field(..., description="When the monitor raised the alert.")


class ScanSummary(BaseModel):
    """
    Summary payload returned by the /internal/scan-upcoming endpoint.
    """

    scanned_at: datetime = Field(..., description="Instant used as 'now' for the scan.")
    lessons_watched: int = Field(
        ...,
        description="Number of lessons in the refreshed snapshot across all teachers.",
        examples=[4],
    )
    alerts_raised: int = Field(..., examples=[1])
    alerts: list[LessonAlert] = Field(default_factory=list)
