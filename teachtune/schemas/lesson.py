# teachtune/schemas/lesson.py
from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Attendance(str, Enum):
    """
    Attendance state of a lesson. PENDING means not recorded yet.
    """

    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    PENDING = "PENDING"


class LessonDraft(BaseModel):
    """
    Unsaved lesson produced by the schedule generator.
    """

    id: str
    student_id: str
    scheduled_at: datetime
    updated_at: datetime
    attendance: Attendance = Attendance.PENDING
    notes: str = ""
    repertoire: list[str] = Field(default_factory=list)
    auto_generated: bool = True
    recurrence_group_id: str | None = None


class LessonCreate(BaseModel):
    """
    Schema for manually booking a single lesson (POST /lessons).

    A `scheduled_at` without timezone is read as local wall-clock time of
    the teacher's device (see LOCAL_TIMEZONE).
    """

    student_id: str = Field(
        ...,
        description="Identifier of the student the lesson belongs to.",
        examples=["2f0d3c4e-9a4b-4f43-a3b5-1d2c3e4f5a6b"],
    )
    scheduled_at: datetime = Field(
        ...,
        description="Date and time of the lesson.",
        examples=["2024-03-07T16:30:00"],
    )
    notes: str = Field(
        default="",
        description="Free-text notes for the lesson.",
    )


class LessonUpdate(BaseModel):
    """
    Schema for recording attendance, notes and repertoire (PATCH /lessons/{id}).
    All fields are optional; only provided fields are updated.
    """

    attendance: Attendance | None = Field(default=None)
    notes: str | None = Field(default=None)
    repertoire: list[str] | None = Field(
        default=None,
        description="Pieces worked on, in the order they were practiced.",
    )


class LessonRead(BaseModel):
    """
    Public representation of a lesson.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Unique lesson identifier.")
    student_id: str = Field(..., description="Owning student.")
    scheduled_at: datetime = Field(
        ...,
        description="Absolute start time of the lesson (UTC).",
        examples=["2024-03-04T14:00:00Z"],
    )
    updated_at: datetime = Field(..., description="Last modification timestamp (UTC).")
    attendance: Attendance = Field(..., examples=["PENDING"])
    notes: str = Field("", description="Free-text notes.")
    repertoire: list[str] = Field(default_factory=list)
    auto_generated: bool = Field(
        ...,
        description="True when the lesson was created from the student's recurrence.",
    )
    recurrence_group_id: str | None = Field(
        None,
        description="Shared by every lesson created in the same generation run.",
    )


class AgendaEntry(LessonRead):
    """
    Lesson enriched with the student's name, used by agenda and dashboard.
    """

    student_name: str | None = Field(None, examples=["Ana Souza"])
