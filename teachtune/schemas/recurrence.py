# teachtune/schemas/recurrence.py
import datetime as dt
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Frequency(str, Enum):
    """
    How often a student's weekly slot pattern repeats.
    """

    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"


class WeeklySlot(BaseModel):
    """
    One weekday/time pair of a recurrence. Weekdays count from Sunday = 0.
    """

    model_config = ConfigDict(frozen=True)

    weekday: int = Field(
        ...,
        ge=0,
        le=6,
        description="Day of the week, 0 (Sunday) to 6 (Saturday).",
        examples=[1],
    )
    time: dt.time = Field(
        ...,
        description="Local wall-clock start time of the lesson (HH:MM).",
        examples=["14:00"],
    )


class Recurrence(BaseModel):
    """
    Immutable description of a student's standing lesson pattern.

    `start_date` is the inclusive lower bound of every generated lesson.
    Duplicate slots are kept as given and produce duplicate lessons.
    """

    model_config = ConfigDict(frozen=True)

    frequency: Frequency = Field(
        ...,
        description="Cycle length: 7 days, 14 days or one calendar month.",
        examples=["WEEKLY"],
    )
    start_date: dt.date = Field(
        ...,
        description="First date on which a generated lesson may fall.",
        examples=["2024-03-04"],
    )
    slots: list[WeeklySlot] = Field(
        default_factory=list,
        description="Weekday/time pairs repeated every cycle.",
    )

    @property
    def has_slots(self) -> bool:
        return len(self.slots) > 0
