# teachtune/services/schedule_generator.py
from __future__ import annotations

import calendar
import uuid
from collections.abc import Callable
from datetime import date, datetime, time, timedelta, timezone, tzinfo

from teachtune.core.errors import ScheduleValidationError
from teachtune.schemas.lesson import Attendance, LessonDraft
from teachtune.schemas.recurrence import Frequency, Recurrence

DEFAULT_HORIZON_MONTHS = 6

_CYCLE_DAYS = {
    Frequency.WEEKLY: 7,
    Frequency.BIWEEKLY: 14,
}


def new_id() -> str:
    return str(uuid.uuid4())


def add_months(day: date, months: int) -> date:
    """
    Calendar-month arithmetic. The day of month is clamped to the last
    day of the target month (Jan 31 + 1 month -> Feb 28/29).
    """
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def week_start(day: date) -> date:
    """Sunday of the calendar week containing `day`."""
    # date.weekday() counts Monday = 0 ... Sunday = 6
    return day - timedelta(days=(day.weekday() + 1) % 7)


def cycle_anchor(start: date, frequency: Frequency, cycle: int) -> date:
    """
    Anchor date of the `cycle`-th cycle after `start`.

    Anchors are always derived from `start` so month clamping never
    accumulates (Jan 31, Feb 29, Mar 31, ...).
    """
    if frequency is Frequency.MONTHLY:
        return add_months(start, cycle)
    return start + timedelta(days=_CYCLE_DAYS[frequency] * cycle)


def generate_lesson_drafts(
    student_id: str,
    recurrence: Recurrence,
    horizon_months: int = DEFAULT_HORIZON_MONTHS,
    tz: tzinfo = timezone.utc,
    now: datetime | None = None,
    id_factory: Callable[[], str] = new_id,
) -> list[LessonDraft]:
    """
    Expand a recurrence into concrete, unsaved lessons.

    Steps
    -----
    1) Normalize `start_date` to local midnight and compute the limit as
       `start_date + horizon_months` (calendar months, local midnight).
    2) Walk cycle anchors from `start_date`: every 7 days (WEEKLY), every
       14 days (BIWEEKLY) or every calendar month (MONTHLY).
    3) For each anchor, place every slot on its weekday inside the
       Sunday-based week containing the anchor, at the slot's local time.
    4) Keep the lesson only if it falls within [start, limit], inclusive.
    5) Stop once the anchor passes the limit date, then sort by start time.

    All lessons of one call share a single `recurrence_group_id`. Empty
    `slots` yield an empty list. Duplicate slots are not collapsed.

    Parameters
    ----------
    tz:
        Local timezone of the teacher's device. Slot times and the start
        date are wall-clock values in this zone; `scheduled_at` is
        returned in UTC.
    now:
        Timestamp stamped into `updated_at`; defaults to the current time.
    id_factory:
        Source of lesson and group identifiers.
    """
    if horizon_months < 1:
        raise ScheduleValidationError("horizon_months must be at least 1")

    if not recurrence.slots:
        return []

    start_date = recurrence.start_date
    limit_date = add_months(start_date, horizon_months)

    lower_bound = datetime.combine(start_date, time(0, 0), tzinfo=tz)
    upper_bound = datetime.combine(limit_date, time(0, 0), tzinfo=tz)

    stamp = now if now is not None else datetime.now(tz=timezone.utc)
    group_id = id_factory()

    drafts: list[LessonDraft] = []

    cycle = 0
    anchor = start_date
    while anchor <= limit_date:
        sunday = week_start(anchor)

        for slot in recurrence.slots:
            lesson_day = sunday + timedelta(days=slot.weekday)
            local_start = datetime.combine(lesson_day, slot.time, tzinfo=tz)

            # Mid-week start dates must not produce lessons earlier that week
            if not (lower_bound <= local_start <= upper_bound):
                continue

            drafts.append(
                LessonDraft(
                    id=id_factory(),
                    student_id=student_id,
                    scheduled_at=local_start.astimezone(timezone.utc),
                    updated_at=stamp,
                    attendance=Attendance.PENDING,
                    notes="",
                    repertoire=[],
                    auto_generated=True,
                    recurrence_group_id=group_id,
                )
            )

        cycle += 1
        anchor = cycle_anchor(start_date, recurrence.frequency, cycle)

    drafts.sort(key=lambda draft: draft.scheduled_at)
    return drafts
