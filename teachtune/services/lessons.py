# teachtune/services/lessons.py
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from teachtune.core.clock import Clock
from teachtune.models.lesson import Lesson
from teachtune.schemas.lesson import AgendaEntry, Attendance, LessonCreate, LessonUpdate
from teachtune.services.lesson_repository import LessonRepository
from teachtune.services.schedule_generator import new_id

logger = logging.getLogger(__name__)

DEFAULT_AGENDA_DAYS = 30


async def book_lesson(
    db: AsyncSession,
    teacher_id: str,
    payload: LessonCreate,
    clock: Clock,
) -> Lesson:
    """
    Manually book a single lesson.

    Manual bookings are never generated, carry no recurrence group and are
    never removed by schedule reconciliation. A naive `scheduled_at` is
    read as local wall-clock time.
    """
    repository = LessonRepository(db, teacher_id)

    lesson = Lesson(
        id=new_id(),
        student_id=payload.student_id,
        scheduled_at=clock.to_utc(payload.scheduled_at),
        updated_at=clock.now(),
        attendance=Attendance.PENDING.value,
        notes=payload.notes,
        repertoire=[],
        auto_generated=False,
        recurrence_group_id=None,
    )
    await repository.add(lesson)
    await db.commit()

    logger.info(
        "Booked lesson %s for student %s at %s",
        lesson.id,
        lesson.student_id,
        lesson.scheduled_at.isoformat(),
    )
    return lesson


async def get_lesson(db: AsyncSession, teacher_id: str, lesson_id: str) -> Lesson:
    return await LessonRepository(db, teacher_id).find_by_id(lesson_id)


async def update_lesson(
    db: AsyncSession,
    teacher_id: str,
    lesson_id: str,
    payload: LessonUpdate,
    clock: Clock,
) -> Lesson:
    """
    Record attendance, notes and/or repertoire on a lesson.

    Only provided fields change. `updated_at` is bumped on every call.
    """
    lesson = await LessonRepository(db, teacher_id).find_by_id(lesson_id)

    update_data = payload.model_dump(exclude_unset=True)

    if update_data.get("attendance") is not None:
        lesson.attendance = Attendance(update_data["attendance"]).value
    if update_data.get("notes") is not None:
        lesson.notes = update_data["notes"]
    if update_data.get("repertoire") is not None:
        # Reassign so the JSON column registers the change
        lesson.repertoire = list(update_data["repertoire"])

    lesson.updated_at = clock.now()

    await db.commit()
    return lesson


async def delete_lesson(db: AsyncSession, teacher_id: str, lesson_id: str) -> None:
    repository = LessonRepository(db, teacher_id)
    lesson = await repository.find_by_id(lesson_id)
    await repository.remove(lesson)
    await db.commit()

    logger.info("Deleted lesson %s of student %s", lesson.id, lesson.student_id)


async def list_agenda(
    db: AsyncSession,
    teacher_id: str,
    clock: Clock,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[AgendaEntry]:
    """
    Lessons in `[start, end]`, oldest first, with the student's name.

    Defaults: `start` is local midnight of today, `end` is `start` plus
    30 days. Naive bounds are read as local time.
    """
    if start is None:
        start = clock.local_midnight(clock.today())
    if end is None:
        end = start + timedelta(days=DEFAULT_AGENDA_DAYS)

    start = clock.to_utc(start)
    end = clock.to_utc(end)
    if end < start:
        raise ValueError("end must be greater than or equal to start")

    rows = await LessonRepository(db, teacher_id).list_by_date_range(start, end)
    return [to_agenda_entry(lesson, name) for lesson, name in rows]


async def list_day(
    db: AsyncSession,
    teacher_id: str,
    clock: Clock,
    day: date,
) -> list[AgendaEntry]:
    """
    Lessons of one local calendar day, ordered by start time.
    """
    start = clock.local_midnight(day)
    end = clock.local_midnight(day + timedelta(days=1)) - timedelta(microseconds=1)
    return await list_agenda(db, teacher_id, clock, start=start, end=end)


async def list_student_lessons(
    db: AsyncSession,
    teacher_id: str,
    student_id: str,
) -> list[Lesson]:
    return await LessonRepository(db, teacher_id).list_by_student(student_id)


async def list_student_history(
    db: AsyncSession,
    teacher_id: str,
    student_id: str,
    clock: Clock,
) -> list[Lesson]:
    """
    Past lessons of a student (scheduled strictly before now), newest first.
    """
    now = clock.now()
    lessons = await LessonRepository(db, teacher_id).list_by_student(student_id)
    return [lesson for lesson in lessons if lesson.scheduled_at < now]


def to_agenda_entry(lesson: Lesson, student_name: str | None) -> AgendaEntry:
    entry = AgendaEntry.model_validate(lesson)
    return entry.model_copy(update={"student_name": student_name})
