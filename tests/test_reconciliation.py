# tests/test_reconciliation.py
from datetime import date, datetime, time, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from conftest import FrozenClock, OTHER_TEACHER_ID, TEACHER_ID
from teachtune.core.errors import NotFoundError, ScheduleValidationError, TransactionFailure
from teachtune.db.session import AsyncSessionLocal
from teachtune.models.lesson import Lesson
from teachtune.models.student import Student
from teachtune.schemas.recurrence import Frequency, Recurrence, WeeklySlot
from teachtune.schemas.student import StudentCreate, StudentUpdate
from teachtune.services.lesson_repository import LessonRepository
from teachtune.services.reconciliation import reconcile_schedule
from teachtune.services.schedule_generator import generate_lesson_drafts
from teachtune.services.students import (
    regenerate_all_schedules,
    register_student,
    update_student,
    validate_recurrence_activation,
)

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


def _monday_recurrence(start: date = date(2024, 3, 4)) -> Recurrence:
    return Recurrence(
        frequency=Frequency.WEEKLY,
        start_date=start,
        slots=[WeeklySlot(weekday=1, time=time(14, 0))],
    )


def _lesson(
    lesson_id: str,
    student_id: str,
    scheduled_at: datetime,
    auto_generated: bool,
    group_id: str | None = None,
    attendance: str = "PENDING",
) -> Lesson:
    return Lesson(
        id=lesson_id,
        student_id=student_id,
        scheduled_at=scheduled_at,
        updated_at=NOW,
        attendance=attendance,
        notes="",
        repertoire=[],
        auto_generated=auto_generated,
        recurrence_group_id=group_id,
    )


async def _seed_student(session) -> Student:
    student = Student(
        id="s-1",
        teacher_id=TEACHER_ID,
        name="Ana Souza",
        instrument="Piano",
        monthly_fee=250.0,
        is_active=True,
        recurrence=_monday_recurrence().model_dump(mode="json"),
        created_at=NOW,
        updated_at=NOW,
    )
    session.add(student)
    session.add_all(
        [
            # Past generated lesson with recorded attendance
            _lesson(
                "past-auto", "s-1", datetime(2024, 3, 4, 14, 0, tzinfo=timezone.utc),
                auto_generated=True, group_id="old-group", attendance="PRESENT",
            ),
            _lesson(
                "past-manual", "s-1", datetime(2024, 3, 6, 9, 0, tzinfo=timezone.utc),
                auto_generated=False,
            ),
            _lesson(
                "future-auto", "s-1", datetime(2024, 3, 11, 14, 0, tzinfo=timezone.utc),
                auto_generated=True, group_id="old-group",
            ),
            _lesson(
                "future-manual", "s-1", datetime(2024, 3, 13, 9, 0, tzinfo=timezone.utc),
                auto_generated=False,
            ),
        ]
    )
    await session.commit()
    return student


async def _lessons_of(session, student_id: str) -> list[Lesson]:
    result = await session.execute(
        select(Lesson)
        .where(Lesson.student_id == student_id)
        .order_by(Lesson.scheduled_at.asc())
    )
    return list(result.scalars().all())


@pytest.mark.asyncio
async def test_reconcile_replaces_only_future_generated_lessons():
    """
    Future auto-generated lessons are replaced by a fresh batch; past
    lessons and manual bookings are left exactly as they were.
    """
    async with AsyncSessionLocal() as session:
        await _seed_student(session)

        new_recurrence = Recurrence(
            frequency=Frequency.WEEKLY,
            start_date=date(2024, 3, 4),
            slots=[WeeklySlot(weekday=3, time=time(16, 0))],
        )
        repository = LessonRepository(session, TEACHER_ID)
        result = await reconcile_schedule(
            repository,
            student_id="s-1",
            active=True,
            recurrence=new_recurrence,
            now=NOW,
            horizon_months=1,
        )
        await session.commit()

        assert result.removed == 1
        # Wednesdays 03-13 .. 04-03 after `now`
        assert result.created == 4

        lessons = await _lessons_of(session, "s-1")
        ids = {lesson.id for lesson in lessons}
        assert "future-auto" not in ids
        assert {"past-auto", "past-manual", "future-manual"} <= ids

        past_auto = next(lesson for lesson in lessons if lesson.id == "past-auto")
        assert past_auto.attendance == "PRESENT"
        assert past_auto.recurrence_group_id == "old-group"

        generated = [
            lesson for lesson in lessons if lesson.auto_generated and lesson.scheduled_at > NOW
        ]
        assert len(generated) == 4
        assert {lesson.recurrence_group_id for lesson in generated} == {
            result.recurrence_group_id
        }
        assert all(lesson.scheduled_at.weekday() == 2 for lesson in generated)

        past = [lesson for lesson in lessons if lesson.scheduled_at <= NOW]
        assert len(past) == 2


@pytest.mark.asyncio
async def test_reconcile_inactive_student_only_purges():
    async with AsyncSessionLocal() as session:
        await _seed_student(session)

        result = await reconcile_schedule(
            LessonRepository(session, TEACHER_ID),
            student_id="s-1",
            active=False,
            recurrence=_monday_recurrence(),
            now=NOW,
        )
        await session.commit()

        assert result.removed == 1
        assert result.created == 0
        assert result.recurrence_group_id is None

        lessons = await _lessons_of(session, "s-1")
        assert [lesson.id for lesson in lessons] == [
            "past-auto",
            "past-manual",
            "future-manual",
        ]


@pytest.mark.asyncio
async def test_reconcile_without_recurrence_is_manual_only():
    async with AsyncSessionLocal() as session:
        await _seed_student(session)

        result = await reconcile_schedule(
            LessonRepository(session, TEACHER_ID),
            student_id="s-1",
            active=True,
            recurrence=None,
            now=NOW,
        )
        await session.commit()

        assert result.created == 0
        lessons = await _lessons_of(session, "s-1")
        assert not any(lesson.auto_generated and lesson.scheduled_at > NOW for lesson in lessons)


@pytest.mark.asyncio
async def test_reconcile_is_scoped_to_the_owning_teacher():
    async with AsyncSessionLocal() as session:
        await _seed_student(session)

        with pytest.raises(NotFoundError):
            await reconcile_schedule(
                LessonRepository(session, OTHER_TEACHER_ID),
                student_id="s-1",
                active=False,
                recurrence=None,
                now=NOW,
            )

        await session.rollback()
        lessons = await _lessons_of(session, "s-1")
        assert len(lessons) == 4


@pytest.mark.asyncio
async def test_insert_many_rejects_foreign_students():
    async with AsyncSessionLocal() as session:
        await _seed_student(session)

        repository = LessonRepository(session, OTHER_TEACHER_ID)
        drafts = generate_lesson_drafts("s-1", _monday_recurrence(), horizon_months=1, now=NOW)
        with pytest.raises(NotFoundError):
            await repository.insert_many(drafts)


def test_activation_requires_a_slot():
    empty = Recurrence(frequency=Frequency.WEEKLY, start_date=date(2024, 3, 4))

    with pytest.raises(ScheduleValidationError):
        validate_recurrence_activation(True, empty)

    # Inactive students and students without a recurrence are fine
    validate_recurrence_activation(False, empty)
    validate_recurrence_activation(True, None)


@pytest.mark.asyncio
async def test_register_and_update_student_reconcile_in_one_transaction():
    clock = FrozenClock(NOW)

    async with AsyncSessionLocal() as session:
        student, created = await register_student(
            session,
            TEACHER_ID,
            StudentCreate(
                name="Bruno Lima",
                instrument="Guitar",
                monthly_fee=180.0,
                is_active=True,
                recurrence=_monday_recurrence(),
            ),
            clock,
            horizon_months=1,
        )
        # Mondays 03-04 .. 04-01; a new student keeps the lesson already taken
        assert created.created == 5

        student, updated = await update_student(
            session,
            TEACHER_ID,
            student.id,
            StudentUpdate(monthly_fee=200.0),
            clock,
            horizon_months=1,
        )
        assert updated.removed == 4
        assert updated.created == 4
        assert updated.recurrence_group_id != created.recurrence_group_id
        assert student.monthly_fee == 200.0

        student, deactivated = await update_student(
            session,
            TEACHER_ID,
            student.id,
            StudentUpdate(is_active=False),
            clock,
            horizon_months=1,
        )
        assert deactivated.removed == 4
        assert deactivated.created == 0
        lessons = await _lessons_of(session, student.id)
        assert [lesson.scheduled_at for lesson in lessons] == [
            datetime(2024, 3, 4, 14, 0, tzinfo=timezone.utc)
        ]


@pytest.mark.asyncio
async def test_update_rejects_empty_active_recurrence_without_changes():
    clock = FrozenClock(NOW)

    async with AsyncSessionLocal() as session:
        student, _ = await register_student(
            session,
            TEACHER_ID,
            StudentCreate(
                name="Carla Dias",
                instrument="Violin",
                monthly_fee=300.0,
                recurrence=_monday_recurrence(),
            ),
            clock,
            horizon_months=1,
        )
        student_id = student.id

        with pytest.raises(ScheduleValidationError):
            await update_student(
                session,
                TEACHER_ID,
                student_id,
                StudentUpdate(
                    recurrence=Recurrence(
                        frequency=Frequency.WEEKLY, start_date=date(2024, 3, 4)
                    )
                ),
                clock,
                horizon_months=1,
            )

    async with AsyncSessionLocal() as session:
        lessons = await _lessons_of(session, student_id)
        assert len(lessons) == 5


@pytest.mark.asyncio
async def test_regenerate_all_schedules_covers_active_recurring_students():
    clock = FrozenClock(NOW)

    async with AsyncSessionLocal() as session:
        student, _ = await register_student(
            session,
            TEACHER_ID,
            StudentCreate(
                name="Davi Rocha",
                instrument="Drums",
                monthly_fee=220.0,
                recurrence=_monday_recurrence(),
            ),
            clock,
            horizon_months=1,
        )
        await register_student(
            session,
            OTHER_TEACHER_ID,
            StudentCreate(name="Eva Prado", instrument="Cello", monthly_fee=150.0),
            clock,
            horizon_months=1,
        )

        clock.advance(days=14)
        results = await regenerate_all_schedules(session, clock, horizon_months=1)

        assert [r.student_id for r in results] == [student.id]
        assert results[0].removed == 2
        assert results[0].created == 2

        lessons = await _lessons_of(session, student.id)
        assert [lesson.scheduled_at for lesson in lessons] == [
            datetime(2024, 3, 4, 14, 0, tzinfo=timezone.utc),
            datetime(2024, 3, 11, 14, 0, tzinfo=timezone.utc),
            datetime(2024, 3, 18, 14, 0, tzinfo=timezone.utc),
            datetime(2024, 3, 25, 14, 0, tzinfo=timezone.utc),
            datetime(2024, 4, 1, 14, 0, tzinfo=timezone.utc),
        ]


@pytest.mark.asyncio
async def test_register_keeps_lessons_before_now():
    """
    A recurrence starting in the past creates the lessons already taken as
    well, so attendance can be recorded for them.
    """
    clock = FrozenClock(datetime(2024, 3, 20, 12, 0, tzinfo=timezone.utc))

    async with AsyncSessionLocal() as session:
        student, created = await register_student(
            session,
            TEACHER_ID,
            StudentCreate(
                name="Fabio Reis",
                instrument="Saxophone",
                monthly_fee=240.0,
                recurrence=_monday_recurrence(),
            ),
            clock,
            horizon_months=1,
        )

        assert created.created == 5
        lessons = await _lessons_of(session, student.id)
        assert [lesson.scheduled_at.day for lesson in lessons] == [4, 11, 18, 25, 1]
        assert all(lesson.auto_generated for lesson in lessons)


@pytest.mark.asyncio
async def test_reconcile_drop_past_controls_lessons_before_now():
    async with AsyncSessionLocal() as session:
        await _seed_student(session)
        repository = LessonRepository(session, TEACHER_ID)

        kept = await reconcile_schedule(
            repository,
            student_id="s-1",
            active=True,
            recurrence=_monday_recurrence(),
            now=NOW,
            horizon_months=1,
            drop_past=False,
        )
        await session.rollback()

        dropped = await reconcile_schedule(
            repository,
            student_id="s-1",
            active=True,
            recurrence=_monday_recurrence(),
            now=NOW,
            horizon_months=1,
        )
        await session.rollback()

        # 03-04 .. 04-01 against 03-11 .. 04-01
        assert kept.created == 5
        assert dropped.created == 4


@pytest.mark.asyncio
async def test_failed_save_rolls_back_and_raises_transaction_failure(monkeypatch):
    """
    A database error after the purge leaves the schedule and the student
    exactly as they were and surfaces TransactionFailure.
    """
    clock = FrozenClock(NOW)

    async with AsyncSessionLocal() as session:
        student, _ = await register_student(
            session,
            TEACHER_ID,
            StudentCreate(
                name="Gina Melo",
                instrument="Flute",
                monthly_fee=210.0,
                recurrence=_monday_recurrence(),
            ),
            clock,
            horizon_months=1,
        )
        student_id = student.id

        async def _fail_insert(self, drafts):
            raise OperationalError("INSERT INTO lessons", {}, Exception("disk I/O error"))

        monkeypatch.setattr(LessonRepository, "insert_many", _fail_insert)

        with pytest.raises(TransactionFailure) as exc_info:
            await update_student(
                session,
                TEACHER_ID,
                student_id,
                StudentUpdate(monthly_fee=10.0),
                clock,
                horizon_months=1,
            )
        assert student_id in str(exc_info.value)

    async with AsyncSessionLocal() as session:
        lessons = await _lessons_of(session, student_id)
        assert len(lessons) == 5

        stored = await session.get(Student, student_id)
        assert stored.monthly_fee == 210.0
