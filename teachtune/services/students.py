# teachtune/services/students.py
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from teachtune.core.clock import Clock
from teachtune.core.errors import ScheduleValidationError, TransactionFailure
from teachtune.models.student import Student
from teachtune.schemas.recurrence import Recurrence
from teachtune.schemas.student import StudentCreate, StudentUpdate
from teachtune.services.lesson_repository import LessonRepository
from teachtune.services.reconciliation import ReconciliationResult, reconcile_schedule
from teachtune.services.schedule_generator import DEFAULT_HORIZON_MONTHS, new_id

logger = logging.getLogger(__name__)


def validate_recurrence_activation(is_active: bool, recurrence: Recurrence | None) -> None:
    """
    Block activating a recurrence that cannot produce any lesson.

    A student without a recurrence is fine (manual scheduling); an active
    student whose recurrence has no weekday/time slot is not.
    """
    if is_active and recurrence is not None and not recurrence.has_slots:
        raise ScheduleValidationError(
            "An active student's recurrence needs at least one weekday/time slot."
        )


def recurrence_of(student: Student) -> Recurrence | None:
    if student.recurrence is None:
        return None
    return Recurrence.model_validate(student.recurrence)


async def save_with_reconciliation(
    db: AsyncSession,
    repository: LessonRepository,
    student: Student,
    clock: Clock,
    horizon_months: int = DEFAULT_HORIZON_MONTHS,
    drop_past: bool = True,
) -> ReconciliationResult:
    """
    Reconcile the student's schedule and commit it together with the
    pending student changes as one transaction.

    On a database failure everything is rolled back and TransactionFailure
    is raised; other errors (e.g. validation) roll back and propagate as is.
    """
    # Rollback expires the instance; only this copy is readable afterwards
    student_id = student.id
    try:
        result = await reconcile_schedule(
            repository,
            student_id=student_id,
            active=student.is_active,
            recurrence=recurrence_of(student),
            now=clock.now(),
            tz=clock.tz,
            horizon_months=horizon_months,
            drop_past=drop_past,
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Schedule reconciliation failed for student %s", student_id)
        raise TransactionFailure(
            f"Could not save the schedule of student {student_id}; no changes were applied."
        ) from exc
    except Exception:
        await db.rollback()
        raise

    return result


async def register_student(
    db: AsyncSession,
    teacher_id: str,
    payload: StudentCreate,
    clock: Clock,
    horizon_months: int = DEFAULT_HORIZON_MONTHS,
) -> tuple[Student, ReconciliationResult]:
    """
    Create a student and, if it has an active recurrence, its generated lessons.

    Every generated lesson is stored, including those before `now` when the
    recurrence starts in the past.
    """
    validate_recurrence_activation(payload.is_active, payload.recurrence)

    now = clock.now()
    student = Student(
        id=new_id(),
        teacher_id=teacher_id,
        name=payload.name,
        instrument=payload.instrument,
        monthly_fee=payload.monthly_fee,
        is_active=payload.is_active,
        recurrence=(
            payload.recurrence.model_dump(mode="json")
            if payload.recurrence is not None
            else None
        ),
        created_at=now,
        updated_at=now,
    )
    db.add(student)
    await db.flush()

    repository = LessonRepository(db, teacher_id)
    result = await save_with_reconciliation(
        db, repository, student, clock, horizon_months, drop_past=False
    )
    return student, result


async def update_student(
    db: AsyncSession,
    teacher_id: str,
    student_id: str,
    payload: StudentUpdate,
    clock: Clock,
    horizon_months: int = DEFAULT_HORIZON_MONTHS,
) -> tuple[Student, ReconciliationResult]:
    """
    Apply a partial update to a student and reconcile its schedule.

    A provided `recurrence` replaces the stored one entirely (null clears it).
    Reconciliation runs on every update, even when only unrelated fields
    such as the fee changed.
    """
    repository = LessonRepository(db, teacher_id)
    student = await repository.get_student(student_id)

    update_data = payload.model_dump(exclude_unset=True)

    if "recurrence" in update_data:
        recurrence = payload.recurrence
        update_data["recurrence"] = (
            recurrence.model_dump(mode="json") if recurrence is not None else None
        )
    else:
        recurrence = recurrence_of(student)

    is_active = update_data.get("is_active", student.is_active)
    if is_active is None:
        update_data.pop("is_active")
        is_active = student.is_active
    validate_recurrence_activation(is_active, recurrence)

    for field, value in update_data.items():
        if value is None and field != "recurrence":
            continue
        setattr(student, field, value)
    student.updated_at = clock.now()

    result = await save_with_reconciliation(db, repository, student, clock, horizon_months)
    return student, result


async def get_student(db: AsyncSession, teacher_id: str, student_id: str) -> Student:
    return await LessonRepository(db, teacher_id).get_student(student_id)


async def list_students(
    db: AsyncSession,
    teacher_id: str,
    only_active: bool | None = None,
) -> list[Student]:
    """
    Fetch the teacher's students ordered by name, optionally filtered by
    active/inactive status.
    """
    stmt = select(Student).where(Student.teacher_id == teacher_id)
    if only_active is True:
        stmt = stmt.where(Student.is_active.is_(True))
    elif only_active is False:
        stmt = stmt.where(Student.is_active.is_(False))

    result = await db.execute(stmt.order_by(Student.name.asc(), Student.id.asc()))
    return list(result.scalars().all())


async def regenerate_all_schedules(
    db: AsyncSession,
    clock: Clock,
    horizon_months: int = DEFAULT_HORIZON_MONTHS,
) -> list[ReconciliationResult]:
    """
    Re-run reconciliation for every active student that has a recurrence,
    across all teachers, so every generated calendar matches the stored
    configuration.

    Each student is committed separately; the first failure aborts the run
    and is raised to the caller.
    """
    stmt = (
        select(Student)
        .where(
            Student.is_active.is_(True),
            Student.recurrence.is_not(None),
        )
        .order_by(Student.teacher_id.asc(), Student.id.asc())
    )
    result = await db.execute(stmt)
    students = list(result.scalars().all())

    results: list[ReconciliationResult] = []
    for student in students:
        repository = LessonRepository(db, student.teacher_id)
        results.append(
            await save_with_reconciliation(db, repository, student, clock, horizon_months)
        )

    logger.info(
        "Regenerated schedules of %d students (%d lessons removed, %d created)",
        len(results),
        sum(r.removed for r in results),
        sum(r.created for r in results),
    )
    return results
