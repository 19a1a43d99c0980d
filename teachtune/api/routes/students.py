# teachtune/api/routes/students.py
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from teachtune.api.dependencies.teacher_scope import get_teacher_id
from teachtune.core.clock import Clock, get_clock
from teachtune.core.config import get_settings
from teachtune.core.errors import NotFoundError, ScheduleValidationError, TransactionFailure
from teachtune.db.session import get_db
from teachtune.schemas.lesson import LessonRead
from teachtune.schemas.student import StudentCreate, StudentRead, StudentUpdate
from teachtune.services import lessons as lesson_service
from teachtune.services import students as student_service

router = APIRouter(prefix="/students", tags=["Students"])


def _schedule_error(exc: Exception) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc))
    if isinstance(exc, ScheduleValidationError):
        return HTTPException(status_code=HTTPStatus.UNPROCESSABLE_ENTITY, detail=str(exc))
    return HTTPException(status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post(
    "",
    response_model=StudentRead,
    status_code=HTTPStatus.CREATED,
    summary="Register a new student",
    description=(
        "Register a student for the calling teacher.\n\n"
        "If the student is active and a `recurrence` with at least one slot is "
        "given, lessons are generated for the configured horizon "
        "(`SCHEDULE_HORIZON_MONTHS`) in the same transaction. A `start_date` in "
        "the past also creates the lessons already taken, so their attendance "
        "can be recorded."
    ),
    responses={
        201: {"description": "Student created and schedule generated."},
        401: {"description": "Missing X-Teacher-Id header."},
        422: {"description": "Active recurrence without any weekday/time slot."},
        500: {"description": "Schedule could not be saved; nothing was changed."},
    },
)
async def create_student(
    payload: StudentCreate,
    teacher_id: str = Depends(get_teacher_id),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
) -> StudentRead:
    try:
        student, _ = await student_service.register_student(
            db,
            teacher_id=teacher_id,
            payload=payload,
            clock=clock,
            horizon_months=get_settings().SCHEDULE_HORIZON_MONTHS,
        )
    except (ScheduleValidationError, TransactionFailure) as exc:
        raise _schedule_error(exc)

    return StudentRead.model_validate(student)


@router.get(
    "",
    response_model=list[StudentRead],
    summary="List the teacher's students",
    description=(
        "Return the calling teacher's students ordered by name.\n\n"
        "Optional filters can be used to show only active or inactive students."
    ),
)
async def list_students(
    only_active: bool | None = Query(
        default=None,
        description=(
            "If true, returns only students where `is_active` is true. "
            "If false, returns only inactive students. If omitted, returns all."
        ),
        examples=[True],
    ),
    teacher_id: str = Depends(get_teacher_id),
    db: AsyncSession = Depends(get_db),
) -> list[StudentRead]:
    students = await student_service.list_students(db, teacher_id, only_active=only_active)
    return [StudentRead.model_validate(s) for s in students]


@router.get(
    "/{student_id}",
    response_model=StudentRead,
    summary="Get student details by ID",
    responses={404: {"description": "No student with this ID for the calling teacher."}},
)
async def get_student(
    student_id: str = Path(..., description="Identifier of the student."),
    teacher_id: str = Depends(get_teacher_id),
    db: AsyncSession = Depends(get_db),
) -> StudentRead:
    try:
        student = await student_service.get_student(db, teacher_id, student_id)
    except NotFoundError as exc:
        raise _schedule_error(exc)

    return StudentRead.model_validate(student)


@router.patch(
    "/{student_id}",
    response_model=StudentRead,
    summary="Partially update a student",
    description=(
        "Update student fields such as `name`, `monthly_fee`, `is_active` or "
        "`recurrence`. Only fields provided in the request body are modified; "
        "a provided `recurrence` replaces the current one entirely.\n\n"
        "Every update re-synchronizes the schedule: future auto-generated "
        "lessons are deleted and, for active students with a recurrence, "
        "regenerated. Attendance or notes already entered on future generated "
        "lessons are lost. Past lessons and manual bookings are never touched."
    ),
    responses={
        404: {"description": "No student with this ID for the calling teacher."},
        422: {"description": "Active recurrence without any weekday/time slot."},
        500: {"description": "Schedule could not be saved; nothing was changed."},
    },
)
async def update_student(
    student_id: str = Path(..., description="Identifier of the student."),
    payload: StudentUpdate | None = None,
    teacher_id: str = Depends(get_teacher_id),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
) -> StudentRead:
    if payload is None:
        payload = StudentUpdate()

    try:
        student, _ = await student_service.update_student(
            db,
            teacher_id=teacher_id,
            student_id=student_id,
            payload=payload,
            clock=clock,
            horizon_months=get_settings().SCHEDULE_HORIZON_MONTHS,
        )
    except (NotFoundError, ScheduleValidationError, TransactionFailure) as exc:
        raise _schedule_error(exc)

    return StudentRead.model_validate(student)


@router.get(
    "/{student_id}/lessons",
    response_model=list[LessonRead],
    summary="List all lessons of a student",
    description="Every lesson of the student, past and future, newest first.",
)
async def list_student_lessons(
    student_id: str = Path(..., description="Identifier of the student."),
    teacher_id: str = Depends(get_teacher_id),
    db: AsyncSession = Depends(get_db),
) -> list[LessonRead]:
    try:
        lessons = await lesson_service.list_student_lessons(db, teacher_id, student_id)
    except NotFoundError as exc:
        raise _schedule_error(exc)

    return [LessonRead.model_validate(lesson) for lesson in lessons]


@router.get(
    "/{student_id}/history",
    response_model=list[LessonRead],
    summary="List past lessons of a student",
    description=(
        "Lessons scheduled before the current time, newest first, with their "
        "attendance, notes and repertoire."
    ),
)
async def list_student_history(
    student_id: str = Path(..., description="Identifier of the student."),
    teacher_id: str = Depends(get_teacher_id),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
) -> list[LessonRead]:
    try:
        lessons = await lesson_service.list_student_history(db, teacher_id, student_id, clock)
    except NotFoundError as exc:
        raise _schedule_error(exc)

    return [LessonRead.model_validate(lesson) for lesson in lessons]
