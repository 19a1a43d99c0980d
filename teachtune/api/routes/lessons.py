# teachtune/api/routes/lessons.py
from datetime import datetime
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from teachtune.api.dependencies.teacher_scope import get_teacher_id
from teachtune.core.clock import Clock, get_clock
from teachtune.core.errors import NotFoundError
from teachtune.db.session import get_db
from teachtune.schemas.lesson import AgendaEntry, LessonCreate, LessonRead, LessonUpdate
from teachtune.services import lessons as lesson_service

router = APIRouter(prefix="/lessons", tags=["Lessons"])


@router.post(
    "",
    response_model=LessonRead,
    status_code=HTTPStatus.CREATED,
    summary="Manually book a single lesson",
    description=(
        "Book a one-off lesson for one of the teacher's students.\n\n"
        "A `scheduled_at` without timezone is interpreted in the configured "
        "`LOCAL_TIMEZONE`. Manual bookings are never removed when the "
        "student's recurrence changes."
    ),
    responses={404: {"description": "Student not found for the calling teacher."}},
)
async def book_lesson(
    payload: LessonCreate,
    teacher_id: str = Depends(get_teacher_id),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
) -> LessonRead:
    try:
        lesson = await lesson_service.book_lesson(db, teacher_id, payload, clock)
    except NotFoundError as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc))

    return LessonRead.model_validate(lesson)


@router.get(
    "",
    response_model=list[AgendaEntry],
    summary="List lessons in a time window (agenda)",
    description=(
        "Return the teacher's lessons with `start <= scheduled_at <= end`, "
        "oldest first, including the student's name.\n\n"
        "- If `start` is omitted, local midnight of today is used.\n"
        "- If `end` is omitted, `start` + 30 days is used.\n"
        "- Values without timezone are interpreted in `LOCAL_TIMEZONE`."
    ),
    responses={400: {"description": "`end` is before `start`."}},
)
async def list_agenda(
    start: datetime | None = Query(
        default=None,
        description="Inclusive lower bound (ISO 8601).",
        examples=["2024-03-04T00:00:00"],
    ),
    end: datetime | None = Query(
        default=None,
        description="Inclusive upper bound (ISO 8601).",
        examples=["2024-03-10T23:59:59"],
    ),
    teacher_id: str = Depends(get_teacher_id),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
) -> list[AgendaEntry]:
    try:
        return await lesson_service.list_agenda(db, teacher_id, clock, start=start, end=end)
    except ValueError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc))


@router.get(
    "/{lesson_id}",
    response_model=LessonRead,
    summary="Get a lesson by ID",
    responses={404: {"description": "No lesson with this ID for the calling teacher."}},
)
async def get_lesson(
    lesson_id: str = Path(..., description="Identifier of the lesson."),
    teacher_id: str = Depends(get_teacher_id),
    db: AsyncSession = Depends(get_db),
) -> LessonRead:
    try:
        lesson = await lesson_service.get_lesson(db, teacher_id, lesson_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc))

    return LessonRead.model_validate(lesson)


@router.patch(
    "/{lesson_id}",
    response_model=LessonRead,
    summary="Record attendance, notes or repertoire",
    description=(
        "Update the mutable state of a lesson: `attendance` "
        "(PRESENT/ABSENT/PENDING), `notes` and `repertoire`.\n\n"
        "Only fields provided in the request body are modified."
    ),
    responses={404: {"description": "No lesson with this ID for the calling teacher."}},
)
async def update_lesson(
    lesson_id: str = Path(..., description="Identifier of the lesson."),
    payload: LessonUpdate | None = None,
    teacher_id: str = Depends(get_teacher_id),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
) -> LessonRead:
    if payload is None:
        payload = LessonUpdate()

    try:
        lesson = await lesson_service.update_lesson(db, teacher_id, lesson_id, payload, clock)
    except NotFoundError as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc))

    return LessonRead.model_validate(lesson)


@router.delete(
    "/{lesson_id}",
    status_code=HTTPStatus.NO_CONTENT,
    summary="Delete a lesson",
    responses={404: {"description": "No lesson with this ID for the calling teacher."}},
)
async def delete_lesson(
    lesson_id: str = Path(..., description="Identifier of the lesson."),
    teacher_id: str = Depends(get_teacher_id),
    db: AsyncSession = Depends(get_db),
) -> Response:
    try:
        await lesson_service.delete_lesson(db, teacher_id, lesson_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc))

    return Response(status_code=HTTPStatus.NO_CONTENT)
