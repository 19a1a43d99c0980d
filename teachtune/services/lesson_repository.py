# teachtune/services/lesson_repository.py
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import and_, delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from teachtune.core.errors import NotFoundError
from teachtune.models.lesson import Lesson
from teachtune.models.student import Student
from teachtune.schemas.lesson import Attendance, LessonDraft


@dataclass(frozen=True)
class WatchedLesson:
    """
    Read-only view of a pending lesson, as loaded for the upcoming-lesson
    monitor snapshot.
    """

    lesson_id: str
    teacher_id: str
    student_name: str
    scheduled_at: datetime
    attendance: Attendance


class LessonRepository:
    """
    Persistence boundary for lessons, scoped to a single teacher.

    Every lookup joins through `students.teacher_id`, so lessons of other
    teachers behave exactly like missing rows. Methods only flush; the
    caller owns the transaction and decides when to commit.
    """

    def __init__(self, db: AsyncSession, teacher_id: str) -> None:
        self.db = db
        self.teacher_id = teacher_id

    async def get_student(self, student_id: str) -> Student:
        """
        Fetch a student of this teacher.

        Raises NotFoundError if the student does not exist or belongs to
        another teacher.
        """
        stmt = select(Student).where(
            Student.id == student_id,
            Student.teacher_id == self.teacher_id,
        )
        result = await self.db.execute(stmt)
        student = result.scalar_one_or_none()
        if student is None:
            raise NotFoundError(f"Student with id={student_id} not found.")
        return student

    async def insert_many(self, drafts: Iterable[LessonDraft]) -> list[Lesson]:
        """
        Add a batch of lessons. All referenced students must belong to this
        teacher, otherwise nothing is added.
        """
        drafts = list(drafts)
        if not drafts:
            return []

        student_ids = {draft.student_id for draft in drafts}
        stmt = select(Student.id).where(
            Student.id.in_(student_ids),
            Student.teacher_id == self.teacher_id,
        )
        result = await self.db.execute(stmt)
        owned = set(result.scalars().all())
        missing = student_ids - owned
        if missing:
            raise NotFoundError(
                f"Student(s) {', '.join(sorted(missing))} not found for this teacher."
            )

        lessons = [
            Lesson(
                id=draft.id,
                student_id=draft.student_id,
                scheduled_at=draft.scheduled_at,
                updated_at=draft.updated_at,
                attendance=draft.attendance.value,
                notes=draft.notes,
                repertoire=list(draft.repertoire),
                auto_generated=draft.auto_generated,
                recurrence_group_id=draft.recurrence_group_id,
            )
            for draft in drafts
        ]
        self.db.add_all(lessons)
        await self.db.flush()
        return lessons

    async def delete_future_auto_generated(self, student_id: str, now: datetime) -> int:
        """
        Delete the student's auto-generated lessons scheduled after `now`.

        Past lessons and manually booked lessons are never touched.
        Returns the number of deleted rows.
        """
        await self.get_student(student_id)

        stmt = (
            delete(Lesson)
            .where(
                and_(
                    Lesson.student_id == student_id,
                    Lesson.auto_generated.is_(True),
                    Lesson.scheduled_at > now,
                )
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount or 0

    async def find_by_id(self, lesson_id: str) -> Lesson:
        stmt = (
            select(Lesson)
            .join(Student, Lesson.student_id == Student.id)
            .where(
                Lesson.id == lesson_id,
                Student.teacher_id == self.teacher_id,
            )
        )
        result = await self.db.execute(stmt)
        lesson = result.scalar_one_or_none()
        if lesson is None:
            raise NotFoundError(f"Lesson with id={lesson_id} not found.")
        return lesson

    async def list_by_date_range(
        self,
        start: datetime,
        end: datetime,
    ) -> list[tuple[Lesson, str]]:
        """
        Lessons with `start <= scheduled_at <= end`, oldest first, paired
        with the student's name.
        """
        stmt = (
            select(Lesson, Student.name)
            .join(Student, Lesson.student_id == Student.id)
            .where(
                and_(
                    Student.teacher_id == self.teacher_id,
                    Lesson.scheduled_at >= start,
                    Lesson.scheduled_at <= end,
                )
            )
            .order_by(Lesson.scheduled_at.asc(), Lesson.id.asc())
        )
        result = await self.db.execute(stmt)
        return [(lesson, name) for lesson, name in result.all()]

    async def list_by_student(self, student_id: str) -> list[Lesson]:
        """
        All lessons of one student, newest first.
        """
        await self.get_student(student_id)

        stmt = (
            select(Lesson)
            .where(Lesson.student_id == student_id)
            .order_by(Lesson.scheduled_at.desc(), Lesson.id.asc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def add(self, lesson: Lesson) -> Lesson:
        await self.get_student(lesson.student_id)
        self.db.add(lesson)
        await self.db.flush()
        return lesson

    async def remove(self, lesson: Lesson) -> None:
        await self.db.delete(lesson)
        await self.db.flush()


async def load_watch_window(
    db: AsyncSession,
    start: datetime,
    end: datetime,
) -> list[WatchedLesson]:
    """
    Load every PENDING lesson with `start < scheduled_at <= end`, across all
    teachers, for the upcoming-lesson monitor snapshot.
    """
    stmt = (
        select(Lesson, Student.teacher_id, Student.name)
        .join(Student, Lesson.student_id == Student.id)
        .where(
            and_(
                Lesson.attendance == Attendance.PENDING.value,
                Lesson.scheduled_at > start,
                Lesson.scheduled_at <= end,
            )
        )
        .order_by(Lesson.scheduled_at.asc())
    )
    result = await db.execute(stmt)

    return [
        WatchedLesson(
            lesson_id=lesson.id,
            teacher_id=teacher_id,
            student_name=name,
            scheduled_at=lesson.scheduled_at,
            attendance=Attendance(lesson.attendance),
        )
        for lesson, teacher_id, name in result.all()
    ]
