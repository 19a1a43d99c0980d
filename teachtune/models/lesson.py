# teachtune/models/lesson.py
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    ForeignKey,
    Index,
    String,
    Text,
)

from teachtune.db.base import Base
from teachtune.db.types import UTCDateTime


class Lesson(Base):
    """
    One concrete, dated lesson of a student.

    Rows are produced in batches by the schedule generator
    (`auto_generated=True`, sharing a `recurrence_group_id`) or one at a
    time by manual booking.
    """

    __tablename__ = "lessons"

    id = Column(String(36), primary_key=True)

    student_id = Column(
        String(36),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    scheduled_at = Column(UTCDateTime, nullable=False, index=True)
    updated_at = Column(UTCDateTime, nullable=False)

    attendance = Column(
        String(16),
        nullable=False,
        default="PENDING",
    )

    notes = Column(Text, nullable=False, default="")

    repertoire = Column(JSON, nullable=False, default=list)

    auto_generated = Column(Boolean, nullable=False, default=False)

    recurrence_group_id = Column(String(36), nullable=True, index=True)

    __table_args__ = (
        Index(
            "ix_lessons_student_auto_scheduled",
            "student_id",
            "auto_generated",
            "scheduled_at",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Lesson id={self.id} student_id={self.student_id} "
            f"scheduled_at={self.scheduled_at} attendance={self.attendance}>"
        )
