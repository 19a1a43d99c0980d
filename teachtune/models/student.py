# teachtune/models/student.py
from sqlalchemy import JSON, Boolean, Column, Numeric, String

from teachtune.db.base import Base
from teachtune.db.types import UTCDateTime


class Student(Base):
    """
    A student taught by one teacher, with an optional standing recurrence.

    `recurrence` holds the serialized recurrence configuration
    (frequency, start_date, slots). It is replaced wholesale on update.
    """

    __tablename__ = "students"

    id = Column(String(36), primary_key=True)

    teacher_id = Column(String(64), nullable=False, index=True)

    name = Column(String(200), nullable=False)
    instrument = Column(String(100), nullable=False, default="")

    monthly_fee = Column(
        Numeric(10, 2, asdecimal=False),
        nullable=False,
        default=0.0,
    )

    is_active = Column(Boolean, nullable=False, default=True)

    recurrence = Column(JSON(none_as_null=True), nullable=True)

    created_at = Column(UTCDateTime, nullable=False)
    updated_at = Column(UTCDateTime, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<Student id={self.id} teacher_id={self.teacher_id} "
            f"name={self.name!r} active={self.is_active}>"
        )
