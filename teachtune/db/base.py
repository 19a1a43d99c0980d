# teachtune/db/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models in the TeachTune service.

    Model modules are imported by `teachtune.db.session` so that
    `Base.metadata` knows every table before the schema is created.
    """
    pass
