# teachtune/schemas/student.py

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from teachtune.schemas.recurrence import Recurrence


# --------------------------------------------------------------------------
# Base schema shared by create/read
# --------------------------------------------------------------------------

class StudentBase(BaseModel):
    """
    Shared fields used by StudentCreate and StudentRead.
    """
    name: str = Field(
        ...,
        min_length=1,
        description="Student's full name.",
        examples=["Ana Souza"],
    )

    instrument: str = Field(
        default="",
        description="Instrument being taught.",
        examples=["Piano"],
    )

    monthly_fee: float = Field(
        default=0.0,
        ge=0,
        description="Monthly fee charged to the student.",
        examples=[250.0],
    )

    is_active: bool = Field(
        default=True,
        description="Inactive students keep their history but get no generated lessons.",
    )

    recurrence: Recurrence | None = Field(
        default=None,
        description="Standing lesson pattern. Omit for manually scheduled students.",
    )


# --------------------------------------------------------------------------
# Create schema (POST /students)
# --------------------------------------------------------------------------

class StudentCreate(StudentBase):
    """
    Schema for registering a new student.
    """
    pass


# --------------------------------------------------------------------------
# Update schema (PATCH /students/{id})
# --------------------------------------------------------------------------

class StudentUpdate(BaseModel):
    """
    Schema for updating a student.
    All fields are optional; only provided fields are updated. A provided
    `recurrence` (including null) replaces the current one entirely.
    """
    name: str | None = Field(default=None, min_length=1)
    instrument: str | None = Field(default=None)
    monthly_fee: float | None = Field(default=None, ge=0)
    is_active: bool | None = Field(default=None)
    recurrence: Recurrence | None = Field(default=None)


# --------------------------------------------------------------------------
# Read schema (GET /students, GET /students/{id})
# --------------------------------------------------------------------------

class StudentRead(StudentBase):
    """
    Response schema for reading a student.
    Includes the server-generated fields.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(
        ...,
        description="Unique student identifier.",
        examples=["2f0d3c4e-9a4b-4f43-a3b5-1d2c3e4f5a6b"],
    )

    created_at: datetime | None = Field(
        None,
        description="Timestamp when the student record was created.",
    )

    updated_at: datetime | None = Field(
        None,
        description="Timestamp when the student record was last updated.",
    )
