'''
Pydantic models for exams and grades.
'''
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import ClassRef


class ExamCreate(BaseModel):
    class_ids: list[UUID] = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=255)
    date: date
    max_score: Decimal = Field(Decimal("10"), gt=0)


class ExamUpdate(BaseModel):
    """
    class_ids, when given, fully replaces the exam's class links.
    """
    title: str = Field(..., min_length=1, max_length=255)
    date: date
    max_score: Decimal = Field(Decimal("10"), gt=0)
    class_ids: Optional[list[UUID]] = None


class ExamRead(BaseModel):
    id: UUID
    title: str
    date: date
    max_score: Decimal
    created_at: datetime
    updated_at: datetime
    classes: list[ClassRef] = Field(default_factory=list)


class GradeEntry(BaseModel):
    """
    A missing or blank score means "no grade": any stored grade is removed.
    """
    student_id: UUID
    score: Optional[Decimal] = Field(None, ge=0)
    comment: Optional[str] = None

    @field_validator('score', mode='before')
    @classmethod
    def blank_score_to_none(cls, value):
        if isinstance(value, str) and value.strip() == '':
            return None
        return value


class GradesSave(BaseModel):
    grades: list[GradeEntry]


class ExamGradeRosterEntry(BaseModel):
    student_id: UUID
    full_name: str
    grade_id: Optional[UUID] = None
    score: Optional[Decimal] = None
    comment: Optional[str] = None


class StudentGradeRead(BaseModel):
    exam_id: UUID
    title: str
    exam_date: date
    max_score: Decimal
    grade_id: Optional[UUID] = None
    score: Optional[Decimal] = None
    comment: Optional[str] = None
    graded_at: Optional[datetime] = None
    class_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
