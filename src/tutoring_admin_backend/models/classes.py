'''
Pydantic models for classes, their groups and subjects.
'''
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ClassWrite(BaseModel):
    """
    Payload for creating and updating a class.
    Empty strings coming from HTML forms are treated as missing.
    """
    name: str = Field(..., min_length=1, max_length=255)
    fee: Decimal = Field(Decimal("0"), ge=0)
    subject_id: Optional[UUID] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    schedule: Optional[str] = None

    @field_validator('subject_id', 'start_date', 'end_date', 'schedule', mode='before')
    @classmethod
    def blank_to_none(cls, value):
        if value == '':
            return None
        return value

    @model_validator(mode='after')
    def validate_dates(self) -> 'ClassWrite':
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError('end_date cannot be before start_date')
        return self


class ClassRead(BaseModel):
    id: UUID
    name: str
    fee: Decimal
    subject_id: Optional[UUID] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    schedule: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class GroupCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class GroupRead(BaseModel):
    id: UUID
    class_id: UUID
    name: str
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class GroupSummary(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ClassWithGroupsRead(ClassRead):
    """
    The admin class list: each class with its groups and headcounts.
    student_count counts distinct students placed in one of the class's groups.
    """
    groups: list[GroupSummary] = Field(default_factory=list)
    group_count: int
    student_count: int
    tuition_batch_count: int


class ClassStudentRead(BaseModel):
    id: UUID
    name: str
    email: str
    unpaid_count: int


class AddStudentToClass(BaseModel):
    student_id: UUID


class SubjectRead(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class PublicClassRead(BaseModel):
    id: UUID
    name: str

    model_config = ConfigDict(from_attributes=True)
