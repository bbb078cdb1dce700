'''
Pydantic models for tuition batches and the per-student records they spawn.
'''
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..database.db_enums import TuitionStatusEnum

# --- API Write Models (Input) ---

class TuitionBatchCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    class_id: UUID
    amount: Decimal = Field(..., gt=0, description="The fee charged to every enrolled student.")


# --- API Read Models (Output) ---

class TuitionBatchRead(BaseModel):
    id: UUID
    class_id: UUID
    title: str
    amount: Decimal
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TuitionBatchCreated(BaseModel):
    message: str
    batch: TuitionBatchRead
    students_count: int


class TuitionBatchSummary(BaseModel):
    id: UUID
    title: str
    amount: Decimal
    created_at: datetime
    student_count: int


class _StatusConsistency(BaseModel):
    """
    A record is either unpaid (no paid_at) or paid at a given time.
    """
    status: TuitionStatusEnum
    paid_at: Optional[datetime] = None

    @model_validator(mode='after')
    def validate_paid_at(self):
        if self.status == TuitionStatusEnum.PAID and self.paid_at is None:
            raise ValueError('a paid tuition must carry paid_at')
        if self.status == TuitionStatusEnum.UNPAID and self.paid_at is not None:
            raise ValueError('an unpaid tuition cannot carry paid_at')
        return self


class TuitionRecordRead(_StatusConsistency):
    id: UUID
    batch_id: UUID
    student_id: UUID

    model_config = ConfigDict(from_attributes=True)


class BatchRosterEntry(_StatusConsistency):
    """One line of a batch roster, as returned after reconciliation."""
    id: UUID
    student_id: UUID
    student_name: str


class StudentTuitionRead(_StatusConsistency):
    """A student's own tuition history line."""
    id: UUID
    title: str
    amount: Decimal
    created_at: datetime
