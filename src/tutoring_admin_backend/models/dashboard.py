'''
Read-only aggregates for the admin and student dashboards.
'''
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import PersonRef
from .user import UserRead


class FinancialTotals(BaseModel):
    total_paid: Decimal
    total_unpaid: Decimal


class AdminDashboard(BaseModel):
    total_students: int
    total_classes: int
    total_materials: int
    financials: FinancialTotals


class MyClassRead(BaseModel):
    """
    A class the student belongs to through enrollment, a group, or a tuition batch,
    with the other students who belong to it the same way.
    """
    class_id: UUID
    class_name: str
    fee: Decimal
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    schedule: Optional[str] = None
    joined_at: datetime
    classmate_count: int
    classmates: list[PersonRef] = Field(default_factory=list)


class StudentSummary(BaseModel):
    total_classes: int
    total_fee: Decimal
    unpaid_tuition: Decimal


class StudentDashboard(BaseModel):
    profile: UserRead
    summary: StudentSummary
    classes: list[MyClassRead] = Field(default_factory=list)
