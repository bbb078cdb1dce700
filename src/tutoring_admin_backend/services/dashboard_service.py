'''
Admin dashboard totals: student, class and material counts and tuition paid/unpaid sums.
'''
from typing import Annotated
from decimal import Decimal

from fastapi import Depends
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole, TuitionStatusEnum
from ..models import dashboard as dashboard_models
from ..common.logger import log


class DashboardService:
    """
    Read-only totals for the admin dashboard. Recomputed on every call.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    async def _sum_tuitions(self, status: TuitionStatusEnum) -> Decimal:
        total = await self.db.scalar(
            select(func.coalesce(func.sum(db_models.TuitionBatches.amount), 0))
            .select_from(db_models.Tuitions)
            .join(db_models.TuitionBatches, db_models.TuitionBatches.id == db_models.Tuitions.batch_id)
            .filter(db_models.Tuitions.status == status.value)
        )
        return Decimal(str(total))

    async def get_admin_dashboard(self) -> dashboard_models.AdminDashboard:
        log.info("Computing admin dashboard totals.")
        total_students = await self.db.scalar(
            select(func.count(db_models.Users.id)).filter(db_models.Users.role == UserRole.STUDENT.value)
        )
        total_classes = await self.db.scalar(select(func.count(db_models.Classes.id)))
        total_materials = await self.db.scalar(select(func.count(db_models.Materials.id)))

        return dashboard_models.AdminDashboard(
            total_students=total_students,
            total_classes=total_classes,
            total_materials=total_materials,
            financials=dashboard_models.FinancialTotals(
                total_paid=await self._sum_tuitions(TuitionStatusEnum.PAID),
                total_unpaid=await self._sum_tuitions(TuitionStatusEnum.UNPAID),
            ),
        )
