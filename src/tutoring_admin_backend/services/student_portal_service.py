'''
Student self-service reads: profile, classes with classmates, dashboard.

A student belongs to a class when any of three relations says so: a class
enrollment, membership in one of the class's groups, or a tuition record in
one of the class's batches.
'''
from collections import defaultdict
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import Depends
from sqlalchemy import select, union, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import TuitionStatusEnum
from ..models import dashboard as dashboard_models
from ..models import user as user_models
from ..models.common import PersonRef
from ..common.exceptions import NotFoundError
from ..common.logger import log


def class_membership():
    """(class_id, student_id) pairs from all three membership sources, deduplicated."""
    return union(
        select(
            db_models.ClassEnrollments.class_id.label("class_id"),
            db_models.ClassEnrollments.student_id.label("student_id"),
        ),
        select(
            db_models.Groups.class_id.label("class_id"),
            db_models.StudentGroups.student_id.label("student_id"),
        ).join(db_models.Groups, db_models.Groups.id == db_models.StudentGroups.group_id),
        select(
            db_models.TuitionBatches.class_id.label("class_id"),
            db_models.Tuitions.student_id.label("student_id"),
        ).join(db_models.TuitionBatches, db_models.TuitionBatches.id == db_models.Tuitions.batch_id),
    ).subquery("membership")


class StudentPortalService:
    """
    Service for everything a logged-in student reads about themselves.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    async def get_profile(self, student_id: UUID) -> user_models.UserRead:
        student = await self.db.get(db_models.Users, student_id)
        if student is None:
            raise NotFoundError("User not found.")
        return user_models.UserRead.model_validate(student)

    async def get_my_classes(self, student_id: UUID) -> list[dashboard_models.MyClassRead]:
        """
        The student's classes, latest start date first (undated last), each
        with the other students belonging to it.
        """
        log.info(f"Fetching classes for student {student_id}.")
        membership = class_membership()
        my_class_ids = select(membership.c.class_id).where(membership.c.student_id == student_id)

        classes_result = await self.db.execute(
            select(db_models.Classes)
            .filter(db_models.Classes.id.in_(my_class_ids))
            .order_by(
                db_models.Classes.start_date.desc().nulls_last(),
                db_models.Classes.created_at.desc(),
            )
        )
        classes = classes_result.scalars().all()
        if not classes:
            return []

        classmates_membership = class_membership()
        classmates_result = await self.db.execute(
            select(classmates_membership.c.class_id, db_models.Users.id, db_models.Users.full_name)
            .join(db_models.Users, db_models.Users.id == classmates_membership.c.student_id)
            .filter(
                classmates_membership.c.class_id.in_([c.id for c in classes]),
                db_models.Users.id != student_id,
            )
            .order_by(db_models.Users.full_name)
        )
        classmates: dict[UUID, list[PersonRef]] = defaultdict(list)
        for class_id, user_id, full_name in classmates_result.all():
            classmates[class_id].append(PersonRef(id=user_id, full_name=full_name))

        return [
            dashboard_models.MyClassRead(
                class_id=class_.id,
                class_name=class_.name,
                fee=class_.fee,
                start_date=class_.start_date,
                end_date=class_.end_date,
                schedule=class_.schedule,
                joined_at=class_.created_at,
                classmate_count=len(classmates[class_.id]),
                classmates=classmates[class_.id],
            )
            for class_ in classes
        ]

    async def get_dashboard(self, student_id: UUID) -> dashboard_models.StudentDashboard:
        """
        Profile, tuition summary over the student's classes, and class details.
        total_fee sums every batch the student was billed in those classes;
        unpaid_tuition only the ones still unpaid.
        """
        log.info(f"Building dashboard for student {student_id}.")
        profile = await self.get_profile(student_id)
        classes = await self.get_my_classes(student_id)

        total_fee = unpaid = Decimal("0")
        if classes:
            totals = (await self.db.execute(
                select(
                    func.coalesce(func.sum(db_models.TuitionBatches.amount), 0),
                    func.coalesce(func.sum(case(
                        (db_models.Tuitions.status == TuitionStatusEnum.UNPAID.value, db_models.TuitionBatches.amount),
                        else_=0,
                    )), 0),
                )
                .select_from(db_models.Tuitions)
                .join(db_models.TuitionBatches, db_models.TuitionBatches.id == db_models.Tuitions.batch_id)
                .filter(
                    db_models.Tuitions.student_id == student_id,
                    db_models.TuitionBatches.class_id.in_([c.class_id for c in classes]),
                )
            )).one()
            total_fee, unpaid = Decimal(str(totals[0])), Decimal(str(totals[1]))

        return dashboard_models.StudentDashboard(
            profile=profile,
            summary=dashboard_models.StudentSummary(
                total_classes=len(classes),
                total_fee=total_fee,
                unpaid_tuition=unpaid,
            ),
            classes=classes,
        )
