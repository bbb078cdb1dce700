'''
Classes, their groups, subjects and the public class list.
'''
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException
from sqlalchemy import select, delete, update, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload, aliased

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole, PaymentStatusEnum
from ..models import classes as class_models
from ..common.exceptions import NotFoundError
from ..common.logger import log


class ClassService:
    """
    Service for class and group administration.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    async def _get_class(self, class_id: UUID) -> db_models.Classes:
        class_ = await self.db.get(db_models.Classes, class_id)
        if class_ is None:
            raise NotFoundError("Class not found.")
        return class_

    async def _count_by_class(self, stmt) -> dict[UUID, int]:
        result = await self.db.execute(stmt)
        return {class_id: count for class_id, count in result.all()}

    # --- Read ---

    async def list_classes(self) -> list[class_models.ClassWithGroupsRead]:
        """
        All classes, newest first, each with its groups and headcounts.
        """
        log.info("Fetching all classes with groups.")
        result = await self.db.execute(
            select(db_models.Classes)
            .options(selectinload(db_models.Classes.groups))
            .order_by(db_models.Classes.created_at.desc())
        )
        classes = result.scalars().all()

        group_counts = await self._count_by_class(
            select(db_models.Groups.class_id, func.count(db_models.Groups.id))
            .group_by(db_models.Groups.class_id)
        )
        student_counts = await self._count_by_class(
            select(db_models.Groups.class_id, func.count(func.distinct(db_models.StudentGroups.student_id)))
            .join(db_models.StudentGroups, db_models.StudentGroups.group_id == db_models.Groups.id)
            .group_by(db_models.Groups.class_id)
        )
        batch_counts = await self._count_by_class(
            select(db_models.TuitionBatches.class_id, func.count(db_models.TuitionBatches.id))
            .group_by(db_models.TuitionBatches.class_id)
        )

        return [
            class_models.ClassWithGroupsRead(
                **class_models.ClassRead.model_validate(class_).model_dump(),
                groups=[
                    class_models.GroupSummary.model_validate(group)
                    for group in sorted(class_.groups, key=lambda g: g.created_at)
                ],
                group_count=group_counts.get(class_.id, 0),
                student_count=student_counts.get(class_.id, 0),
                tuition_batch_count=batch_counts.get(class_.id, 0),
            )
            for class_ in classes
        ]

    async def list_public_classes(self) -> list[class_models.PublicClassRead]:
        """Names and ids only, for the registration form."""
        result = await self.db.execute(
            select(db_models.Classes.id, db_models.Classes.name)
            .order_by(db_models.Classes.created_at.desc())
        )
        return [class_models.PublicClassRead(**row) for row in result.mappings().all()]

    async def list_subjects(self) -> list[class_models.SubjectRead]:
        result = await self.db.execute(
            select(db_models.Subjects).order_by(db_models.Subjects.name)
        )
        return [class_models.SubjectRead.model_validate(s) for s in result.scalars().all()]

    # --- Write ---

    async def create_class(self, class_data: class_models.ClassWrite) -> class_models.ClassRead:
        log.info(f"Creating class '{class_data.name}'.")
        class_ = db_models.Classes(**class_data.model_dump())
        self.db.add(class_)
        await self.db.flush()
        log.info(f"Created class {class_.id}.")
        return class_models.ClassRead.model_validate(class_)

    async def update_class(self, class_id: UUID, class_data: class_models.ClassWrite) -> class_models.ClassRead:
        """
        Updates a class. Enrollment payments still pending follow the new fee;
        settled ones and tuition batches keep the amount they were issued with.
        """
        log.info(f"Updating class {class_id}.")
        try:
            class_ = await self._get_class(class_id)
            for field, value in class_data.model_dump().items():
                setattr(class_, field, value)
            await self.db.flush()

            await self.db.execute(
                update(db_models.TuitionPayments)
                .where(
                    db_models.TuitionPayments.class_id == class_id,
                    db_models.TuitionPayments.status == PaymentStatusEnum.PENDING.value,
                )
                .values(amount=class_data.fee)
                .execution_options(synchronize_session=False)
            )
            return class_models.ClassRead.model_validate(class_)
        except HTTPException as http_exc:
            raise http_exc
        except Exception as e:
            log.error(f"Error updating class {class_id}: {e}", exc_info=True)
            raise

    async def delete_class(self, class_id: UUID) -> None:
        """
        Deletes a class and everything hanging off it, in one transaction:
        1. Materials pointing at the class or its groups are kept but unlinked.
        2. Tuition records of the class's batches, then the batches.
        3. Students enrolled in this class only are deleted outright.
        4. Remaining enrollments in the class.
        5. The class itself (groups, exam links and enrollment payments cascade).
        An unknown id raises NotFoundError and the session rolls everything back.
        """
        log.info(f"Deleting class {class_id} and its dependents.")
        try:
            group_ids = select(db_models.Groups.id).where(db_models.Groups.class_id == class_id)
            batch_ids = select(db_models.TuitionBatches.id).where(db_models.TuitionBatches.class_id == class_id)

            # 1.
            await self.db.execute(
                update(db_models.Materials)
                .where(db_models.Materials.class_id == class_id)
                .values(class_id=None)
                .execution_options(synchronize_session=False)
            )
            await self.db.execute(
                update(db_models.Materials)
                .where(db_models.Materials.group_id.in_(group_ids))
                .values(group_id=None)
                .execution_options(synchronize_session=False)
            )

            # 2.
            await self.db.execute(
                delete(db_models.Tuitions)
                .where(db_models.Tuitions.batch_id.in_(batch_ids))
                .execution_options(synchronize_session=False)
            )
            await self.db.execute(
                delete(db_models.TuitionBatches)
                .where(db_models.TuitionBatches.class_id == class_id)
                .execution_options(synchronize_session=False)
            )

            # 3.
            other = aliased(db_models.ClassEnrollments)
            only_here = (
                select(db_models.ClassEnrollments.student_id)
                .where(
                    db_models.ClassEnrollments.class_id == class_id,
                    ~select(other.id)
                    .where(
                        other.student_id == db_models.ClassEnrollments.student_id,
                        other.class_id != class_id,
                    )
                    .exists(),
                )
            )
            orphan_ids = (await self.db.execute(only_here)).scalars().all()
            if orphan_ids:
                await self.db.execute(
                    delete(db_models.Users)
                    .where(
                        db_models.Users.id.in_(orphan_ids),
                        db_models.Users.role == UserRole.STUDENT.value,
                    )
                    .execution_options(synchronize_session=False)
                )
                log.info(f"Removed {len(orphan_ids)} students enrolled only in class {class_id}.")

            # 4.
            await self.db.execute(
                delete(db_models.ClassEnrollments)
                .where(db_models.ClassEnrollments.class_id == class_id)
                .execution_options(synchronize_session=False)
            )

            # 5.
            result = await self.db.execute(
                delete(db_models.Classes)
                .where(db_models.Classes.id == class_id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFoundError("Class not found.")
            log.info(f"Deleted class {class_id}.")
        except HTTPException as http_exc:
            raise http_exc
        except Exception as e:
            log.error(f"Error deleting class {class_id}: {e}", exc_info=True)
            raise

    # --- Groups ---

    async def create_group(self, class_id: UUID, group_data: class_models.GroupCreate) -> class_models.GroupRead:
        log.info(f"Creating group '{group_data.name}' in class {class_id}.")
        await self._get_class(class_id)
        group = db_models.Groups(class_id=class_id, **group_data.model_dump())
        self.db.add(group)
        await self.db.flush()
        return class_models.GroupRead.model_validate(group)

    async def delete_group(self, group_id: UUID) -> None:
        log.info(f"Deleting group {group_id}.")
        result = await self.db.execute(
            delete(db_models.Groups)
            .where(db_models.Groups.id == group_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("Group not found.")
