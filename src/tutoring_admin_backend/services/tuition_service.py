'''
Tuition batches and the per-student records they spawn.

Records follow class enrollment: they are created when a batch is issued and
reconciled against the current enrollment every time a batch roster is read.
'''
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException
from sqlalchemy import select, delete, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import TuitionStatusEnum
from ..models import tuition as tuition_models
from ..common.exceptions import NotFoundError
from ..common.logger import log


class TuitionService:
    """
    Service for creating tuition batches, reconciling their records and
    moving records between unpaid and paid.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    # --- 1. Internal Helpers ---

    async def _enrolled_student_ids(self, class_id: UUID) -> set[UUID]:
        stmt = select(db_models.ClassEnrollments.student_id).filter(
            db_models.ClassEnrollments.class_id == class_id
        )
        result = await self.db.execute(stmt)
        return set(result.scalars().all())

    async def _get_batch(self, batch_id: UUID) -> db_models.TuitionBatches:
        batch = await self.db.get(db_models.TuitionBatches, batch_id)
        if batch is None:
            raise NotFoundError("Tuition batch not found.")
        return batch

    def _name_ordering(self):
        """Student names sort byte-wise, independent of the database locale."""
        column = db_models.Users.full_name
        if self.db.get_bind().dialect.name == "postgresql":
            return column.collate("C")
        return column

    async def _get_record(self, record_id: UUID) -> tuition_models.TuitionRecordRead:
        record = await self.db.get(db_models.Tuitions, record_id, populate_existing=True)
        return tuition_models.TuitionRecordRead.model_validate(record)

    # --- 2. Batch Operations ---

    async def create_batch(
        self,
        batch_data: tuition_models.TuitionBatchCreate
    ) -> tuition_models.TuitionBatchCreated:
        """
        Creates a batch and one unpaid record for every student currently
        enrolled in its class. The amount is a snapshot of what was charged.
        """
        log.info(f"Creating tuition batch '{batch_data.title}' for class {batch_data.class_id}.")
        try:
            class_exists = await self.db.scalar(
                select(db_models.Classes.id).filter(db_models.Classes.id == batch_data.class_id)
            )
            if class_exists is None:
                raise NotFoundError("Class not found.")

            batch = db_models.TuitionBatches(
                class_id=batch_data.class_id,
                title=batch_data.title,
                amount=batch_data.amount,
            )
            self.db.add(batch)
            await self.db.flush()

            student_ids = await self._enrolled_student_ids(batch_data.class_id)
            self.db.add_all([
                db_models.Tuitions(
                    batch_id=batch.id,
                    student_id=student_id,
                    status=TuitionStatusEnum.UNPAID.value,
                )
                for student_id in student_ids
            ])
            await self.db.flush()

            log.info(f"Created tuition batch {batch.id} with {len(student_ids)} records.")
            return tuition_models.TuitionBatchCreated(
                message="Tuition batch created successfully.",
                batch=tuition_models.TuitionBatchRead.model_validate(batch),
                students_count=len(student_ids),
            )
        except HTTPException as http_exc:
            raise http_exc
        except Exception as e:
            log.error(f"Error creating tuition batch for class {batch_data.class_id}: {e}", exc_info=True)
            raise

    async def list_batches(self, class_id: UUID) -> list[tuition_models.TuitionBatchSummary]:
        """Batches of a class, newest first, with how many records each holds."""
        log.info(f"Fetching tuition batches for class {class_id}.")
        stmt = (
            select(
                db_models.TuitionBatches.id,
                db_models.TuitionBatches.title,
                db_models.TuitionBatches.amount,
                db_models.TuitionBatches.created_at,
                func.count(db_models.Tuitions.id).label("student_count"),
            )
            .outerjoin(db_models.Tuitions, db_models.Tuitions.batch_id == db_models.TuitionBatches.id)
            .filter(db_models.TuitionBatches.class_id == class_id)
            .group_by(
                db_models.TuitionBatches.id,
                db_models.TuitionBatches.title,
                db_models.TuitionBatches.amount,
                db_models.TuitionBatches.created_at,
            )
            .order_by(db_models.TuitionBatches.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return [tuition_models.TuitionBatchSummary(**row) for row in result.mappings().all()]

    async def sync_and_list_batch_tuitions(self, batch_id: UUID) -> list[tuition_models.BatchRosterEntry]:
        """
        Reconciles the batch against current enrollment, then returns its roster.
        1. Enrolled students without a record get an unpaid one.
        2. Records of students no longer enrolled are deleted.
        3. The roster is ordered by student name.
        Running it twice with no enrollment change in between is a no-op.
        """
        log.info(f"Reconciling tuition records for batch {batch_id}.")
        try:
            batch = await self._get_batch(batch_id)

            enrolled = await self._enrolled_student_ids(batch.class_id)
            existing_result = await self.db.execute(
                select(db_models.Tuitions.student_id).filter(db_models.Tuitions.batch_id == batch_id)
            )
            existing = set(existing_result.scalars().all())

            missing = enrolled - existing
            if missing:
                self.db.add_all([
                    db_models.Tuitions(
                        batch_id=batch_id,
                        student_id=student_id,
                        status=TuitionStatusEnum.UNPAID.value,
                    )
                    for student_id in missing
                ])
                await self.db.flush()

            departed = existing - enrolled
            if departed:
                await self.db.execute(
                    delete(db_models.Tuitions)
                    .where(
                        db_models.Tuitions.batch_id == batch_id,
                        db_models.Tuitions.student_id.in_(departed),
                    )
                    .execution_options(synchronize_session=False)
                )

            if missing or departed:
                log.info(f"Batch {batch_id}: added {len(missing)} records, removed {len(departed)}.")

            stmt = (
                select(
                    db_models.Tuitions.id,
                    db_models.Tuitions.status,
                    db_models.Tuitions.paid_at,
                    db_models.Tuitions.student_id,
                    db_models.Users.full_name.label("student_name"),
                )
                .join(db_models.Users, db_models.Users.id == db_models.Tuitions.student_id)
                .filter(db_models.Tuitions.batch_id == batch_id)
                .order_by(self._name_ordering(), db_models.Tuitions.id)
            )
            result = await self.db.execute(stmt)
            return [tuition_models.BatchRosterEntry(**row) for row in result.mappings().all()]
        except HTTPException as http_exc:
            raise http_exc
        except Exception as e:
            log.error(f"Error reconciling tuition batch {batch_id}: {e}", exc_info=True)
            raise

    async def delete_batch(self, batch_id: UUID) -> None:
        """
        Deletes a batch and its records as one unit. The batch delete's row
        count decides NotFound, which rolls the record delete back as well.
        """
        log.info(f"Deleting tuition batch {batch_id}.")
        await self.db.execute(
            delete(db_models.Tuitions)
            .where(db_models.Tuitions.batch_id == batch_id)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(
            delete(db_models.TuitionBatches)
            .where(db_models.TuitionBatches.id == batch_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("Tuition batch not found.")
        log.info(f"Deleted tuition batch {batch_id}.")

    # --- 3. Record Status Transitions ---

    async def _set_status(self, record_id: UUID, paid: bool) -> tuition_models.TuitionRecordRead:
        stmt = (
            update(db_models.Tuitions)
            .where(db_models.Tuitions.id == record_id)
            .values(
                status=(TuitionStatusEnum.PAID if paid else TuitionStatusEnum.UNPAID).value,
                paid_at=db_models.utcnow() if paid else None,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if result.rowcount == 0:
            raise NotFoundError("Tuition record not found.")
        return await self._get_record(record_id)

    async def mark_paid(self, record_id: UUID) -> tuition_models.TuitionRecordRead:
        log.info(f"Marking tuition record {record_id} as paid.")
        return await self._set_status(record_id, paid=True)

    async def mark_unpaid(self, record_id: UUID) -> tuition_models.TuitionRecordRead:
        log.info(f"Marking tuition record {record_id} as unpaid.")
        return await self._set_status(record_id, paid=False)

    # --- 4. Student View ---

    async def list_student_tuitions(self, student_id: UUID) -> list[tuition_models.StudentTuitionRead]:
        log.info(f"Fetching tuition history for student {student_id}.")
        stmt = (
            select(
                db_models.Tuitions.id,
                db_models.Tuitions.status,
                db_models.Tuitions.paid_at,
                db_models.TuitionBatches.title,
                db_models.TuitionBatches.amount,
                db_models.TuitionBatches.created_at,
            )
            .join(db_models.TuitionBatches, db_models.TuitionBatches.id == db_models.Tuitions.batch_id)
            .filter(db_models.Tuitions.student_id == student_id)
            .order_by(db_models.TuitionBatches.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return [tuition_models.StudentTuitionRead(**row) for row in result.mappings().all()]
