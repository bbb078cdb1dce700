'''
Exams, their class links and per-student grades.
'''
from collections import defaultdict
from typing import Annotated, Iterable
from uuid import UUID

from fastapi import Depends, HTTPException
from sqlalchemy import select, delete, union
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole, PaymentStatusEnum
from ..models import grades as grade_models
from ..models.common import ClassRef
from ..common.exceptions import ValidationError, NotFoundError
from ..common.logger import log


class GradeService:
    """
    Service for exams and grades.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    # --- 1. Internal Helpers ---

    async def _get_exam(self, exam_id: UUID) -> db_models.Exams:
        exam = await self.db.get(db_models.Exams, exam_id)
        if exam is None:
            raise NotFoundError("Exam not found.")
        return exam

    async def _ensure_classes_exist(self, class_ids: list[UUID]) -> list[UUID]:
        unique_ids = list(dict.fromkeys(class_ids))
        result = await self.db.execute(
            select(db_models.Classes.id).filter(db_models.Classes.id.in_(unique_ids))
        )
        if len(result.scalars().all()) != len(unique_ids):
            raise ValidationError("One or more selected classes do not exist.")
        return unique_ids

    async def _ensure_students_exist(self, student_ids: list[UUID]) -> None:
        unique_ids = set(student_ids)
        if not unique_ids:
            return
        result = await self.db.execute(
            select(db_models.Users.id).filter(
                db_models.Users.id.in_(unique_ids),
                db_models.Users.role == UserRole.STUDENT.value,
            )
        )
        if len(result.scalars().all()) != len(unique_ids):
            raise ValidationError("One or more graded students do not exist.")

    async def _replace_exam_classes(self, exam_id: UUID, class_ids: list[UUID]) -> None:
        # links are re-inserted with the same keys, so the session must forget the old ones
        await self.db.execute(
            delete(db_models.ExamClasses)
            .where(db_models.ExamClasses.exam_id == exam_id)
            .execution_options(synchronize_session="fetch")
        )
        self.db.add_all([
            db_models.ExamClasses(exam_id=exam_id, class_id=class_id) for class_id in class_ids
        ])
        await self.db.flush()

    async def _classes_by_exam(self, exam_ids: Iterable[UUID]) -> dict[UUID, list[ClassRef]]:
        result = await self.db.execute(
            select(db_models.ExamClasses.exam_id, db_models.Classes.id, db_models.Classes.name)
            .join(db_models.Classes, db_models.Classes.id == db_models.ExamClasses.class_id)
            .filter(db_models.ExamClasses.exam_id.in_(list(exam_ids)))
            .order_by(db_models.Classes.name)
        )
        classes: dict[UUID, list[ClassRef]] = defaultdict(list)
        for exam_id, class_id, class_name in result.all():
            classes[exam_id].append(ClassRef(id=class_id, name=class_name))
        return classes

    async def _exam_read(self, exam: db_models.Exams) -> grade_models.ExamRead:
        classes = await self._classes_by_exam([exam.id])
        return grade_models.ExamRead(
            id=exam.id,
            title=exam.title,
            date=exam.date,
            max_score=exam.max_score,
            created_at=exam.created_at,
            updated_at=exam.updated_at,
            classes=classes.get(exam.id, []),
        )

    # --- 2. Exams ---

    async def list_exams_for_class(self, class_id: UUID) -> list[grade_models.ExamRead]:
        """Exams linked to a class, newest first, each with all of its linked classes."""
        log.info(f"Fetching exams for class {class_id}.")
        result = await self.db.execute(
            select(db_models.Exams)
            .join(db_models.ExamClasses, db_models.ExamClasses.exam_id == db_models.Exams.id)
            .filter(db_models.ExamClasses.class_id == class_id)
            .order_by(db_models.Exams.date.desc(), db_models.Exams.created_at.desc())
        )
        exams = result.scalars().all()
        classes = await self._classes_by_exam(e.id for e in exams)
        return [
            grade_models.ExamRead(
                id=exam.id,
                title=exam.title,
                date=exam.date,
                max_score=exam.max_score,
                created_at=exam.created_at,
                updated_at=exam.updated_at,
                classes=classes.get(exam.id, []),
            )
            for exam in exams
        ]

    async def create_exam(self, exam_data: grade_models.ExamCreate) -> grade_models.ExamRead:
        log.info(f"Creating exam '{exam_data.title}' for {len(exam_data.class_ids)} classes.")
        try:
            class_ids = await self._ensure_classes_exist(exam_data.class_ids)
            exam = db_models.Exams(
                title=exam_data.title,
                date=exam_data.date,
                max_score=exam_data.max_score,
            )
            self.db.add(exam)
            await self.db.flush()
            await self._replace_exam_classes(exam.id, class_ids)
            return await self._exam_read(exam)
        except HTTPException as http_exc:
            raise http_exc
        except Exception as e:
            log.error(f"Error creating exam '{exam_data.title}': {e}", exc_info=True)
            raise

    async def update_exam(self, exam_id: UUID, exam_data: grade_models.ExamUpdate) -> grade_models.ExamRead:
        """
        Updates an exam. When class_ids is given the class links are replaced wholesale.
        """
        log.info(f"Updating exam {exam_id}.")
        try:
            exam = await self._get_exam(exam_id)
            class_ids = None
            if exam_data.class_ids is not None:
                class_ids = await self._ensure_classes_exist(exam_data.class_ids)

            exam.title = exam_data.title
            exam.date = exam_data.date
            exam.max_score = exam_data.max_score
            await self.db.flush()

            if class_ids is not None:
                await self._replace_exam_classes(exam_id, class_ids)
            return await self._exam_read(exam)
        except HTTPException as http_exc:
            raise http_exc
        except Exception as e:
            log.error(f"Error updating exam {exam_id}: {e}", exc_info=True)
            raise

    async def delete_exam(self, exam_id: UUID) -> None:
        log.info(f"Deleting exam {exam_id}.")
        result = await self.db.execute(
            delete(db_models.Exams)
            .where(db_models.Exams.id == exam_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("Exam not found.")

    # --- 3. Grades ---

    async def get_exam_grades(self, exam_id: UUID) -> list[grade_models.ExamGradeRosterEntry]:
        """
        Every student eligible for the exam, with their grade or nulls.
        A student is eligible when enrolled in, grouped into, or holding a
        non-failed enrollment payment for any class the exam is linked to.
        """
        log.info(f"Fetching grade roster for exam {exam_id}.")
        await self._get_exam(exam_id)

        exam_class_ids = select(db_models.ExamClasses.class_id).where(
            db_models.ExamClasses.exam_id == exam_id
        )
        eligible = union(
            select(db_models.ClassEnrollments.student_id.label("student_id"))
            .where(db_models.ClassEnrollments.class_id.in_(exam_class_ids)),
            select(db_models.StudentGroups.student_id.label("student_id"))
            .join(db_models.Groups, db_models.Groups.id == db_models.StudentGroups.group_id)
            .where(db_models.Groups.class_id.in_(exam_class_ids)),
            select(db_models.TuitionPayments.student_id.label("student_id"))
            .where(
                db_models.TuitionPayments.class_id.in_(exam_class_ids),
                db_models.TuitionPayments.status != PaymentStatusEnum.FAILED.value,
            ),
        ).subquery()

        stmt = (
            select(
                db_models.Users.id.label("student_id"),
                db_models.Users.full_name,
                db_models.ExamGrades.id.label("grade_id"),
                db_models.ExamGrades.score,
                db_models.ExamGrades.comment,
            )
            .join(eligible, eligible.c.student_id == db_models.Users.id)
            .outerjoin(
                db_models.ExamGrades,
                (db_models.ExamGrades.student_id == db_models.Users.id)
                & (db_models.ExamGrades.exam_id == exam_id),
            )
            .filter(db_models.Users.role == UserRole.STUDENT.value)
            .order_by(db_models.Users.full_name, db_models.Users.id)
        )
        result = await self.db.execute(stmt)
        return [grade_models.ExamGradeRosterEntry(**row) for row in result.mappings().all()]

    async def save_exam_grades(self, exam_id: UUID, grades: list[grade_models.GradeEntry]) -> None:
        """
        Applies a batch of grades in one transaction.
        An entry without a score removes the student's grade; any other entry
        inserts or overwrites it.
        """
        log.info(f"Saving {len(grades)} grade entries for exam {exam_id}.")
        try:
            await self._get_exam(exam_id)
            await self._ensure_students_exist([entry.student_id for entry in grades])

            result = await self.db.execute(
                select(db_models.ExamGrades).filter(db_models.ExamGrades.exam_id == exam_id)
            )
            existing = {grade.student_id: grade for grade in result.scalars().all()}

            for entry in grades:
                current = existing.get(entry.student_id)
                if entry.score is None:
                    if current is not None:
                        await self.db.delete(current)
                        del existing[entry.student_id]
                elif current is not None:
                    current.score = entry.score
                    current.comment = entry.comment
                else:
                    grade = db_models.ExamGrades(
                        exam_id=exam_id,
                        student_id=entry.student_id,
                        score=entry.score,
                        comment=entry.comment,
                    )
                    self.db.add(grade)
                    existing[entry.student_id] = grade
            await self.db.flush()
        except HTTPException as http_exc:
            raise http_exc
        except Exception as e:
            log.error(f"Error saving grades for exam {exam_id}: {e}", exc_info=True)
            raise

    async def list_student_grades(self, student_id: UUID) -> list[grade_models.StudentGradeRead]:
        """
        Exams linked to the student's enrolled classes, newest first, with the
        student's grade (or nulls) and the names of every linked class.
        """
        log.info(f"Fetching grades for student {student_id}.")
        student_class_ids = select(db_models.ClassEnrollments.class_id).where(
            db_models.ClassEnrollments.student_id == student_id
        )
        exam_ids = select(db_models.ExamClasses.exam_id).where(
            db_models.ExamClasses.class_id.in_(student_class_ids)
        )
        stmt = (
            select(
                db_models.Exams.id.label("exam_id"),
                db_models.Exams.title,
                db_models.Exams.date.label("exam_date"),
                db_models.Exams.max_score,
                db_models.ExamGrades.id.label("grade_id"),
                db_models.ExamGrades.score,
                db_models.ExamGrades.comment,
                db_models.ExamGrades.updated_at.label("graded_at"),
            )
            .outerjoin(
                db_models.ExamGrades,
                (db_models.ExamGrades.exam_id == db_models.Exams.id)
                & (db_models.ExamGrades.student_id == student_id),
            )
            .filter(db_models.Exams.id.in_(exam_ids))
            .order_by(db_models.Exams.date.desc(), db_models.Exams.created_at.desc())
        )
        rows = (await self.db.execute(stmt)).mappings().all()
        classes = await self._classes_by_exam(row["exam_id"] for row in rows)
        return [
            grade_models.StudentGradeRead(
                **row,
                class_name=", ".join(c.name for c in classes.get(row["exam_id"], [])) or None,
            )
            for row in rows
        ]
