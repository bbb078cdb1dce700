'''
Admin-side student management: accounts, class enrollment and group placement.
'''
import math
from typing import Annotated, Iterable, Optional
from uuid import UUID

from fastapi import Depends, HTTPException
from sqlalchemy import select, delete, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole, TuitionStatusEnum, PaymentStatusEnum
from ..models import user as user_models
from ..models import classes as class_models
from ..models.common import ClassRef
from ..common.exceptions import ValidationError, NotFoundError, ConflictError
from ..common.security_utils import HashedPassword, generate_password
from ..common.logger import log


def unpaid_count_column():
    """Correlated count of a student's unpaid batch records."""
    return (
        select(func.count(db_models.Tuitions.id))
        .where(
            db_models.Tuitions.student_id == db_models.Users.id,
            db_models.Tuitions.status == TuitionStatusEnum.UNPAID.value,
        )
        .correlate(db_models.Users)
        .scalar_subquery()
        .label("unpaid_count")
    )


async def enroll_student(db: AsyncSession, student_id: UUID, classes: Iterable[db_models.Classes]) -> None:
    """
    Enrolls a student and records the baseline PAID enrollment payment at each
    class's current fee. Classes the student is already enrolled in are skipped.
    """
    classes = list(classes)
    if not classes:
        return
    result = await db.execute(
        select(db_models.ClassEnrollments.class_id).filter(
            db_models.ClassEnrollments.student_id == student_id,
            db_models.ClassEnrollments.class_id.in_([c.id for c in classes]),
        )
    )
    already = set(result.scalars().all())
    for class_ in classes:
        if class_.id in already:
            continue
        db.add(db_models.ClassEnrollments(student_id=student_id, class_id=class_.id))
        db.add(db_models.TuitionPayments(
            student_id=student_id,
            class_id=class_.id,
            amount=class_.fee,
            status=PaymentStatusEnum.PAID.value,
        ))
        already.add(class_.id)
    await db.flush()


class StudentService:
    """
    Service for creating, updating and placing students.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    # --- 1. Internal Helpers ---

    async def _get_student(self, student_id: UUID) -> db_models.Users:
        student = await self.db.get(db_models.Users, student_id)
        if student is None or student.role != UserRole.STUDENT.value:
            raise NotFoundError("Student not found.")
        return student

    async def _get_classes(self, class_ids: list[UUID]) -> list[db_models.Classes]:
        """Loads the given classes, raising ValidationError if any id is unknown."""
        unique_ids = list(dict.fromkeys(class_ids))
        result = await self.db.execute(
            select(db_models.Classes).filter(db_models.Classes.id.in_(unique_ids))
        )
        classes = result.scalars().all()
        if len(classes) != len(unique_ids):
            raise ValidationError("One or more selected classes do not exist.")
        return list(classes)

    async def _ensure_email_free(self, email: str, exclude_id: Optional[UUID] = None) -> None:
        stmt = select(db_models.Users.id).filter(db_models.Users.email == email)
        if exclude_id is not None:
            stmt = stmt.filter(db_models.Users.id != exclude_id)
        if await self.db.scalar(stmt) is not None:
            raise ConflictError("This email is already in use.")

    async def _class_ids_of(self, student_id: UUID) -> list[UUID]:
        result = await self.db.execute(
            select(db_models.ClassEnrollments.class_id)
            .filter(db_models.ClassEnrollments.student_id == student_id)
            .order_by(db_models.ClassEnrollments.created_at)
        )
        return list(result.scalars().all())

    # --- 2. Account Management ---

    async def create_student(self, student_data: user_models.StudentCreate) -> user_models.StudentCreated:
        """
        Creates a student enrolled in the given classes.
        When no password is supplied one is generated and returned exactly once;
        only its hash is stored.
        """
        log.info(f"Creating student account for {student_data.email}.")
        try:
            classes = await self._get_classes(student_data.class_ids)
            await self._ensure_email_free(student_data.email)

            generated_password = None
            password = student_data.password
            if not password:
                password = generated_password = generate_password()

            student = db_models.Users(
                email=student_data.email,
                password_hash=HashedPassword.get_hash(password),
                full_name=student_data.full_name,
                role=UserRole.STUDENT.value,
            )
            self.db.add(student)
            await self.db.flush()

            await enroll_student(self.db, student.id, classes)

            log.info(f"Created student {student.id} in {len(classes)} classes.")
            return user_models.StudentCreated(
                **user_models.UserRead.model_validate(student).model_dump(),
                class_ids=[c.id for c in classes],
                generated_password=generated_password,
            )
        except HTTPException as http_exc:
            raise http_exc
        except IntegrityError as e:
            log.warning(f"Integrity error creating student {student_data.email}: {e.orig}")
            raise ConflictError("This email is already in use.")
        except Exception as e:
            log.error(f"Error creating student {student_data.email}: {e}", exc_info=True)
            raise

    async def update_student(self, student_id: UUID, student_data: user_models.StudentUpdate) -> user_models.StudentRead:
        """
        Renames a student and brings their enrollments in line with class_ids.
        Dropped classes lose the enrollment; new ones get a baseline payment.
        """
        log.info(f"Updating student {student_id}.")
        try:
            student = await self._get_student(student_id)
            classes = await self._get_classes(student_data.class_ids)

            student.full_name = student_data.full_name
            await self.db.flush()

            wanted = {c.id for c in classes}
            current = set(await self._class_ids_of(student_id))

            dropped = current - wanted
            if dropped:
                await self.db.execute(
                    delete(db_models.ClassEnrollments)
                    .where(
                        db_models.ClassEnrollments.student_id == student_id,
                        db_models.ClassEnrollments.class_id.in_(dropped),
                    )
                    .execution_options(synchronize_session=False)
                )
            await enroll_student(self.db, student_id, [c for c in classes if c.id not in current])

            return user_models.StudentRead(
                **user_models.UserRead.model_validate(student).model_dump(),
                class_ids=await self._class_ids_of(student_id),
            )
        except HTTPException as http_exc:
            raise http_exc
        except Exception as e:
            log.error(f"Error updating student {student_id}: {e}", exc_info=True)
            raise

    async def delete_student(self, student_id: UUID) -> None:
        log.info(f"Deleting student {student_id}.")
        result = await self.db.execute(
            delete(db_models.Users)
            .where(
                db_models.Users.id == student_id,
                db_models.Users.role == UserRole.STUDENT.value,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("Student not found.")

    # --- 3. Listings ---

    async def list_students(self) -> list[user_models.StudentListItem]:
        """The admin roster: every student with their classes and unpaid record count, newest first."""
        log.info("Fetching student roster.")
        result = await self.db.execute(
            select(
                db_models.Users.id,
                db_models.Users.full_name,
                db_models.Users.email,
                unpaid_count_column(),
            )
            .filter(db_models.Users.role == UserRole.STUDENT.value)
            .order_by(db_models.Users.created_at.desc())
        )
        students = result.mappings().all()

        classes_result = await self.db.execute(
            select(
                db_models.ClassEnrollments.student_id,
                db_models.Classes.id,
                db_models.Classes.name,
            )
            .join(db_models.Classes, db_models.Classes.id == db_models.ClassEnrollments.class_id)
            .order_by(db_models.Classes.name)
        )
        classes_by_student: dict[UUID, list[ClassRef]] = {}
        for student_id, class_id, class_name in classes_result.all():
            classes_by_student.setdefault(student_id, []).append(ClassRef(id=class_id, name=class_name))

        return [
            user_models.StudentListItem(
                id=row["id"],
                name=row["full_name"],
                email=row["email"],
                classes=classes_by_student.get(row["id"], []),
                unpaid_count=row["unpaid_count"],
            )
            for row in students
        ]

    async def list_students_page(self, page: int, limit: int) -> user_models.StudentDirectoryPage:
        log.info(f"Fetching student directory page {page} (limit {limit}).")
        total = await self.db.scalar(
            select(func.count(db_models.Users.id)).filter(db_models.Users.role == UserRole.STUDENT.value)
        )
        result = await self.db.execute(
            select(db_models.Users)
            .filter(db_models.Users.role == UserRole.STUDENT.value)
            .order_by(db_models.Users.created_at.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        return user_models.StudentDirectoryPage(
            data=[user_models.StudentDirectoryItem.model_validate(u) for u in result.scalars().all()],
            meta=user_models.PageMeta(
                total_items=total,
                total_pages=math.ceil(total / limit),
                current_page=page,
                items_per_page=limit,
            ),
        )

    async def list_class_students(self, class_id: UUID) -> list[class_models.ClassStudentRead]:
        log.info(f"Fetching students enrolled in class {class_id}.")
        if await self.db.get(db_models.Classes, class_id) is None:
            raise NotFoundError("Class not found.")
        result = await self.db.execute(
            select(
                db_models.Users.id,
                db_models.Users.full_name.label("name"),
                db_models.Users.email,
                unpaid_count_column(),
            )
            .join(db_models.ClassEnrollments, db_models.ClassEnrollments.student_id == db_models.Users.id)
            .filter(db_models.ClassEnrollments.class_id == class_id)
            .order_by(db_models.Users.full_name)
        )
        return [class_models.ClassStudentRead(**row) for row in result.mappings().all()]

    # --- 4. Enrollment & Groups ---

    async def add_student_to_class(self, class_id: UUID, student_id: UUID) -> class_models.ClassStudentRead:
        log.info(f"Adding student {student_id} to class {class_id}.")
        class_ = await self.db.get(db_models.Classes, class_id)
        if class_ is None:
            raise NotFoundError("Class not found.")
        student = await self._get_student(student_id)

        enrolled = await self.db.scalar(
            select(db_models.ClassEnrollments.id).filter(
                db_models.ClassEnrollments.student_id == student_id,
                db_models.ClassEnrollments.class_id == class_id,
            )
        )
        if enrolled is not None:
            raise ConflictError("Student is already enrolled in this class.")

        await enroll_student(self.db, student_id, [class_])
        unpaid = await self.db.scalar(
            select(func.count(db_models.Tuitions.id)).filter(
                db_models.Tuitions.student_id == student_id,
                db_models.Tuitions.status == TuitionStatusEnum.UNPAID.value,
            )
        )
        return class_models.ClassStudentRead(
            id=student.id, name=student.full_name, email=student.email, unpaid_count=unpaid
        )

    async def assign_to_group(self, student_id: UUID, group_id: UUID) -> user_models.GroupMembershipRead:
        """
        Places a student in a group. A student holds at most one group per class.
        """
        log.info(f"Assigning student {student_id} to group {group_id}.")
        await self._get_student(student_id)
        group = await self.db.get(db_models.Groups, group_id)
        if group is None:
            raise NotFoundError("Group not found.")

        existing = await self.db.execute(
            select(db_models.StudentGroups.group_id)
            .join(db_models.Groups, db_models.Groups.id == db_models.StudentGroups.group_id)
            .filter(
                db_models.StudentGroups.student_id == student_id,
                db_models.Groups.class_id == group.class_id,
            )
        )
        existing_group_ids = set(existing.scalars().all())
        if group_id in existing_group_ids:
            raise ConflictError("Student is already in this group.")
        if existing_group_ids:
            raise ConflictError("Student is already assigned to a group in this class.")

        membership = db_models.StudentGroups(student_id=student_id, group_id=group_id)
        self.db.add(membership)
        try:
            await self.db.flush()
        except IntegrityError as e:
            log.warning(f"Duplicate group membership for student {student_id}: {e.orig}")
            raise ConflictError("Student is already in this group.")
        return user_models.GroupMembershipRead.model_validate(membership)

    async def transfer_group(
        self, student_id: UUID, old_group_id: UUID, new_group_id: UUID
    ) -> user_models.GroupMembershipRead:
        log.info(f"Transferring student {student_id} from group {old_group_id} to {new_group_id}.")
        membership_id = await self.db.scalar(
            select(db_models.StudentGroups.id).filter(
                db_models.StudentGroups.student_id == student_id,
                db_models.StudentGroups.group_id == old_group_id,
            )
        )
        if membership_id is None:
            raise NotFoundError("Student is not in the specified old group.")
        if await self.db.get(db_models.Groups, new_group_id) is None:
            raise NotFoundError("New group not found.")

        already = await self.db.scalar(
            select(db_models.StudentGroups.id).filter(
                db_models.StudentGroups.student_id == student_id,
                db_models.StudentGroups.group_id == new_group_id,
            )
        )
        if already is not None:
            raise ConflictError("Student is already in the new group.")

        await self.db.execute(
            update(db_models.StudentGroups)
            .where(db_models.StudentGroups.id == membership_id)
            .values(group_id=new_group_id)
            .execution_options(synchronize_session=False)
        )
        return user_models.GroupMembershipRead(
            id=membership_id, student_id=student_id, group_id=new_group_id
        )

    async def remove_from_group(self, student_id: UUID, group_id: UUID) -> None:
        log.info(f"Removing student {student_id} from group {group_id}.")
        result = await self.db.execute(
            delete(db_models.StudentGroups)
            .where(
                db_models.StudentGroups.student_id == student_id,
                db_models.StudentGroups.group_id == group_id,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("Student is not in this group.")
