'''
Tests for StudentService: accounts, enrollment and group placement.
'''
import pytest
from decimal import Decimal
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tutoring_admin_backend.database import models as db_models
from tutoring_admin_backend.database.db_enums import PaymentStatusEnum, TuitionStatusEnum, UserRole
from tutoring_admin_backend.models import user as user_models
from tutoring_admin_backend.services.student_service import StudentService
from tutoring_admin_backend.common.exceptions import ValidationError, NotFoundError, ConflictError
from tutoring_admin_backend.common.security_utils import HashedPassword

from tests.constants import TEST_CLASS_FEE, UNKNOWN_ID
from tests.database.factories import (
    AdminFactory,
    ClassFactory,
    StudentFactory,
    GroupFactory,
    EnrollmentFactory,
    TuitionBatchFactory,
    TuitionFactory,
)


async def seed_classes(db_session: AsyncSession, count: int = 1):
    classes = ClassFactory.build_batch(count)
    db_session.add_all(classes)
    await db_session.flush()
    return classes


async def enrolled_class_ids(db_session: AsyncSession, student_id) -> set:
    result = await db_session.execute(
        select(db_models.ClassEnrollments.class_id).filter(db_models.ClassEnrollments.student_id == student_id)
    )
    return set(result.scalars().all())


@pytest.mark.anyio
class TestCreateStudent:

    async def test_generated_password_is_returned_once_and_hashed(
        self,
        db_session: AsyncSession,
        student_service: StudentService
    ):
        (class_,) = await seed_classes(db_session)

        created = await student_service.create_student(user_models.StudentCreate(
            full_name="Nguyen An", email="an@chemclass.com", class_ids=[class_.id]
        ))

        assert created.generated_password
        assert created.role == UserRole.STUDENT
        assert created.class_ids == [class_.id]

        stored_hash = await db_session.scalar(
            select(db_models.Users.password_hash).filter(db_models.Users.id == created.id)
        )
        assert stored_hash != created.generated_password
        assert HashedPassword.verify(created.generated_password, stored_hash)

    async def test_supplied_password_is_not_echoed(
        self,
        db_session: AsyncSession,
        student_service: StudentService
    ):
        (class_,) = await seed_classes(db_session)

        created = await student_service.create_student(user_models.StudentCreate(
            full_name="Tran Binh", email="binh@chemclass.com", password="secret123", class_ids=[class_.id]
        ))

        assert created.generated_password is None

    async def test_enrollment_records_baseline_paid_payment(
        self,
        db_session: AsyncSession,
        student_service: StudentService
    ):
        classes = await seed_classes(db_session, 2)

        created = await student_service.create_student(user_models.StudentCreate(
            full_name="Le Chi", email="chi@chemclass.com", class_ids=[c.id for c in classes]
        ))

        assert await enrolled_class_ids(db_session, created.id) == {c.id for c in classes}
        payments = await db_session.execute(
            select(db_models.TuitionPayments.status, db_models.TuitionPayments.amount)
            .filter(db_models.TuitionPayments.student_id == created.id)
        )
        rows = payments.all()
        assert len(rows) == 2
        assert all(status == PaymentStatusEnum.PAID.value for status, _ in rows)
        assert all(Decimal(str(amount)) == TEST_CLASS_FEE for _, amount in rows)

    async def test_duplicate_email_conflicts(
        self,
        db_session: AsyncSession,
        student_service: StudentService
    ):
        (class_,) = await seed_classes(db_session)
        existing = StudentFactory.build()
        db_session.add(existing)
        await db_session.flush()

        with pytest.raises(ConflictError):
            await student_service.create_student(user_models.StudentCreate(
                full_name="Copy", email=existing.email, class_ids=[class_.id]
            ))

    async def test_unknown_class_is_rejected(self, student_service: StudentService):
        with pytest.raises(ValidationError):
            await student_service.create_student(user_models.StudentCreate(
                full_name="Lost", email="lost@chemclass.com", class_ids=[UNKNOWN_ID]
            ))


@pytest.mark.anyio
class TestUpdateAndDeleteStudent:

    async def test_update_diffs_enrollments(
        self,
        db_session: AsyncSession,
        student_service: StudentService
    ):
        keep, drop, add = await seed_classes(db_session, 3)
        created = await student_service.create_student(user_models.StudentCreate(
            full_name="Pham Dung", email="dung@chemclass.com", class_ids=[keep.id, drop.id]
        ))

        updated = await student_service.update_student(created.id, user_models.StudentUpdate(
            full_name="Pham Van Dung", class_ids=[keep.id, add.id]
        ))

        assert updated.full_name == "Pham Van Dung"
        assert set(updated.class_ids) == {keep.id, add.id}
        assert await enrolled_class_ids(db_session, created.id) == {keep.id, add.id}

    async def test_update_admin_account_is_not_found(
        self,
        db_session: AsyncSession,
        student_service: StudentService
    ):
        (class_,) = await seed_classes(db_session)
        admin = AdminFactory.build()
        db_session.add(admin)
        await db_session.flush()

        with pytest.raises(NotFoundError):
            await student_service.update_student(admin.id, user_models.StudentUpdate(
                full_name="Hijack", class_ids=[class_.id]
            ))

    async def test_delete_student(
        self,
        db_session: AsyncSession,
        student_service: StudentService
    ):
        student = StudentFactory.build()
        db_session.add(student)
        await db_session.flush()

        await student_service.delete_student(student.id)

        assert await db_session.scalar(select(db_models.Users.id).filter(db_models.Users.id == student.id)) is None
        with pytest.raises(NotFoundError):
            await student_service.delete_student(student.id)


@pytest.mark.anyio
class TestListings:

    async def test_roster_counts_unpaid_records(
        self,
        db_session: AsyncSession,
        student_service: StudentService
    ):
        (class_,) = await seed_classes(db_session)
        student = StudentFactory.build()
        db_session.add(student)
        await db_session.flush()
        batches = TuitionBatchFactory.build_batch(3, class_id=class_.id)
        db_session.add_all([EnrollmentFactory.build(student_id=student.id, class_id=class_.id), *batches])
        await db_session.flush()
        db_session.add_all([
            TuitionFactory.build(batch_id=batches[0].id, student_id=student.id),
            TuitionFactory.build(batch_id=batches[1].id, student_id=student.id),
            TuitionFactory.build(
                batch_id=batches[2].id, student_id=student.id,
                status=TuitionStatusEnum.PAID.value, paid_at=db_models.utcnow(),
            ),
        ])
        await db_session.flush()

        roster = await student_service.list_students()

        assert len(roster) == 1
        assert roster[0].unpaid_count == 2
        assert [c.id for c in roster[0].classes] == [class_.id]

        class_students = await student_service.list_class_students(class_.id)
        assert [(s.id, s.unpaid_count) for s in class_students] == [(student.id, 2)]

    async def test_directory_page_meta(
        self,
        db_session: AsyncSession,
        student_service: StudentService
    ):
        db_session.add_all(StudentFactory.build_batch(5))
        db_session.add(AdminFactory.build())
        await db_session.flush()

        page = await student_service.list_students_page(page=2, limit=2)

        assert len(page.data) == 2
        assert page.meta.model_dump() == {
            "total_items": 5, "total_pages": 3, "current_page": 2, "items_per_page": 2,
        }

    async def test_add_student_to_class_twice_conflicts(
        self,
        db_session: AsyncSession,
        student_service: StudentService
    ):
        (class_,) = await seed_classes(db_session)
        student = StudentFactory.build()
        db_session.add(student)
        await db_session.flush()

        added = await student_service.add_student_to_class(class_.id, student.id)
        assert added.id == student.id
        assert added.unpaid_count == 0

        with pytest.raises(ConflictError):
            await student_service.add_student_to_class(class_.id, student.id)


@pytest.mark.anyio
class TestGroupPlacement:

    async def seed(self, db_session: AsyncSession):
        class_, other_class = await seed_classes(db_session, 2)
        student = StudentFactory.build()
        db_session.add(student)
        await db_session.flush()
        group_a = GroupFactory.build(class_id=class_.id)
        group_b = GroupFactory.build(class_id=class_.id)
        other_group = GroupFactory.build(class_id=other_class.id)
        db_session.add_all([group_a, group_b, other_group])
        await db_session.flush()
        return student, group_a, group_b, other_group

    async def test_one_group_per_class(
        self,
        db_session: AsyncSession,
        student_service: StudentService
    ):
        student, group_a, group_b, other_group = await self.seed(db_session)

        entry = await student_service.assign_to_group(student.id, group_a.id)
        assert entry.group_id == group_a.id

        with pytest.raises(ConflictError):
            await student_service.assign_to_group(student.id, group_a.id)
        with pytest.raises(ConflictError):
            await student_service.assign_to_group(student.id, group_b.id)

        # a group of a different class is fine
        await student_service.assign_to_group(student.id, other_group.id)

    async def test_transfer_moves_membership(
        self,
        db_session: AsyncSession,
        student_service: StudentService
    ):
        student, group_a, group_b, _ = await self.seed(db_session)
        entry = await student_service.assign_to_group(student.id, group_a.id)

        moved = await student_service.transfer_group(student.id, group_a.id, group_b.id)

        assert moved.id == entry.id
        assert moved.group_id == group_b.id
        group_ids = await db_session.execute(
            select(db_models.StudentGroups.group_id).filter(db_models.StudentGroups.student_id == student.id)
        )
        assert group_ids.scalars().all() == [group_b.id]

    async def test_transfer_errors(
        self,
        db_session: AsyncSession,
        student_service: StudentService
    ):
        student, group_a, group_b, _ = await self.seed(db_session)

        with pytest.raises(NotFoundError):
            await student_service.transfer_group(student.id, group_a.id, group_b.id)

        await student_service.assign_to_group(student.id, group_a.id)
        with pytest.raises(NotFoundError):
            await student_service.transfer_group(student.id, group_a.id, UNKNOWN_ID)

    async def test_remove_from_group(
        self,
        db_session: AsyncSession,
        student_service: StudentService
    ):
        student, group_a, _, _ = await self.seed(db_session)
        await student_service.assign_to_group(student.id, group_a.id)

        await student_service.remove_from_group(student.id, group_a.id)

        with pytest.raises(NotFoundError):
            await student_service.remove_from_group(student.id, group_a.id)

    async def test_unknown_group_raises_not_found(
        self,
        db_session: AsyncSession,
        student_service: StudentService
    ):
        student, _, _, _ = await self.seed(db_session)
        with pytest.raises(NotFoundError):
            await student_service.assign_to_group(student.id, UNKNOWN_ID)
