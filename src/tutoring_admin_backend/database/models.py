from typing import Optional

from sqlalchemy import CheckConstraint, Date, DateTime, Enum, ForeignKeyConstraint, Numeric, PrimaryKeyConstraint, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
import datetime
import decimal
import uuid

from .db_enums import UserRole, TuitionStatusEnum, PaymentStatusEnum


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class Base(DeclarativeBase):
    pass


class Users(Base):
    __tablename__ = 'users'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='users_pkey'),
        UniqueConstraint('email', name='users_email_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255))
    password_hash: Mapped[str] = mapped_column(String(255))
    full_name: Mapped[str] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(Enum(*UserRole.get_all_names(), name='user_role'), default=UserRole.STUDENT.value)
    phone: Mapped[Optional[str]] = mapped_column(String(20))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=utcnow, onupdate=utcnow)


class Subjects(Base):
    __tablename__ = 'subjects'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='subjects_pkey'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=utcnow)


class Classes(Base):
    __tablename__ = 'classes'
    __table_args__ = (
        ForeignKeyConstraint(['subject_id'], ['subjects.id'], ondelete='SET NULL', name='classes_subject_id_fkey'),
        PrimaryKeyConstraint('id', name='classes_pkey'),
        CheckConstraint('fee >= 0', name='classes_fee_check')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255))
    fee: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2), default=decimal.Decimal("0"))
    subject_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    start_date: Mapped[Optional[datetime.date]] = mapped_column(Date)
    end_date: Mapped[Optional[datetime.date]] = mapped_column(Date)
    schedule: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=utcnow, onupdate=utcnow)

    groups: Mapped[list['Groups']] = relationship('Groups', back_populates='class_', passive_deletes=True)


class Groups(Base):
    __tablename__ = 'groups'
    __table_args__ = (
        ForeignKeyConstraint(['class_id'], ['classes.id'], ondelete='CASCADE', name='groups_class_id_fkey'),
        PrimaryKeyConstraint('id', name='groups_pkey')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    class_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=utcnow)

    class_: Mapped['Classes'] = relationship('Classes', back_populates='groups')


class ClassEnrollments(Base):
    __tablename__ = 'class_enrollments'
    __table_args__ = (
        ForeignKeyConstraint(['student_id'], ['users.id'], ondelete='CASCADE', name='class_enrollments_student_id_fkey'),
        ForeignKeyConstraint(['class_id'], ['classes.id'], ondelete='CASCADE', name='class_enrollments_class_id_fkey'),
        PrimaryKeyConstraint('id', name='class_enrollments_pkey'),
        UniqueConstraint('student_id', 'class_id', name='class_enrollments_student_id_class_id_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    class_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=utcnow)


class StudentGroups(Base):
    __tablename__ = 'student_groups'
    __table_args__ = (
        ForeignKeyConstraint(['student_id'], ['users.id'], ondelete='CASCADE', name='student_groups_student_id_fkey'),
        ForeignKeyConstraint(['group_id'], ['groups.id'], ondelete='CASCADE', name='student_groups_group_id_fkey'),
        PrimaryKeyConstraint('id', name='student_groups_pkey'),
        UniqueConstraint('student_id', 'group_id', name='student_groups_student_id_group_id_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    group_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=utcnow)


class TuitionBatches(Base):
    __tablename__ = 'tuition_batches'
    __table_args__ = (
        ForeignKeyConstraint(['class_id'], ['classes.id'], name='tuition_batches_class_id_fkey'),
        PrimaryKeyConstraint('id', name='tuition_batches_pkey'),
        CheckConstraint('amount > 0', name='tuition_batches_amount_check')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    class_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    title: Mapped[str] = mapped_column(String(255))
    # Snapshot of the fee at creation time. Never follows later class fee changes.
    amount: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=utcnow)


class Tuitions(Base):
    __tablename__ = 'tuitions'
    __table_args__ = (
        ForeignKeyConstraint(['batch_id'], ['tuition_batches.id'], name='tuitions_batch_id_fkey'),
        ForeignKeyConstraint(['student_id'], ['users.id'], ondelete='CASCADE', name='tuitions_student_id_fkey'),
        PrimaryKeyConstraint('id', name='tuitions_pkey'),
        UniqueConstraint('batch_id', 'student_id', name='tuitions_batch_id_student_id_key'),
        CheckConstraint(
            "(status = 'paid' AND paid_at IS NOT NULL) OR (status = 'unpaid' AND paid_at IS NULL)",
            name='tuitions_paid_at_matches_status'
        )
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    batch_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    status: Mapped[str] = mapped_column(Enum(*TuitionStatusEnum.get_all_names(), name='tuition_status_enum'), default=TuitionStatusEnum.UNPAID.value)
    paid_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=utcnow)


class TuitionPayments(Base):
    __tablename__ = 'tuition_payments'
    __table_args__ = (
        ForeignKeyConstraint(['student_id'], ['users.id'], ondelete='CASCADE', name='tuition_payments_student_id_fkey'),
        ForeignKeyConstraint(['class_id'], ['classes.id'], ondelete='CASCADE', name='tuition_payments_class_id_fkey'),
        PrimaryKeyConstraint('id', name='tuition_payments_pkey')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    class_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    amount: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2), default=decimal.Decimal("0"))
    status: Mapped[str] = mapped_column(Enum(*PaymentStatusEnum.get_all_names(), name='payment_status_enum'), default=PaymentStatusEnum.PENDING.value)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=utcnow)


class Exams(Base):
    __tablename__ = 'exams'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='exams_pkey'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(255))
    date: Mapped[datetime.date] = mapped_column(Date)
    max_score: Mapped[decimal.Decimal] = mapped_column(Numeric(6, 2), default=decimal.Decimal("10"))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=utcnow, onupdate=utcnow)


class ExamClasses(Base):
    __tablename__ = 'exam_classes'
    __table_args__ = (
        ForeignKeyConstraint(['exam_id'], ['exams.id'], ondelete='CASCADE', name='exam_classes_exam_id_fkey'),
        ForeignKeyConstraint(['class_id'], ['classes.id'], ondelete='CASCADE', name='exam_classes_class_id_fkey'),
        PrimaryKeyConstraint('exam_id', 'class_id', name='exam_classes_pkey')
    )

    exam_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    class_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)


class ExamGrades(Base):
    __tablename__ = 'exam_grades'
    __table_args__ = (
        ForeignKeyConstraint(['exam_id'], ['exams.id'], ondelete='CASCADE', name='exam_grades_exam_id_fkey'),
        ForeignKeyConstraint(['student_id'], ['users.id'], ondelete='CASCADE', name='exam_grades_student_id_fkey'),
        PrimaryKeyConstraint('id', name='exam_grades_pkey'),
        UniqueConstraint('exam_id', 'student_id', name='exam_grades_exam_id_student_id_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    exam_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    score: Mapped[decimal.Decimal] = mapped_column(Numeric(6, 2))
    comment: Mapped[Optional[str]] = mapped_column(Text)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=utcnow, onupdate=utcnow)


class Materials(Base):
    __tablename__ = 'materials'
    __table_args__ = (
        ForeignKeyConstraint(['class_id'], ['classes.id'], ondelete='SET NULL', name='materials_class_id_fkey'),
        ForeignKeyConstraint(['group_id'], ['groups.id'], ondelete='SET NULL', name='materials_group_id_fkey'),
        ForeignKeyConstraint(['subject_id'], ['subjects.id'], ondelete='SET NULL', name='materials_subject_id_fkey'),
        ForeignKeyConstraint(['uploaded_by'], ['users.id'], ondelete='SET NULL', name='materials_uploaded_by_fkey'),
        PrimaryKeyConstraint('id', name='materials_pkey')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text)
    file_url: Mapped[Optional[str]] = mapped_column(Text)
    file_type: Mapped[Optional[str]] = mapped_column(String(255))
    class_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    group_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    subject_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    uploaded_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=utcnow, onupdate=utcnow)
