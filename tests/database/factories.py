import factory
import uuid
import datetime
from decimal import Decimal
from factory.alchemy import SQLAlchemyModelFactory
from factory.faker import Faker

from tutoring_admin_backend.database import models as db_models
from tutoring_admin_backend.database.db_enums import UserRole, TuitionStatusEnum, PaymentStatusEnum
from tutoring_admin_backend.common.security_utils import HashedPassword
from tests.constants import TEST_PASSWORD_ADMIN, TEST_PASSWORD_STUDENT, TEST_CLASS_FEE, TEST_BATCH_AMOUNT

# Hash once: bcrypt is deliberately slow
ADMIN_PASSWORD_HASH = HashedPassword.get_hash(TEST_PASSWORD_ADMIN)
STUDENT_PASSWORD_HASH = HashedPassword.get_hash(TEST_PASSWORD_STUDENT)


class BaseFactory(SQLAlchemyModelFactory):
    """
    Factories are only used with .build(); tests add the objects to their
    own AsyncSession and flush.
    """
    class Meta:
        abstract = True


class AdminFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    email = factory.Sequence(lambda n: f"admin{n}@chemclass.com")
    full_name = Faker("name")
    role = UserRole.ADMIN.value
    password_hash = ADMIN_PASSWORD_HASH

    class Meta:
        model = db_models.Users


class StudentFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    email = factory.Sequence(lambda n: f"student{n}@chemclass.com")
    full_name = Faker("name")
    phone = Faker("numerify", text="09########")
    role = UserRole.STUDENT.value
    password_hash = STUDENT_PASSWORD_HASH

    class Meta:
        model = db_models.Users


class SubjectFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    name = factory.Sequence(lambda n: f"Chemistry {n}")
    description = Faker("sentence")

    class Meta:
        model = db_models.Subjects


class ClassFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    name = factory.Sequence(lambda n: f"Class 12A{n}")
    fee = TEST_CLASS_FEE
    start_date = datetime.date(2026, 9, 1)
    end_date = datetime.date(2027, 5, 31)
    schedule = "Mon, Wed 18:00-19:30"

    class Meta:
        model = db_models.Classes


class GroupFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    name = factory.Sequence(lambda n: f"Group {n}")

    class Meta:
        model = db_models.Groups


class EnrollmentFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)

    class Meta:
        model = db_models.ClassEnrollments


class StudentGroupFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)

    class Meta:
        model = db_models.StudentGroups


class TuitionPaymentFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    amount = TEST_CLASS_FEE
    status = PaymentStatusEnum.PAID.value

    class Meta:
        model = db_models.TuitionPayments


class TuitionBatchFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    title = factory.Sequence(lambda n: f"Tuition month {n}")
    amount = TEST_BATCH_AMOUNT

    class Meta:
        model = db_models.TuitionBatches


class TuitionFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    status = TuitionStatusEnum.UNPAID.value
    paid_at = None

    class Meta:
        model = db_models.Tuitions


class ExamFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    title = factory.Sequence(lambda n: f"Weekly test {n}")
    date = datetime.date(2026, 10, 1)
    max_score = Decimal("10")

    class Meta:
        model = db_models.Exams


class MaterialFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    title = factory.Sequence(lambda n: f"Worksheet {n}")
    description = Faker("sentence")
    file_url = None
    file_type = "link/text"

    class Meta:
        model = db_models.Materials
