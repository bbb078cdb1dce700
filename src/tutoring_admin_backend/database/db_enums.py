'''
Static enums mirroring the string values stored in the database.
'''
import enum

# --- Base Enum Class ---
class ListableEnum(str, enum.Enum):
    """A custom Enum base class that can list all member names."""
    @classmethod
    def get_all_names(cls) -> list[str]:
        return [member.value for member in cls]


class UserRole(ListableEnum):
    ADMIN = "ADMIN"
    STUDENT = "STUDENT"


class TuitionStatusEnum(ListableEnum):
    """A batch tuition record is either outstanding or settled."""
    UNPAID = "unpaid"
    PAID = "paid"


class PaymentStatusEnum(ListableEnum):
    """Status of a class-level enrollment payment."""
    PAID = "PAID"
    PENDING = "PENDING"
    FAILED = "FAILED"
