"""Models package exports."""

from procoin.models.catalog import Assignment, Course, Lesson
from procoin.models.transaction import TransactionRecord, TransactionStatus
from procoin.models.user import Role, User

__all__ = [
    "Assignment",
    "Course",
    "Lesson",
    "Role",
    "TransactionRecord",
    "TransactionStatus",
    "User",
]
