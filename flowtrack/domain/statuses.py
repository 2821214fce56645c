"""
Closed status / role vocabularies shared by models and use cases.

Values are the lowercase strings stored in the database.
"""
from enum import Enum


class Role(str, Enum):
    USER = "user"
    MANAGER = "manager"


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class NudgeStatus(str, Enum):
    """
    Lifecycle of one reminder instance:

        scheduled -> sent -> acknowledged
        scheduled -> failed -> (retried) sent | failed
    """
    SCHEDULED = "scheduled"
    SENT = "sent"
    FAILED = "failed"
    ACKNOWLEDGED = "acknowledged"


class ReportStatus(str, Enum):
    SCHEDULED = "scheduled"
    SENT = "sent"
    FAILED = "failed"


def enum_values(enum_cls: type[Enum]) -> list[str]:
    """values_callable for sqlalchemy.Enum: persist .value, not .name"""
    return [member.value for member in enum_cls]
