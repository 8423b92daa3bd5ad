"""ORM models. Importing this package registers every table with Base.metadata."""

from taskboard.models.task import Task, TaskStatus
from taskboard.models.user import User

__all__ = ["Task", "TaskStatus", "User"]
