"""Task lifecycle services."""

from .lifecycle import ALLOWED_TRANSITIONS, can_transition, validate_transition
from .models import Priority, Quality, TaskStatus, TaskType, Unit, normalize_category, serialize_task
from .task_service import TaskService

__all__ = [
    "ALLOWED_TRANSITIONS",
    "Priority",
    "Quality",
    "TaskService",
    "TaskStatus",
    "TaskType",
    "Unit",
    "can_transition",
    "normalize_category",
    "serialize_task",
    "validate_transition",
]
