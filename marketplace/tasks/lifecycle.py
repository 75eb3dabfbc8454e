"""Task state machine.

    PENDING -> ACCEPTED -> IN_PROGRESS -> COMPLETED
    any non-terminal state -> CANCELLED
"""

from marketplace.shared.errors import ValidationError

from .models import TaskStatus

ALLOWED_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.ACCEPTED, TaskStatus.CANCELLED}),
    TaskStatus.ACCEPTED: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.CANCELLED}),
    TaskStatus.IN_PROGRESS: frozenset({TaskStatus.COMPLETED, TaskStatus.CANCELLED}),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.CANCELLED: frozenset(),
}


def can_transition(current: TaskStatus, target: TaskStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def validate_transition(current, target) -> TaskStatus:
    """Check that a task may move from `current` to `target`.

    Args:
        current: Current status (enum or string)
        target: Requested status (enum or string, aliases allowed)

    Returns:
        The parsed target status

    Raises:
        ValidationError: If the transition is not allowed
    """
    current = TaskStatus.parse(current)
    target = TaskStatus.parse(target)
    if not can_transition(current, target):
        raise ValidationError(
            f"Cannot change task status from {current.value} to {target.value}"
        )
    return target

