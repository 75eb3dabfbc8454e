"""Service for the task lifecycle: creation, acceptance, progress and rejection."""

import logging
from typing import Any

from marketplace.auth.roles import Actor, Role
from marketplace.shared.database import Database, fetch_all_dicts, fetch_one_dict
from marketplace.shared.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from marketplace.shared.structured_logging import get_structured_logger

from .lifecycle import validate_transition
from .models import (
    TaskStatus,
    serialize_task,
    validate_completion,
    validate_edited_dates,
    validate_new_task,
    validate_task_edits,
)
from .queries import (
    ACCEPT_TASK,
    ASSIGN_TASK,
    EDIT_PENDING_TASK,
    GET_PROVIDER_ROLE,
    GET_TASK_FOR_ACTOR,
    GET_TASK_FOR_PARTY,
    GET_TASK_STATUS,
    GET_TASKS_FOR_CLIENT,
    GET_TASKS_FOR_PROVIDER,
    INSERT_TASK,
    REJECT_TASK,
    TASK_COLUMNS,
    TRANSITION_TASK,
)

logger = logging.getLogger(__name__)

# Only these fields may be changed through the generic update path
UPDATABLE_FIELDS = {"status", "provider"}


class TaskService:
    """Service enforcing task state transitions and who may perform them.

    Every mutation of an existing task checks that the actor is the task's
    client or its assigned provider. Failures of that check surface as
    NotFoundError so other users' tasks are never confirmed to exist. The
    provider-feed actions (accept, reject) instead require the PROVIDER role
    and an unassigned PENDING task.
    """

    def __init__(self, database: Database):
        """Initialize the task service.

        Args:
            database: Database connection interface
        """
        if not database:
            raise ValueError("Database is required")
        self.db = database

    def create_task(self, actor: Actor, data: dict[str, Any]) -> dict[str, Any]:
        """Create a PENDING task owned by a client.

        Args:
            actor: Acting user (must be a client)
            data: Task payload

        Returns:
            Created task

        Raises:
            AuthorizationError: If the actor is not a client
            ValidationError: If the payload is invalid
        """
        if not actor.is_client:
            raise AuthorizationError("Only clients can create tasks")

        columns = validate_new_task(data)
        columns["client_id"] = actor.user_id

        try:
            with self.db.get_cursor() as cur:
                cur.execute(INSERT_TASK, columns)
                task = fetch_one_dict(cur)
                if not task:
                    raise ValueError("Failed to create task")
        except Exception as e:
            logger.error(f"Error creating task for client {actor.user_id}: {e}", exc_info=True)
            raise

        logger.info(
            f"Created task {task['task_id']} ({task['category']}) for client {actor.user_id}"
        )
        return serialize_task(task)

    def get_task(self, task_id: int, actor: Actor) -> dict[str, Any]:
        """Get a task visible to the actor.

        Clients see their own tasks; providers see tasks assigned to them and
        any unassigned PENDING task.

        Raises:
            NotFoundError: If the task does not exist or is not visible
        """
        with self.db.get_cursor() as cur:
            cur.execute(
                GET_TASK_FOR_ACTOR,
                {"task_id": task_id, "user_id": actor.user_id, "is_provider": actor.is_provider},
            )
            task = fetch_one_dict(cur)

        if not task:
            raise NotFoundError("Task not found")
        return serialize_task(task)

    def get_tasks_for_client(self, client_id: int) -> list[dict[str, Any]]:
        """All tasks posted by a client, newest first."""
        with self.db.get_cursor() as cur:
            cur.execute(GET_TASKS_FOR_CLIENT, (client_id,))
            tasks = fetch_all_dicts(cur)

        logger.debug(f"Retrieved {len(tasks)} task(s) for client {client_id}")
        return [serialize_task(task) for task in tasks]

    def get_tasks_for_provider(self, provider_id: int) -> list[dict[str, Any]]:
        """All tasks assigned to a provider, newest first."""
        with self.db.get_cursor() as cur:
            cur.execute(GET_TASKS_FOR_PROVIDER, (provider_id,))
            tasks = fetch_all_dicts(cur)

        logger.debug(f"Retrieved {len(tasks)} assigned task(s) for provider {provider_id}")
        return [serialize_task(task) for task in tasks]

    def accept_task(self, task_id: int, actor: Actor) -> dict[str, Any]:
        """Take an unassigned PENDING task.

        The write is conditional on the task still being unassigned, so of two
        concurrent accepts exactly one succeeds.

        Raises:
            AuthorizationError: If the actor is not a provider
            ConflictError: If the task has already been taken or is no longer pending
            NotFoundError: If the task does not exist
        """
        log = get_structured_logger(__name__, task_id=task_id, actor_id=actor.user_id)
        if not actor.is_provider:
            raise AuthorizationError("Only providers can accept tasks")

        with self.db.get_cursor() as cur:
            cur.execute(ACCEPT_TASK, (actor.user_id, task_id))
            task = fetch_one_dict(cur)

        if not task:
            self._raise_for_missed_write(task_id, "Task has already been taken")

        log.info("Task accepted")
        return serialize_task(task)

    def reject_task(self, task_id: int, actor: Actor) -> None:
        """Reject an unassigned PENDING task from the provider feed.

        The task record is deleted rather than marked CANCELLED.

        Raises:
            AuthorizationError: If the actor is not a provider
            ConflictError: If the task is no longer pending and unassigned
            NotFoundError: If the task does not exist
        """
        log = get_structured_logger(__name__, task_id=task_id, actor_id=actor.user_id)
        if not actor.is_provider:
            raise AuthorizationError("Only providers can reject tasks")

        with self.db.get_cursor() as cur:
            cur.execute(REJECT_TASK, (task_id,))
            deleted = cur.fetchone()

        if not deleted:
            self._raise_for_missed_write(task_id, "Task can no longer be rejected")

        log.info("Task rejected and deleted")

    def start_task(self, task_id: int, actor: Actor) -> dict[str, Any]:
        """Move an ACCEPTED task to IN_PROGRESS."""
        return self.transition(task_id, actor, TaskStatus.IN_PROGRESS)

    def complete_task(
        self,
        task_id: int,
        actor: Actor,
        rating: Any = None,
        feedback: Any = None,
    ) -> dict[str, Any]:
        """Move an IN_PROGRESS task to COMPLETED, optionally recording rating/feedback.

        Either the client or the assigned provider may complete a task.
        """
        rating, feedback = validate_completion(rating, feedback)
        return self.transition(
            task_id, actor, TaskStatus.COMPLETED, rating=rating, feedback=feedback
        )

    def cancel_task(self, task_id: int, actor: Actor) -> dict[str, Any]:
        """Cancel a non-terminal task.

        When the assigned provider cancels, rejected_by_provider is set.
        """
        return self.transition(task_id, actor, TaskStatus.CANCELLED)

    def transition(
        self,
        task_id: int,
        actor: Actor,
        target: Any,
        rating: int | None = None,
        feedback: str | None = None,
    ) -> dict[str, Any]:
        """Apply a status transition on behalf of one of the task's parties.

        Args:
            task_id: Task to update
            actor: Client or assigned provider of the task
            target: Requested status
            rating: Optional completion rating
            feedback: Optional completion feedback

        Returns:
            Updated task

        Raises:
            NotFoundError: If the task does not exist or the actor is not a party
            ValidationError: If the transition is not allowed from the current status
            ConflictError: If the status changed between read and write
        """
        log = get_structured_logger(__name__, task_id=task_id, actor_id=actor.user_id)
        task = self._get_for_party(task_id, actor)
        current = TaskStatus.parse(task["status"])
        target = TaskStatus.parse(target)

        if target is TaskStatus.ACCEPTED:
            raise ValidationError("Use accept, or assign a provider, to accept a task")
        validate_transition(current, target)

        rejected_by_provider = (
            target is TaskStatus.CANCELLED and task.get("provider_id") == actor.user_id
        )

        with self.db.get_cursor() as cur:
            cur.execute(
                TRANSITION_TASK,
                {
                    "target": target.value,
                    "current": current.value,
                    "task_id": task_id,
                    "user_id": actor.user_id,
                    "rejected_by_provider": rejected_by_provider,
                    "rating": rating,
                    "feedback": feedback,
                },
            )
            updated = fetch_one_dict(cur)

        if not updated:
            log.warning(f"Status changed concurrently, {current.value} -> {target.value} lost")
            raise ConflictError("Task status changed, please reload and try again")

        log.info(f"Task status {current.value} -> {target.value}")
        return serialize_task(updated)

    def update_task(self, task_id: int, actor: Actor, updates: dict[str, Any]) -> dict[str, Any]:
        """Generic update path: only `status` and `provider` may change.

        Assigning a provider is only possible on an unassigned PENDING task,
        by its client, and moves the task to ACCEPTED.

        Raises:
            ValidationError: If other fields are present or a value is invalid
            NotFoundError: If the task does not exist or the actor is not a party
            ConflictError: If a conditional write lost a race
        """
        if not updates:
            raise ValidationError("No updates provided")
        if not set(updates) <= UPDATABLE_FIELDS:
            raise ValidationError("Invalid updates!")

        if updates.get("provider") is not None:
            target = TaskStatus.parse(updates.get("status") or TaskStatus.ACCEPTED)
            if target is not TaskStatus.ACCEPTED:
                raise ValidationError("A provider can only be assigned when accepting a task")
            return self.assign_provider(task_id, actor, updates["provider"])

        if "status" not in updates:
            raise ValidationError("Provider cannot be cleared")
        return self.transition(task_id, actor, updates["status"])

    def assign_provider(self, task_id: int, actor: Actor, provider_id: Any) -> dict[str, Any]:
        """Client assigns a provider to its own unassigned PENDING task.

        Raises:
            ValidationError: If provider_id is not a provider
            NotFoundError: If the task does not exist or is not the actor's
            ConflictError: If the task was taken in the meantime
        """
        log = get_structured_logger(__name__, task_id=task_id, actor_id=actor.user_id)
        try:
            provider_id = int(provider_id)
        except (TypeError, ValueError) as e:
            raise ValidationError("Provider must be a user id") from e

        task = self._get_for_party(task_id, actor)
        if task["client_id"] != actor.user_id:
            raise NotFoundError("Task not found")

        with self.db.get_cursor() as cur:
            cur.execute(GET_PROVIDER_ROLE, (provider_id,))
            provider = fetch_one_dict(cur)
            if not provider or provider.get("role") != Role.PROVIDER.value:
                raise ValidationError("Assigned user must be a provider")

            cur.execute(ASSIGN_TASK, (provider_id, task_id, actor.user_id))
            updated = fetch_one_dict(cur)

        if not updated:
            raise ConflictError("Task has already been taken")

        log.info(f"Provider {provider_id} assigned")
        return serialize_task(updated)

    def edit_task(self, task_id: int, actor: Actor, updates: dict[str, Any]) -> dict[str, Any]:
        """Client edits descriptive fields of its task while it is PENDING.

        Raises:
            ValidationError: If a field is not editable or a value is invalid
            NotFoundError: If the task is not the actor's
            ConflictError: If the task is no longer PENDING
        """
        columns = validate_task_edits(updates)
        task = self._get_for_party(task_id, actor)
        if task["client_id"] != actor.user_id:
            raise NotFoundError("Task not found")
        validate_edited_dates(task, columns)

        assignments = ", ".join(f"{column} = %({column})s" for column in columns)
        query = EDIT_PENDING_TASK.format(assignments=assignments, columns=TASK_COLUMNS)
        params = {**columns, "task_id": task_id, "client_id": actor.user_id}

        with self.db.get_cursor() as cur:
            cur.execute(query, params)
            updated = fetch_one_dict(cur)

        if not updated:
            raise ConflictError("Only pending tasks can be edited")

        logger.info(f"Client {actor.user_id} edited task {task_id}: {sorted(columns)}")
        return serialize_task(updated)

    def _get_for_party(self, task_id: int, actor: Actor) -> dict[str, Any]:
        with self.db.get_cursor() as cur:
            cur.execute(GET_TASK_FOR_PARTY, (task_id, actor.user_id, actor.user_id))
            task = fetch_one_dict(cur)

        if not task:
            raise NotFoundError("Task not found")
        return task

    def _raise_for_missed_write(self, task_id: int, conflict_message: str) -> None:
        """Explain why a conditional write on a pending task matched no row."""
        with self.db.get_cursor() as cur:
            cur.execute(GET_TASK_STATUS, (task_id,))
            exists = cur.fetchone()

        if not exists:
            raise NotFoundError("Task not found")
        raise ConflictError(conflict_message)
