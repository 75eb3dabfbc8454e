import logging

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from marketplace.auth import Actor, Role
from marketplace.geo import GeoPoint
from marketplace.tasks import TaskStatus

from backend.utils.decorators import current_actor, rate_limit, role_required
from backend.utils.errors import error_response
from backend.utils.services import get_matching_service, get_task_service, get_user_service

logger = logging.getLogger(__name__)
tasks_bp = Blueprint("tasks", __name__, url_prefix="/api/tasks")


def _client_tasks(actor: Actor) -> list[dict]:
    return get_task_service().get_tasks_for_client(actor.user_id)


def _provider_feed(actor: Actor) -> list[dict]:
    """Open tasks near the provider, filtered by its skills unless a category is given."""
    provider = get_user_service().get_user_by_id(actor.user_id) or {"user_id": actor.user_id}
    location = GeoPoint.from_query(request.args.get("lat"), request.args.get("lng"))
    return get_matching_service().find_open_tasks(
        provider,
        location=location,
        radius_km=request.args.get("radius"),
        category=request.args.get("category"),
        status=request.args.get("status") or TaskStatus.PENDING,
    )


# GET /api/tasks lists different things per role
_TASK_LISTINGS = {
    Role.CLIENT: _client_tasks,
    Role.PROVIDER: _provider_feed,
}


@tasks_bp.route("", methods=["POST"])
@role_required(Role.CLIENT)
@rate_limit(max_calls=30, window_seconds=60)
def api_create_task():
    """Create a task (clients only)."""
    try:
        data = request.get_json(silent=True)
        if not data:
            return jsonify({"error": "No data provided"}), 400

        task = get_task_service().create_task(current_actor(), data)
        return jsonify({"message": "Task created successfully", "task": task}), 201
    except Exception as e:
        return error_response(e, "creating task")


@tasks_bp.route("", methods=["GET"])
@jwt_required()
def api_list_tasks():
    """Client: own tasks. Provider: open-task feed."""
    try:
        actor = current_actor()
        tasks = _TASK_LISTINGS[actor.role](actor)
        return jsonify({"tasks": tasks}), 200
    except Exception as e:
        return error_response(e, "listing tasks")


@tasks_bp.route("/client", methods=["GET"])
@role_required(Role.CLIENT)
def api_client_tasks():
    """All tasks posted by the current client."""
    try:
        return jsonify({"tasks": _client_tasks(current_actor())}), 200
    except Exception as e:
        return error_response(e, "listing client tasks")


@tasks_bp.route("/provider", methods=["GET"])
@role_required(Role.PROVIDER)
def api_provider_tasks():
    """Tasks assigned to the current provider."""
    try:
        tasks = get_task_service().get_tasks_for_provider(current_actor().user_id)
        return jsonify({"tasks": tasks}), 200
    except Exception as e:
        return error_response(e, "listing provider tasks")


@tasks_bp.route("/<int:task_id>", methods=["GET"])
@jwt_required()
def api_get_task(task_id: int):
    """Get a task visible to the current user."""
    try:
        task = get_task_service().get_task(task_id, current_actor())
        return jsonify({"task": task}), 200
    except Exception as e:
        return error_response(e, f"fetching task {task_id}")


@tasks_bp.route("/<int:task_id>", methods=["PATCH"])
@jwt_required()
def api_update_task(task_id: int):
    """Change a task's status or assign its provider."""
    try:
        updates = request.get_json(silent=True)
        if not updates:
            return jsonify({"error": "No data provided"}), 400

        task = get_task_service().update_task(task_id, current_actor(), updates)
        return jsonify({"message": "Task updated successfully", "task": task}), 200
    except Exception as e:
        return error_response(e, f"updating task {task_id}")


@tasks_bp.route("/<int:task_id>", methods=["PUT"])
@role_required(Role.CLIENT)
def api_edit_task(task_id: int):
    """Edit the details of a pending task (owning client only)."""
    try:
        updates = request.get_json(silent=True)
        if not updates:
            return jsonify({"error": "No data provided"}), 400

        task = get_task_service().edit_task(task_id, current_actor(), updates)
        return jsonify({"message": "Task updated successfully", "task": task}), 200
    except Exception as e:
        return error_response(e, f"editing task {task_id}")


@tasks_bp.route("/<int:task_id>", methods=["DELETE"])
@role_required(Role.PROVIDER)
def api_reject_task(task_id: int):
    """Reject an open task from the provider feed. The task is removed."""
    try:
        get_task_service().reject_task(task_id, current_actor())
        return jsonify({"message": "Task rejected"}), 200
    except Exception as e:
        return error_response(e, f"rejecting task {task_id}")


@tasks_bp.route("/<int:task_id>/accept", methods=["POST"])
@role_required(Role.PROVIDER)
def api_accept_task(task_id: int):
    """Accept an open task."""
    try:
        task = get_task_service().accept_task(task_id, current_actor())
        return jsonify({"message": "Task accepted", "task": task}), 200
    except Exception as e:
        return error_response(e, f"accepting task {task_id}")


@tasks_bp.route("/<int:task_id>/start", methods=["POST"])
@jwt_required()
def api_start_task(task_id: int):
    """Mark an accepted task as in progress."""
    try:
        task = get_task_service().start_task(task_id, current_actor())
        return jsonify({"message": "Task started", "task": task}), 200
    except Exception as e:
        return error_response(e, f"starting task {task_id}")


@tasks_bp.route("/<int:task_id>/complete", methods=["POST"])
@jwt_required()
def api_complete_task(task_id: int):
    """Complete a task in progress, with optional rating and feedback."""
    try:
        data = request.get_json(silent=True) or {}
        task = get_task_service().complete_task(
            task_id,
            current_actor(),
            rating=data.get("rating"),
            feedback=data.get("feedback"),
        )
        return jsonify({"message": "Task completed", "task": task}), 200
    except Exception as e:
        return error_response(e, f"completing task {task_id}")


@tasks_bp.route("/<int:task_id>/cancel", methods=["POST"])
@jwt_required()
def api_cancel_task(task_id: int):
    """Cancel a task that is not yet completed."""
    try:
        task = get_task_service().cancel_task(task_id, current_actor())
        return jsonify({"message": "Task cancelled", "task": task}), 200
    except Exception as e:
        return error_response(e, f"cancelling task {task_id}")
