"""Task enumerations and payload validation."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from marketplace.auth.user_service import normalize_skills, parse_location
from marketplace.shared.errors import ValidationError


class _TaskEnum(str, Enum):
    @classmethod
    def parse(cls, value: Any, field: str):
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().upper())
        except ValueError as e:
            allowed = ", ".join(member.value for member in cls)
            raise ValidationError(f"Invalid {field}. Must be one of: {allowed}") from e


class TaskStatus(_TaskEnum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @classmethod
    def parse(cls, value: Any, field: str = "status") -> TaskStatus:
        """Parse a status, accepting OPEN for PENDING and ASSIGNED for ACCEPTED."""
        aliases = {"OPEN": cls.PENDING, "ASSIGNED": cls.ACCEPTED}
        alias = aliases.get(str(value or "").strip().upper())
        if alias is not None:
            return alias
        return super().parse(value, field)


class Unit(_TaskEnum):
    HOUR = "HOUR"
    DAY = "DAY"
    PIECE = "PIECE"
    KG = "KG"
    TON = "TON"
    BUSHEL = "BUSHEL"


class Priority(_TaskEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class TaskType(_TaskEnum):
    SERVICE = "SERVICE"
    PRODUCT = "PRODUCT"


class Quality(_TaskEnum):
    STANDARD = "STANDARD"
    PREMIUM = "PREMIUM"
    CUSTOM = "CUSTOM"


def normalize_category(category: Any) -> str:
    """Canonical uppercase category tag.

    Raises:
        ValidationError: If the category is missing or blank
    """
    tag = str(category or "").strip().upper()
    if not tag:
        raise ValidationError("Category is required")
    return tag


def _required_text(data: dict[str, Any], field: str) -> str:
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field.replace('_', ' ').capitalize()} is required")
    return value.strip()


def _non_negative_number(data: dict[str, Any], field: str) -> float:
    value = data.get(field)
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field.replace('_', ' ').capitalize()} is required")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{field} must be a number") from e
    if number < 0:
        raise ValidationError(f"{field} must be a positive number")
    return number


def _parse_datetime(value: Any, field: str) -> datetime | None:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError as e:
        raise ValidationError(f"{field} must be an ISO 8601 date") from e


def _check_date_order(start_date: datetime | None, end_date: datetime | None) -> None:
    if not start_date or not end_date:
        return
    try:
        out_of_order = end_date < start_date
    except TypeError as e:
        raise ValidationError("start_date and end_date must both include a timezone or neither") from e
    if out_of_order:
        raise ValidationError("end_date must not be before start_date")


def _parse_rating(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or int(value) != value:
        raise ValidationError("Rating must be a whole number between 1 and 5")
    if not 1 <= value <= 5:
        raise ValidationError("Rating must be a whole number between 1 and 5")
    return int(value)


def validate_new_task(data: dict[str, Any]) -> dict[str, Any]:
    """Validate a task creation payload and return column values.

    Raises:
        ValidationError: If a required field is missing or a value is invalid
    """
    if not data:
        raise ValidationError("No data provided")
    if data.get("location") is None:
        raise ValidationError("Location is required")

    point = parse_location(data["location"])
    start_date = _parse_datetime(data.get("start_date"), "start_date")
    end_date = _parse_datetime(data.get("end_date"), "end_date")
    _check_date_order(start_date, end_date)

    subcategory = data.get("subcategory")
    return {
        "title": _required_text(data, "title"),
        "description": _required_text(data, "description"),
        "quantity": _non_negative_number(data, "quantity"),
        "price_per_unit": _non_negative_number(data, "price_per_unit"),
        "unit": Unit.parse(data.get("unit") or Unit.HOUR, "unit").value,
        "longitude": point.longitude,
        "latitude": point.latitude,
        "category": normalize_category(data.get("category")),
        "subcategory": str(subcategory).strip() if subcategory else None,
        "task_type": TaskType.parse(data.get("task_type") or TaskType.SERVICE, "task_type").value,
        "quality": Quality.parse(data.get("quality") or Quality.STANDARD, "quality").value,
        "priority": Priority.parse(data.get("priority") or Priority.MEDIUM, "priority").value,
        "skills": normalize_skills(data.get("skills")),
        "start_date": start_date,
        "end_date": end_date,
    }


# Fields a client may edit while the task is still PENDING
EDITABLE_FIELDS = (
    "title",
    "description",
    "quantity",
    "price_per_unit",
    "unit",
    "subcategory",
    "quality",
    "priority",
    "skills",
    "start_date",
    "end_date",
    "location",
)


def validate_task_edits(updates: dict[str, Any]) -> dict[str, Any]:
    """Validate client edits to a pending task and return column values.

    Raises:
        ValidationError: If a field is not editable or a value is invalid
    """
    if not updates:
        raise ValidationError("No updates provided")
    invalid = set(updates) - set(EDITABLE_FIELDS)
    if invalid:
        raise ValidationError(f"Invalid updates: {', '.join(sorted(invalid))}")

    columns: dict[str, Any] = {}
    for field in ("title", "description"):
        if field in updates:
            columns[field] = _required_text(updates, field)
    for field in ("quantity", "price_per_unit"):
        if field in updates:
            columns[field] = _non_negative_number(updates, field)
    if "unit" in updates:
        columns["unit"] = Unit.parse(updates["unit"], "unit").value
    if "quality" in updates:
        columns["quality"] = Quality.parse(updates["quality"], "quality").value
    if "priority" in updates:
        columns["priority"] = Priority.parse(updates["priority"], "priority").value
    if "subcategory" in updates:
        subcategory = updates["subcategory"]
        columns["subcategory"] = str(subcategory).strip() if subcategory else None
    if "skills" in updates:
        columns["skills"] = normalize_skills(updates["skills"])
    for field in ("start_date", "end_date"):
        if field in updates:
            columns[field] = _parse_datetime(updates[field], field)
    _check_date_order(columns.get("start_date"), columns.get("end_date"))
    if "location" in updates:
        point = parse_location(updates["location"])
        columns["longitude"] = point.longitude
        columns["latitude"] = point.latitude
    return columns


def validate_edited_dates(task: dict[str, Any], columns: dict[str, Any]) -> None:
    """Check date order after merging edited dates over the task's current ones.

    Raises:
        ValidationError: If the resulting end_date is before start_date
    """
    _check_date_order(
        columns.get("start_date", task.get("start_date")),
        columns.get("end_date", task.get("end_date")),
    )


def validate_completion(rating: Any = None, feedback: Any = None) -> tuple[int | None, str | None]:
    """Validate the optional rating/feedback recorded when a task completes."""
    feedback_text = str(feedback).strip() if feedback else None
    return _parse_rating(rating), feedback_text


def serialize_task(task: dict[str, Any]) -> dict[str, Any]:
    """JSON-friendly task: numeric columns as floats, point as [lng, lat]."""
    result = dict(task)
    for field in ("quantity", "price_per_unit"):
        if result.get(field) is not None:
            result[field] = float(result[field])
    if "longitude" in result and "latitude" in result:
        result["location"] = {
            "type": "Point",
            "coordinates": [result.pop("longitude"), result.pop("latitude")],
        }
    return result
