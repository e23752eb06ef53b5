"""
Shared helpers used across blueprints.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from functools import wraps
from typing import Any

from flask import abort, jsonify, request
from flask_login import current_user

from access import is_admin
from extensions import get_store
from models import Student, TeachingPlan


def roles_required(*roles: str) -> Callable:
    """Require an authenticated user whose role is one of ``roles``.

    Anonymous callers get 401, authenticated callers with another role 403.
    """
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def decorated(*args: Any, **kwargs: Any) -> Any:
            if not current_user.is_authenticated:
                abort(401)
            if getattr(current_user, "role", None) not in roles:
                abort(403, description="Unauthorized access")
            return f(*args, **kwargs)
        return decorated
    return decorator


admin_required = roles_required("admin")
staff_required = roles_required("admin", "teacher")


def request_payload() -> dict:
    """JSON body, or form fields for multipart requests."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def int_arg(name: str) -> int | None:
    """Parse an optional integer query argument; junk is a 400."""
    raw = request.args.get(name)
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except ValueError:
        abort(400, description=f"Invalid {name}")


def date_arg(name: str) -> str | None:
    """Parse an optional ISO date query argument; junk is a 400."""
    raw = request.args.get(name)
    if raw in (None, ""):
        return None
    try:
        return date.fromisoformat(raw).isoformat()
    except ValueError:
        abort(400, description=f"Invalid {name}")


def forbid_unless(allowed: bool, message: str = "Unauthorized access") -> None:
    if not allowed:
        abort(403, description=message)


def found_or_404(record: Any, message: str) -> Any:
    if record is None:
        abort(404, description=message)
    return record


def invalid(field: str, message: str) -> None:
    """Abort with the 400 validation error body for a single field."""
    response = jsonify({"message": "Invalid data", "errors": [{"field": field, "message": message}]})
    response.status_code = 400
    abort(response)


def check_teacher_holds_class(teacher_id: int, class_name: str) -> None:
    """A student's teacher must be a teacher assigned to the student's class."""
    teacher = get_store().get_user(teacher_id)
    if teacher is None or not teacher.is_teacher:
        invalid("teacherId", "Teacher not found")
    if class_name not in teacher.assigned_classes:
        invalid("teacherId", f"Teacher is not assigned to {class_name}")


def visible_students(class_name: str | None = None, teacher_id: int | None = None,
                     learning_ability: str | None = None) -> list[Student]:
    """Students the current user may see; teachers only get their own."""
    if not is_admin(current_user):
        teacher_id = current_user.id
    return get_store().list_students(class_name=class_name, teacher_id=teacher_id,
                                     learning_ability=learning_ability)


def visible_plans(type: str | None = None, class_name: str | None = None,
                  teacher_id: int | None = None, start_date: str | None = None,
                  end_date: str | None = None) -> list[TeachingPlan]:
    """Plans the current user may see; teachers only get the ones they wrote."""
    if not is_admin(current_user):
        teacher_id = current_user.id
    return get_store().list_plans(type=type, class_name=class_name, created_by=teacher_id,
                                  start_date=start_date, end_date=end_date)
