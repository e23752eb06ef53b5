"""Teacher account management (admin only)."""

from __future__ import annotations

from flask import Blueprint, abort, jsonify
from flask_login import current_user

from access import can_manage_teachers
from audit import log_event
from auth import hash_password
from extensions import get_store
from helpers import forbid_unless, invalid, request_payload
from schemas import TeacherIn, TeacherUpdate

bp = Blueprint("teachers", __name__)


@bp.before_request
def _admins_only():
    if not current_user.is_authenticated:
        abort(401)
    forbid_unless(can_manage_teachers(current_user))


def _teacher_or_404(teacher_id: int):
    user = get_store().get_user(teacher_id)
    if user is None or not user.is_teacher:
        abort(404, description="Teacher not found")
    return user


@bp.route("/api/teachers")
def list_teachers():
    return jsonify([t.to_dict() for t in get_store().list_teachers()])


@bp.route("/api/teachers/<int:teacher_id>")
def get_teacher(teacher_id):
    return jsonify(_teacher_or_404(teacher_id).to_dict())


@bp.route("/api/teachers", methods=["POST"])
def create_teacher():
    store = get_store()
    data = TeacherIn.model_validate(request_payload())
    email = str(data.email).lower()
    if store.get_user_by_email(email):
        invalid("email", "An account with this email already exists.")

    teacher = store.create_user({
        "email": email,
        "password_hash": hash_password(data.password),
        "name": data.name,
        "role": "teacher",
        "assigned_classes": data.assigned_classes,
    })
    log_event("teacher_created", current_user.id, f"teacher_id={teacher.id}")
    return jsonify(teacher.to_dict()), 201


@bp.route("/api/teachers/<int:teacher_id>", methods=["PUT", "PATCH"])
def update_teacher(teacher_id):
    store = get_store()
    teacher = _teacher_or_404(teacher_id)
    data = TeacherUpdate.model_validate(request_payload())

    fields: dict = {}
    if data.name is not None:
        fields["name"] = data.name
    if data.email is not None:
        email = str(data.email).lower()
        other = store.get_user_by_email(email)
        if other is not None and other.id != teacher.id:
            invalid("email", "An account with this email already exists.")
        fields["email"] = email
    if data.password is not None:
        fields["password_hash"] = hash_password(data.password)
    if data.assigned_classes is not None:
        fields["assigned_classes"] = data.assigned_classes

    updated = store.update_user(teacher_id, fields)
    log_event("teacher_updated", current_user.id, f"teacher_id={teacher_id}")
    return jsonify(updated.to_dict())


@bp.route("/api/teachers/<int:teacher_id>", methods=["DELETE"])
def delete_teacher(teacher_id):
    _teacher_or_404(teacher_id)
    get_store().delete_user(teacher_id)
    log_event("teacher_deleted", current_user.id, f"teacher_id={teacher_id}")
    return jsonify({"message": "Teacher deleted"})
