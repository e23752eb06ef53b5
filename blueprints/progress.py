"""Progress entries: ratings across the five development areas."""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import current_user

from access import can_access_progress, is_admin
from audit import log_event
from extensions import get_store
from helpers import date_arg, forbid_unless, found_or_404, int_arg, request_payload, staff_required
from schemas import ProgressIn, merge_payload

bp = Blueprint("progress", __name__)


def _entry_student(entry):
    return found_or_404(get_store().get_student(entry.student_id), "Student not found")


@bp.route("/api/progress")
@staff_required
def list_progress():
    store = get_store()
    student_id = int_arg("studentId")
    start, end = date_arg("startDate"), date_arg("endDate")

    if student_id is not None:
        student = found_or_404(store.get_student(student_id), "Student not found")
        forbid_unless(can_access_progress(current_user, student))
        entries = store.list_progress(student_id=student_id, start_date=start, end_date=end)
    else:
        entries = store.list_progress(start_date=start, end_date=end)
        if not is_admin(current_user):
            own = {s.id for s in store.list_students(teacher_id=current_user.id)}
            entries = [e for e in entries if e.student_id in own]
    return jsonify([e.to_dict() for e in entries])


@bp.route("/api/progress", methods=["POST"])
@staff_required
def create_progress():
    store = get_store()
    data = ProgressIn.model_validate(request_payload())
    student = found_or_404(store.get_student(data.student_id), "Student not found")
    forbid_unless(can_access_progress(current_user, student))

    fields = data.model_dump(mode="json")
    fields["created_by"] = current_user.id
    entry = store.create_progress(fields)
    return jsonify(entry.to_dict()), 201


@bp.route("/api/progress/<int:entry_id>")
@staff_required
def get_progress(entry_id):
    entry = found_or_404(get_store().get_progress(entry_id), "Progress entry not found")
    forbid_unless(can_access_progress(current_user, _entry_student(entry)))
    return jsonify(entry.to_dict())


@bp.route("/api/progress/<int:entry_id>", methods=["PUT", "PATCH"])
@staff_required
def update_progress(entry_id):
    store = get_store()
    entry = found_or_404(store.get_progress(entry_id), "Progress entry not found")
    forbid_unless(can_access_progress(current_user, _entry_student(entry)))

    data = ProgressIn.model_validate(merge_payload(entry.to_dict(), request_payload()))
    if data.student_id != entry.student_id:
        target = found_or_404(store.get_student(data.student_id), "Student not found")
        forbid_unless(can_access_progress(current_user, target))

    updated = store.update_progress(entry_id, data.model_dump(mode="json"))
    return jsonify(updated.to_dict())


@bp.route("/api/progress/<int:entry_id>", methods=["DELETE"])
@staff_required
def delete_progress(entry_id):
    store = get_store()
    entry = found_or_404(store.get_progress(entry_id), "Progress entry not found")
    forbid_unless(can_access_progress(current_user, _entry_student(entry)))
    store.delete_progress(entry_id)
    log_event("progress_deleted", current_user.id, f"entry_id={entry_id}")
    return jsonify({"message": "Progress entry deleted"})
