"""Student records, photo upload, teacher assignment and per-student progress."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user

from access import can_access_class, can_access_progress, can_access_student, can_create_student, is_admin
from audit import log_event
from extensions import get_store
from helpers import (
    admin_required,
    check_teacher_holds_class,
    date_arg,
    forbid_unless,
    found_or_404,
    int_arg,
    request_payload,
    staff_required,
    visible_students,
)
from photos import StoredPhoto, delete_photo, read_photo, store_photo
from schemas import AssignIn, StudentIn, merge_payload

bp = Blueprint("students", __name__)


def _uploaded_photo() -> StoredPhoto | None:
    """Validate and host the multipart ``photo`` field, if one was sent.

    This is the only way a photo gets onto a record; ``photoUrl`` and
    ``photoPublicId`` in a request body are ignored.
    """
    file = request.files.get("photo")
    if file is None or not file.filename:
        return None
    content, ext = read_photo(file, current_app.config["MAX_PHOTO_BYTES"])
    return store_photo(content, ext, current_app.config)


def _student_body(student, photo: StoredPhoto | None = None) -> dict:
    body = student.to_dict()
    if photo is not None:
        body["photoSource"] = photo.source
    return body


# ── Students ───────────────────────────────────────────────

@bp.route("/api/students")
@staff_required
def list_students():
    students = visible_students(
        class_name=request.args.get("class") or None,
        teacher_id=int_arg("teacherId"),
        learning_ability=request.args.get("learningAbility") or None,
    )
    return jsonify([s.to_dict() for s in students])


@bp.route("/api/students", methods=["POST"])
@staff_required
def create_student():
    payload = request_payload()
    if not is_admin(current_user) and payload.get("teacherId") in (None, ""):
        payload["teacherId"] = current_user.id

    data = StudentIn.model_validate(payload)
    forbid_unless(
        can_create_student(current_user, data.class_name, data.teacher_id),
        "You can only add students to your own classes",
    )
    check_teacher_holds_class(data.teacher_id, data.class_name)

    photo = _uploaded_photo()
    fields = data.model_dump()
    if photo is not None:
        fields.update(photo_url=photo.url, photo_public_id=photo.public_id)

    student = get_store().create_student(fields)
    log_event("student_created", current_user.id, f"student_id={student.id}")
    return jsonify(_student_body(student, photo)), 201


@bp.route("/api/students/<int:student_id>")
@staff_required
def get_student(student_id):
    student = found_or_404(get_store().get_student(student_id), "Student not found")
    forbid_unless(can_access_student(current_user, student))
    return jsonify(student.to_dict())


@bp.route("/api/students/<int:student_id>", methods=["PUT", "PATCH"])
@staff_required
def update_student(student_id):
    store = get_store()
    student = found_or_404(store.get_student(student_id), "Student not found")
    forbid_unless(can_access_student(current_user, student))

    data = StudentIn.model_validate(merge_payload(student.to_dict(), request_payload()))
    if not is_admin(current_user):
        forbid_unless(data.teacher_id == current_user.id, "Teachers cannot reassign students")
        forbid_unless(can_access_class(current_user, data.class_name),
                      "You don't have access to this class")
    check_teacher_holds_class(data.teacher_id, data.class_name)

    photo = _uploaded_photo()
    fields = data.model_dump()
    if photo is not None:
        fields.update(photo_url=photo.url, photo_public_id=photo.public_id)

    updated = store.update_student(student_id, fields)
    if photo is not None and student.photo_public_id:
        delete_photo(student.photo_public_id, current_app.config)
    return jsonify(_student_body(updated, photo))


@bp.route("/api/students/<int:student_id>", methods=["DELETE"])
@staff_required
def delete_student(student_id):
    store = get_store()
    student = found_or_404(store.get_student(student_id), "Student not found")
    forbid_unless(can_access_student(current_user, student))

    store.delete_student(student_id)
    delete_photo(student.photo_public_id, current_app.config)
    log_event("student_deleted", current_user.id, f"student_id={student_id}")
    return jsonify({"message": "Student deleted"})


@bp.route("/api/students/<int:student_id>/assign", methods=["POST"])
@admin_required
def assign_student(student_id):
    store = get_store()
    student = found_or_404(store.get_student(student_id), "Student not found")
    data = AssignIn.model_validate(request_payload())
    check_teacher_holds_class(data.teacher_id, student.class_name)

    store.assign_student(student_id, data.teacher_id)
    log_event("student_assigned", current_user.id,
              f"student_id={student_id} teacher_id={data.teacher_id}")
    return jsonify(store.get_student(student_id).to_dict())


@bp.route("/api/students/<int:student_id>/progress")
@staff_required
def student_progress(student_id):
    store = get_store()
    student = found_or_404(store.get_student(student_id), "Student not found")
    forbid_unless(can_access_progress(current_user, student))
    entries = store.list_progress(
        student_id=student_id,
        start_date=date_arg("startDate"),
        end_date=date_arg("endDate"),
    )
    return jsonify([e.to_dict() for e in entries])
