"""PDF and Excel report downloads."""

from __future__ import annotations

from flask import Blueprint, Response, current_app
from flask_login import current_user

from audit import log_event
from export import (
    PLAN_REPORT,
    XLSX_MIMETYPE,
    PlanRecord,
    StudentRecord,
    generate_excel,
    generate_pdf,
    report_filename,
)
from extensions import get_store
from helpers import request_payload, staff_required, visible_plans, visible_students
from photos import load_photo
from schemas import ReportIn

bp = Blueprint("reports", __name__)


def _user_name(user_id: int, names: dict[int, str]) -> str:
    if user_id not in names:
        user = get_store().get_user(user_id)
        names[user_id] = user.name if user else "Unknown"
    return names[user_id]


def _collect_records(params: ReportIn) -> list:
    """Fetch report rows with the same visibility rules as the list endpoints."""
    store = get_store()
    start = params.start_date.isoformat() if params.start_date else None
    end = params.end_date.isoformat() if params.end_date else None
    names: dict[int, str] = {}

    if params.type == PLAN_REPORT:
        plans = visible_plans(type=params.plan_type, class_name=params.class_name,
                              teacher_id=params.teacher_id, start_date=start, end_date=end)
        return [PlanRecord(plan=p, creator_name=_user_name(p.created_by, names)) for p in plans]

    students = visible_students(class_name=params.class_name, teacher_id=params.teacher_id)
    return [
        StudentRecord(
            student=s,
            teacher_name=_user_name(s.teacher_id, names),
            entries=store.list_progress(student_id=s.id, start_date=start, end_date=end),
        )
        for s in students
    ]


def _download(content: bytes, mimetype: str, filename: str) -> Response:
    return Response(
        content,
        mimetype=mimetype,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@bp.route("/api/reports/pdf", methods=["POST"])
@staff_required
def pdf_report():
    params = ReportIn.model_validate(request_payload())
    records = _collect_records(params)

    config = current_app.config
    loader = (lambda url: load_photo(url, config)) if params.include_photos else None
    content = generate_pdf(
        params.type, records, photo_loader=loader,
        school=config["SCHOOL_NAME"], address=config["SCHOOL_ADDRESS"],
    )
    log_event("report_export", current_user.id, f"format=pdf type={params.type} rows={len(records)}")
    return _download(content, "application/pdf", report_filename(params.type, "pdf"))


@bp.route("/api/reports/excel", methods=["POST"])
@staff_required
def excel_report():
    params = ReportIn.model_validate(request_payload())
    records = _collect_records(params)
    content = generate_excel(params.type, records)
    log_event("report_export", current_user.id, f"format=xlsx type={params.type} rows={len(records)}")
    return _download(content, XLSX_MIMETYPE, report_filename(params.type, "xlsx"))
