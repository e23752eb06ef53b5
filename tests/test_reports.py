"""Tests for PDF/Excel generation and the report endpoints."""

from __future__ import annotations

import base64
import io
from unittest.mock import MagicMock

import openpyxl
import pytest

from export import (
    PLAN_REPORT,
    PROGRESS_REPORT,
    XLSX_MIMETYPE,
    PlanRecord,
    StudentRecord,
    generate_excel,
    generate_pdf,
)
from models import ProgressEntry, Student, TeachingPlan

# Smallest valid PNG: 1x1 transparent pixel
TINY_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


def _student(**overrides):
    data = dict(id=1, name="Aarav Sharma", age=4, class_name="LKG", learning_ability="Average",
                teacher_id=2, writing_speed="Slow Writing", photo_url="https://example.com/a.png")
    data.update(overrides)
    return Student(**data)


def _entry(**overrides):
    data = dict(id=1, student_id=1, date="2026-03-01", social_skills="Excellent", pre_literacy="Good",
                pre_numeracy="Needs Improvement", motor_skills="Good", emotional_development="Good",
                created_by=2, comments="Loves counting songs")
    data.update(overrides)
    return ProgressEntry(**data)


def _plan(**overrides):
    data = dict(id=1, type="Weekly", class_name="LKG", title="Colours week", description="Primary colours",
                activities="Painting", goals="Name colours", start_date="2026-03-02", end_date="2026-03-06",
                created_by=2)
    data.update(overrides)
    return TeachingPlan(**data)


def _sheet(content: bytes):
    return openpyxl.load_workbook(io.BytesIO(content)).active


# ── Generators ──────────────────────────────────────────────


class TestGeneratePdf:
    def test_progress_pdf(self):
        records = [StudentRecord(student=_student(), teacher_name="Anita", entries=[_entry()])]
        content = generate_pdf(PROGRESS_REPORT, records)
        assert content.startswith(b"%PDF")

    def test_plan_pdf(self):
        content = generate_pdf(PLAN_REPORT, [PlanRecord(plan=_plan(), creator_name="Anita")])
        assert content.startswith(b"%PDF")

    def test_empty_report(self):
        assert generate_pdf(PROGRESS_REPORT, []).startswith(b"%PDF")

    def test_photo_embedded_when_loader_succeeds(self):
        records = [StudentRecord(student=_student(), teacher_name="Anita")]
        loader = MagicMock(return_value=TINY_PNG)
        content = generate_pdf(PROGRESS_REPORT, records, photo_loader=loader)
        loader.assert_called_once_with("https://example.com/a.png")
        assert b"/Subtype /Image" in content

    def test_failed_photo_omits_only_the_image(self):
        records = [
            StudentRecord(student=_student(), teacher_name="Anita"),
            StudentRecord(student=_student(id=2, name="Sita", photo_url="https://example.com/b.png"),
                          teacher_name="Anita"),
        ]
        loader = MagicMock(side_effect=[None, b"not an image"])
        content = generate_pdf(PROGRESS_REPORT, records, photo_loader=loader)
        assert content.startswith(b"%PDF")
        assert loader.call_count == 2
        assert b"/Subtype /Image" not in content

    def test_unicode_text_does_not_break_rendering(self):
        student = _student(name="Aarav — “star”", notes="Speaks नेपाली")
        content = generate_pdf(PROGRESS_REPORT, [StudentRecord(student=student, teacher_name="Anita")])
        assert content.startswith(b"%PDF")

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            generate_pdf("attendance", [])


class TestGenerateExcel:
    def test_progress_sheet(self):
        records = [
            StudentRecord(student=_student(), teacher_name="Anita", entries=[_entry()]),
            StudentRecord(student=_student(id=2, name="Sita"), teacher_name="Anita"),
        ]
        ws = _sheet(generate_excel(PROGRESS_REPORT, records))
        assert ws.title == "Student Progress"
        header = [c.value for c in ws[1]]
        assert header[:7] == ["Student Name", "Age", "Class", "Teacher", "Learning Ability", "Writing Speed", "Date"]
        assert header[-1] == "Comments"
        assert ws.auto_filter.ref

        row = [c.value for c in ws[2]]
        assert row[0] == "Aarav Sharma"
        assert row[7] == "Excellent"
        assert row[-1] == "Loves counting songs"
        assert ws.cell(row=2, column=8).fill.fgColor.rgb.endswith("C6F6D5")
        assert ws.cell(row=2, column=10).fill.fgColor.rgb.endswith("FEE2E2")

        no_data = [c.value for c in ws[3]]
        assert no_data[0] == "Sita"
        assert no_data[6] == "No data"

    def test_header_style(self):
        ws = _sheet(generate_excel(PROGRESS_REPORT, []))
        cell = ws.cell(row=1, column=1)
        assert cell.font.bold
        assert cell.fill.fgColor.rgb.endswith("7C3AED")

    def test_plan_sheet(self):
        ws = _sheet(generate_excel(PLAN_REPORT, [PlanRecord(plan=_plan(), creator_name="Anita")]))
        assert ws.title == "Teaching Plans"
        assert [c.value for c in ws[2]][:6] == ["Colours week", "Weekly", "LKG", "2026-03-02", "2026-03-06", "Anita"]


# ── Endpoints ───────────────────────────────────────────────


class TestReportEndpoints:
    def test_requires_login(self, client):
        assert client.post("/api/reports/pdf", json={}).status_code == 401

    def test_pdf_download(self, teacher_client, make_student, make_progress):
        make_progress(make_student().id)
        resp = teacher_client.post("/api/reports/pdf", json={"type": "student-progress"})
        assert resp.status_code == 200
        assert resp.mimetype == "application/pdf"
        assert resp.headers["Content-Disposition"].startswith('attachment; filename="student_progress_')
        assert resp.data.startswith(b"%PDF")

    def test_excel_download(self, teacher_client, make_plan):
        make_plan()
        resp = teacher_client.post("/api/reports/excel", json={"type": "teaching-plan"})
        assert resp.status_code == 200
        assert resp.mimetype == XLSX_MIMETYPE
        assert 'filename="teaching_plans_' in resp.headers["Content-Disposition"]
        assert _sheet(resp.data).max_row == 2

    def test_teacher_report_scoped_to_own_students(self, teacher_client, make_student, users):
        make_student(name="Mine")
        make_student(name="Theirs", class_name="UKG", age=5, teacher_id=users.other.id)
        resp = teacher_client.post("/api/reports/excel", json={"type": "student-progress"})
        names = {row[0].value for row in _sheet(resp.data).iter_rows(min_row=2)}
        assert names == {"Mine"}

    def test_admin_report_filters(self, admin_client, make_student, make_progress, users):
        a = make_student(name="Mine")
        make_student(name="Theirs", class_name="UKG", age=5, teacher_id=users.other.id)
        make_progress(a.id, date="2026-01-10")
        make_progress(a.id, date="2026-02-10")
        resp = admin_client.post("/api/reports/excel", json={
            "type": "student-progress", "class": "LKG", "startDate": "2026-02-01",
        })
        rows = [[c.value for c in r] for r in _sheet(resp.data).iter_rows(min_row=2)]
        assert [(r[0], r[6]) for r in rows] == [("Mine", "2026-02-10")]
        assert rows[0][3] == "Anita Gurung"

    def test_plan_type_filter(self, admin_client, make_plan):
        make_plan(type="Annual", start_date="2026-01-01", end_date="2026-12-31")
        make_plan()
        resp = admin_client.post("/api/reports/excel", json={"type": "teaching-plan", "planType": "Annual"})
        rows = list(_sheet(resp.data).iter_rows(min_row=2, values_only=True))
        assert [r[1] for r in rows] == ["Annual"]

    def test_include_photos_uses_loader(self, teacher_client, make_student, monkeypatch):
        make_student(photo_url="https://res.cloudinary.com/demo/kid.png")
        calls = []

        def fake_load(url, config):
            calls.append(url)
            return None

        monkeypatch.setattr("blueprints.reports.load_photo", fake_load)
        resp = teacher_client.post("/api/reports/pdf", json={"includePhotos": True})
        assert resp.status_code == 200
        assert calls == ["https://res.cloudinary.com/demo/kid.png"]

    def test_invalid_report_type(self, teacher_client):
        assert teacher_client.post("/api/reports/pdf", json={"type": "attendance"}).status_code == 400
