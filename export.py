"""PDF and Excel report generation using fpdf2 and openpyxl.

Both generators are pure: they take already-fetched records and return the
file content as bytes. Photo embedding goes through an optional
``photo_loader(url) -> bytes | None`` so callers control network access.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Sequence

import openpyxl
from fpdf import FPDF
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from models import ProgressEntry, RATING_FIELDS, Student, TeachingPlan

logger = logging.getLogger(__name__)

PROGRESS_REPORT = "student-progress"
PLAN_REPORT = "teaching-plan"

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

DEFAULT_SCHOOL = "Nepal Central High School"
DEFAULT_ADDRESS = "Narephat, Kathmandu"

RATING_LABELS = {
    "social_skills": "Social Skills",
    "pre_literacy": "Pre-Literacy",
    "pre_numeracy": "Pre-Numeracy",
    "motor_skills": "Motor Skills",
    "emotional_development": "Emotional Development",
}

# Background colours per rating (hex, no '#')
RATING_FILLS = {
    "Excellent": "C6F6D5",
    "Good": "FEF3C7",
    "Needs Improvement": "FEE2E2",
}

_ACCENT = (124, 58, 237)
_ACCENT_HEX = "7C3AED"

PhotoLoader = Callable[[str], "bytes | None"]


@dataclass
class StudentRecord:
    student: Student
    teacher_name: str
    entries: list[ProgressEntry] = field(default_factory=list)


@dataclass
class PlanRecord:
    plan: TeachingPlan
    creator_name: str


def _safe(text) -> str:
    """Replace unicode chars that latin-1 Helvetica can't handle."""
    text = (
        str(text if text is not None else "")
        .replace("\u2014", "-")   # em-dash
        .replace("\u2013", "-")   # en-dash
        .replace("\u2018", "'")   # left single quote
        .replace("\u2019", "'")   # right single quote
        .replace("\u201c", '"')   # left double quote
        .replace("\u201d", '"')   # right double quote
        .replace("\u2026", "...")  # ellipsis
        .replace("\u2022", "-")   # bullet
    )
    return text.encode("latin-1", "replace").decode("latin-1")


def _check_kind(kind: str) -> None:
    if kind not in (PROGRESS_REPORT, PLAN_REPORT):
        raise ValueError(f"Unknown report type: {kind}")


def report_filename(kind: str, extension: str) -> str:
    stem = "student_progress" if kind == PROGRESS_REPORT else "teaching_plans"
    return f"{stem}_{date.today().isoformat()}.{extension}"


# ── PDF ────────────────────────────────────────────────────────


class _ReportPDF(FPDF):
    """FPDF with the school footer on every page."""

    def __init__(self, school: str, address: str) -> None:
        super().__init__()
        self.school = school
        self.address = address

    def footer(self) -> None:
        self.set_y(-15)
        self.set_font("Helvetica", "I", 8)
        self.set_text_color(120, 120, 120)
        self.cell(0, 5, f"Page {self.page_no()} of {{nb}}", align="C", new_x="LMARGIN", new_y="NEXT")
        self.cell(0, 5, _safe(f"{self.school}, {self.address}"), align="C")
        self.set_text_color(0, 0, 0)


def _header(pdf: FPDF, title: str, school: str) -> None:
    """Add the first page with the school title block."""
    pdf.add_page()
    pdf.set_fill_color(*_ACCENT)
    pdf.rect(0, 0, 210, 38, "F")
    pdf.set_text_color(255, 255, 255)
    pdf.set_font("Helvetica", "B", 18)
    pdf.set_xy(10, 7)
    pdf.cell(0, 9, _safe(school), align="C")
    pdf.set_font("Helvetica", "", 12)
    pdf.set_xy(10, 17)
    pdf.cell(0, 7, _safe(title), align="C")
    pdf.set_font("Helvetica", "", 9)
    pdf.set_xy(10, 26)
    pdf.cell(0, 6, f"Generated on {date.today().strftime('%d %B %Y')}", align="C")
    pdf.set_text_color(0, 0, 0)
    pdf.set_y(46)


def _section_title(pdf: FPDF, text: str) -> None:
    pdf.set_font("Helvetica", "B", 12)
    pdf.set_text_color(*_ACCENT)
    pdf.cell(0, 8, _safe(text), new_x="LMARGIN", new_y="NEXT")
    pdf.set_text_color(0, 0, 0)
    pdf.ln(1)


def _body(pdf: FPDF, text: str) -> None:
    pdf.set_font("Helvetica", "", 10)
    pdf.multi_cell(0, 5, _safe(text), new_x="LMARGIN", new_y="NEXT")
    pdf.ln(1)


def _labelled(pdf: FPDF, label: str, value) -> None:
    pdf.set_font("Helvetica", "B", 10)
    pdf.cell(38, 6, _safe(f"{label}:"))
    pdf.set_font("Helvetica", "", 10)
    pdf.multi_cell(0, 6, _safe(value if value not in (None, "") else "-"), new_x="LMARGIN", new_y="NEXT")


def _embed_photo(pdf: FPDF, url: str | None, photo_loader: PhotoLoader | None) -> bool:
    """Draw the student's photo at the right margin. Failures omit the image only."""
    if not url or photo_loader is None:
        return False
    try:
        data = photo_loader(url)
        if not data:
            return False
        pdf.image(io.BytesIO(data), x=165, y=pdf.get_y(), w=30, h=30)
        return True
    except Exception as e:
        logger.warning("Skipping photo %s in PDF: %s", url, e)
        return False


def _render_student(pdf: FPDF, record: StudentRecord, photo_loader: PhotoLoader | None) -> None:
    student = record.student
    if pdf.get_y() > 220:
        pdf.add_page()

    _section_title(pdf, student.name)
    top = pdf.get_y()
    has_photo = _embed_photo(pdf, student.photo_url, photo_loader)

    _labelled(pdf, "Age", f"{student.age} years")
    _labelled(pdf, "Class", student.class_name)
    _labelled(pdf, "Teacher", record.teacher_name)
    _labelled(pdf, "Learning Ability", student.learning_ability)
    _labelled(pdf, "Writing Speed", student.writing_speed)
    _labelled(pdf, "Parent Contact", student.parent_contact)
    if student.notes:
        _labelled(pdf, "Notes", student.notes)
    if has_photo:
        pdf.set_y(max(pdf.get_y(), top + 32))
    pdf.ln(2)

    if not record.entries:
        pdf.set_font("Helvetica", "I", 10)
        pdf.cell(0, 6, "No progress entries recorded.", new_x="LMARGIN", new_y="NEXT")
        pdf.ln(4)
        return

    widths = [22] + [33.6] * len(RATING_FIELDS)
    pdf.set_font("Helvetica", "B", 8)
    pdf.set_fill_color(237, 233, 254)
    pdf.cell(widths[0], 7, "Date", border=1, fill=True)
    for width, name in zip(widths[1:], RATING_FIELDS):
        pdf.cell(width, 7, RATING_LABELS[name], border=1, fill=True, align="C")
    pdf.ln()

    pdf.set_font("Helvetica", "", 8)
    for entry in record.entries:
        pdf.cell(widths[0], 6, _safe(entry.date), border=1)
        for width, name in zip(widths[1:], RATING_FIELDS):
            pdf.cell(width, 6, _safe(getattr(entry, name)), border=1, align="C")
        pdf.ln()
        if entry.comments:
            pdf.set_font("Helvetica", "I", 8)
            pdf.multi_cell(0, 5, _safe(f"Comments: {entry.comments}"), border=1, new_x="LMARGIN", new_y="NEXT")
            pdf.set_font("Helvetica", "", 8)
    pdf.ln(5)


def _render_plan(pdf: FPDF, record: PlanRecord) -> None:
    plan = record.plan
    if pdf.get_y() > 220:
        pdf.add_page()

    _section_title(pdf, f"{plan.title} ({plan.type})")
    _labelled(pdf, "Class", plan.class_name)
    _labelled(pdf, "Period", f"{plan.start_date} to {plan.end_date}")
    _labelled(pdf, "Created By", record.creator_name)
    pdf.ln(1)
    for label, text in (("Description", plan.description),
                        ("Activities", plan.activities),
                        ("Goals", plan.goals)):
        pdf.set_font("Helvetica", "B", 10)
        pdf.cell(0, 6, label, new_x="LMARGIN", new_y="NEXT")
        _body(pdf, text)
    pdf.ln(4)


def generate_pdf(
    kind: str,
    records: Sequence[StudentRecord] | Sequence[PlanRecord],
    photo_loader: PhotoLoader | None = None,
    school: str = DEFAULT_SCHOOL,
    address: str = DEFAULT_ADDRESS,
) -> bytes:
    """Render a student-progress or teaching-plan report as PDF bytes."""
    _check_kind(kind)
    pdf = _ReportPDF(school, address)
    pdf.set_auto_page_break(auto=True, margin=22)

    if kind == PROGRESS_REPORT:
        _header(pdf, "Pre-Primary Student Records", school)
        if not records:
            _body(pdf, "No students match the selected filters.")
        for record in records:
            _render_student(pdf, record, photo_loader)
    else:
        _header(pdf, "Pre-Primary Teaching Plans", school)
        if not records:
            _body(pdf, "No teaching plans match the selected filters.")
        for record in records:
            _render_plan(pdf, record)

    return bytes(pdf.output())


# ── Excel ──────────────────────────────────────────────────────

PROGRESS_COLUMNS = [
    ("Student Name", 22), ("Age", 6), ("Class", 10), ("Teacher", 20),
    ("Learning Ability", 16), ("Writing Speed", 15), ("Date", 12),
    *[(RATING_LABELS[name], 18) for name in RATING_FIELDS],
    ("Comments", 40),
]

PLAN_COLUMNS = [
    ("Title", 28), ("Type", 10), ("Class", 10), ("Start Date", 12),
    ("End Date", 12), ("Created By", 20), ("Description", 40),
    ("Activities", 40), ("Goals", 40),
]


def _style_sheet(ws, columns: list[tuple[str, int]]) -> None:
    header_fill = PatternFill("solid", fgColor=_ACCENT_HEX)
    for cell in ws[1]:
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal="center", vertical="center")
    for idx, (_, width) in enumerate(columns, 1):
        ws.column_dimensions[get_column_letter(idx)].width = width
    ws.freeze_panes = "A2"
    ws.auto_filter.ref = ws.dimensions


def _progress_rows(records: Sequence[StudentRecord]):
    for record in records:
        s = record.student
        details = [s.name, s.age, s.class_name, record.teacher_name, s.learning_ability, s.writing_speed]
        if not record.entries:
            yield details + ["No data"] + ["-"] * len(RATING_FIELDS) + [""]
            continue
        for entry in record.entries:
            yield details + [entry.date] + [getattr(entry, f) for f in RATING_FIELDS] + [entry.comments or ""]


def generate_excel(kind: str, records: Sequence[StudentRecord] | Sequence[PlanRecord]) -> bytes:
    """Render a student-progress or teaching-plan report as XLSX bytes."""
    _check_kind(kind)
    wb = openpyxl.Workbook()
    ws = wb.active

    if kind == PROGRESS_REPORT:
        ws.title = "Student Progress"
        columns = PROGRESS_COLUMNS
        ws.append([name for name, _ in columns])
        rating_cols = range(8, 8 + len(RATING_FIELDS))
        for row in _progress_rows(records):
            ws.append(row)
            for col in rating_cols:
                cell = ws.cell(row=ws.max_row, column=col)
                colour = RATING_FILLS.get(cell.value)
                if colour:
                    cell.fill = PatternFill("solid", fgColor=colour)
    else:
        ws.title = "Teaching Plans"
        columns = PLAN_COLUMNS
        ws.append([name for name, _ in columns])
        for record in records:
            p = record.plan
            ws.append([p.title, p.type, p.class_name, p.start_date, p.end_date,
                       record.creator_name, p.description, p.activities, p.goals])
        for row in ws.iter_rows(min_row=2, min_col=7, max_col=9):
            for cell in row:
                cell.alignment = Alignment(wrap_text=True, vertical="top")

    _style_sheet(ws, columns)

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
