"""
Request payload schemas.

Every mutating endpoint validates its body against one of these models before
touching storage. A failure raises ``pydantic.ValidationError``; the app's
error handler turns it into a 400 listing each failing field.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

ClassLevel = Literal["Nursery", "LKG", "UKG"]
LearningAbility = Literal["Talented", "Average", "Slow Learner"]
WritingSpeed = Literal["Speed Writing", "Slow Writing", "N/A"]
ProgressRating = Literal["Excellent", "Good", "Needs Improvement"]
PlanType = Literal["Annual", "Monthly", "Weekly"]
Role = Literal["admin", "teacher"]
ReportType = Literal["student-progress", "teaching-plan"]


class _Payload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        str_strip_whitespace=True,
    )

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        # Multipart forms send empty strings for untouched inputs
        if isinstance(value, str) and value.strip() == "":
            return None
        return value


# ── Students ───────────────────────────────────────────────

class StudentIn(_Payload):
    name: str = Field(min_length=1, max_length=100)
    age: int = Field(ge=3, le=5)
    class_name: ClassLevel = Field(alias="class")
    parent_contact: Optional[str] = None
    learning_ability: LearningAbility
    writing_speed: WritingSpeed = "N/A"
    notes: Optional[str] = None
    teacher_id: int

    @field_validator("writing_speed", mode="before")
    @classmethod
    def _default_writing_speed(cls, value: Any) -> Any:
        return "N/A" if value in (None, "") else value

    @model_validator(mode="after")
    def _nursery_has_no_writing_speed(self) -> "StudentIn":
        if self.class_name == "Nursery":
            self.writing_speed = "N/A"
        return self


class AssignIn(_Payload):
    teacher_id: int


# ── Progress ───────────────────────────────────────────────

class ProgressIn(_Payload):
    student_id: int
    date: dt.date = Field(default_factory=dt.date.today)
    social_skills: ProgressRating
    pre_literacy: ProgressRating
    pre_numeracy: ProgressRating
    motor_skills: ProgressRating
    emotional_development: ProgressRating
    comments: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def _default_today(cls, value: Any) -> Any:
        return dt.date.today() if value in (None, "") else value


# ── Teaching plans ─────────────────────────────────────────

class PlanIn(_Payload):
    type: PlanType
    class_name: ClassLevel = Field(alias="class")
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    activities: str = Field(min_length=1)
    goals: str = Field(min_length=1)
    start_date: dt.date
    end_date: dt.date

    @field_validator("end_date")
    @classmethod
    def _ends_after_start(cls, value: dt.date, info) -> dt.date:
        start = info.data.get("start_date")
        if start is not None and value <= start:
            raise ValueError("End date must be after start date")
        return value


# ── Users ──────────────────────────────────────────────────

class TeacherIn(_Payload):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6)
    assigned_classes: list[ClassLevel] = Field(default_factory=list)


class TeacherUpdate(_Payload):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=6)
    assigned_classes: Optional[list[ClassLevel]] = None


class RegisterIn(_Payload):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str
    role: Role = "teacher"
    assigned_classes: list[ClassLevel] = Field(default_factory=list)

    @field_validator("password")
    @classmethod
    def _strong_password(cls, value: str) -> str:
        if len(value) < 8:
            raise ValueError("Password must be at least 8 characters.")
        if not any(c.isupper() for c in value):
            raise ValueError("Password must contain at least one uppercase letter.")
        if not any(c.islower() for c in value):
            raise ValueError("Password must contain at least one lowercase letter.")
        if not any(c.isdigit() for c in value):
            raise ValueError("Password must contain at least one digit.")
        return value


class LoginIn(_Payload):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


# ── Reports & AI ───────────────────────────────────────────

class ReportIn(_Payload):
    type: ReportType = "student-progress"
    class_name: Optional[ClassLevel] = Field(default=None, alias="class")
    teacher_id: Optional[int] = None
    plan_type: Optional[PlanType] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    include_photos: bool = False


class SuggestionIn(_Payload):
    prompt: str = Field(min_length=1, max_length=4000)
    class_level: Optional[ClassLevel] = None


# ── Helpers ────────────────────────────────────────────────

def merge_payload(current: dict, changes: dict) -> dict:
    """Shallow-merge request changes over the stored record's wire form."""
    merged = dict(current)
    merged.update({k: v for k, v in changes.items() if k != "id"})
    return merged


def error_list(exc: ValidationError) -> list[dict[str, str]]:
    """Flatten a pydantic error into ``[{"field", "message"}, ...]``."""
    errors = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()))
        message = err.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append({"field": loc or "__root__", "message": message})
    return errors
