"""
Domain records for the pre-primary record keeper.

Plain dataclasses shared by both storage backends. Field names are
snake_case internally; ``to_dict()`` produces the camelCase wire format.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

ROLES = ("admin", "teacher")
CLASS_LEVELS = ("Nursery", "LKG", "UKG")
LEARNING_ABILITIES = ("Talented", "Average", "Slow Learner")
WRITING_SPEEDS = ("Speed Writing", "Slow Writing", "N/A")
PROGRESS_RATINGS = ("Excellent", "Good", "Needs Improvement")
PLAN_TYPES = ("Annual", "Monthly", "Weekly")

RATING_FIELDS = (
    "social_skills",
    "pre_literacy",
    "pre_numeracy",
    "motor_skills",
    "emotional_development",
)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


@dataclass
class User:
    id: int
    email: str
    password_hash: str
    name: str
    role: str = "teacher"
    assigned_classes: list[str] = field(default_factory=list)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_teacher(self) -> bool:
        return self.role == "teacher"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "assignedClasses": list(self.assigned_classes),
        }


@dataclass
class Student:
    id: int
    name: str
    age: int
    class_name: str
    learning_ability: str
    teacher_id: int
    writing_speed: str = "N/A"
    parent_contact: str | None = None
    notes: str | None = None
    photo_url: str | None = None
    photo_public_id: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "age": self.age,
            "class": self.class_name,
            "parentContact": self.parent_contact,
            "learningAbility": self.learning_ability,
            "writingSpeed": self.writing_speed,
            "notes": self.notes,
            "photoUrl": self.photo_url,
            "photoPublicId": self.photo_public_id,
            "teacherId": self.teacher_id,
        }


@dataclass
class ProgressEntry:
    id: int
    student_id: int
    date: str
    social_skills: str
    pre_literacy: str
    pre_numeracy: str
    motor_skills: str
    emotional_development: str
    created_by: int
    comments: str | None = None

    def ratings(self) -> dict[str, str]:
        return {f: getattr(self, f) for f in RATING_FIELDS}

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "studentId": self.student_id,
            "date": self.date,
            "comments": self.comments,
            "createdBy": self.created_by,
        }
        data.update({_camel(k): v for k, v in self.ratings().items()})
        return data


@dataclass
class TeachingPlan:
    id: int
    type: str
    class_name: str
    title: str
    description: str
    activities: str
    goals: str
    start_date: str
    end_date: str
    created_by: int
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "class": self.class_name,
            "title": self.title,
            "description": self.description,
            "activities": self.activities,
            "goals": self.goals,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "createdBy": self.created_by,
            "createdAt": self.created_at,
        }


@dataclass
class AiSuggestion:
    prompt: str
    response: str
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())
