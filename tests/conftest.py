"""
Test fixtures for the pre-primary records API.

Provides app, client, admin_client and teacher_client fixtures backed by a
fresh in-memory store, plus factories for students, progress and plans.
External services (Cloudinary, DeepSeek) are never configured in tests.
"""

from __future__ import annotations

import sys
from pathlib import Path
from types import SimpleNamespace

import pytest
from werkzeug.security import generate_password_hash

sys.path.insert(0, str(Path(__file__).parent.parent))

from storage import MemStorage  # noqa: E402

ADMIN_PASSWORD = "AdminPass1"
TEACHER_PASSWORD = "TeacherPass1"

RATINGS = {
    "socialSkills": "Good",
    "preLiteracy": "Excellent",
    "preNumeracy": "Good",
    "motorSkills": "Needs Improvement",
    "emotionalDevelopment": "Good",
}


@pytest.fixture
def store():
    return MemStorage()


@pytest.fixture
def users(store):
    """Admin, a Nursery/LKG teacher and a UKG teacher."""
    admin = store.create_user({
        "email": "admin@school.com",
        "password_hash": generate_password_hash(ADMIN_PASSWORD),
        "name": "Head Teacher",
        "role": "admin",
    })
    teacher = store.create_user({
        "email": "teacher@school.com",
        "password_hash": generate_password_hash(TEACHER_PASSWORD),
        "name": "Anita Gurung",
        "role": "teacher",
        "assigned_classes": ["Nursery", "LKG"],
    })
    other = store.create_user({
        "email": "other@school.com",
        "password_hash": generate_password_hash(TEACHER_PASSWORD),
        "name": "Champa Devi",
        "role": "teacher",
        "assigned_classes": ["UKG"],
    })
    return SimpleNamespace(admin=admin, teacher=teacher, other=other)


@pytest.fixture
def app(tmp_path, store, users):
    """Create app with an injected in-memory store for testing."""
    from app import create_app

    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret-key",
        "UPLOAD_DIR": str(tmp_path / "uploads"),
        "SEED_DEMO_DATA": False,
    }, store=store)

    yield app


def _login(app, email: str, password: str):
    client = app.test_client()
    resp = client.post("/api/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.get_json()
    return client


@pytest.fixture
def client(app):
    """Unauthenticated test client."""
    return app.test_client()


@pytest.fixture
def admin_client(app, users):
    return _login(app, users.admin.email, ADMIN_PASSWORD)


@pytest.fixture
def teacher_client(app, users):
    """Logged in as the Nursery/LKG teacher."""
    return _login(app, users.teacher.email, TEACHER_PASSWORD)


@pytest.fixture
def other_teacher_client(app, users):
    """Logged in as the UKG teacher."""
    return _login(app, users.other.email, TEACHER_PASSWORD)


@pytest.fixture
def make_student(store, users):
    def _make(**overrides):
        data = {
            "name": "Aarav Sharma",
            "age": 4,
            "class_name": "LKG",
            "learning_ability": "Average",
            "writing_speed": "Slow Writing",
            "parent_contact": "9800000000",
            "teacher_id": users.teacher.id,
        }
        data.update(overrides)
        return store.create_student(data)
    return _make


@pytest.fixture
def make_progress(store, users):
    def _make(student_id: int, **overrides):
        data = {
            "student_id": student_id,
            "date": "2026-03-01",
            "social_skills": "Good",
            "pre_literacy": "Excellent",
            "pre_numeracy": "Good",
            "motor_skills": "Needs Improvement",
            "emotional_development": "Good",
            "created_by": users.teacher.id,
        }
        data.update(overrides)
        return store.create_progress(data)
    return _make


@pytest.fixture
def make_plan(store, users):
    def _make(**overrides):
        data = {
            "type": "Weekly",
            "class_name": "LKG",
            "title": "Colours week",
            "description": "Learning primary colours",
            "activities": "Painting, colour hunt",
            "goals": "Name red, blue and yellow",
            "start_date": "2026-03-02",
            "end_date": "2026-03-06",
            "created_by": users.teacher.id,
        }
        data.update(overrides)
        return store.create_plan(data)
    return _make


@pytest.fixture
def student_payload(users):
    return {
        "name": "Sita Karki",
        "age": 4,
        "class": "LKG",
        "learningAbility": "Talented",
        "writingSpeed": "Speed Writing",
        "parentContact": "9811111111",
        "teacherId": users.teacher.id,
    }


@pytest.fixture
def plan_payload():
    return {
        "type": "Monthly",
        "class": "LKG",
        "title": "Festival month",
        "description": "Dashain and Tihar themes",
        "activities": "Kite making, rangoli",
        "goals": "Talk about family traditions",
        "startDate": "2026-10-01",
        "endDate": "2026-10-31",
    }
