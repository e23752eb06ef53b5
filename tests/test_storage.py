"""Storage tests, run against both the in-memory and SQLite backends."""

from __future__ import annotations

import pytest

from database import SqliteStorage
from models import Student
from storage import MemStorage, create_store


@pytest.fixture(params=["memory", "sqlite"])
def backend(request, tmp_path):
    if request.param == "memory":
        return MemStorage()
    return SqliteStorage(tmp_path / "records.db")


@pytest.fixture
def teacher(backend):
    return backend.create_user({
        "email": "Teacher@School.com",
        "password_hash": "hash",
        "name": "Binay Shrestha",
        "role": "teacher",
        "assigned_classes": ["LKG"],
    })


def _student(backend, teacher_id, **overrides):
    data = {
        "name": "Kiran",
        "age": 4,
        "class_name": "LKG",
        "learning_ability": "Average",
        "teacher_id": teacher_id,
    }
    data.update(overrides)
    return backend.create_student(data)


def _entry(backend, student_id, date="2026-02-10", **overrides):
    data = {
        "student_id": student_id,
        "date": date,
        "social_skills": "Good",
        "pre_literacy": "Good",
        "pre_numeracy": "Excellent",
        "motor_skills": "Good",
        "emotional_development": "Needs Improvement",
        "created_by": 1,
    }
    data.update(overrides)
    return backend.create_progress(data)


def _plan(backend, start, end, **overrides):
    data = {
        "type": "Weekly",
        "class_name": "LKG",
        "title": "Plan",
        "description": "d",
        "activities": "a",
        "goals": "g",
        "start_date": start,
        "end_date": end,
        "created_by": 1,
    }
    data.update(overrides)
    return backend.create_plan(data)


class TestUsers:
    def test_create_and_lookup_case_insensitive(self, backend, teacher):
        assert backend.get_user(teacher.id).name == "Binay Shrestha"
        assert backend.get_user_by_email("teacher@school.com").id == teacher.id
        assert backend.get_user_by_email("nobody@school.com") is None

    def test_assigned_classes_round_trip(self, backend, teacher):
        assert backend.get_user(teacher.id).assigned_classes == ["LKG"]
        backend.update_user(teacher.id, {"assigned_classes": ["LKG", "UKG"]})
        assert backend.get_user(teacher.id).assigned_classes == ["LKG", "UKG"]

    def test_list_teachers_excludes_admin(self, backend, teacher):
        backend.create_user({"email": "a@school.com", "password_hash": "h", "name": "Admin", "role": "admin"})
        assert [u.id for u in backend.list_teachers()] == [teacher.id]
        assert len(backend.list_users()) == 2

    def test_delete_user(self, backend, teacher):
        assert backend.delete_user(teacher.id) is True
        assert backend.get_user(teacher.id) is None
        assert backend.delete_user(teacher.id) is False


class TestStudents:
    def test_create_then_get_returns_input_plus_id(self, backend, teacher):
        data = {
            "name": "Kiran Thapa",
            "age": 5,
            "class_name": "UKG",
            "learning_ability": "Talented",
            "teacher_id": teacher.id,
            "writing_speed": "Speed Writing",
            "parent_contact": "9800000001",
            "notes": "Left-handed",
            "photo_url": "https://res.cloudinary.com/demo/kiran.png",
            "photo_public_id": "students/kiran",
        }
        created = backend.create_student(data)
        fetched = backend.get_student(created.id)
        assert fetched == created
        assert fetched.to_dict() == Student(id=created.id, **data).to_dict()

    def test_ids_are_never_reused(self, backend, teacher):
        first = _student(backend, teacher.id)
        backend.delete_student(first.id)
        second = _student(backend, teacher.id)
        assert second.id > first.id

    def test_update_is_shallow_merge(self, backend, teacher):
        student = _student(backend, teacher.id, notes="Likes drawing")
        updated = backend.update_student(student.id, {"age": 5})
        assert updated.age == 5
        assert updated.notes == "Likes drawing"
        assert updated.name == "Kiran"

    def test_update_missing_returns_none(self, backend):
        assert backend.update_student(999, {"age": 5}) is None

    def test_filters(self, backend, teacher):
        _student(backend, teacher.id, name="A", learning_ability="Talented")
        _student(backend, teacher.id, name="B", class_name="UKG", age=5)
        _student(backend, teacher.id + 100, name="C")
        assert [s.name for s in backend.list_students(class_name="UKG")] == ["B"]
        assert [s.name for s in backend.list_students(learning_ability="Talented")] == ["A"]
        assert {s.name for s in backend.list_students(teacher_id=teacher.id)} == {"A", "B"}

    def test_delete_cascades_to_progress(self, backend, teacher):
        keep = _student(backend, teacher.id, name="Keep")
        gone = _student(backend, teacher.id, name="Gone")
        _entry(backend, gone.id)
        _entry(backend, gone.id, date="2026-02-11")
        kept_entry = _entry(backend, keep.id)

        assert backend.delete_student(gone.id) is True
        assert backend.list_progress(student_id=gone.id) == []
        assert [e.id for e in backend.list_progress()] == [kept_entry.id]

    def test_assign_student(self, backend, teacher):
        other = backend.create_user({"email": "o@school.com", "password_hash": "h", "name": "O",
                                     "role": "teacher", "assigned_classes": ["LKG"]})
        student = _student(backend, teacher.id)
        assert backend.assign_student(student.id, other.id) is True
        assert backend.get_student(student.id).teacher_id == other.id

    def test_assign_rejects_missing_or_non_teacher(self, backend, teacher):
        admin = backend.create_user({"email": "a@school.com", "password_hash": "h", "name": "A", "role": "admin"})
        student = _student(backend, teacher.id)
        assert backend.assign_student(student.id, admin.id) is False
        assert backend.assign_student(student.id, 999) is False
        assert backend.assign_student(999, teacher.id) is False
        assert backend.get_student(student.id).teacher_id == teacher.id


class TestProgress:
    def test_date_range_is_inclusive(self, backend, teacher):
        student = _student(backend, teacher.id)
        for day in ("2026-01-31", "2026-02-01", "2026-02-15", "2026-02-28", "2026-03-01"):
            _entry(backend, student.id, date=day)
        dates = [e.date for e in backend.list_progress(start_date="2026-02-01", end_date="2026-02-28")]
        assert dates == ["2026-02-01", "2026-02-15", "2026-02-28"]

    def test_update_preserves_unspecified_fields(self, backend, teacher):
        entry = _entry(backend, _student(backend, teacher.id).id, comments="Keep it up")
        updated = backend.update_progress(entry.id, {"motor_skills": "Excellent"})
        assert updated.motor_skills == "Excellent"
        assert updated.comments == "Keep it up"
        assert updated.created_by == 1


class TestPlans:
    def test_window_overlap_filter(self, backend):
        inside = _plan(backend, "2026-03-05", "2026-03-10")
        straddling = _plan(backend, "2026-02-25", "2026-03-02")
        _plan(backend, "2026-01-01", "2026-01-31")
        ids = [p.id for p in backend.list_plans(start_date="2026-03-01", end_date="2026-03-31")]
        assert ids == [inside.id, straddling.id]

    def test_filters_by_type_class_and_author(self, backend):
        _plan(backend, "2026-01-01", "2026-12-31", type="Annual", class_name="UKG", created_by=2)
        weekly = _plan(backend, "2026-01-01", "2026-01-07")
        assert [p.id for p in backend.list_plans(type="Weekly")] == [weekly.id]
        assert [p.class_name for p in backend.list_plans(class_name="UKG")] == ["UKG"]
        assert [p.created_by for p in backend.list_plans(created_by=2)] == [2]

    def test_created_at_is_set(self, backend):
        plan = _plan(backend, "2026-01-01", "2026-01-07")
        assert plan.created_at


class TestSuggestionCache:
    def test_save_and_get(self, backend):
        assert backend.get_ai_suggestion("art ideas") is None
        backend.save_ai_suggestion("art ideas", "Paint with leaves")
        assert backend.get_ai_suggestion("art ideas").response == "Paint with leaves"

    def test_save_overwrites(self, backend):
        backend.save_ai_suggestion("p", "first")
        backend.save_ai_suggestion("p", "second")
        assert backend.get_ai_suggestion("p").response == "second"


class TestCreateStore:
    def test_memory_is_default(self):
        assert isinstance(create_store({}), MemStorage)

    def test_sqlite_backend(self, tmp_path):
        store = create_store({"STORAGE_BACKEND": "sqlite", "DATABASE": str(tmp_path / "x.db")})
        assert isinstance(store, SqliteStorage)

    def test_unknown_backend_raises(self):
        with pytest.raises(ValueError):
            create_store({"STORAGE_BACKEND": "redis"})
