"""
Record storage — interface plus the in-memory backend.

The application factory builds exactly one store (see ``create_store``) and
hands it to the blueprints through ``app.extensions["store"]``. Two backends
implement the same interface:

- ``MemStorage``: dicts keyed by id with linear-scan filters (default)
- ``SqliteStorage`` in database.py: raw sqlite3, selected with
  ``STORAGE_BACKEND=sqlite``

Ids are assigned from a per-entity counter and never reused after deletion.
Updates are shallow merges: fields not passed are preserved.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from datetime import datetime
from typing import Any, Callable, Generic, Protocol, TypeVar

from models import AiSuggestion, ProgressEntry, Student, TeachingPlan, User

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Storage(Protocol):
    # Users
    def get_user(self, user_id: int) -> User | None: ...
    def get_user_by_email(self, email: str) -> User | None: ...
    def list_users(self, role: str | None = None) -> list[User]: ...
    def list_teachers(self) -> list[User]: ...
    def create_user(self, data: dict) -> User: ...
    def update_user(self, user_id: int, fields: dict) -> User | None: ...
    def delete_user(self, user_id: int) -> bool: ...

    # Students
    def get_student(self, student_id: int) -> Student | None: ...
    def list_students(self, class_name: str | None = None, teacher_id: int | None = None,
                      learning_ability: str | None = None) -> list[Student]: ...
    def create_student(self, data: dict) -> Student: ...
    def update_student(self, student_id: int, fields: dict) -> Student | None: ...
    def delete_student(self, student_id: int) -> bool: ...
    def assign_student(self, student_id: int, teacher_id: int) -> bool: ...

    # Progress
    def get_progress(self, entry_id: int) -> ProgressEntry | None: ...
    def list_progress(self, student_id: int | None = None, start_date: str | None = None,
                      end_date: str | None = None) -> list[ProgressEntry]: ...
    def create_progress(self, data: dict) -> ProgressEntry: ...
    def update_progress(self, entry_id: int, fields: dict) -> ProgressEntry | None: ...
    def delete_progress(self, entry_id: int) -> bool: ...

    # Teaching plans
    def get_plan(self, plan_id: int) -> TeachingPlan | None: ...
    def list_plans(self, type: str | None = None, class_name: str | None = None,
                   created_by: int | None = None, start_date: str | None = None,
                   end_date: str | None = None) -> list[TeachingPlan]: ...
    def create_plan(self, data: dict) -> TeachingPlan: ...
    def update_plan(self, plan_id: int, fields: dict) -> TeachingPlan | None: ...
    def delete_plan(self, plan_id: int) -> bool: ...

    # AI suggestion cache
    def get_ai_suggestion(self, prompt: str) -> AiSuggestion | None: ...
    def save_ai_suggestion(self, prompt: str, response: str) -> AiSuggestion: ...


def _field_names(cls) -> set[str]:
    return {f.name for f in dataclasses.fields(cls)}


def clean_fields(cls, data: dict, *, drop: tuple[str, ...] = ("id",)) -> dict:
    """Keep only keys that are fields of ``cls`` (minus ``drop``)."""
    names = _field_names(cls) - set(drop)
    return {k: v for k, v in data.items() if k in names}


def in_range(value: str, start: str | None, end: str | None) -> bool:
    """ISO date strings compare lexically, so plain string bounds work."""
    day = (value or "")[:10]
    if start and day < start:
        return False
    if end and day > end:
        return False
    return True


class _Table(Generic[T]):
    """One entity map plus its id counter."""

    def __init__(self, record_cls: Callable[..., T], lock: threading.RLock) -> None:
        self._cls = record_cls
        self._rows: dict[int, T] = {}
        self._next_id = 1
        self._lock = lock

    def get(self, row_id: int) -> T | None:
        return self._rows.get(row_id)

    def values(self) -> list[T]:
        return [self._rows[k] for k in sorted(self._rows)]

    def insert(self, data: dict) -> T:
        with self._lock:
            row_id = self._next_id
            self._next_id += 1
            row = self._cls(id=row_id, **clean_fields(self._cls, data))
            self._rows[row_id] = row
            return row

    def update(self, row_id: int, fields: dict) -> T | None:
        with self._lock:
            row = self._rows.get(row_id)
            if row is None:
                return None
            row = dataclasses.replace(row, **clean_fields(self._cls, fields))
            self._rows[row_id] = row
            return row

    def delete(self, row_id: int) -> bool:
        with self._lock:
            return self._rows.pop(row_id, None) is not None


class MemStorage:
    """Process-local store. Suitable for a single school's data set."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._users: _Table[User] = _Table(User, self._lock)
        self._students: _Table[Student] = _Table(Student, self._lock)
        self._progress: _Table[ProgressEntry] = _Table(ProgressEntry, self._lock)
        self._plans: _Table[TeachingPlan] = _Table(TeachingPlan, self._lock)
        self._suggestions: dict[str, AiSuggestion] = {}

    # ── Users ──────────────────────────────────────────────

    def get_user(self, user_id: int) -> User | None:
        return self._users.get(user_id)

    def get_user_by_email(self, email: str) -> User | None:
        needle = (email or "").strip().lower()
        for user in self._users.values():
            if user.email.lower() == needle:
                return user
        return None

    def list_users(self, role: str | None = None) -> list[User]:
        return [u for u in self._users.values() if role is None or u.role == role]

    def list_teachers(self) -> list[User]:
        return self.list_users(role="teacher")

    def create_user(self, data: dict) -> User:
        data = dict(data)
        data["assigned_classes"] = list(data.get("assigned_classes") or [])
        return self._users.insert(data)

    def update_user(self, user_id: int, fields: dict) -> User | None:
        return self._users.update(user_id, fields)

    def delete_user(self, user_id: int) -> bool:
        return self._users.delete(user_id)

    # ── Students ───────────────────────────────────────────

    def get_student(self, student_id: int) -> Student | None:
        return self._students.get(student_id)

    def list_students(self, class_name: str | None = None, teacher_id: int | None = None,
                      learning_ability: str | None = None) -> list[Student]:
        students = self._students.values()
        if class_name:
            students = [s for s in students if s.class_name == class_name]
        if teacher_id is not None:
            students = [s for s in students if s.teacher_id == teacher_id]
        if learning_ability:
            students = [s for s in students if s.learning_ability == learning_ability]
        return students

    def create_student(self, data: dict) -> Student:
        return self._students.insert(data)

    def update_student(self, student_id: int, fields: dict) -> Student | None:
        return self._students.update(student_id, fields)

    def delete_student(self, student_id: int) -> bool:
        with self._lock:
            if not self._students.delete(student_id):
                return False
            for entry in self.list_progress(student_id=student_id):
                self._progress.delete(entry.id)
            return True

    def assign_student(self, student_id: int, teacher_id: int) -> bool:
        teacher = self.get_user(teacher_id)
        if self.get_student(student_id) is None or teacher is None or not teacher.is_teacher:
            return False
        self.update_student(student_id, {"teacher_id": teacher_id})
        return True

    # ── Progress ───────────────────────────────────────────

    def get_progress(self, entry_id: int) -> ProgressEntry | None:
        return self._progress.get(entry_id)

    def list_progress(self, student_id: int | None = None, start_date: str | None = None,
                      end_date: str | None = None) -> list[ProgressEntry]:
        entries = self._progress.values()
        if student_id is not None:
            entries = [e for e in entries if e.student_id == student_id]
        if start_date or end_date:
            entries = [e for e in entries if in_range(e.date, start_date, end_date)]
        return entries

    def create_progress(self, data: dict) -> ProgressEntry:
        return self._progress.insert(data)

    def update_progress(self, entry_id: int, fields: dict) -> ProgressEntry | None:
        return self._progress.update(entry_id, fields)

    def delete_progress(self, entry_id: int) -> bool:
        return self._progress.delete(entry_id)

    # ── Teaching plans ─────────────────────────────────────

    def get_plan(self, plan_id: int) -> TeachingPlan | None:
        return self._plans.get(plan_id)

    def list_plans(self, type: str | None = None, class_name: str | None = None,
                   created_by: int | None = None, start_date: str | None = None,
                   end_date: str | None = None) -> list[TeachingPlan]:
        plans = self._plans.values()
        if type:
            plans = [p for p in plans if p.type == type]
        if class_name:
            plans = [p for p in plans if p.class_name == class_name]
        if created_by is not None:
            plans = [p for p in plans if p.created_by == created_by]
        # Overlap with the requested window
        if start_date:
            plans = [p for p in plans if p.end_date >= start_date]
        if end_date:
            plans = [p for p in plans if p.start_date <= end_date]
        return plans

    def create_plan(self, data: dict) -> TeachingPlan:
        data = dict(data)
        data.setdefault("created_at", datetime.now().isoformat())
        return self._plans.insert(data)

    def update_plan(self, plan_id: int, fields: dict) -> TeachingPlan | None:
        return self._plans.update(plan_id, fields)

    def delete_plan(self, plan_id: int) -> bool:
        return self._plans.delete(plan_id)

    # ── AI suggestion cache ────────────────────────────────

    def get_ai_suggestion(self, prompt: str) -> AiSuggestion | None:
        return self._suggestions.get(prompt)

    def save_ai_suggestion(self, prompt: str, response: str) -> AiSuggestion:
        with self._lock:
            entry = AiSuggestion(prompt=prompt, response=response)
            self._suggestions[prompt] = entry
            return entry


def create_store(config: dict[str, Any]) -> Storage:
    """Build the store named by ``STORAGE_BACKEND``."""
    backend = (config.get("STORAGE_BACKEND") or "memory").lower()
    if backend == "sqlite":
        from database import SqliteStorage
        path = config.get("DATABASE")
        logger.info("Storage backend: sqlite (%s)", path)
        return SqliteStorage(path)
    if backend != "memory":
        raise ValueError(f"Unknown STORAGE_BACKEND: {backend}")
    logger.info("Storage backend: in-memory")
    return MemStorage()
