"""
SQLite storage backend.

Uses raw sqlite3 with WAL mode and parameterized queries. Implements the same
interface as ``storage.MemStorage``; ``AUTOINCREMENT`` keys guarantee ids are
never reused after deletion.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator

from models import AiSuggestion, ProgressEntry, Student, TeachingPlan, User
from storage import clean_fields

DEFAULT_PATH = Path(__file__).parent / "preprimary.db"


SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    email TEXT NOT NULL UNIQUE COLLATE NOCASE,
    password_hash TEXT NOT NULL,
    name TEXT NOT NULL,
    role TEXT NOT NULL DEFAULT 'teacher',
    assigned_classes TEXT NOT NULL DEFAULT '[]'
);

CREATE TABLE IF NOT EXISTS students (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    age INTEGER NOT NULL,
    class_name TEXT NOT NULL,
    parent_contact TEXT,
    learning_ability TEXT NOT NULL,
    writing_speed TEXT NOT NULL DEFAULT 'N/A',
    notes TEXT,
    photo_url TEXT,
    photo_public_id TEXT,
    teacher_id INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_students_teacher ON students(teacher_id);

CREATE TABLE IF NOT EXISTS progress (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    student_id INTEGER NOT NULL REFERENCES students(id) ON DELETE CASCADE,
    date TEXT NOT NULL,
    social_skills TEXT NOT NULL,
    pre_literacy TEXT NOT NULL,
    pre_numeracy TEXT NOT NULL,
    motor_skills TEXT NOT NULL,
    emotional_development TEXT NOT NULL,
    comments TEXT,
    created_by INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_progress_student ON progress(student_id, date);

CREATE TABLE IF NOT EXISTS teaching_plans (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    type TEXT NOT NULL,
    class_name TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT NOT NULL,
    activities TEXT NOT NULL,
    goals TEXT NOT NULL,
    start_date TEXT NOT NULL,
    end_date TEXT NOT NULL,
    created_by INTEGER NOT NULL,
    created_at TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS ai_suggestions (
    prompt TEXT PRIMARY KEY,
    response TEXT NOT NULL,
    created_at TEXT NOT NULL
);
"""


class SqliteStorage:
    """File-backed store; each call opens its own short-lived connection."""

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = str(path or DEFAULT_PATH)
        with self._connect() as db:
            db.executescript(SCHEMA)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        db = sqlite3.connect(self.path)
        db.row_factory = sqlite3.Row
        db.execute("PRAGMA journal_mode=WAL")
        db.execute("PRAGMA foreign_keys=ON")
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # ── Generic helpers ────────────────────────────────────

    def _fetch_one(self, sql: str, params: tuple = ()) -> sqlite3.Row | None:
        with self._connect() as db:
            return db.execute(sql, params).fetchone()

    def _fetch_all(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        with self._connect() as db:
            return db.execute(sql, params).fetchall()

    def _insert(self, table: str, values: dict) -> int:
        cols = ", ".join(values)
        marks = ", ".join("?" for _ in values)
        with self._connect() as db:
            cur = db.execute(f"INSERT INTO {table} ({cols}) VALUES ({marks})", tuple(values.values()))
            return cur.lastrowid

    def _update(self, table: str, row_id: int, values: dict) -> None:
        if not values:
            return
        assignments = ", ".join(f"{col}=?" for col in values)
        with self._connect() as db:
            db.execute(f"UPDATE {table} SET {assignments} WHERE id=?", (*values.values(), row_id))

    def _delete(self, table: str, row_id: int) -> bool:
        with self._connect() as db:
            cur = db.execute(f"DELETE FROM {table} WHERE id=?", (row_id,))
            return cur.rowcount > 0

    @staticmethod
    def _where(clauses: list[str]) -> str:
        return (" WHERE " + " AND ".join(clauses)) if clauses else ""

    # ── Users ──────────────────────────────────────────────

    @staticmethod
    def _row_to_user(row: sqlite3.Row | None) -> User | None:
        if row is None:
            return None
        data = dict(row)
        data["assigned_classes"] = json.loads(data.get("assigned_classes") or "[]")
        return User(**data)

    @staticmethod
    def _user_values(data: dict) -> dict:
        values = clean_fields(User, data)
        if "assigned_classes" in values:
            values["assigned_classes"] = json.dumps(list(values["assigned_classes"] or []))
        return values

    def get_user(self, user_id: int) -> User | None:
        return self._row_to_user(self._fetch_one("SELECT * FROM users WHERE id=?", (user_id,)))

    def get_user_by_email(self, email: str) -> User | None:
        row = self._fetch_one("SELECT * FROM users WHERE email=?", ((email or "").strip(),))
        return self._row_to_user(row)

    def list_users(self, role: str | None = None) -> list[User]:
        if role is None:
            rows = self._fetch_all("SELECT * FROM users ORDER BY id")
        else:
            rows = self._fetch_all("SELECT * FROM users WHERE role=? ORDER BY id", (role,))
        return [self._row_to_user(r) for r in rows]

    def list_teachers(self) -> list[User]:
        return self.list_users(role="teacher")

    def create_user(self, data: dict) -> User:
        values = self._user_values({"assigned_classes": [], **data})
        return self.get_user(self._insert("users", values))

    def update_user(self, user_id: int, fields: dict) -> User | None:
        if self.get_user(user_id) is None:
            return None
        self._update("users", user_id, self._user_values(fields))
        return self.get_user(user_id)

    def delete_user(self, user_id: int) -> bool:
        return self._delete("users", user_id)

    # ── Students ───────────────────────────────────────────

    @staticmethod
    def _row_to_student(row: sqlite3.Row | None) -> Student | None:
        return Student(**dict(row)) if row is not None else None

    def get_student(self, student_id: int) -> Student | None:
        return self._row_to_student(self._fetch_one("SELECT * FROM students WHERE id=?", (student_id,)))

    def list_students(self, class_name: str | None = None, teacher_id: int | None = None,
                      learning_ability: str | None = None) -> list[Student]:
        clauses, params = [], []
        if class_name:
            clauses.append("class_name=?")
            params.append(class_name)
        if teacher_id is not None:
            clauses.append("teacher_id=?")
            params.append(teacher_id)
        if learning_ability:
            clauses.append("learning_ability=?")
            params.append(learning_ability)
        rows = self._fetch_all(f"SELECT * FROM students{self._where(clauses)} ORDER BY id", tuple(params))
        return [self._row_to_student(r) for r in rows]

    def create_student(self, data: dict) -> Student:
        return self.get_student(self._insert("students", clean_fields(Student, data)))

    def update_student(self, student_id: int, fields: dict) -> Student | None:
        if self.get_student(student_id) is None:
            return None
        self._update("students", student_id, clean_fields(Student, fields))
        return self.get_student(student_id)

    def delete_student(self, student_id: int) -> bool:
        return self._delete("students", student_id)

    def assign_student(self, student_id: int, teacher_id: int) -> bool:
        teacher = self.get_user(teacher_id)
        if self.get_student(student_id) is None or teacher is None or not teacher.is_teacher:
            return False
        self._update("students", student_id, {"teacher_id": teacher_id})
        return True

    # ── Progress ───────────────────────────────────────────

    @staticmethod
    def _row_to_progress(row: sqlite3.Row | None) -> ProgressEntry | None:
        return ProgressEntry(**dict(row)) if row is not None else None

    def get_progress(self, entry_id: int) -> ProgressEntry | None:
        return self._row_to_progress(self._fetch_one("SELECT * FROM progress WHERE id=?", (entry_id,)))

    def list_progress(self, student_id: int | None = None, start_date: str | None = None,
                      end_date: str | None = None) -> list[ProgressEntry]:
        clauses, params = [], []
        if student_id is not None:
            clauses.append("student_id=?")
            params.append(student_id)
        if start_date:
            clauses.append("date>=?")
            params.append(start_date)
        if end_date:
            clauses.append("substr(date, 1, 10)<=?")
            params.append(end_date)
        rows = self._fetch_all(f"SELECT * FROM progress{self._where(clauses)} ORDER BY id", tuple(params))
        return [self._row_to_progress(r) for r in rows]

    def create_progress(self, data: dict) -> ProgressEntry:
        return self.get_progress(self._insert("progress", clean_fields(ProgressEntry, data)))

    def update_progress(self, entry_id: int, fields: dict) -> ProgressEntry | None:
        if self.get_progress(entry_id) is None:
            return None
        self._update("progress", entry_id, clean_fields(ProgressEntry, fields))
        return self.get_progress(entry_id)

    def delete_progress(self, entry_id: int) -> bool:
        return self._delete("progress", entry_id)

    # ── Teaching plans ─────────────────────────────────────

    @staticmethod
    def _row_to_plan(row: sqlite3.Row | None) -> TeachingPlan | None:
        return TeachingPlan(**dict(row)) if row is not None else None

    def get_plan(self, plan_id: int) -> TeachingPlan | None:
        return self._row_to_plan(self._fetch_one("SELECT * FROM teaching_plans WHERE id=?", (plan_id,)))

    def list_plans(self, type: str | None = None, class_name: str | None = None,
                   created_by: int | None = None, start_date: str | None = None,
                   end_date: str | None = None) -> list[TeachingPlan]:
        clauses, params = [], []
        if type:
            clauses.append("type=?")
            params.append(type)
        if class_name:
            clauses.append("class_name=?")
            params.append(class_name)
        if created_by is not None:
            clauses.append("created_by=?")
            params.append(created_by)
        if start_date:
            clauses.append("end_date>=?")
            params.append(start_date)
        if end_date:
            clauses.append("start_date<=?")
            params.append(end_date)
        rows = self._fetch_all(f"SELECT * FROM teaching_plans{self._where(clauses)} ORDER BY id", tuple(params))
        return [self._row_to_plan(r) for r in rows]

    def create_plan(self, data: dict) -> TeachingPlan:
        values = clean_fields(TeachingPlan, data)
        values.setdefault("created_at", datetime.now().isoformat())
        return self.get_plan(self._insert("teaching_plans", values))

    def update_plan(self, plan_id: int, fields: dict) -> TeachingPlan | None:
        if self.get_plan(plan_id) is None:
            return None
        self._update("teaching_plans", plan_id, clean_fields(TeachingPlan, fields))
        return self.get_plan(plan_id)

    def delete_plan(self, plan_id: int) -> bool:
        return self._delete("teaching_plans", plan_id)

    # ── AI suggestion cache ────────────────────────────────

    def get_ai_suggestion(self, prompt: str) -> AiSuggestion | None:
        row = self._fetch_one("SELECT * FROM ai_suggestions WHERE prompt=?", (prompt,))
        return AiSuggestion(**dict(row)) if row is not None else None

    def save_ai_suggestion(self, prompt: str, response: str) -> AiSuggestion:
        entry = AiSuggestion(prompt=prompt, response=response)
        with self._connect() as db:
            db.execute(
                "INSERT OR REPLACE INTO ai_suggestions (prompt, response, created_at) VALUES (?, ?, ?)",
                (entry.prompt, entry.response, entry.created_at),
            )
        return entry
