"""
Access-control predicates.

Every authorization decision in the API goes through these functions. They
are pure: no storage access, no Flask context, and they never raise. A
``False`` result is turned into a 403 by the route handler.
"""

from __future__ import annotations

from typing import Protocol, Sequence

from models import Student, TeachingPlan


class Principal(Protocol):
    id: int
    role: str
    assigned_classes: Sequence[str]


def is_admin(user: Principal | None) -> bool:
    return user is not None and getattr(user, "role", None) == "admin"


def is_teacher(user: Principal | None) -> bool:
    return user is not None and getattr(user, "role", None) == "teacher"


def can_access_class(user: Principal | None, class_name: str | None) -> bool:
    """Admins reach every class; teachers only the ones assigned to them."""
    if is_admin(user):
        return True
    if not is_teacher(user) or not class_name:
        return False
    return class_name in (user.assigned_classes or ())


def can_access_student(user: Principal | None, student: Student) -> bool:
    if is_admin(user):
        return True
    return is_teacher(user) and student.teacher_id == user.id


def can_access_progress(user: Principal | None, student: Student) -> bool:
    """Progress entries are visible to whoever can see the owning student."""
    return can_access_student(user, student)


def can_access_plan(user: Principal | None, plan: TeachingPlan) -> bool:
    if is_admin(user):
        return True
    return is_teacher(user) and plan.created_by == user.id


def can_create_student(user: Principal | None, class_name: str, teacher_id: int | None) -> bool:
    if is_admin(user):
        return True
    return can_access_class(user, class_name) and teacher_id == user.id


def can_manage_teachers(user: Principal | None) -> bool:
    return is_admin(user)
