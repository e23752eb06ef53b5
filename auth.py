"""
User Authentication — Flask-Login blueprint.

Provides the JSON login, register, logout and current-user routes.
Uses werkzeug.security for password hashing and session cookies for state.
"""

from __future__ import annotations

from flask import Blueprint, abort, jsonify, request
from flask_login import UserMixin, current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf
from werkzeug.security import check_password_hash, generate_password_hash

from audit import log_event
from extensions import get_store, limiter, login_manager
from models import User
from schemas import LoginIn, RegisterIn

auth_bp = Blueprint("auth", __name__)


class AuthUser(UserMixin):
    """Wraps a stored user for Flask-Login; carries role and class scope."""

    def __init__(self, user: User):
        self.id = user.id
        self.name = user.name
        self.email = user.email
        self.role = user.role
        self.assigned_classes = list(user.assigned_classes)

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


@login_manager.user_loader
def load_user(user_id):
    try:
        user = get_store().get_user(int(user_id))
    except (TypeError, ValueError):
        return None
    return AuthUser(user) if user else None


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"message": "Not authenticated"}), 401


def hash_password(password: str) -> str:
    return generate_password_hash(password)


@auth_bp.route("/api/login", methods=["POST"])
@limiter.limit("5 per 15 minutes")
def login():
    data = LoginIn.model_validate(request.get_json(silent=True) or request.form.to_dict())
    email = data.email.strip().lower()

    user = get_store().get_user_by_email(email)
    if not user or not check_password_hash(user.password_hash, data.password):
        log_event("login_failed", user.id if user else None, f"email={email}")
        return jsonify({"message": "Invalid email or password"}), 401

    login_user(AuthUser(user), remember=True)
    log_event("login_success", user.id)
    return jsonify(user.to_dict())


@auth_bp.route("/api/register", methods=["POST"])
@limiter.limit("10 per hour")
def register():
    """Create an account.

    The first account on an empty store becomes the admin and is logged in.
    After that, only an authenticated admin may register users.
    """
    store = get_store()
    bootstrap = not store.list_users()
    if not bootstrap:
        if not current_user.is_authenticated:
            abort(401)
        if not current_user.is_admin:
            abort(403, description="Admin access required")

    data = RegisterIn.model_validate(request.get_json(silent=True) or request.form.to_dict())
    email = str(data.email).lower()
    if store.get_user_by_email(email):
        return jsonify({
            "message": "Invalid data",
            "errors": [{"field": "email", "message": "An account with this email already exists."}],
        }), 400

    role = "admin" if bootstrap else data.role
    user = store.create_user({
        "email": email,
        "password_hash": hash_password(data.password),
        "name": data.name,
        "role": role,
        "assigned_classes": data.assigned_classes if role == "teacher" else [],
    })
    log_event("register", user.id, f"email={email} role={role}")

    if bootstrap:
        login_user(AuthUser(user), remember=True)
    return jsonify(user.to_dict()), 201


@auth_bp.route("/api/logout", methods=["POST"])
def logout():
    uid = current_user.id if current_user.is_authenticated else None
    log_event("logout", uid)
    logout_user()
    return jsonify({"message": "Logged out"})


@auth_bp.route("/api/user")
@login_required
def current_user_info():
    user = get_store().get_user(current_user.id)
    if user is None:
        logout_user()
        abort(401)
    return jsonify(user.to_dict())


@auth_bp.route("/api/csrf-token")
def csrf_token():
    """Token for form and multipart writes; send it back as ``X-CSRFToken``."""
    return jsonify({"csrfToken": generate_csrf()})
