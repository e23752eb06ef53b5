"""
Pre-Primary Records — Flask Web Application

JSON API for a school's Nursery, LKG and UKG records: students, progress
entries, teaching plans, AI activity suggestions and PDF/Excel reports.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from flask import Flask, Response, jsonify, request
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

from auth import auth_bp
from blueprints import register_blueprints
from extensions import csrf, limiter, login_manager
from photos import PhotoRejected
from schemas import error_list
from storage import Storage, create_store

logger = logging.getLogger(__name__)


def create_app(test_config: dict[str, Any] | None = None, store: Storage | None = None) -> Flask:
    app = Flask(__name__)

    # Load config
    from config import TestingConfig, config_by_name
    if test_config is not None:
        app.config.from_object(TestingConfig)
        app.config.update(test_config)
    else:
        env = os.environ.get("FLASK_ENV", "development")
        cfg = config_by_name.get(env, config_by_name["development"])
        app.config.from_object(cfg)
        if hasattr(cfg, "validate"):
            cfg.validate()

    app.secret_key = app.config["SECRET_KEY"]

    # Structured logging
    from logging_config import init_logging
    init_logging(app)

    # Record store (one per app)
    app.extensions["store"] = store if store is not None else create_store(app.config)

    # Rate limiter (disabled in testing)
    limiter.init_app(app)
    if app.config.get("TESTING"):
        limiter.enabled = False

    # CSRF protection for anything a cross-site form could submit
    csrf.init_app(app)

    @app.before_request
    def csrf_unless_json():
        if app.config.get("WTF_CSRF_ENABLED", True) and not request.is_json:
            csrf.protect()

    # Register auth blueprint and login manager
    app.register_blueprint(auth_bp)
    login_manager.init_app(app)

    # Register all application blueprints
    register_blueprints(app)

    _register_error_handlers(app)

    if app.config.get("SEED_DEMO_DATA"):
        from seed_demo_data import seed_default_users
        seed_default_users(app.extensions["store"], app.config)

    # Security headers
    @app.after_request
    def set_security_headers(response: Response) -> Response:
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "SAMEORIGIN"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "img-src 'self' data: https://res.cloudinary.com; "
            "connect-src 'self'"
        )
        if not app.debug:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    return app


def _register_error_handlers(app: Flask) -> None:
    """Every error leaves the API as JSON ``{"message": ...}``."""

    @app.errorhandler(ValidationError)
    def handle_validation_error(e: ValidationError):
        return jsonify({"message": "Invalid data", "errors": error_list(e)}), 400

    @app.errorhandler(PhotoRejected)
    def handle_photo_rejected(e: PhotoRejected):
        return jsonify({"message": "Invalid data", "errors": [{"field": "photo", "message": str(e)}]}), 400

    @app.errorhandler(401)
    def handle_unauthorized(e):
        return jsonify({"message": "Not authenticated"}), 401

    @app.errorhandler(413)
    def handle_too_large(e):
        return jsonify({"message": "Upload too large"}), 413

    @app.errorhandler(429)
    def handle_rate_limited(e):
        return jsonify({"message": "Too many requests, please try again later"}), 429

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return jsonify({"message": e.description or e.name}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception("Unhandled error: %s", e)
        return jsonify({"message": "Internal server error"}), 500


if __name__ == "__main__":
    create_app().run(debug=True, port=5001)
