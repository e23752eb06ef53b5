"""
Blueprint registration for the pre-primary records API.

Teaching plans are registered twice so both ``/api/plans`` and
``/api/teaching-plans`` resolve to the same handlers.
"""

from __future__ import annotations

from flask import current_app, send_from_directory
from flask_login import login_required


@login_required
def serve_upload(filename):
    """Locally stored student photos."""
    return send_from_directory(current_app.config["UPLOAD_DIR"], filename)


def register_blueprints(app):
    from blueprints.ai import bp as ai_bp
    from blueprints.plans import bp as plans_bp
    from blueprints.progress import bp as progress_bp
    from blueprints.reports import bp as reports_bp
    from blueprints.students import bp as students_bp
    from blueprints.teachers import bp as teachers_bp

    app.register_blueprint(teachers_bp)
    app.register_blueprint(students_bp)
    app.register_blueprint(progress_bp)
    app.register_blueprint(plans_bp, url_prefix="/api/plans")
    app.register_blueprint(plans_bp, url_prefix="/api/teaching-plans", name="teaching_plans")
    app.register_blueprint(reports_bp)
    app.register_blueprint(ai_bp)

    app.add_url_rule("/uploads/<path:filename>", "uploads", serve_upload)
