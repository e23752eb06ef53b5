"""
Shared Flask extensions (limiter, login manager, CSRF) and store access.

The store itself is built by the application factory and kept on
``app.extensions["store"]``; blueprints reach it through ``get_store()``.
"""

from __future__ import annotations

from flask import current_app
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager
from flask_wtf.csrf import CSRFProtect

from storage import Storage

limiter = Limiter(key_func=get_remote_address, default_limits=["600 per hour"])

login_manager = LoginManager()

csrf = CSRFProtect()


def get_store() -> Storage:
    """Return the store bound to the running application."""
    return current_app.extensions["store"]
