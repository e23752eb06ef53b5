"""
Audit logging — records security-relevant events.

Events go to a dedicated ``audit`` logger so deployments can route them
separately from the access log.
"""

from __future__ import annotations

import logging

from flask import has_request_context, request

logger = logging.getLogger("audit")


def log_event(action: str, user_id: int | None = None, detail: str = "") -> None:
    """Emit a structured audit line for ``action`` performed by ``user_id``."""
    ip = (request.remote_addr or "") if has_request_context() else ""
    logger.info("audit: %s user_id=%s detail=%s ip=%s", action, user_id, detail, ip)
