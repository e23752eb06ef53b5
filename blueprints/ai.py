"""AI activity suggestions for teachers."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from ai_resilience import get_suggestion
from extensions import get_store, limiter
from helpers import request_payload, staff_required
from schemas import SuggestionIn

bp = Blueprint("ai", __name__)


@bp.route("/api/ai-suggestions", methods=["POST"])
@staff_required
@limiter.limit("30 per minute")
def ai_suggestions():
    data = SuggestionIn.model_validate(request_payload())
    text, source = get_suggestion(get_store(), data.prompt, current_app.config, class_level=data.class_level)
    return jsonify({"suggestion": text, "source": source})
