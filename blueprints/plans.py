"""Teaching plans (Annual, Monthly, Weekly).

Registered twice by ``register_blueprints``: under ``/api/plans`` and under
``/api/teaching-plans``.
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import current_user

from access import can_access_class, can_access_plan
from audit import log_event
from extensions import get_store
from helpers import date_arg, forbid_unless, found_or_404, int_arg, request_payload, staff_required, visible_plans
from schemas import PlanIn, merge_payload

bp = Blueprint("plans", __name__)


@bp.route("")
@staff_required
def list_plans():
    plans = visible_plans(
        type=request.args.get("type") or None,
        class_name=request.args.get("class") or None,
        teacher_id=int_arg("teacherId"),
        start_date=date_arg("startDate"),
        end_date=date_arg("endDate"),
    )
    return jsonify([p.to_dict() for p in plans])


@bp.route("", methods=["POST"])
@staff_required
def create_plan():
    data = PlanIn.model_validate(request_payload())
    forbid_unless(can_access_class(current_user, data.class_name), "You don't have access to this class")

    fields = data.model_dump(mode="json")
    fields["created_by"] = current_user.id
    plan = get_store().create_plan(fields)
    return jsonify(plan.to_dict()), 201


@bp.route("/<int:plan_id>")
@staff_required
def get_plan(plan_id):
    plan = found_or_404(get_store().get_plan(plan_id), "Teaching plan not found")
    forbid_unless(can_access_plan(current_user, plan))
    return jsonify(plan.to_dict())


@bp.route("/<int:plan_id>", methods=["PUT", "PATCH"])
@staff_required
def update_plan(plan_id):
    store = get_store()
    plan = found_or_404(store.get_plan(plan_id), "Teaching plan not found")
    forbid_unless(can_access_plan(current_user, plan))

    data = PlanIn.model_validate(merge_payload(plan.to_dict(), request_payload()))
    if data.class_name != plan.class_name:
        forbid_unless(can_access_class(current_user, data.class_name), "You don't have access to this class")

    # created_by and created_at are not part of PlanIn, so they survive the update
    updated = store.update_plan(plan_id, data.model_dump(mode="json"))
    return jsonify(updated.to_dict())


@bp.route("/<int:plan_id>", methods=["DELETE"])
@staff_required
def delete_plan(plan_id):
    store = get_store()
    plan = found_or_404(store.get_plan(plan_id), "Teaching plan not found")
    forbid_unless(can_access_plan(current_user, plan))
    store.delete_plan(plan_id)
    log_event("plan_deleted", current_user.id, f"plan_id={plan_id}")
    return jsonify({"message": "Teaching plan deleted"})
