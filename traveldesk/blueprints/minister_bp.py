"""
Minister Blueprint - referrals awaiting the minister.

Routes:
  GET    /api/v1/minister/queue            – referred applications, newest first
  GET    /api/v1/minister/archived         – applications this minister acted on
  POST   /api/v1/minister/<id>/decision    – { "action": "MINISTER_APPROVED" | "MINISTER_REJECTED", "note": "..." }
"""

from flask import Blueprint, g, jsonify

from traveldesk.blueprints import json_body, register_error_handlers
from traveldesk.middleware.permission_required import require_actor
from traveldesk.models.auth import ROLE_ADMIN, ROLE_MINISTER
from traveldesk.services import application_service, decision_service
from traveldesk.services.payloads import MINISTER_ACTION_LABELS

minister_bp = Blueprint("minister_bp", __name__, url_prefix="/api/v1/minister")
register_error_handlers(minister_bp)


@minister_bp.route("/queue", methods=["GET"])
@require_actor(ROLE_MINISTER, ROLE_ADMIN)
def queue():
    return jsonify(decision_service.get_queue(decision_service.QUEUE_MINISTER, g.actor))


@minister_bp.route("/archived", methods=["GET"])
@require_actor(ROLE_MINISTER, ROLE_ADMIN)
def archived():
    return jsonify(application_service.list_minister_history(g.actor))


@minister_bp.route("/<application_id>/decision", methods=["POST"])
@require_actor(ROLE_MINISTER, ROLE_ADMIN)
def decision(application_id):
    data = json_body()
    result = decision_service.decide(
        application_id,
        g.actor,
        data.get("action"),
        data.get("note"),
        labels=MINISTER_ACTION_LABELS,
    )
    return jsonify(result)
