"""
Reviewer Blueprint - review queue and decisions.

Routes:
  GET    /api/v1/reviewer/queue            – SUBMITTED + IN_REVIEW, newest first
  GET    /api/v1/reviewer/archived         – ARCHIVED, newest first
  GET    /api/v1/reviewer/<id>             – open (claims a SUBMITTED application)
  POST   /api/v1/reviewer/<id>/decision    – { "action": "...", "note": "..." }

``action`` accepts APPROVED, REJECTED, REQUEST_INFO, REFERRED_TO_MINISTER
(or the matching engine names).  ``note`` carries the minister email for a
referral and the justification for a direct approval.
"""

from flask import Blueprint, g, jsonify

from traveldesk.blueprints import json_body, register_error_handlers
from traveldesk.middleware.permission_required import require_actor
from traveldesk.models.auth import ROLE_ADMIN, ROLE_REVIEWER
from traveldesk.services import application_service, decision_service
from traveldesk.services.payloads import REVIEWER_ACTION_LABELS

reviewer_bp = Blueprint("reviewer_bp", __name__, url_prefix="/api/v1/reviewer")
register_error_handlers(reviewer_bp)


@reviewer_bp.route("/queue", methods=["GET"])
@require_actor(ROLE_REVIEWER, ROLE_ADMIN)
def queue():
    return jsonify(decision_service.get_queue(decision_service.QUEUE_REVIEWER, g.actor))


@reviewer_bp.route("/archived", methods=["GET"])
@require_actor(ROLE_REVIEWER, ROLE_ADMIN)
def archived():
    return jsonify(application_service.list_reviewer_archive())


@reviewer_bp.route("/<application_id>", methods=["GET"])
@require_actor(ROLE_REVIEWER, ROLE_ADMIN)
def open_application(application_id):
    return jsonify(decision_service.open_for_review(application_id, g.actor))


@reviewer_bp.route("/<application_id>/decision", methods=["POST"])
@require_actor(ROLE_REVIEWER, ROLE_ADMIN)
def decision(application_id):
    data = json_body()
    result = decision_service.decide(
        application_id,
        g.actor,
        data.get("action"),
        data.get("note"),
        labels=REVIEWER_ACTION_LABELS,
    )
    return jsonify(result)
