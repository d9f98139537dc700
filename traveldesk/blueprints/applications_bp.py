"""
Applications Blueprint - requester-facing travel applications.

Routes:
  GET    /api/v1/applications                      – my applications
  POST   /api/v1/applications                      – create (optionally submit)
  GET    /api/v1/applications/expense-types        – configured expense types
  GET    /api/v1/applications/archive/all          – ARCHIVED + REJECTED (staff)
  GET    /api/v1/applications/<id>                 – one application with its log
  PUT    /api/v1/applications/<id>                 – edit while editable (owner)
  POST   /api/v1/applications/<id>/submit          – DRAFT -> SUBMITTED
  POST   /api/v1/applications/<id>/resubmit        – REJECTED -> SUBMITTED
  GET    /api/v1/applications/<id>/attachments     – list attachments
  POST   /api/v1/applications/<id>/attachments     – upload (multipart "file")
"""

from flask import Blueprint, g, jsonify, request

from traveldesk.blueprints import json_body, register_error_handlers
from traveldesk.middleware.permission_required import require_actor
from traveldesk.models.application import ACTION_RESUBMIT, ACTION_SUBMIT
from traveldesk.models.auth import ROLE_ADMIN, ROLE_REVIEWER
from traveldesk.services import application_service, attachment_service, decision_service

applications_bp = Blueprint("applications_bp", __name__, url_prefix="/api/v1/applications")
register_error_handlers(applications_bp)


@applications_bp.route("", methods=["GET"])
@require_actor()
def list_mine():
    return jsonify(application_service.list_my_applications(g.actor))


@applications_bp.route("", methods=["POST"])
@require_actor()
def create():
    """Create a DRAFT application.

    Body: application fields, plus ``"submit": true`` to submit immediately.
    """
    result = application_service.create_application(g.actor, json_body())
    return jsonify(result), 201


@applications_bp.route("/expense-types", methods=["GET"])
@require_actor()
def expense_types():
    return jsonify(application_service.list_expense_types())


@applications_bp.route("/archive/all", methods=["GET"])
@require_actor(ROLE_REVIEWER, ROLE_ADMIN)
def archive_all():
    return jsonify(application_service.list_all_archived())


@applications_bp.route("/<application_id>", methods=["GET"])
@require_actor()
def get_one(application_id):
    return jsonify(application_service.get_application(application_id, g.actor))


@applications_bp.route("/<application_id>", methods=["PUT"])
@require_actor()
def update(application_id):
    """Edit content fields; optional ``version`` guards against lost updates."""
    return jsonify(application_service.update_application(application_id, g.actor, json_body()))


@applications_bp.route("/<application_id>/submit", methods=["POST"])
@require_actor()
def submit(application_id):
    return jsonify(decision_service.decide(application_id, g.actor, ACTION_SUBMIT))


@applications_bp.route("/<application_id>/resubmit", methods=["POST"])
@require_actor()
def resubmit(application_id):
    return jsonify(decision_service.decide(application_id, g.actor, ACTION_RESUBMIT))


@applications_bp.route("/<application_id>/attachments", methods=["GET"])
@require_actor()
def list_attachments(application_id):
    return jsonify(attachment_service.list_by_application(application_id, g.actor))


@applications_bp.route("/<application_id>/attachments", methods=["POST"])
@require_actor()
def upload_attachment(application_id):
    """Multipart upload: ``file`` plus optional ``attachment_type``."""
    result = attachment_service.add_attachment(
        application_id,
        g.actor,
        request.files.get("file"),
        attachment_type=request.form.get("attachment_type"),
    )
    return jsonify(result), 201
