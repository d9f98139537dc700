"""
Admin Blueprint - system settings.

  GET  /api/v1/admin/settings   – settings document (defaults merged)
  PUT  /api/v1/admin/settings   – partial update, deep-merged
"""

from flask import Blueprint, g, jsonify

from traveldesk.blueprints import json_body, register_error_handlers
from traveldesk.middleware.permission_required import require_actor
from traveldesk.models.auth import ROLE_ADMIN
from traveldesk.services import settings_service

admin_bp = Blueprint("admin_bp", __name__, url_prefix="/api/v1/admin")
register_error_handlers(admin_bp)


@admin_bp.route("/settings", methods=["GET"])
@require_actor(ROLE_ADMIN)
def get_settings():
    return jsonify(settings_service.get_settings())


@admin_bp.route("/settings", methods=["PUT"])
@require_actor(ROLE_ADMIN)
def update_settings():
    return jsonify(settings_service.save_settings(json_body(), updated_by=g.actor.email))
