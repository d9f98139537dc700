"""
Auth Blueprint - JWT authentication endpoints.

  POST /api/v1/auth/login   - Email + password → access token
  GET  /api/v1/auth/me      - Current user profile
"""

from flask import Blueprint, g, jsonify

from traveldesk.blueprints import json_body, register_error_handlers
from traveldesk.middleware.permission_required import require_actor
from traveldesk.models import db
from traveldesk.models.auth import User
from traveldesk.services.identity_service import authenticate
from traveldesk.services.jwt_service import token_response
from traveldesk.utils.errors import E, api_error

auth_bp = Blueprint("auth_bp", __name__, url_prefix="/api/v1/auth")
register_error_handlers(auth_bp)


@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Authenticate with email + password, return an access token.

    Body: { "email": "...", "password": "..." }
    """
    data = json_body()
    email = str(data.get("email") or "").strip().lower()
    password = str(data.get("password") or "")

    if not email or not password:
        return api_error(E.VALIDATION_REQUIRED, "Email and password are required")

    user = authenticate(email, password)
    if user is None:
        return api_error(E.UNAUTHORIZED, "Invalid email or password")

    return jsonify(token_response(user)), 200


@auth_bp.route("/me", methods=["GET"])
@require_actor()
def me():
    user = db.session.get(User, g.actor.id)
    return jsonify(user.to_dict()), 200
