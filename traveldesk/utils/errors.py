"""JSON error bodies shared by blueprints and middleware.

Every error response is ``{"error": <message>, "code": <E.*>}`` with an
optional ``details`` object (field errors, required roles, current status).
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Error codes returned in the ``code`` field."""

    UNAUTHORIZED = "ERR_UNAUTHORIZED"               # 401
    FORBIDDEN = "ERR_FORBIDDEN"                     # 403
    NOT_FOUND = "ERR_NOT_FOUND"                     # 404
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"  # 400, missing request field
    VALIDATION_FAILED = "ERR_VALIDATION_FAILED"     # 422
    INVALID_TRANSITION = "ERR_INVALID_TRANSITION"   # 409
    PERSISTENCE_CONFLICT = "ERR_PERSISTENCE_CONFLICT"  # 409
    INTERNAL = "ERR_INTERNAL"                       # 500


_STATUS_BY_CODE: dict[str, int] = {
    E.UNAUTHORIZED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_FAILED: 422,
    E.INVALID_TRANSITION: 409,
    E.PERSISTENCE_CONFLICT: 409,
    E.INTERNAL: 500,
}


def api_error(code: str, message: str, *, status: int | None = None, details: dict | None = None):
    """``(response, status)`` for ``code``; status defaults from the code, else 400."""
    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or _STATUS_BY_CODE.get(code, 400)
