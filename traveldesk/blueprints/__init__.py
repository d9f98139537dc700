"""
Travel Desk
Blueprint registry and shared error handlers.
"""

import logging

from flask import request

from traveldesk.core.exceptions import (
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceConflictError,
    ValidationError,
)
from traveldesk.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def register_error_handlers(bp):
    """Map the workflow exception hierarchy onto JSON error responses for ``bp``."""

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return api_error(E.NOT_FOUND, f"{error.resource} not found")

    @bp.errorhandler(ForbiddenError)
    def _handle_forbidden(error: ForbiddenError):
        details = {"required_roles": list(error.required_roles)} if error.required_roles else None
        return api_error(E.FORBIDDEN, str(error), details=details)

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(E.VALIDATION_FAILED, str(error), details=error.details)

    @bp.errorhandler(InvalidTransitionError)
    def _handle_invalid_transition(error: InvalidTransitionError):
        return api_error(
            E.INVALID_TRANSITION, str(error),
            details={"action": error.action, "current_status": error.current_status},
        )

    @bp.errorhandler(PersistenceConflictError)
    def _handle_conflict(error: PersistenceConflictError):
        return api_error(
            E.PERSISTENCE_CONFLICT,
            "The application was changed by someone else. Reload and try again.",
        )

    return bp


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}
