"""
Role decorators for route protection.

Usage:
    @bp.route("/queue", methods=["GET"])
    @require_actor(ROLE_REVIEWER, ROLE_ADMIN)
    def reviewer_queue():
        actor = g.actor
        ...

    @bp.route("", methods=["GET"])
    @require_actor()              # any authenticated user
    def list_mine():
        ...
"""

import functools
import logging

from flask import g

from traveldesk.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def require_actor(*roles: str):
    """
    Decorator: require an authenticated actor, optionally holding one of ``roles``.

    401 when no valid bearer token was presented, 403 when the actor lacks
    every listed role.
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            actor = getattr(g, "actor", None)
            if actor is None:
                return api_error(E.UNAUTHORIZED, "Authentication required")

            if roles and not actor.has_any_role(*roles):
                logger.warning(
                    "User %d denied: needs one of %s on %s",
                    actor.id, ", ".join(roles), f.__name__,
                    extra={"actor_id": actor.id},
                )
                return api_error(
                    E.FORBIDDEN, "Permission denied", details={"required_roles": list(roles)},
                )

            return f(*args, **kwargs)
        return decorated
    return decorator
