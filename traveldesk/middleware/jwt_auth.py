"""
JWT Auth Middleware - resolves the bearer token into ``g.actor``.

Runs before every /api/v1/ request.  A missing, expired or invalid token
leaves ``g.actor = None``; the ``require_actor`` decorator on each route
turns that into a 401.
"""

from flask import g, request

from traveldesk.services.identity_service import resolve_actor

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/auth/login",
    "/api/v1/health",
)


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    return auth_header[7:].strip() or None


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.actor = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        g.actor = resolve_actor(bearer_token())
