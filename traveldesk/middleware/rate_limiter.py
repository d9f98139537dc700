"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in traveldesk/__init__.py with no default
limits; this module applies granular limits per route category.

Usage:
    from traveldesk.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

LOGIN_LIMIT = "10/minute"
WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Auth endpoints:      10/minute  (password guessing)
        - Workflow endpoints:  60/minute  (decisions, uploads, edits)
        - Admin / listings:    200/minute
        - Health check:        exempt

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING") or not app.config.get("RATELIMIT_ENABLED", True):
        app.logger.info("Rate limiter disabled")
        return

    bp = app.blueprints.get("auth_bp")
    if bp:
        limiter.limit(LOGIN_LIMIT)(bp)

    for bp_name in ("applications_bp", "reviewer_bp", "minister_bp"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT)(bp)

    bp = app.blueprints.get("admin_bp")
    if bp:
        limiter.limit(READ_LIMIT)(bp)

    bp = app.blueprints.get("health_bp")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured - auth: %s, workflow: %s, admin: %s",
        LOGIN_LIMIT, WRITE_LIMIT, READ_LIMIT,
    )
