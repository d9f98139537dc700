"""
Request timing middleware.

Logs every API request with its duration, the caller and (when the URL names
one) the application it touched.  Adds X-Request-ID and
X-Request-Duration-Ms to every response.
"""

import logging
import time
import uuid

from flask import Flask, g, request

logger = logging.getLogger(__name__)

_SKIP_LOG = frozenset({"/api/v1/health", "/api/v1/health/ready"})

SLOW_THRESHOLD_MS = 1000


def init_request_timing(app: Flask):
    """Register before/after hooks for request timing."""

    @app.before_request
    def _start_timer():
        g.request_start = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]

    @app.after_request
    def _log_request(response):
        start = getattr(g, "request_start", None)
        if start is None:
            return response

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-Duration-Ms"] = f"{duration_ms:.1f}"
        response.headers["X-Request-ID"] = g.request_id

        if request.path in _SKIP_LOG or not request.path.startswith("/api/"):
            return response

        actor = getattr(g, "actor", None)
        extra = {
            "method": request.method,
            "path": request.path,
            "status": response.status_code,
            "duration_ms": round(duration_ms, 1),
            "remote_addr": request.remote_addr,
            "request_id": g.request_id,
            "actor_id": actor.id if actor else None,
            "application_id": (request.view_args or {}).get("application_id"),
        }
        if response.status_code >= 500:
            log = logger.error
        elif duration_ms > SLOW_THRESHOLD_MS:
            log = logger.warning
        else:
            log = logger.debug
        log("%s %s %d (%.0fms)", request.method, request.path, response.status_code, duration_ms, extra=extra)
        return response
