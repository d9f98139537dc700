"""
Health check blueprint.

Endpoints:
    GET /api/v1/health        - database round-trip, mail mode, dead-letter backlog
    GET /api/v1/health/ready  - simple 200 for load balancers

Only the database decides the overall status; a mail server that is not
configured or a backlog of failed emails is reported but never degrades it.
"""

import logging
import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy import func, select

from traveldesk.models import db
from traveldesk.models.notification import EmailLog

logger = logging.getLogger(__name__)

health_bp = Blueprint("health_bp", __name__, url_prefix="/api/v1/health")


@health_bp.route("/ready", methods=["GET"])
def ready():
    return jsonify({"status": "ok"}), 200


@health_bp.route("", methods=["GET"])
def live():
    checks = {}

    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        checks["database"] = {"status": "ok", "latency_ms": round((time.perf_counter() - t0) * 1000, 1)}
    except Exception as exc:
        db.session.rollback()
        logger.error("Health check: database unreachable: %s", exc)
        checks["database"] = {"status": "error", "detail": str(exc)}
        return jsonify({"status": "degraded", "checks": checks}), 503

    cfg = current_app.config
    checks["mail"] = {
        "status": "ok",
        "mode": "smtp" if cfg.get("MAIL_SERVER") else "log-only",
        "dispatch": "inline" if cfg.get("NOTIFY_SYNC") else "pool",
    }
    failed = db.session.scalar(select(func.count(EmailLog.id)).where(EmailLog.status == "failed"))
    checks["notifications"] = {"status": "ok" if not failed else "backlog", "failed_emails": failed or 0}

    return jsonify({"status": "ok", "checks": checks}), 200
