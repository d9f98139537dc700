"""
Travel Desk
Flask Application Factory.

Usage:
    from traveldesk import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from traveldesk.config import config
from traveldesk.models import db
from traveldesk.middleware.logging_config import configure_logging
from traveldesk.middleware.rate_limiter import init_rate_limits
from traveldesk.middleware.jwt_auth import init_jwt_middleware
from traveldesk.middleware.timing import init_request_timing
from traveldesk.utils.errors import E

logger = logging.getLogger(__name__)

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import event as _sa_event, engine as _sa_engine


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit - apply per-blueprint
    storage_uri=os.getenv("REDIS_URL", "memory://"),  # Redis in production, memory for dev
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request hooks: bearer token -> g.actor, then timing / access log ──
    init_jwt_middleware(app)
    init_request_timing(app)

    # ── Import all models so Alembic can detect them ─────────────────────
    from traveldesk.models import auth as _auth_models                # noqa: F401
    from traveldesk.models import application as _application_models  # noqa: F401
    from traveldesk.models import department as _department_models    # noqa: F401
    from traveldesk.models import notification as _notification_models  # noqa: F401
    from traveldesk.models import settings as _settings_models        # noqa: F401

    # ── Auto-create tables (safe for production - CREATE IF NOT EXISTS) ──
    with app.app_context():
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)

        if app.config.get("SEED_ON_STARTUP"):
            _seed_on_startup(app)

    # ── Notification delivery pool ───────────────────────────────────────
    from traveldesk.services import notification_dispatcher
    notification_dispatcher.init_app(app)

    # ── Blueprints ───────────────────────────────────────────────────────
    from traveldesk.blueprints.health_bp import health_bp
    from traveldesk.blueprints.auth_bp import auth_bp
    from traveldesk.blueprints.applications_bp import applications_bp
    from traveldesk.blueprints.reviewer_bp import reviewer_bp
    from traveldesk.blueprints.minister_bp import minister_bp
    from traveldesk.blueprints.admin_bp import admin_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(applications_bp)
    app.register_blueprint(reviewer_bp)
    app.register_blueprint(minister_bp)
    app.register_blueprint(admin_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed")
    @click.option("--path", default=None, help="Seed JSON file (defaults to SEED_DATA_PATH).")
    def seed_cmd(path):
        """Load departments and bootstrap users from the seed file."""
        from traveldesk.services.seed_loader import load_seed_data
        result = load_seed_data(path or app.config["SEED_DATA_PATH"])
        click.echo(f"Seeded {result['departments']} departments, {result['users']} users.")

    @app.cli.command("retry-failed-emails")
    @click.option("--max-attempts", type=int, default=None, help="Skip rows already tried this many times.")
    def retry_failed_emails_cmd(max_attempts):
        """Retry notification emails whose last delivery failed."""
        result = notification_dispatcher.retry_failed(max_attempts)
        click.echo(
            f"Retried {result['retried']} emails: {result['sent']} sent, {result['failed']} failed."
        )

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        if request.path.startswith("/api/"):
            return {"error": "Not found", "code": E.NOT_FOUND, "path": request.path}, 404
        return {"error": "Not found"}, 404

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error", "code": E.INTERNAL}, 500

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(413)
    def too_large(e):
        return {"error": "Request body too large", "code": E.VALIDATION_FAILED}, 413

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app


def _seed_on_startup(app):
    from traveldesk.services.seed_loader import load_seed_data

    path = app.config.get("SEED_DATA_PATH")
    if not path or not os.path.exists(path):
        app.logger.warning("Seed file not found: %s", path)
        return
    try:
        load_seed_data(path)
    except Exception as e:
        db.session.rollback()
        app.logger.warning("Seeding on startup failed: %s", e)
