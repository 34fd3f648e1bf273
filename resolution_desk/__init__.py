"""
Resolution Desk
Flask Application Factory.

Usage:
    from resolution_desk import create_app
    app = create_app()           # defaults to APP_ENV, then "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask, request
from flask_cors import CORS
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from resolution_desk.config import config
from resolution_desk.middleware.jwt_auth import init_jwt_middleware
from resolution_desk.middleware.logging_config import configure_logging
from resolution_desk.middleware.rate_limiter import init_rate_limits, limiter
from resolution_desk.middleware.timing import init_request_timing
from resolution_desk.models import db
from resolution_desk.services.connectivity import init_connectivity, initialize_store
from resolution_desk.services.gateway import init_gateway

logger = logging.getLogger(__name__)


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()


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

    # ── Connectivity state + persistence gateway ─────────────────────────
    init_connectivity(app)
    init_gateway(app)

    # ── Request timing + JWT auth ────────────────────────────────────────
    init_request_timing(app)
    init_jwt_middleware(app)

    # ── Import all models so Alembic can detect them ─────────────────────
    from resolution_desk.models import auth as _auth_models              # noqa: F401
    from resolution_desk.models import category as _category_models      # noqa: F401
    from resolution_desk.models import resolution as _resolution_models  # noqa: F401

    # ── Tables + startup initialization (probe, admin, synthetic roots) ──
    with app.app_context():
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)
        state = initialize_store()
        if not state["is_online"]:
            app.logger.warning("Starting in degraded mode: %s", state["last_error"])

    # ── Blueprints ───────────────────────────────────────────────────────
    from resolution_desk.blueprints.admin_bp import admin_bp
    from resolution_desk.blueprints.auth_bp import auth_bp
    from resolution_desk.blueprints.category_bp import category_bp
    from resolution_desk.blueprints.dashboard_bp import dashboard_bp
    from resolution_desk.blueprints.document_bp import document_bp
    from resolution_desk.blueprints.health_bp import health_bp
    from resolution_desk.blueprints.resolution_bp import resolution_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(category_bp)
    app.register_blueprint(resolution_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(document_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(health_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("import-legacy")
    @click.argument("path", type=click.Path(exists=True, dir_okay=False))
    def import_legacy_cmd(path):
        """Import a JSON backup (current or legacy format) into the store."""
        from resolution_desk.services.backup_service import import_file
        result = import_file(path)
        click.echo(", ".join(f"{k}={v}" for k, v in result.items()))

    @app.cli.command("init-store")
    def init_store_cmd():
        """Probe the store and upsert the bootstrap admin and synthetic roots."""
        click.echo(initialize_store())

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "code": "ERR_NOT_FOUND", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(413)
    def too_large(e):
        return {"error": "Request body too large", "code": "ERR_VALIDATION_INVALID"}, 413

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error", "code": "ERR_INTERNAL"}, 500

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app)

    return app
