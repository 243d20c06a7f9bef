"""
Revision Tracker
Flask Application Factory.

Usage:
    from revtrack import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, abort, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from revtrack.config import config
from revtrack.middleware.actor_context import init_actor_context
from revtrack.middleware.logging_config import configure_logging
from revtrack.middleware.rate_limiter import init_rate_limits
from revtrack.middleware.timing import init_request_timing
from revtrack.models import db
from revtrack.utils.errors import E, api_error

logger = logging.getLogger(__name__)


# ── SQLite FK enforcement (global engine event) ─────────────────────────
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
    default_limits=[],                     # no global limit; applied per blueprint
    storage_uri=os.getenv("RATELIMIT_STORAGE_URI", "memory://"),
)

# Upload endpoints accept multipart or raw spreadsheet bodies
_UPLOAD_SUFFIX = "/import"


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
    app.config.from_object(config[config_name])

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

    # ── Request timing, then actor context (sets g.actor) ────────────────
    init_request_timing(app)
    init_actor_context(app)

    # ── Request guard (Content-Type for mutating JSON endpoints) ─────────
    @app.before_request
    def _guard_request():
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            if request.path.endswith(_UPLOAD_SUFFIX):
                return None
            ct = request.content_type or ""
            if request.data and "json" not in ct:
                abort(415, description="Content-Type must be application/json")
        return None

    # ── Import all models so Alembic can detect them ─────────────────────
    from revtrack.models import catalog as _catalog_models    # noqa: F401
    from revtrack.models import revision as _revision_models  # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    if not app.testing:
        os.makedirs(app.instance_path, exist_ok=True)  # default SQLite file lives here
    with app.app_context():
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except SQLAlchemyError as e:
            app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from revtrack.blueprints.catalog_bp import catalog_bp
    from revtrack.blueprints.draft_bp import draft_bp
    from revtrack.blueprints.health_bp import health_bp
    from revtrack.blueprints.indicators_bp import indicators_bp
    from revtrack.blueprints.revision_bp import revision_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(revision_bp)
    app.register_blueprint(draft_bp)
    app.register_blueprint(indicators_bp)

    init_rate_limits(app, limiter)

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(IntegrityError)
    def integrity_error(e):
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", e.orig)
        return api_error(E.CONFLICT_DUPLICATE, "Duplicate or constraint violation")

    @app.errorhandler(SQLAlchemyError)
    def database_error(e):
        db.session.rollback()
        logger.exception("Database error on %s %s", request.method, request.path)
        return api_error(E.DATABASE, "Database error")

    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "code": E.NOT_FOUND, "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(413)
    def too_large(e):
        return {"error": "Request body too large", "code": E.VALIDATION_INVALID}, 413

    @app.errorhandler(415)
    def unsupported_media(e):
        return {"error": e.description, "code": E.VALIDATION_INVALID}, 415

    @app.errorhandler(429)
    def rate_limited(e):
        return api_error(E.RATE_LIMITED, f"Rate limit exceeded: {e.description}")

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")

    return app
