"""
Plan Sync Service
Flask Application Factory.

Usage:
    from plansync import create_app
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

from plansync.auth import init_auth
from plansync.config import config
from plansync.core.exceptions import NotFoundError, ValidationError
from plansync.middleware.logging_config import configure_logging
from plansync.middleware.rate_limiter import init_rate_limits
from plansync.middleware.timing import init_request_timing
from plansync.services.sync_engine import get_engine, init_sync_engine
from plansync.utils.errors import E, api_error

logger = logging.getLogger(__name__)

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # per-blueprint limits only
    storage_uri=os.getenv("RATELIMIT_STORAGE_URI", os.getenv("REDIS_URL", "memory://")),
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

    app = Flask(__name__)
    # Instantiated so ProductionConfig can validate required env vars.
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Authentication & content-type guard ───────────────────────────────
    init_auth(app)

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── Sync engine (gateway, cache, store, scheduler, reconciler) ───────
    init_sync_engine(app)

    # ── Blueprints ───────────────────────────────────────────────────────
    from plansync.blueprints.dashboard_bp import dashboard_bp
    from plansync.blueprints.health_bp import health_bp
    from plansync.blueprints.projects_bp import projects_bp
    from plansync.blueprints.sync_bp import sync_bp

    app.register_blueprint(projects_bp)
    app.register_blueprint(sync_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(health_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("sync-now")
    def sync_now_cmd():
        """Run one sync pass against the plan feed and print the outcome."""
        result = get_engine().sync.run(trigger="manual")
        click.echo(
            f"seq={result.seq} source={result.source} records={result.record_count} "
            f"published={result.published} duration={result.duration_ms}ms"
        )
        if result.error:
            click.echo(f"error ({result.error_type}): {result.error}")

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(NotFoundError)
    def resource_not_found(e):
        return api_error(E.NOT_FOUND, str(e))

    @app.errorhandler(ValidationError)
    def validation_failed(e):
        return api_error(E.VALIDATION_INVALID, str(e), details=e.details)

    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error"}, 500

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
