"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in plansync/__init__.py with no default
limits; this module applies granular limits per route category.

Usage:
    from plansync.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

# Manual refresh and session start each trigger a full feed fetch.
SYNC_LIMIT = "12/minute"
WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Sync / session:   12/minute  (each call may hit the sheet)
        - Projects:         60/minute  (staged writes forward to the sheet)
        - Dashboard / read: 200/minute
        - Health check:     exempt

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("sync")
    if bp:
        limiter.limit(SYNC_LIMIT)(bp)

    bp = app.blueprints.get("projects")
    if bp:
        limiter.limit(WRITE_LIMIT)(bp)

    bp = app.blueprints.get("dashboard")
    if bp:
        limiter.limit(READ_LIMIT)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured — sync: %s, projects: %s, read: %s",
        SYNC_LIMIT, WRITE_LIMIT, READ_LIMIT,
    )
