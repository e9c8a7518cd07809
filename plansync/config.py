"""
Plan Sync Service
Configuration classes for Flask App Factory.

Usage:
    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name])
"""

import os
import secrets

# Published plan sheet (tab-separated export). Overridden per deployment.
_DEFAULT_SHEET_BASE = (
    "https://docs.google.com/spreadsheets/d/e/"
    "2PACX-1vQJJ2HYdVoZ45yKhXPX8kydfkXB6eHebun5TNJlcMIFTtbYncCx8Nuq1sphQE0yeB1M9w_aC_QCzB2g/pub"
)

# Generate a random key for development; production MUST use a stable env var
_DEV_SECRET = secrets.token_hex(32)


class Config:
    """Base configuration shared across all environments."""

    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    DEBUG = False
    TESTING = False

    # Feeds
    PLAN_FEED_URL = os.getenv("PLAN_FEED_URL", f"{_DEFAULT_SHEET_BASE}?output=tsv")
    REPORT_FEED_URL = os.getenv(
        "REPORT_FEED_URL", f"{_DEFAULT_SHEET_BASE}?gid=55703458&single=true&output=tsv"
    )
    DOCUMENTS_FEED_URL = os.getenv(
        "DOCUMENTS_FEED_URL", f"{_DEFAULT_SHEET_BASE}?gid=298135720&single=true&output=tsv"
    )
    FEED_TIMEOUT_SECONDS = int(os.getenv("FEED_TIMEOUT_SECONDS", "20"))

    # Write endpoint (spreadsheet script web app)
    WRITE_ENDPOINT_URL = os.getenv("WRITE_ENDPOINT_URL", "")
    WRITE_TIMEOUT_SECONDS = int(os.getenv("WRITE_TIMEOUT_SECONDS", "30"))
    WRITE_RECONCILE_GRACE_SECONDS = int(os.getenv("WRITE_RECONCILE_GRACE_SECONDS", "600"))

    # Sync scheduling
    SYNC_INTERVAL_SECONDS = int(os.getenv("SYNC_INTERVAL_SECONDS", "300"))
    SESSION_TIMEOUT_SECONDS = int(os.getenv("SESSION_TIMEOUT_SECONDS", "1800"))

    # Normalization defaults
    PLANNING_YEAR = int(os.getenv("PLANNING_YEAR", "2026"))
    DEFAULT_STATUS = os.getenv("DEFAULT_STATUS", "Planning")
    DEFAULT_DEPARTMENT = os.getenv("DEFAULT_DEPARTMENT", "General")

    # Cache
    REDIS_URL = os.getenv("REDIS_URL", "memory://")
    CACHE_KEY_PREFIX = os.getenv("CACHE_KEY_PREFIX", "plansync")

    # CORS
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Auth
    API_AUTH_ENABLED = os.getenv("API_AUTH_ENABLED", "true")


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    # Auth disabled by default in development for convenience
    API_AUTH_ENABLED = os.getenv("API_AUTH_ENABLED", "false")


class TestingConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    PLAN_FEED_URL = "https://sheets.test/plan?output=tsv"
    REPORT_FEED_URL = "https://sheets.test/report?output=tsv"
    DOCUMENTS_FEED_URL = "https://sheets.test/documents?output=tsv"
    WRITE_ENDPOINT_URL = "https://script.test/exec"
    REDIS_URL = "memory://"
    PLANNING_YEAR = 2026
    DEFAULT_STATUS = "Planning"
    # Auth disabled in test environment
    API_AUTH_ENABLED = "false"
    RATELIMIT_ENABLED = False


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")  # Must be set explicitly in production

    def __init__(self):
        if not os.getenv("PLAN_FEED_URL"):
            raise RuntimeError("PLAN_FEED_URL environment variable is required in production")
        if not self.WRITE_ENDPOINT_URL:
            raise RuntimeError("WRITE_ENDPOINT_URL environment variable is required in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")


# Configuration mapping: environment name -> config class
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
