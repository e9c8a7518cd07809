"""
Plan Sync Service
API-key roles.

Anyone holding a key may read the plan; staging adds and edits needs an
``editor`` key. Keys are listed in API_KEYS as ``"<key>:<role>,..."``
(a key with no role is a viewer). API_AUTH_ENABLED, env first and app
config second, switches the check off for local development; every request
then acts as ``admin``.

Health probes and CORS pre-flight are never gated. Write requests that carry
a body must send it as JSON (415 otherwise).
"""

import functools
import logging
import os

from flask import current_app, g, request

from plansync.utils.errors import E, api_error

logger = logging.getLogger(__name__)

VIEWER, EDITOR, ADMIN = "viewer", "editor", "admin"

# Lowest to highest; each role may do everything the ones before it can.
ROLES = (VIEWER, EDITOR, ADMIN)
ROLE_HIERARCHY = {role: set(ROLES[: i + 1]) for i, role in enumerate(ROLES)}

_PUBLIC_PREFIX = "/api/v1/health"
_WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
_OFF_VALUES = ("false", "0", "no", "off")


def _parse_api_keys() -> dict[str, str]:
    """Read API_KEYS into ``{key: role}``. Unknown roles become viewer."""
    keys = {}
    for entry in os.getenv("API_KEYS", "").split(","):
        entry = entry.strip()
        if not entry:
            continue
        key, sep, role = entry.rpartition(":")
        if not sep:
            key, role = entry, VIEWER
        role = role.strip().lower()
        if role not in ROLES:
            logger.warning("API key %s... has unknown role %r; treating as viewer", key[:4], role)
            role = VIEWER
        keys[key.strip()] = role
    return keys


def _auth_enabled(config) -> bool:
    flag = os.getenv("API_AUTH_ENABLED") or str(config.get("API_AUTH_ENABLED", "true"))
    return flag.strip().lower() not in _OFF_VALUES


def _presented_key():
    return (request.headers.get("X-API-Key", "").strip()
            or request.args.get("api_key", "").strip()
            or None)


def _require_json_body():
    if request.method in _WRITE_METHODS and request.content_length and not request.is_json:
        return api_error(E.UNSUPPORTED_MEDIA, "Request body must be application/json")
    return None


def _authenticate():
    """Resolve the caller's role into ``g.current_user_role``."""
    if not _auth_enabled(current_app.config):
        g.current_user_role = ADMIN
        return None

    keys = _parse_api_keys()
    if not keys:
        logger.error("API auth is enabled but API_KEYS is empty")
        return api_error(E.INTERNAL, "Server authentication not configured")

    presented = _presented_key()
    if not presented:
        return api_error(E.UNAUTHORIZED, "Provide an API key in the X-API-Key header")

    role = keys.get(presented)
    if role is None:
        logger.warning("Rejected unknown API key %s...", presented[:4])
        return api_error(E.UNAUTHORIZED, "Invalid API key")

    g.current_user_role = role
    return None


def require_role(minimum_role: str):
    """View decorator: 403 unless the caller's role includes ``minimum_role``.

        @projects_bp.route("/projects", methods=["POST"])
        @require_role("editor")
        def create_project(): ...
    """
    def decorator(view):
        @functools.wraps(view)
        def wrapped(*args, **kwargs):
            role = g.get("current_user_role")
            if role is None:
                return api_error(E.UNAUTHORIZED, "Authentication required")
            if minimum_role not in ROLE_HIERARCHY.get(role, ()):
                logger.warning("Role %s may not call %s %s", role, request.method, request.path)
                return api_error(E.FORBIDDEN, f"'{minimum_role}' role required")
            return view(*args, **kwargs)
        return wrapped
    return decorator


def init_auth(app):
    """Gate every /api/v1 request except health probes and pre-flight."""

    @app.before_request
    def _gate_api_request():
        path = request.path
        if not path.startswith("/api/v1/") or path.startswith(_PUBLIC_PREFIX):
            return None
        if request.method == "OPTIONS":
            return None
        return _require_json_body() or _authenticate()

    logger.info("API key auth installed (enabled=%s)", _auth_enabled(app.config))
