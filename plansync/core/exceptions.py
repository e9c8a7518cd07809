"""
Service-wide exception hierarchy.

Two families live here:

  SyncError and its subclasses describe everything that can go wrong while
  mirroring the published plan sheet. None of them is fatal: the sync
  boundary (services/sync_service.py) resolves NetworkError, FormatError
  and EmptyResultError into the cache fallback chain, and the mutation
  reconciler turns WriteForwardError into a user-visible notice.

  NotFoundError / ValidationError are raised by the service layer for API
  input problems. Blueprints map them to 404 / 422 through api_error().

Usage:
    from plansync.core.exceptions import NetworkError, ValidationError

    raise NetworkError(url, status_code=503)
    raise ValidationError("description is required", details={"description": "empty"})
"""


class SyncError(Exception):
    """Base class for read/write path failures against the external sheet."""


class NetworkError(SyncError):
    """The feed request raised, or returned a non-success status.

    Args:
        url: Feed URL without the cache-busting parameter.
        status_code: HTTP status when a response was received, else None.
        reason: Transport error text, if any.
    """

    def __init__(self, url: str, status_code: int | None = None, reason: str | None = None) -> None:
        self.url = url
        self.status_code = status_code
        self.reason = reason
        msg = f"Feed request failed for {url}"
        if status_code is not None:
            msg += f" (HTTP {status_code})"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class FormatError(SyncError):
    """The feed answered with an HTML page instead of tabular text.

    The publishing endpoint does this for login walls, quota pages and
    unpublished sheets, all with a 200 status.
    """

    def __init__(self, url: str, snippet: str = "") -> None:
        self.url = url
        self.snippet = snippet[:80]
        super().__init__(f"Feed at {url} returned HTML instead of tabular data: {self.snippet!r}")


class EmptyResultError(SyncError):
    """Parsing succeeded but no row passed the inclusion filter."""

    def __init__(self, row_count: int) -> None:
        self.row_count = row_count
        super().__init__(f"No project rows survived normalization ({row_count} raw rows)")


class WriteForwardError(SyncError):
    """The fire-and-forget write request itself raised.

    Only transport failures land here; the response body of the write
    endpoint is never read.
    """

    def __init__(self, action: str, reason: str, mutation_id: str | None = None) -> None:
        self.action = action
        self.reason = reason
        self.mutation_id = mutation_id
        super().__init__(f"Forwarding '{action}' failed: {reason}")


class NotFoundError(Exception):
    """Raised when a requested resource does not exist in the live list.

    Args:
        resource: Human-readable entity name (e.g. "Project").
        resource_id: The id that was looked up.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when staged input violates a record rule.

    Maps to HTTP 422 in blueprint error handlers.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)
