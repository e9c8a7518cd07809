"""
Published spreadsheet gateway.

All outbound HTTP calls to the sheet publishing endpoint and to the
script web app that accepts writes go through this class.
Direct `requests` calls in services or blueprints are FORBIDDEN.

Read side (fetch_feed):
  - Cache-busting query parameter `t=<epoch ms>` plus no-cache headers
  - Body decoded as UTF-8 (the endpoint omits the charset on TSV exports)
  - HTML bodies rejected with FormatError (login / error pages come back 200)
  - No retry here; the sync scheduler re-invokes on its next tick

Write side (forward_write):
  - POST JSON, fire-and-forget: the response body is never read
  - Only a raised transport error is observed (WriteForwardError)

Testability: pass a mock `session` to SheetGateway() in tests instead of
letting it create a real requests.Session internally.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

import requests

from plansync.core.exceptions import FormatError, NetworkError, WriteForwardError

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 20
_NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store",
    "Pragma": "no-cache",
}


def _epoch_ms() -> int:
    return int(time.time() * 1000)


def looks_like_html(body: str) -> bool:
    """True when the payload starts like an HTML document."""
    head = body.lstrip("\ufeff \t\r\n")[:15].lower()
    return head.startswith("<")


class SheetGateway:
    """Gateway for the published plan sheet and its write endpoint.

    Usage:
        gateway = SheetGateway(timeout=20)
        text = gateway.fetch_feed(app.config["PLAN_FEED_URL"])
        gateway.forward_write(app.config["WRITE_ENDPOINT_URL"], {"action": "add", ...})
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        timeout: int = _DEFAULT_TIMEOUT,
        write_timeout: int = 30,
        clock_ms: Callable[[], int] = _epoch_ms,
    ) -> None:
        # Inject custom session for testing; create real one lazily otherwise.
        self._session: requests.Session | None = session
        self.timeout = timeout
        self.write_timeout = write_timeout
        self._clock_ms = clock_ms

    # ── HTTP session ─────────────────────────────────────────────────────────

    @property
    def session(self) -> requests.Session:
        """Return (or lazily create) the requests.Session."""
        if self._session is None:
            self._session = requests.Session()
        return self._session

    # ── Read feed ─────────────────────────────────────────────────────────────

    def fetch_feed(self, url: str) -> str:
        """Fetch raw tab-separated text from a published feed.

        Returns:
            The decoded response body.

        Raises:
            NetworkError: transport failure or non-2xx status.
            FormatError: the body is an HTML page.
        """
        params = {"t": self._clock_ms()}
        t0 = time.perf_counter()
        try:
            resp = self.session.get(
                url, params=params, headers=dict(_NO_CACHE_HEADERS), timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise NetworkError(url, reason=f"timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise NetworkError(url, reason=str(exc)[:500]) from exc

        duration_ms = int((time.perf_counter() - t0) * 1000)
        if not resp.ok:
            logger.warning("Feed fetch failed status=%d url=%s", resp.status_code, url)
            raise NetworkError(url, status_code=resp.status_code)

        resp.encoding = "utf-8"
        body = resp.text
        if looks_like_html(body):
            raise FormatError(url, body.lstrip()[:80])

        logger.debug("Feed fetched url=%s bytes=%d [%dms]", url, len(body), duration_ms)
        return body

    # ── Write endpoint ────────────────────────────────────────────────────────

    def forward_write(self, url: str, payload: dict) -> None:
        """POST a staged mutation to the write endpoint without reading the reply.

        Raises:
            WriteForwardError: the request itself raised (DNS, TLS, timeout, ...).
        """
        action = str(payload.get("action", "unknown"))
        if not url:
            raise WriteForwardError(action, "write endpoint URL is not configured")
        try:
            resp = self.session.post(url, json=payload, timeout=self.write_timeout)
        except requests.RequestException as exc:
            raise WriteForwardError(action, str(exc)[:500]) from exc
        # Status is logged but not interpreted; the endpoint's reply is opaque.
        logger.debug("Write forwarded action=%s status=%s", action, getattr(resp, "status_code", None))
