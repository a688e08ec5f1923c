"""
Calendar Feed Fetcher

Downloads external calendar feeds (Airbnb, Booking.com, Google, Outlook).

Only http(s) URLs on the configured host allow-list are fetched; the check
happens before any network I/O. Downloads are bounded by a timeout and a
maximum body size.
"""

import logging
from typing import Optional
from urllib.parse import urlparse

import httpx

from ..config import Settings, get_settings
from .exceptions import FeedTimeoutError, HttpStatusError, NetworkError, UnauthorizedSourceError

logger = logging.getLogger(__name__)


def host_is_allowed(host: str, allowed_hosts) -> bool:
    """Exact match or sub-domain of an allowed host."""
    host = (host or "").lower().rstrip(".")
    if not host:
        return False
    return any(host == allowed or host.endswith("." + allowed) for allowed in allowed_hosts)


class FeedFetcher:
    """
    Fetches raw calendar text.

    An ``httpx.AsyncClient`` may be injected (tests pass one built on
    ``httpx.MockTransport``); otherwise a client is opened per call.
    """

    def __init__(self, settings: Optional[Settings] = None, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings or get_settings()
        self.client = client

    def validate_url(self, url: str) -> str:
        parsed = urlparse(url or "")
        if parsed.scheme not in ("http", "https"):
            raise UnauthorizedSourceError(f"Unsupported feed URL scheme: {parsed.scheme or 'none'}")

        host = parsed.hostname or ""
        if not host_is_allowed(host, self.settings.ical_allowed_host_list):
            raise UnauthorizedSourceError(f"Calendar host not allowed: {host or 'none'}")
        return host

    async def fetch_feed(self, url: str) -> str:
        """Download a feed and return its text."""
        host = self.validate_url(url)

        headers = {
            "User-Agent": self.settings.ical_user_agent,
            "Accept": "text/calendar, text/plain, */*",
        }
        timeout = self.settings.ical_fetch_timeout_seconds

        try:
            if self.client is not None:
                response = await self.client.get(url, headers=headers, timeout=timeout, follow_redirects=True)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.get(url, headers=headers, timeout=timeout, follow_redirects=True)
        except httpx.TimeoutException as e:
            logger.warning(f"⏱️ Feed download timed out after {timeout}s: {host}")
            raise FeedTimeoutError(f"Timed out after {timeout}s fetching calendar from {host}") from e
        except httpx.HTTPError as e:
            logger.warning(f"⚠️ Feed download failed: {host}: {e}")
            raise NetworkError(f"Failed to fetch calendar from {host}: {e}") from e

        if not response.is_success:
            raise HttpStatusError(
                f"Calendar host {host} answered HTTP {response.status_code}",
                status_code=response.status_code,
            )

        if len(response.content) > self.settings.ical_max_feed_bytes:
            raise NetworkError(
                f"Calendar feed from {host} exceeds {self.settings.ical_max_feed_bytes} bytes"
            )

        logger.debug(f"📥 Downloaded {len(response.content)} bytes from {host}")
        return response.text
