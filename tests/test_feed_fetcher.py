"""
Tests for the calendar feed fetcher

Uses httpx.MockTransport, no network access.

Tests cover:
- Host allow-list checked before any request
- Non-2xx answers, timeouts, oversize bodies
"""

import asyncio

import httpx
import pytest


def make_fetcher(handler, **overrides):
    from app.config import Settings
    from app.services.feed_fetcher import FeedFetcher

    settings = Settings(**overrides)
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return FeedFetcher(settings=settings, client=client)


class TestHostAllowList:
    """Tests for host_is_allowed / validate_url"""

    @pytest.mark.parametrize("host, allowed", [
        ("airbnb.com", True),
        ("www.airbnb.com", True),
        ("ical.booking.com", True),
        ("AIRBNB.COM", True),
        ("evil-airbnb.com", False),
        ("airbnb.com.evil.net", False),
        ("", False),
    ])
    def test_host_is_allowed(self, host, allowed):
        from app.services.feed_fetcher import host_is_allowed

        assert host_is_allowed(host, ["airbnb.com", "booking.com"]) is allowed

    def test_disallowed_host_never_requested(self):
        from app.services.exceptions import UnauthorizedSourceError

        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, text="BEGIN:VCALENDAR\r\nEND:VCALENDAR\r\n")

        fetcher = make_fetcher(handler)

        with pytest.raises(UnauthorizedSourceError):
            asyncio.run(fetcher.fetch_feed("https://169.254.169.254/latest/meta-data"))

        assert requests == []

    def test_non_http_scheme_rejected(self):
        from app.services.exceptions import UnauthorizedSourceError

        fetcher = make_fetcher(lambda request: httpx.Response(200))

        with pytest.raises(UnauthorizedSourceError):
            fetcher.validate_url("ftp://www.airbnb.com/calendar.ics")


class TestFetchFeed:
    """Tests for fetch_feed"""

    def test_returns_body_and_sends_headers(self):
        seen = {}

        def handler(request):
            seen["user_agent"] = request.headers.get("user-agent")
            return httpx.Response(200, text="BEGIN:VCALENDAR\r\nEND:VCALENDAR\r\n")

        fetcher = make_fetcher(handler, ICAL_USER_AGENT="Test-Agent/1.0")

        text = asyncio.run(fetcher.fetch_feed("https://www.airbnb.com/calendar/ical/1.ics"))

        assert text.startswith("BEGIN:VCALENDAR")
        assert seen["user_agent"] == "Test-Agent/1.0"

    def test_http_error_status(self):
        from app.services.exceptions import HttpStatusError

        fetcher = make_fetcher(lambda request: httpx.Response(404, text="Not Found"))

        with pytest.raises(HttpStatusError) as exc_info:
            asyncio.run(fetcher.fetch_feed("https://www.airbnb.com/calendar/ical/1.ics"))

        assert exc_info.value.status_code == 404

    def test_timeout(self):
        from app.services.exceptions import FeedTimeoutError, NetworkError

        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        fetcher = make_fetcher(handler)

        with pytest.raises(FeedTimeoutError) as exc_info:
            asyncio.run(fetcher.fetch_feed("https://www.airbnb.com/calendar/ical/1.ics"))

        assert isinstance(exc_info.value, NetworkError)

    def test_connection_error(self):
        from app.services.exceptions import FeedTimeoutError, NetworkError

        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        fetcher = make_fetcher(handler)

        with pytest.raises(NetworkError) as exc_info:
            asyncio.run(fetcher.fetch_feed("https://www.airbnb.com/calendar/ical/1.ics"))

        assert not isinstance(exc_info.value, FeedTimeoutError)

    def test_oversize_body_rejected(self):
        from app.services.exceptions import NetworkError

        fetcher = make_fetcher(lambda request: httpx.Response(200, text="X" * 2048), ICAL_MAX_FEED_BYTES=1024)

        with pytest.raises(NetworkError):
            asyncio.run(fetcher.fetch_feed("https://www.airbnb.com/calendar/ical/1.ics"))
