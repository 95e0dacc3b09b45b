"""Tests for app.services.fetcher.fetch_page.

The network is replaced with an ``httpx.MockTransport`` so every request is
answered in-process.
"""

import asyncio

import httpx
import pytest

from app.services.errors import FetchFailed, InvalidUrl, NetworkError
from app.services.fetcher import USER_AGENT, fetch_page, validate_url


def _fetch(url: str, handler) -> str:
    async def run() -> str:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await fetch_page(url, client=client)

    return asyncio.run(run())


class TestValidateUrl:
    def test_accepts_https(self):
        validate_url("https://example.com/page")

    @pytest.mark.parametrize("url", ["ftp://example.com", "javascript:alert(1)", "example.com"])
    def test_rejects_other_schemes(self, url):
        with pytest.raises(InvalidUrl):
            validate_url(url)

    def test_rejects_missing_host(self):
        with pytest.raises(InvalidUrl):
            validate_url("https:///nohost")

    def test_rejects_malformed(self):
        with pytest.raises(InvalidUrl):
            validate_url("http://[::1")


class TestFetchPage:
    def test_returns_body_text(self):
        def handler(request):
            return httpx.Response(200, html="<title>Hi</title>")

        assert _fetch("https://example.com/", handler) == "<title>Hi</title>"

    def test_sends_browser_user_agent(self):
        seen = {}

        def handler(request):
            seen["ua"] = request.headers.get("user-agent")
            return httpx.Response(200, text="ok")

        _fetch("https://example.com/", handler)
        assert seen["ua"] == USER_AGENT

    def test_follows_redirects(self):
        def handler(request):
            if request.url.path == "/old":
                return httpx.Response(301, headers={"Location": "https://example.com/new"})
            return httpx.Response(200, text="moved here")

        assert _fetch("https://example.com/old", handler) == "moved here"

    def test_decodes_declared_charset(self):
        def handler(request):
            return httpx.Response(
                200,
                content="café".encode("latin-1"),
                headers={"Content-Type": "text/html; charset=iso-8859-1"},
            )

        assert _fetch("https://example.com/", handler) == "café"

    def test_invalid_url_makes_no_request(self):
        def handler(request):
            raise AssertionError("no request expected")

        with pytest.raises(InvalidUrl):
            _fetch("ftp://example.com/file", handler)


class TestFetchPageErrors:
    def test_non_success_status_raises_fetch_failed(self):
        def handler(request):
            return httpx.Response(404, text="missing")

        with pytest.raises(FetchFailed) as exc_info:
            _fetch("https://example.com/missing", handler)

        assert exc_info.value.status == 404
        assert exc_info.value.status_text == "Not Found"
        assert str(exc_info.value) == "Failed to fetch URL: 404 Not Found"

    def test_server_error_raises_fetch_failed(self):
        def handler(request):
            return httpx.Response(503)

        with pytest.raises(FetchFailed) as exc_info:
            _fetch("https://example.com/", handler)
        assert exc_info.value.status == 503

    def test_timeout_raises_network_error(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        with pytest.raises(NetworkError, match="timed out"):
            _fetch("https://example.com/", handler)

    def test_connection_error_raises_network_error(self):
        def handler(request):
            raise httpx.ConnectError("Name or service not known", request=request)

        with pytest.raises(NetworkError, match="Name or service not known"):
            _fetch("https://example.com/", handler)

    def test_redirect_loop_raises_network_error(self):
        def handler(request):
            return httpx.Response(302, headers={"Location": str(request.url)})

        with pytest.raises(NetworkError, match="Too many redirects"):
            _fetch("https://example.com/loop", handler)

    def test_oversized_body_raises_network_error(self, monkeypatch):
        monkeypatch.setattr("app.services.fetcher.MAX_CONTENT_SIZE", 10)

        def handler(request):
            return httpx.Response(200, content=b"x" * 100)

        with pytest.raises(NetworkError, match="maximum allowed size"):
            _fetch("https://example.com/", handler)

    def test_slow_body_hits_overall_deadline(self, monkeypatch):
        monkeypatch.setattr("app.services.fetcher.TIMEOUT", 0.2)

        async def trickle():
            for _ in range(50):
                await asyncio.sleep(0.05)
                yield b"x"

        def handler(request):
            return httpx.Response(200, content=trickle())

        with pytest.raises(NetworkError, match="timed out"):
            _fetch("https://example.com/", handler)
