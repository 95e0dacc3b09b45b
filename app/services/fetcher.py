from typing import Optional
from urllib.parse import urlparse

import anyio
import httpx

from app.services.errors import FetchFailed, InvalidUrl, NetworkError
from app.services.urls import ALLOWED_SCHEMES

MAX_CONTENT_SIZE = 5 * 1024 * 1024  # 5 MB
TIMEOUT = 10  # seconds, for the whole fetch including redirects and body
MAX_REDIRECTS = 10

# Some servers reject default or empty agents
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


def validate_url(url: str) -> None:
    """Raise InvalidUrl unless *url* is an absolute http(s) URL with a hostname."""
    try:
        parsed = urlparse(url)
        parsed.port
    except ValueError as exc:
        raise InvalidUrl(f"Invalid URL format: {exc}") from exc

    if parsed.scheme not in ALLOWED_SCHEMES:
        raise InvalidUrl(f"Scheme '{parsed.scheme}' is not allowed. Use http or https.")

    if not parsed.hostname:
        raise InvalidUrl("URL must have a valid hostname.")


async def fetch_page(url: str, client: Optional[httpx.AsyncClient] = None) -> str:
    """Fetch *url* and return the response body as a string.

    Exactly one GET is issued; redirects are followed by httpx. A *client*
    may be supplied by the caller, otherwise a short-lived one is opened for
    this call only.

    Raises:
        InvalidUrl: if the URL fails scheme / hostname validation.
        FetchFailed: on a non-2xx response.
        NetworkError: on transport errors, timeouts, too many redirects, or
            when the body exceeds MAX_CONTENT_SIZE.
    """
    validate_url(url)

    # httpx timeouts apply per operation; the deadline bounds the whole call
    try:
        with anyio.fail_after(TIMEOUT):
            if client is None:
                async with httpx.AsyncClient(
                    follow_redirects=True, max_redirects=MAX_REDIRECTS, timeout=TIMEOUT
                ) as own_client:
                    return await _get(own_client, url)
            return await _get(client, url)
    except TimeoutError as exc:
        raise NetworkError("The target URL timed out.") from exc


async def _get(client: httpx.AsyncClient, url: str) -> str:
    headers = {"User-Agent": USER_AGENT}
    try:
        async with client.stream(
            "GET", url, headers=headers, follow_redirects=True
        ) as response:
            if not response.is_success:
                raise FetchFailed(response.status_code, response.reason_phrase)

            content_length = response.headers.get("content-length")
            if (
                content_length
                and content_length.isdigit()
                and int(content_length) > MAX_CONTENT_SIZE
            ):
                raise NetworkError("Response body exceeds the maximum allowed size.")

            chunks = []
            total = 0
            async for chunk in response.aiter_bytes():
                total += len(chunk)
                if total > MAX_CONTENT_SIZE:
                    raise NetworkError("Response body exceeds the maximum allowed size.")
                chunks.append(chunk)

            body = b"".join(chunks)
            try:
                return body.decode(response.encoding or "utf-8", errors="replace")
            except LookupError:
                # Unknown charset in the Content-Type header
                return body.decode("utf-8", errors="replace")
    except httpx.TimeoutException as exc:
        raise NetworkError("The target URL timed out.") from exc
    except httpx.InvalidURL as exc:
        raise InvalidUrl(f"Invalid URL format: {exc}") from exc
    except httpx.TooManyRedirects as exc:
        raise NetworkError("Too many redirects.") from exc
    except httpx.HTTPError as exc:
        raise NetworkError(str(exc) or exc.__class__.__name__) from exc
