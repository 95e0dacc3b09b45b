from typing import Optional
from urllib.parse import urljoin, urlsplit

import httpx

ALLOWED_SCHEMES = {"http", "https"}


def _normalise(url: str) -> Optional[str]:
    """Percent-encode *url* into a valid URL string, or ``None`` if it cannot be."""
    try:
        return str(httpx.URL(url))
    except (httpx.InvalidURL, ValueError):
        return None


def resolve_url(base_url: str, href: str) -> Optional[str]:
    """Return *href* as an absolute URL resolved against *base_url*.

    Spaces and non-ASCII characters are percent-encoded.  Returns ``None``
    when the result is not a usable absolute URL, e.g. a malformed IPv6
    host, a bad port, or a scheme-less result.
    """
    href = href.strip()
    if not href:
        return None
    try:
        absolute = urljoin(base_url, href)
        parts = urlsplit(absolute)
        # Accessing .port validates it and raises ValueError when out of range
        parts.port
    except ValueError:
        return None

    if not parts.scheme:
        return None
    if parts.scheme in ALLOWED_SCHEMES and not parts.hostname:
        return None
    return _normalise(absolute)


def origin(url: str) -> Optional[str]:
    """Return ``scheme://host[:port]`` for an absolute http(s) *url*, else ``None``."""
    try:
        parts = urlsplit(url)
        parts.port
    except ValueError:
        return None
    if parts.scheme not in ALLOWED_SCHEMES or not parts.hostname:
        return None
    return f"{parts.scheme}://{parts.netloc.rsplit('@', 1)[-1]}"


def default_favicon(url: str) -> Optional[str]:
    """Best-guess favicon location: ``{origin}/favicon.ico``."""
    base = origin(url)
    if base is None:
        return None
    return _normalise(f"{base}/favicon.ico")
