"""Error taxonomy for metadata fetching.

Only a failed fetch surfaces as an error; a page that simply lacks a title,
favicon or preview image still produces a successful result.
"""


class MetadataError(Exception):
    """Base class for metadata fetching failures."""

    code = "INTERNAL_SERVER_ERROR"


class InvalidUrl(MetadataError, ValueError):
    """The input is not an absolute http(s) URL."""

    code = "BAD_REQUEST"


class FetchFailed(MetadataError):
    """The remote server answered with a non-2xx status."""

    def __init__(self, status: int, status_text: str) -> None:
        self.status = status
        self.status_text = status_text
        super().__init__(f"Failed to fetch URL: {status} {status_text}".rstrip())


class NetworkError(MetadataError):
    """Transport-level failure: DNS, connect, TLS, timeout, redirects, size."""
