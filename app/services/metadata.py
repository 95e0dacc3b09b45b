"""Page metadata extraction for link previews.

Given the HTML of a page, :func:`extract_metadata` derives a title,
description, favicon URL and preview-image URL by walking an ordered list of
candidate sources for each field and keeping the first usable one:

``title``
    ``og:title`` → ``twitter:title`` → ``<title>``

``description``
    ``og:description`` → ``twitter:description`` → ``description``

``favicon_url``
    ``<link rel="icon">`` → ``<link rel="shortcut icon">`` →
    ``<link rel="apple-touch-icon">`` → ``{origin}/favicon.ico``

``preview_image_url``
    ``og:image`` → ``og:image:url`` → ``twitter:image`` → ``twitter:image:src``

Open Graph is preferred over Twitter cards, which are preferred over generic
tags.  A missing field is not an error.
"""

import logging
from typing import Iterable, Optional

import httpx
from bs4 import BeautifulSoup, Tag

from app.models.metadata import ExtractedMetadata
from app.services.fetcher import fetch_page
from app.services.urls import default_favicon, resolve_url

logger = logging.getLogger(__name__)

_TITLE_KEYS = ("og:title", "twitter:title")
_DESCRIPTION_KEYS = ("og:description", "twitter:description", "description")
_IMAGE_KEYS = ("og:image", "og:image:url", "twitter:image", "twitter:image:src")
_ICON_RELS = ("icon", "shortcut icon", "apple-touch-icon")


def _first_non_empty(candidates: Iterable[Optional[str]]) -> Optional[str]:
    """Return the first candidate that is non-empty once stripped."""
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()
    return None


def _meta_content(soup: BeautifulSoup, key: str) -> Optional[str]:
    """Return the ``content`` of the first ``<meta>`` whose property or name is *key*.

    Sites mix ``property=`` and ``name=`` for both Open Graph and Twitter
    tags, so either attribute is accepted.
    """
    for meta in soup.find_all("meta"):
        for attr in ("property", "name"):
            value = meta.get(attr)
            if isinstance(value, str) and value.strip().lower() == key:
                content = meta.get("content")
                if isinstance(content, str) and content.strip():
                    return content
    return None


def _document_title(soup: BeautifulSoup) -> Optional[str]:
    title_tag = soup.find("title")
    if isinstance(title_tag, Tag):
        return title_tag.get_text()
    return None


def _rel_of(link: Tag) -> str:
    rel = link.get("rel") or []
    if isinstance(rel, str):
        rel = rel.split()
    return " ".join(rel).lower()


def _extract_title(soup: BeautifulSoup) -> Optional[str]:
    meta_title = _first_non_empty(_meta_content(soup, key) for key in _TITLE_KEYS)
    return meta_title or _first_non_empty([_document_title(soup)])


def _extract_description(soup: BeautifulSoup) -> Optional[str]:
    return _first_non_empty(_meta_content(soup, key) for key in _DESCRIPTION_KEYS)


def _extract_favicon(soup: BeautifulSoup, base_url: str) -> Optional[str]:
    links = [link for link in soup.find_all("link") if link.get("href")]
    for rel in _ICON_RELS:
        for link in links:
            if _rel_of(link) != rel:
                continue
            resolved = resolve_url(base_url, str(link["href"]))
            if resolved:
                return resolved
            logger.debug("Dropping unresolvable favicon href %r", link["href"])
    return default_favicon(base_url)


def _extract_preview_image(soup: BeautifulSoup, base_url: str) -> Optional[str]:
    # No default fallback, unlike the favicon
    for key in _IMAGE_KEYS:
        content = _meta_content(soup, key)
        if content is None:
            continue
        resolved = resolve_url(base_url, content)
        if resolved:
            return resolved
        logger.debug("Dropping unresolvable preview image %r", content)
    return None


def extract_metadata(html: str, url: str) -> ExtractedMetadata:
    """Extract link-preview metadata from *html* fetched from *url*.

    Relative favicon and image references are resolved against *url*.
    """
    soup = BeautifulSoup(html, "lxml")
    return ExtractedMetadata(
        title=_extract_title(soup),
        description=_extract_description(soup),
        favicon_url=_extract_favicon(soup, url),
        preview_image_url=_extract_preview_image(soup, url),
        source_url=url,
    )


async def fetch_metadata(
    url: str, client: Optional[httpx.AsyncClient] = None
) -> ExtractedMetadata:
    """Fetch *url* and return its :class:`ExtractedMetadata`.

    Raises:
        InvalidUrl: if *url* is not an absolute http(s) URL.
        FetchFailed: if the server answers with a non-2xx status.
        NetworkError: on transport failure or timeout.
    """
    html = await fetch_page(url, client=client)
    metadata = extract_metadata(html, url)
    logger.info(
        "Metadata extracted",
        extra={
            "url": url,
            "has_title": metadata.title is not None,
            "has_description": metadata.description is not None,
            "has_preview_image": metadata.preview_image_url is not None,
        },
    )
    return metadata
