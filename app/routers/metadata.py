import logging

from fastapi import APIRouter, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.models.metadata import ErrorResponse, ExtractedMetadata, MetadataRequest
from app.services.errors import FetchFailed, NetworkError
from app.services.metadata import fetch_metadata

logger = logging.getLogger(__name__)

RATE_LIMIT = "20/minute"

limiter = Limiter(key_func=get_remote_address)
router = APIRouter(prefix="/metadata", tags=["Metadata"])


@router.post(
    "/fetch",
    response_model=ExtractedMetadata,
    summary="Fetch link-preview metadata for a URL",
    description=(
        "Fetches the page once and returns its title, description, favicon "
        "and preview image, taken from Open Graph, Twitter card and generic "
        "HTML tags in that order of preference.  Missing fields are returned "
        "as `null`; only a failed fetch is an error."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Invalid URL."},
        500: {"model": ErrorResponse, "description": "The page could not be fetched."},
    },
)
@limiter.limit(RATE_LIMIT)
async def fetch_link_metadata(request: Request, body: MetadataRequest) -> ExtractedMetadata:
    """Return the :class:`ExtractedMetadata` for ``body.url``."""
    url = body.url
    logger.info("Metadata request received", extra={"url": url})

    try:
        return await fetch_metadata(url)
    except FetchFailed as exc:
        logger.warning("Upstream rejected %s: %s %s", url, exc.status, exc.status_text)
        raise
    except NetworkError as exc:
        logger.warning("Network error fetching %s: %s", url, exc)
        raise
