from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.services.fetcher import validate_url


class MetadataRequest(BaseModel):
    url: str = Field(description="Absolute http(s) URL of the page to summarise.")

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        # The URL is echoed back verbatim, so it is validated but not normalised
        value = value.strip()
        validate_url(value)
        return value


class ExtractedMetadata(BaseModel):
    """Summary of a remote page, built fresh for each request.

    Every URL-valued field is either ``None`` or an absolute URL.  On the
    wire the fields use the camelCase names the bookmark UI expects.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    favicon_url: Optional[str] = Field(default=None, alias="faviconUrl")
    preview_image_url: Optional[str] = Field(
        default=None, alias="previewImageUrl"
    )
    source_url: str = Field(alias="url")


class ErrorResponse(BaseModel):
    code: Literal["BAD_REQUEST", "INTERNAL_SERVER_ERROR"]
    message: str
