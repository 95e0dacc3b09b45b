import logging
import logging.config

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.routers.metadata import limiter, router as metadata_router
from app.services.errors import FetchFailed, InvalidUrl, MetadataError

logging.config.dictConfig(
    {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "format": '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json",
            },
        },
        "root": {"level": "INFO", "handlers": ["console"]},
    }
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Linkdrop – Link Metadata API",
    description="Fetches a URL and returns its title, description, favicon and preview image.",
    version="1.0.0",
)

# Rate-limiting state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"code": code, "message": message})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if any("url" in err.get("loc", ()) for err in errors):
        message = "Invalid URL format"
    else:
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return _error(400, "BAD_REQUEST", message)


@app.exception_handler(MetadataError)
async def metadata_exception_handler(request: Request, exc: MetadataError) -> JSONResponse:
    if isinstance(exc, InvalidUrl):
        return _error(400, exc.code, str(exc))
    if isinstance(exc, FetchFailed):
        return _error(500, exc.code, str(exc))
    return _error(500, exc.code, f"Failed to fetch metadata: {exc}")


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception for %s", request.url)
    return _error(500, "INTERNAL_SERVER_ERROR", "An unexpected error occurred.")


app.include_router(metadata_router)


@app.get("/", summary="Health check")
async def root() -> dict:
    return {"message": "Hello from Linkdrop"}
