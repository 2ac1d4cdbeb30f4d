"""FastAPI application setup with lifespan and exception handlers."""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from img2vid import __version__, validate_credentials
from img2vid.api.routes import ERROR_STATUS, RETRYABLE_KINDS, router
from img2vid.config import settings
from img2vid.errors import VideoGenerationError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Startup:
        - Validate the video generation credential
    """
    logger.info("Starting img2vid API...")
    validate_credentials()
    logger.info("API startup complete")

    yield

    logger.info("img2vid API shut down")


app = FastAPI(
    title="img2vid API",
    version=__version__,
    lifespan=lifespan,
)

# CORS for a separately served frontend, if one is configured
if settings.server.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(router)


@app.exception_handler(VideoGenerationError)
async def generation_error_handler(request: Request, exc: VideoGenerationError):
    """Map a classified generation failure to a JSON error response."""
    logger.warning(f"Generation failed in {request.url.path}: {exc.kind.value}: {exc.message}")
    return JSONResponse(
        status_code=ERROR_STATUS[exc.kind],
        content={
            "error": exc.kind.value,
            "detail": exc.message,
            "retryable": exc.kind in RETRYABLE_KINDS,
        },
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Catch-all exception handler to prevent stack traces in API responses."""
    logger.error(f"Unhandled exception in {request.method} {request.url.path}: {type(exc).__name__}: {str(exc)}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc),
        }
    )
