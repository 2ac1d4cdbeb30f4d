"""API route handlers and Pydantic response schemas."""

import logging

from fastapi import APIRouter, BackgroundTasks, File, Form, HTTPException, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel

from img2vid.config import settings
from img2vid.errors import ErrorKind
from img2vid.pipeline.video_gen import generate_video
from img2vid.schemas.video import ACCEPTED_MIME_TYPES

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

# ---------------------------------------------------------------------------
# Error kind → HTTP status
# ---------------------------------------------------------------------------
ERROR_STATUS: dict[ErrorKind, int] = {
    ErrorKind.SAFETY: 422,
    ErrorKind.QUOTA: 429,
    ErrorKind.TRANSIENT_EXHAUSTED: 503,
    ErrorKind.MALFORMED_RESULT: 502,
    ErrorKind.NETWORK: 502,
    ErrorKind.UNKNOWN: 500,
}

# Kinds where submitting the same request again may succeed
RETRYABLE_KINDS = {
    ErrorKind.QUOTA,
    ErrorKind.TRANSIENT_EXHAUSTED,
    ErrorKind.NETWORK,
    ErrorKind.UNKNOWN,
}

MISSING_INPUTS_MESSAGE = "Please upload an image and provide an animation prompt."


class HealthResponse(BaseModel):
    status: str
    model: str


class ErrorResponse(BaseModel):
    error: str
    detail: str
    retryable: bool


@router.get("/health", response_model=HealthResponse)
async def health():
    """Liveness check reporting the configured video model."""
    return HealthResponse(status="ok", model=settings.google.video_model)


@router.post(
    "/generate",
    response_class=Response,
    responses={
        200: {"content": {"video/mp4": {}}},
        422: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def generate(
    background_tasks: BackgroundTasks,
    image: UploadFile = File(...),
    prompt: str = Form(""),
):
    """Animate the uploaded image according to prompt and return the MP4."""
    if not prompt.strip():
        raise HTTPException(status_code=422, detail=MISSING_INPUTS_MESSAGE)

    if image.content_type not in ACCEPTED_MIME_TYPES:
        raise HTTPException(
            status_code=422,
            detail=f"Invalid content type {image.content_type}. Must be image/png or image/jpeg",
        )

    content = await image.read()
    if not content:
        raise HTTPException(status_code=422, detail=MISSING_INPUTS_MESSAGE)

    max_bytes = settings.server.max_upload_bytes
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {max_bytes} bytes",
        )

    logger.info(f"Generating video for {image.filename} ({len(content)} bytes)")
    try:
        handle = await generate_video(content, image.content_type, prompt)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    # The handle's session file is only needed until the body is sent
    background_tasks.add_task(handle.release)
    return Response(content=handle.raw_data, media_type=handle.mime_type)
