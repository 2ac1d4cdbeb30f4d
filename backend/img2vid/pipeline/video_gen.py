"""Image-to-video generation using Veo.

This module drives one generation call end to end:
- Submit the Veo job, retrying 429/5xx with exponential backoff
- Poll the long-running operation until done, backing off on transient
  errors and resetting the backoff after every successful poll
- Classify terminal failures (content policy, quota, malformed output)
- Download the MP4 artifact and expose it as a local file URL

Usage:
    from img2vid.pipeline.video_gen import generate_video

    handle = await generate_video(image_bytes, "image/png", "waves crash on the rocks")
    ...
    handle.release()
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional

import httpx
from google import genai
from google.genai import types

from img2vid.config import GenerationConfig, settings
from img2vid.errors import (
    ErrorKind,
    VideoGenerationError,
    error_message,
    is_rate_limited,
    is_retriable,
    is_transient_server_error,
    matches_safety_phrase,
)
from img2vid.pipeline.retry import call_with_backoff
from img2vid.schemas.video import GenerationRequest, VideoHandle
from img2vid.services.file_manager import FileManager
from img2vid.services.genai_client import get_genai_client, resolve_api_key

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

BUSY_MESSAGE = "The service is currently busy. Please try again in a moment."
STILL_BUSY_MESSAGE = (
    "The service is still busy after several attempts. "
    "Please wait a few minutes and try again."
)
POLL_ERROR_MESSAGE = "An unexpected error occurred while checking the video status."
SAFETY_MESSAGE = (
    "The request was blocked by the service's safety policies. "
    "Please try a different image or prompt."
)
QUOTA_MESSAGE = "The usage limit for video generation was reached. Please wait and try again."
NO_OUTPUT_MESSAGE = (
    "The AI did not produce a video. This is commonly due to safety "
    "filtering or an unclear request."
)
NO_LINK_MESSAGE = "Video generation succeeded, but no download link was provided."

# Maximum characters of a failed download body kept for diagnostics
_MAX_ERROR_BODY = 2000


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------
def _classify_submit_error(exc: BaseException) -> VideoGenerationError:
    """Map the error that ended submission to a VideoGenerationError."""
    message = error_message(exc)
    if matches_safety_phrase(message or str(exc)):
        return VideoGenerationError(ErrorKind.SAFETY, message or SAFETY_MESSAGE)
    if is_rate_limited(exc):
        return VideoGenerationError(ErrorKind.QUOTA, message or QUOTA_MESSAGE)
    if is_transient_server_error(exc):
        return VideoGenerationError(ErrorKind.TRANSIENT_EXHAUSTED, message or BUSY_MESSAGE)
    return VideoGenerationError(ErrorKind.UNKNOWN, message or BUSY_MESSAGE)


async def submit_generation(
    client: genai.Client,
    request: GenerationRequest,
    *,
    model: Optional[str] = None,
    config: Optional[GenerationConfig] = None,
    sleep: Sleep = asyncio.sleep,
) -> types.GenerateVideosOperation:
    """Start a Veo job for request, retrying rate-limit and server errors.

    Raises:
        VideoGenerationError: SAFETY, QUOTA, TRANSIENT_EXHAUSTED or UNKNOWN
            once the attempt budget is spent or a non-retryable error occurs.
    """
    config = config or settings.generation
    model = model or settings.google.video_model
    prompt = request.effective_prompt(config.prompt_suffix)

    async def _start() -> types.GenerateVideosOperation:
        return await client.aio.models.generate_videos(
            model=model,
            prompt=prompt,
            image=types.Image(image_bytes=request.image_bytes, mime_type=request.mime_type),
            config=types.GenerateVideosConfig(number_of_videos=config.number_of_videos),
        )

    try:
        operation = await call_with_backoff(
            _start,
            max_attempts=config.submit_max_attempts,
            base_delay=config.submit_base_delay,
            is_retryable=is_retriable,
            jitter=config.jitter,
            sleep=sleep,
        )
    except Exception as e:
        logger.error(f"Failed to start video generation: {type(e).__name__}: {e}")
        raise _classify_submit_error(e) from e

    if operation is None:
        raise VideoGenerationError(ErrorKind.MALFORMED_RESULT, "The service returned no operation")
    return operation


# ---------------------------------------------------------------------------
# Polling
# ---------------------------------------------------------------------------
async def poll_operation(
    client: genai.Client,
    operation: types.GenerateVideosOperation,
    *,
    config: Optional[GenerationConfig] = None,
    sleep: Sleep = asyncio.sleep,
) -> types.GenerateVideosOperation:
    """Poll operation until the service reports it done.

    Each successful poll replaces the snapshot and resets the interval and
    failure counter. Transient failures grow the interval exponentially;
    more than poll_max_failures in a row, or any other error, ends polling.

    Returns:
        The final, done operation snapshot.

    Raises:
        VideoGenerationError: If polling cannot continue.
    """
    config = config or settings.generation
    base_interval = config.poll_interval
    interval = base_interval
    failures = 0

    while not operation.done:
        await sleep(interval)
        try:
            operation = await client.aio.operations.get(operation=operation)
        except Exception as e:
            if not is_retriable(e):
                logger.error(f"Error during polling: {type(e).__name__}: {e}")
                message = error_message(e)
                if matches_safety_phrase(message):
                    raise VideoGenerationError(ErrorKind.SAFETY, message) from e
                raise VideoGenerationError(ErrorKind.UNKNOWN, message or POLL_ERROR_MESSAGE) from e

            failures += 1
            if failures > config.poll_max_failures:
                logger.error(f"Polling gave up after {failures} consecutive failures: {e}")
                kind = ErrorKind.QUOTA if is_rate_limited(e) else ErrorKind.TRANSIENT_EXHAUSTED
                raise VideoGenerationError(kind, STILL_BUSY_MESSAGE) from e

            interval = base_interval * 2 ** failures + random.uniform(0, config.jitter)
            logger.warning(
                f"Transient error while polling ({e}). Retrying in "
                f"{interval:.1f}s (attempt {failures}/{config.poll_max_failures})"
            )
            continue

        failures = 0
        interval = base_interval
        logger.info(f"Polling... operation status: {'done' if operation.done else 'in progress'}")

    return operation


# ---------------------------------------------------------------------------
# Result resolution
# ---------------------------------------------------------------------------
def _operation_error_message(error) -> Optional[str]:
    if isinstance(error, dict):
        return error.get("message") or None
    return getattr(error, "message", None) or (str(error) if error else None)


def select_video(operation: types.GenerateVideosOperation) -> types.Video:
    """Return the first generated video of a done operation.

    Raises:
        VideoGenerationError: SAFETY/UNKNOWN for an operation error payload,
            MALFORMED_RESULT when there is no usable video.
    """
    if operation.error:
        message = _operation_error_message(operation.error) or "Video generation failed"
        if matches_safety_phrase(message):
            raise VideoGenerationError(ErrorKind.SAFETY, message)
        raise VideoGenerationError(ErrorKind.UNKNOWN, message)

    response = operation.response
    videos = response.generated_videos if response else None
    if not videos:
        message = NO_OUTPUT_MESSAGE
        reasons = getattr(response, "rai_media_filtered_reasons", None) if response else None
        if reasons:
            message = f"{message} Filter reasons: {'; '.join(reasons)}"
        logger.error(f"No generated videos in operation response: {response}")
        raise VideoGenerationError(ErrorKind.MALFORMED_RESULT, message)

    video = videos[0].video
    if video is None or not video.uri:
        logger.error(f"No download link found in operation response: {response}")
        raise VideoGenerationError(ErrorKind.MALFORMED_RESULT, NO_LINK_MESSAGE)
    return video


async def download_video(
    uri: str,
    *,
    api_key: str,
    http_client: Optional[httpx.AsyncClient] = None,
    timeout: Optional[float] = None,
) -> bytes:
    """Download video bytes from the artifact URI, authenticating with api_key.

    Raises:
        VideoGenerationError: NETWORK on a non-2xx status or transport failure.
    """
    url = httpx.URL(uri).copy_merge_params({"key": api_key})
    timeout = timeout or settings.generation.download_timeout

    async def _get(client: httpx.AsyncClient) -> httpx.Response:
        return await client.get(url, follow_redirects=True)

    try:
        if http_client is not None:
            response = await _get(http_client)
        else:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await _get(client)
    except httpx.HTTPError as e:
        raise VideoGenerationError(
            ErrorKind.NETWORK, f"Failed to download the generated video: {e}"
        ) from e

    if not response.is_success:
        body = response.text[:_MAX_ERROR_BODY] if response.content else None
        logger.error(f"Video download failed with status {response.status_code}: {body}")
        raise VideoGenerationError(
            ErrorKind.NETWORK,
            f"Failed to download the generated video. Status: {response.status_code}",
            status_code=response.status_code,
            body=body,
        )
    return response.content


async def resolve_operation(
    operation: types.GenerateVideosOperation,
    *,
    api_key: str,
    http_client: Optional[httpx.AsyncClient] = None,
    file_manager: Optional[FileManager] = None,
    timeout: Optional[float] = None,
) -> VideoHandle:
    """Turn a done operation into a VideoHandle backed by a session file."""
    video = select_video(operation)
    logger.info(f"Fetching video from download link: {video.uri}")
    data = await download_video(
        video.uri, api_key=api_key, http_client=http_client, timeout=timeout,
    )

    file_mgr = file_manager or FileManager()
    path = file_mgr.save_video(data)
    logger.info(f"Video downloaded ({len(data)} bytes) and saved to {path}")
    return VideoHandle(
        playable_url=path.as_uri(),
        raw_data=data,
        mime_type=video.mime_type or "video/mp4",
        path=path,
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------
async def generate_video(
    image_bytes: bytes,
    mime_type: str,
    prompt: str,
    *,
    client: Optional[genai.Client] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    file_manager: Optional[FileManager] = None,
    config: Optional[GenerationConfig] = None,
    api_key: Optional[str] = None,
    sleep: Sleep = asyncio.sleep,
) -> VideoHandle:
    """Animate an image into a short video.

    Args:
        image_bytes: Raw image data (no base64 / data URL prefix).
        mime_type: image/png or image/jpeg.
        prompt: Animation instruction; quality modifiers are appended.
        client: google-genai client; defaults to the process-wide client.
        http_client: Client for the artifact download; one is created per
            call if omitted.
        file_manager: Where the downloaded video is stored.
        config: Retry and polling parameters; defaults to settings.generation.
        api_key: Credential for the download; defaults to the resolved key.
        sleep: Awaitable sleep, injectable for tests.

    Returns:
        VideoHandle owned by the caller, who must release() it.

    Raises:
        ValueError: If the inputs are invalid (before any remote call).
        VideoGenerationError: For every generation failure.
    """
    request = GenerationRequest(image_bytes=image_bytes, mime_type=mime_type, prompt=prompt)
    config = config or settings.generation

    try:
        client = client or get_genai_client()
        api_key = api_key or resolve_api_key()

        logger.info("Starting video generation...")
        operation = await submit_generation(client, request, config=config, sleep=sleep)

        logger.info("Operation started, polling for result...")
        operation = await poll_operation(client, operation, config=config, sleep=sleep)

        logger.info("Video generation complete.")
        return await resolve_operation(
            operation,
            api_key=api_key,
            http_client=http_client,
            file_manager=file_manager,
            timeout=config.download_timeout,
        )
    except VideoGenerationError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during video generation: {type(e).__name__}: {e}")
        raise VideoGenerationError(ErrorKind.UNKNOWN, str(e) or "An unknown error occurred") from e
