"""img2vid - animate a still image into a short AI-generated video.

This module provides the startup validation function that ensures the
service credential is available before any generation request is made.
Call validate_credentials() during application startup.
"""

import logging

__version__ = "0.1.0"

logger = logging.getLogger(__name__)


def validate_credentials() -> None:
    """Validate that a video-generation API key is configured.

    This function should be called during application startup to fail fast
    with clear setup instructions if the credential is missing.

    Raises:
        RuntimeError: If no API key is found in settings or the environment.
    """
    from img2vid.services.genai_client import resolve_api_key

    if not resolve_api_key():
        raise RuntimeError(
            "No API key configured for the video generation service.\n"
            "Set one of the following environment variables (or put it in .env):\n"
            "  IMG2VID_GOOGLE__API_KEY\n"
            "  GEMINI_API_KEY\n"
            "  GOOGLE_API_KEY"
        )
    logger.info("Video generation credential found")
