"""Gemini API client wrapper using google-genai SDK.

The video generation service is reached through the Gemini Developer API
with an API key. The key is resolved once from settings or the environment
and shared by the SDK client and the artifact downloader.

Usage:
    from img2vid.services.genai_client import get_genai_client

    client = get_genai_client()
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from google import genai

from img2vid.config import settings

# Load .env for GEMINI_API_KEY / GOOGLE_API_KEY
load_dotenv(Path(__file__).resolve().parent.parent.parent.parent / ".env")

_client: Optional[genai.Client] = None

# Environment variables checked after settings.google.api_key, in order
API_KEY_ENV_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY")


def resolve_api_key() -> str:
    """Return the configured API key, or an empty string if none is set."""
    if settings.google.api_key:
        return settings.google.api_key
    for name in API_KEY_ENV_VARS:
        value = os.environ.get(name)
        if value:
            return value
    return ""


def get_genai_client() -> genai.Client:
    """Get or create the process-wide Gemini API client.

    Returns:
        genai.Client: Client configured with the resolved API key

    Raises:
        RuntimeError: If no API key is configured.
    """
    global _client
    if _client is None:
        api_key = resolve_api_key()
        if not api_key:
            raise RuntimeError("API key for the video generation service is not set")
        _client = genai.Client(api_key=api_key)
    return _client
