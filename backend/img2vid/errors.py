"""Error taxonomy and classification helpers for video generation.

Every failure that leaves the generation core is a VideoGenerationError
tagged with exactly one ErrorKind. The helpers below decide which raw SDK
or transport errors are worth retrying and which carry a content-policy
rejection.
"""

from enum import Enum
from typing import Any, Optional

import httpx
from google.genai.errors import APIError, ServerError


class ErrorKind(str, Enum):
    """Categories of generation failure exposed to callers."""

    SAFETY = "safety"
    QUOTA = "quota"
    TRANSIENT_EXHAUSTED = "transient_exhausted"
    MALFORMED_RESULT = "malformed_result"
    NETWORK = "network"
    UNKNOWN = "unknown"


class VideoGenerationError(Exception):
    """A classified generation failure.

    Attributes:
        kind: Failure category.
        message: Human-readable explanation (server text where available).
        status_code: HTTP status of a failed artifact download, if any.
        body: Response body of a failed download, kept for diagnostics.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.body = body

    def __repr__(self) -> str:
        return f"VideoGenerationError(kind={self.kind.value!r}, message={self.message!r})"


# Phrases the service uses when it declines a request on content-policy grounds
SAFETY_PHRASES = (
    "sensitive",
    "responsible ai practices",
    "safety policies",
    "usage guidelines",
)

_TRANSIENT_STATUSES = {"UNKNOWN", "INTERNAL", "UNAVAILABLE"}


def error_message(exc: BaseException) -> Optional[str]:
    """Return the server-provided message of an SDK error, if any."""
    if isinstance(exc, APIError):
        return exc.message or None
    return None


def matches_safety_phrase(text: Any) -> bool:
    """Check if text contains known content-policy rejection phrasing."""
    if not text:
        return False
    lowered = str(text).lower()
    return any(phrase in lowered for phrase in SAFETY_PHRASES)


def is_rate_limited(exc: BaseException) -> bool:
    """Return True for 429 / RESOURCE_EXHAUSTED signals."""
    if isinstance(exc, APIError):
        return exc.code == 429 or exc.status == "RESOURCE_EXHAUSTED"
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code == 429
    return "429" in str(exc) or "RESOURCE_EXHAUSTED" in str(exc)


def is_transient_server_error(exc: BaseException) -> bool:
    """Return True for 5xx / unknown-status failures and transport blips."""
    if isinstance(exc, ServerError):
        return True
    if isinstance(exc, APIError):
        return exc.status in _TRANSIENT_STATUSES
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    if isinstance(exc, (httpx.TransportError, ConnectionError, TimeoutError)):
        return True
    return False


def is_retriable(exc: BaseException) -> bool:
    """Return True only for transient errors worth retrying (429, 5xx)."""
    return is_rate_limited(exc) or is_transient_server_error(exc)
