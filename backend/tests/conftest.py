"""Shared fixtures for the video generation tests.

The google-genai client is replaced by MagicMock/AsyncMock objects, artifact
downloads by httpx.MockTransport, and every sleep by a recorder so tests run
instantly and can assert on the backoff schedule.
"""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Ensure backend package is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from google.genai import types
from google.genai.errors import ClientError, ServerError

from img2vid.config import GenerationConfig
from img2vid.services.file_manager import FileManager

VIDEO_URI = "https://generativelanguage.googleapis.com/v1beta/files/abc123:download?alt=media"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


# ---------------------------------------------------------------------------
# Error and operation builders
# ---------------------------------------------------------------------------
def rate_limit_error(message: str = "Resource has been exhausted (e.g. check quota).") -> ClientError:
    return ClientError(
        429, {"error": {"code": 429, "status": "RESOURCE_EXHAUSTED", "message": message}}
    )


def server_error(message: str = "Internal error encountered.") -> ServerError:
    return ServerError(500, {"error": {"code": 500, "status": "INTERNAL", "message": message}})


def bad_request_error(message: str = "Request contains an invalid argument.") -> ClientError:
    return ClientError(
        400, {"error": {"code": 400, "status": "INVALID_ARGUMENT", "message": message}}
    )


def pending_operation(name: str = "operations/abc123") -> types.GenerateVideosOperation:
    return types.GenerateVideosOperation(name=name, done=False)


def done_operation(uri: str | None = VIDEO_URI, name: str = "operations/abc123") -> types.GenerateVideosOperation:
    return types.GenerateVideosOperation(
        name=name,
        done=True,
        response=types.GenerateVideosResponse(
            generated_videos=[types.GeneratedVideo(video=types.Video(uri=uri, mime_type="video/mp4"))]
        ),
    )


def failed_operation(message: str, code: int = 3) -> types.GenerateVideosOperation:
    return types.GenerateVideosOperation(
        name="operations/abc123",
        done=True,
        error={"code": code, "message": message},
    )


class SleepRecorder:
    """Awaitable stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def config() -> GenerationConfig:
    """Default budgets with jitter disabled so delays are exact."""
    return GenerationConfig(
        submit_max_attempts=6,
        submit_base_delay=4.0,
        poll_interval=10.0,
        poll_max_failures=8,
        jitter=0.0,
    )


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def genai_client() -> MagicMock:
    client = MagicMock()
    client.aio.models.generate_videos = AsyncMock()
    client.aio.operations.get = AsyncMock()
    return client


@pytest.fixture
def file_manager(tmp_path) -> FileManager:
    return FileManager(base_dir=tmp_path / "videos")
