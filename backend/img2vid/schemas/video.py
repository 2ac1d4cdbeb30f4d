"""Pydantic models for a single image-to-video generation."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Image types the uploader accepts
ACCEPTED_MIME_TYPES = frozenset({"image/png", "image/jpeg"})


class GenerationRequest(BaseModel):
    """Immutable input of one generation call."""

    model_config = ConfigDict(frozen=True)

    image_bytes: bytes = Field(min_length=1, repr=False)
    mime_type: str
    prompt: str

    @field_validator("image_bytes")
    @classmethod
    def reject_data_url(cls, v: bytes) -> bytes:
        """Image must be raw binary, not a base64 data URL."""
        if v[:5].lower() == b"data:":
            raise ValueError("image_bytes must be raw image data, not a data URL")
        return v

    @field_validator("mime_type")
    @classmethod
    def check_mime_type(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ACCEPTED_MIME_TYPES:
            raise ValueError(
                f"Unsupported image type {v!r}. Must be one of {sorted(ACCEPTED_MIME_TYPES)}"
            )
        return v

    @field_validator("prompt")
    @classmethod
    def check_prompt(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("prompt must not be empty")
        return v

    def effective_prompt(self, suffix: str) -> str:
        """Return the prompt sent to the service, with quality modifiers appended."""
        if not suffix:
            return self.prompt
        return f"{self.prompt}, {suffix}"


class VideoHandle(BaseModel):
    """A generated video, addressable locally by playable_url.

    The caller owns the handle and must call release() once the video is no
    longer displayed; the backing session file is deleted then.
    """

    model_config = ConfigDict(frozen=True)

    playable_url: str
    raw_data: bytes = Field(repr=False)
    mime_type: str = "video/mp4"
    path: Path

    def release(self) -> None:
        """Delete the session file behind playable_url. Safe to call twice."""
        self.path.unlink(missing_ok=True)
