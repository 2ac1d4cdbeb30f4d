"""Tests for request/handle models, session files and settings."""

import pytest
from pydantic import ValidationError

from img2vid.config import GenerationConfig, Settings
from img2vid.schemas.video import GenerationRequest

from conftest import PNG_BYTES


class TestGenerationRequest:
    def test_effective_prompt_appends_modifiers(self) -> None:
        request = GenerationRequest(image_bytes=PNG_BYTES, mime_type="image/jpeg", prompt="  leaves fall ")
        assert request.prompt == "leaves fall"
        assert request.effective_prompt("cinematic") == "leaves fall, cinematic"
        assert request.effective_prompt("") == "leaves fall"

    def test_is_frozen(self) -> None:
        request = GenerationRequest(image_bytes=PNG_BYTES, mime_type="image/png", prompt="x")
        with pytest.raises(ValidationError):
            request.prompt = "y"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"image_bytes": b"", "mime_type": "image/png", "prompt": "x"},
            {"image_bytes": b"data:image/png;base64,AAAA", "mime_type": "image/png", "prompt": "x"},
            {"image_bytes": PNG_BYTES, "mime_type": "image/webp", "prompt": "x"},
            {"image_bytes": PNG_BYTES, "mime_type": "image/png", "prompt": "   "},
        ],
    )
    def test_rejects_invalid_input(self, kwargs) -> None:
        with pytest.raises(ValueError):
            GenerationRequest(**kwargs)


def test_file_manager_rejects_traversal(file_manager) -> None:
    with pytest.raises(ValueError):
        file_manager.get_video_path("../../escape")


def test_file_manager_saves_under_base_dir(file_manager) -> None:
    path = file_manager.save_video(b"abc")
    assert path.parent == file_manager.base_dir
    assert path.read_bytes() == b"abc"


def test_settings_read_nested_env(monkeypatch) -> None:
    monkeypatch.setenv("IMG2VID_GENERATION__POLL_INTERVAL", "2.5")
    monkeypatch.setenv("IMG2VID_GOOGLE__VIDEO_MODEL", "veo-3.0-generate-001")

    loaded = Settings()

    assert loaded.generation.poll_interval == 2.5
    assert loaded.google.video_model == "veo-3.0-generate-001"
    assert loaded.generation.submit_max_attempts == GenerationConfig().submit_max_attempts


def test_validate_credentials(monkeypatch) -> None:
    from img2vid import validate_credentials
    import img2vid.services.genai_client  # noqa: F401 - loads .env first
    from img2vid.config import settings

    monkeypatch.setattr(settings.google, "api_key", "")
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    with pytest.raises(RuntimeError):
        validate_credentials()

    monkeypatch.setenv("GEMINI_API_KEY", "from-env")
    validate_credentials()
