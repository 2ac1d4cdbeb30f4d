"""Configuration management with YAML and environment variable support."""

from pathlib import Path
from typing import ClassVar

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads configuration from YAML file."""

    def get_field_value(self, field, field_name: str):
        # Not used with prepare method
        pass

    def prepare_field_value(self, field_name: str, field, value, value_is_complex: bool):
        return value

    def __call__(self):
        yaml_path = Path("config.yaml")
        if not yaml_path.exists():
            return {}

        with open(yaml_path) as f:
            data = yaml.safe_load(f) or {}

        return data


class GoogleConfig(BaseModel):
    """Video generation service credentials and model.

    api_key is normally supplied via .env or IMG2VID_GOOGLE__API_KEY; when
    empty, GEMINI_API_KEY / GOOGLE_API_KEY are consulted at startup.
    """

    api_key: str = ""
    video_model: str = "veo-2.0-generate-001"


class GenerationConfig(BaseModel):
    """Retry, polling and prompt parameters for one generation call."""

    prompt_suffix: str = "photorealistic, cinematic, high detail, 15 second video"
    number_of_videos: int = Field(default=1, ge=1)
    submit_max_attempts: int = Field(default=6, ge=1)
    submit_base_delay: float = Field(default=4.0, ge=0)
    poll_interval: float = Field(default=10.0, ge=0)
    poll_max_failures: int = Field(default=8, ge=0)
    jitter: float = Field(default=1.0, ge=0)
    download_timeout: float = Field(default=120.0, gt=0)


class StorageConfig(BaseModel):
    """Session artifact storage."""

    tmp_dir: Path = Path("tmp/videos")

    @field_validator("tmp_dir", mode="before")
    @classmethod
    def convert_tmp_dir_to_path(cls, v):
        """Convert string to Path object."""
        if isinstance(v, str):
            return Path(v)
        return v


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = "127.0.0.1"
    port: int = 8000
    max_upload_bytes: int = 10 * 1024 * 1024
    cors_origins: list[str] = Field(default_factory=list)


class Settings(BaseSettings):
    """Main application settings with YAML and environment variable support.

    Configuration sources (in priority order):
    1. Environment variables (prefix: IMG2VID_, delimiter: __)
    2. .env file
    3. YAML file (config.yaml)
    4. Field defaults
    """

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_nested_delimiter="__",
        env_prefix="IMG2VID_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    google: GoogleConfig = Field(default_factory=GoogleConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ):
        """Customize settings sources to include YAML configuration.

        Priority order (highest to lowest):
        1. Environment variables
        2. .env file
        3. YAML file
        4. Init settings (programmatic defaults)
        """
        return (
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            init_settings,
        )


# Singleton instance
settings = Settings()
