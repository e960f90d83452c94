from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings validated via Pydantic.

    Values are loaded from environment variables and/or a .env file.
    """

    # API Keys
    openai_api_key: str = ""
    openai_organization: str | None = None
    openai_base_url: str | None = None
    openai_timeout: float = 60.0

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""

    # App config
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    data_dir: str = "./data/processed"
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    transcription_model: str = "whisper-1"

    # Media tooling
    ffmpeg_binary: str = "ffmpeg"
    ffprobe_binary: str = "ffprobe"
    probe_timeout_seconds: float = 30.0
    audio_timeout_seconds: float = 300.0
    thumbnail_timeout_seconds: float = 30.0
    clip_timeout_seconds: float = 180.0
    thumbnail_concurrency: int = 3
    max_thumbnails: int = 10

    # Segmentation / embeddings / search
    min_segment_length: int = 10
    max_segment_length: int = 300
    embedding_batch_size: int = 100
    embedding_batch_delay_seconds: float = 1.0
    similarity_threshold: float = 0.7
    search_limit: int = 10

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Gracefully handles missing .env files (e.g. in CI/testing) by falling
    back to environment variables and defaults.
    """
    try:
        return Settings()
    except Exception:
        # If .env is missing or unreadable, build settings from env vars only.
        return Settings(_env_file=None)  # type: ignore[call-arg]


settings = get_settings()
