"""Configuration management for the White Label upload service."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    ENV: str = "local"
    SERVICE_NAME: str = "whitelabel-uploads"
    SERVICE_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Storage Configuration
    STORAGE_BACKEND: str = "local"  # only "local" is supported
    UPLOAD_PATH: str = "data/uploads"  # shared root, destinations live below it

    # Streaming
    UPLOAD_CHUNK_SIZE_KB: int = 64
    PROGRESS_QUEUE_SIZE: int = 4096  # buffered progress values per subscriber

    @property
    def upload_root(self) -> Path:
        """Shared upload root as a path."""
        return Path(self.UPLOAD_PATH)

    @property
    def chunk_size_bytes(self) -> int:
        """Convert UPLOAD_CHUNK_SIZE_KB to bytes."""
        return self.UPLOAD_CHUNK_SIZE_KB * 1024


# Singleton settings instance
settings = Settings()
