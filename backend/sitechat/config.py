"""
Configuration settings for the site chat backend.
Uses pydantic-settings for type-safe environment variable management.
"""
from pathlib import Path
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App Info
    app_name: str = "Site Chat API"
    app_version: str = "1.0.0"
    git_commit: Optional[str] = None  # Git commit hash from environment
    build_date: Optional[str] = None  # Build timestamp from environment
    debug: bool = False
    log_level: str = "INFO"

    # CORS - comma-separated list in environment variable
    # Example: CORS_ORIGINS="http://localhost:5173,https://example.vercel.app"
    cors_origins_str: str = Field(
        default="http://localhost:5173,http://localhost:3000",
        validation_alias="CORS_ORIGINS"
    )

    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    # OpenAI
    openai_api_key: Optional[str] = None
    # Optional model id from env (e.g., model_id=gpt-4o)
    model_id: Optional[str] = None
    max_output_tokens: int = 1024
    temperature: float = 0.3
    llm_timeout: float = 60.0  # seconds per model request

    # Conversation
    owner_name: str = "Jeremy"
    history_window: int = 10  # messages sent to the model per turn

    # Static content (about-me.md, photos.md, snowboarding.csv)
    content_dir: Path = Path("content")

    # Retry/backoff for model calls (seconds)
    llm_max_retries: int = 3
    retry_initial_delay: float = 1.0
    retry_max_delay: float = 10.0
    retry_backoff_multiplier: float = 2.0
    retry_jitter: float = 0.1
    # Third-party tool APIs get a shorter budget so one flaky API doesn't stall the turn
    tool_max_retries: int = 2
    http_timeout: float = 15.0

    # Strava (biking)
    strava_access_token: Optional[str] = None
    strava_client_id: Optional[str] = None
    strava_client_secret: Optional[str] = None
    strava_refresh_token: Optional[str] = None

    # Spotify (music)
    spotify_access_token: Optional[str] = None
    spotify_client_id: Optional[str] = None
    spotify_client_secret: Optional[str] = None
    spotify_refresh_token: Optional[str] = None

    # Hardcover (books)
    hardcover_api_token: Optional[str] = None

    # Pydantic v2 settings config
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars so unexpected keys don't crash
    )

    @property
    def model_name(self) -> str:
        return self.model_id or "gpt-4o"


# Global settings instance
settings = Settings()
