"""Server settings for the EchoLingo API, read from the environment and `.env`."""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import AnyUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Every tunable the server reads at startup."""

    PROJECT_NAME: str = "EchoLingo Lab"
    API_PREFIX: str = "/api"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8787

    DATA_DIR: Path = Field(Path("data"), description="Directory holding app-db.json and backups/")
    SESSION_TTL_HOURS: int = Field(24, ge=1, description="Sliding lifetime of login sessions")
    MAINTENANCE_INTERVAL_SECONDS: int = Field(
        3600, ge=1, description="How often daily backups and session pruning run"
    )

    BACKEND_CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins the browser client may call from",
    )

    OPENAI_API_KEY: Optional[str] = None
    OPENAI_API_BASE: Optional[AnyUrl] = Field(
        None, description="Alternative base URL for the hosted speech API"
    )
    OPENAI_TTS_MODEL: str = Field("gpt-4o-mini-tts", description="Hosted text-to-speech model")

    NEWSAPI_KEY: Optional[str] = None
    GNEWS_API_KEY: Optional[str] = None
    NEWS_PROVIDER: str = Field("auto", description="auto, newsapi or gnews")

    HTTP_TIMEOUT_SECONDS: float = Field(12.0, description="Timeout for outbound HTTP calls")
    HTTP_MAX_RETRIES: int = Field(2, ge=1, description="Retry attempts for outbound HTTP calls")

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parent.parent / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def news_provider_mode(self) -> str:
        mode = self.NEWS_PROVIDER.strip().lower()
        return mode if mode in {"newsapi", "gnews"} else "auto"


@lru_cache()
def get_settings() -> Settings:
    """Build the settings once per process."""

    return Settings()


settings = get_settings()
