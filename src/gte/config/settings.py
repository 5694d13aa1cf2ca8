"""Application settings loaded from environment."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strongly typed settings for the grievance engine."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    pghost: Optional[str] = Field(default=None, alias="PGHOST")
    pgport: int = Field(default=5432, alias="PGPORT")
    pguser: Optional[str] = Field(default=None, alias="PGUSER")
    pgpassword: Optional[str] = Field(default=None, alias="PGPASSWORD")
    pgdatabase: Optional[str] = Field(default=None, alias="PGDATABASE")
    store_backend: str = Field(default="postgres", alias="STORE_BACKEND")

    # Zones
    ward_geojson_path: str = Field(default="data/wards.geo.json", alias="WARD_GEOJSON_PATH")

    # Intake
    grievances_per_24h: int = Field(default=3, alias="GRIEVANCES_PER_24H")
    rate_limit_window_hours: int = Field(default=24, alias="RATE_LIMIT_WINDOW_HOURS")
    title_max_chars: int = Field(default=200, alias="TITLE_MAX_CHARS")
    description_max_chars: int = Field(default=1000, alias="DESCRIPTION_MAX_CHARS")
    old_photo_days: int = Field(default=30, alias="OLD_PHOTO_DAYS")

    # Duplicate grouping
    group_lookback_days: int = Field(default=7, alias="GROUP_LOOKBACK_DAYS")
    quick_check_lookback_hours: int = Field(default=72, alias="QUICK_CHECK_LOOKBACK_HOURS")
    group_radius_m: float = Field(default=100.0, alias="GROUP_RADIUS_M")
    similarity_threshold: float = Field(default=0.3, alias="SIMILARITY_THRESHOLD")

    # Collaborators
    media_root: str = Field(default="media", alias="MEDIA_ROOT")
    media_base_url: str = Field(default="/media", alias="MEDIA_BASE_URL")
    notify_webhook_url: Optional[str] = Field(default=None, alias="NOTIFY_WEBHOOK_URL")
    notify_timeout_seconds: int = Field(default=5, alias="NOTIFY_TIMEOUT_SECONDS")

    # Relevance worker
    relevance_classifier: str = Field(default="keyword", alias="RELEVANCE_CLASSIFIER")
    relevance_max_attempts: int = Field(default=3, alias="RELEVANCE_MAX_ATTEMPTS")
    relevance_backoff_seconds: float = Field(default=2.0, alias="RELEVANCE_BACKOFF_SECONDS")
    relevance_lease_seconds: int = Field(default=300, alias="RELEVANCE_LEASE_SECONDS")
    relevance_prompt_version: str = Field(default="r_v001", alias="RELEVANCE_PROMPT_VERSION")

    # LLM providers
    google_api_key: Optional[str] = Field(default=None, alias="GOOGLE_API_KEY")
    gemini_api_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        alias="GEMINI_API_BASE_URL",
    )
    gemini_model_id: str = Field(default="gemini-1.5-flash", alias="GEMINI_MODEL_ID")
    gemini_temperature: float = Field(default=0.0, alias="GEMINI_TEMPERATURE")
    gemini_max_output_tokens: int = Field(default=256, alias="GEMINI_MAX_OUTPUT_TOKENS")
    gemini_timeout_seconds: int = Field(default=20, alias="GEMINI_TIMEOUT_SECONDS")

    # Runtime
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    run_env: str = Field(default="local", alias="RUN_ENV")

    def get_database_url(self) -> str:
        """Return a usable database URL or raise."""
        if self.database_url:
            return self.database_url

        if all([self.pghost, self.pguser, self.pgpassword, self.pgdatabase]):
            return (
                "postgresql://"
                f"{self.pguser}:{self.pgpassword}@{self.pghost}:{self.pgport}/"
                f"{self.pgdatabase}"
            )

        raise ValueError("DATABASE_URL or PG* env vars must be set")
