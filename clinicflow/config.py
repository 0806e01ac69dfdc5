"""Application configuration."""

from functools import lru_cache

from pydantic import Field, PositiveInt
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings read from the environment (or ``.env``).

    ``DATABASE_URL``, ``REDIS_HOST``, ``REDIS_PORT`` and
    ``JWT_SECRET_KEY`` have no defaults and must be provided.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="null",
    )

    app_name: str = Field(default="ClinicFlow API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG", description="Echo SQL statements")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")

    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # Storage
    database_url: str = Field(..., alias="DATABASE_URL")
    redis_host: str = Field(..., alias="REDIS_HOST")
    redis_port: int = Field(..., alias="REDIS_PORT")
    redis_username: str = Field(default="default", alias="REDIS_USERNAME")
    redis_password: str = Field(default="", alias="REDIS_PASSWORD")
    redis_decode_responses: bool = Field(default=True, alias="REDIS_DECODE_RESPONSES")
    catalog_cache_ttl: PositiveInt = Field(
        default=600,
        alias="CATALOG_CACHE_TTL",
        description="Seconds a cached catalog listing stays valid",
    )

    # Auth
    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: PositiveInt = Field(default=30, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Video consultations
    video_provider_api_key: str = Field(default="", alias="VIDEO_PROVIDER_API_KEY")
    video_provider_secret: str = Field(default="", alias="VIDEO_PROVIDER_SECRET")
    video_provider_base_url: str = Field(
        default="https://api.videosdk.live",
        alias="VIDEO_PROVIDER_BASE_URL",
    )
    video_token_expire_minutes: PositiveInt = Field(default=60, alias="VIDEO_TOKEN_EXPIRE_MINUTES")
    video_call_base_url: str = Field(
        default="http://localhost:3000",
        alias="VIDEO_CALL_BASE_URL",
        description="Public origin used to build call links",
    )

    # Dashboards and reports
    dashboard_recent_limit: PositiveInt = Field(default=10, alias="DASHBOARD_RECENT_LIMIT")
    dashboard_staff_limit: PositiveInt = Field(default=50, alias="DASHBOARD_STAFF_LIMIT")
    report_default_window_days: PositiveInt = Field(default=30, alias="REPORT_DEFAULT_WINDOW_DAYS")

    # CORS, comma separated
    cors_origins_str: str = Field(default="http://localhost:3000", alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    @property
    def video_provider_enabled(self) -> bool:
        """Whether rooms are created with the external provider."""
        return bool(self.video_provider_api_key and self.video_provider_secret)

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]


settings = get_settings()
