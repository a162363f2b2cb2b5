"""Application settings and configuration.

This module defines all configuration options for the Inspira API.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Inspira API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./inspira.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Identity tokens are minted by the external auth provider and verified here
    identity_token_secret: str = Field(alias="IDENTITY_TOKEN_SECRET")
    identity_token_algorithm: str = Field(default="HS256", alias="IDENTITY_TOKEN_ALGORITHM")
    identity_token_audience: str | None = Field(default=None, alias="IDENTITY_TOKEN_AUDIENCE")

    # Credits granted (through the ledger) when a profile is first created
    signup_bonus_credits: int = Field(default=0, ge=0, alias="SIGNUP_BONUS_CREDITS")

    # Payment provider (Razorpay)
    razorpay_key_id: str | None = Field(default=None, alias="RAZORPAY_KEY_ID")
    razorpay_key_secret: str = Field(default="", alias="RAZORPAY_KEY_SECRET")
    razorpay_base_url: str = Field(
        default="https://api.razorpay.com/v1",
        alias="RAZORPAY_BASE_URL",
    )
    payment_currency: str = Field(default="INR", alias="PAYMENT_CURRENCY")
    payment_http_timeout_seconds: float = Field(
        default=10.0,
        alias="PAYMENT_HTTP_TIMEOUT_SECONDS",
    )

    # S3-compatible object storage for post attachments
    s3_bucket: str | None = Field(default=None, alias="S3_BUCKET")
    s3_region: str = Field(default="auto", alias="S3_REGION")
    s3_endpoint: str | None = Field(default=None, alias="S3_ENDPOINT")
    s3_public_url: str | None = Field(default=None, alias="S3_PUBLIC_URL")
    s3_access_key_id: str | None = Field(default=None, alias="S3_ACCESS_KEY_ID")
    s3_secret_access_key: str | None = Field(default=None, alias="S3_SECRET_ACCESS_KEY")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def storage_configured(self) -> bool:
        """Return True when enough S3 settings are present to upload files."""
        return bool(self.s3_bucket and self.s3_access_key_id and self.s3_secret_access_key)


settings = Settings()  # type: ignore[call-arg]
