"""Application settings and configuration.

This module defines all configuration options for the Threadline application.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Threadline", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 30,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )
    min_password_length: int = Field(default=8, alias="MIN_PASSWORD_LENGTH")

    # Database configuration
    database_url: str = Field(default="sqlite:///./threadline.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Composition limits
    max_post_characters: int = Field(default=280, alias="MAX_POST_CHARACTERS")
    min_poll_options: int = Field(default=2, alias="MIN_POLL_OPTIONS")
    max_poll_options: int = Field(default=4, alias="MAX_POLL_OPTIONS")

    # Feed assembly and rendering
    feed_page_size: int = Field(default=100, alias="FEED_PAGE_SIZE")
    feed_include_tombstones: bool = Field(default=True, alias="FEED_INCLUDE_TOMBSTONES")
    detail_reply_limit: int = Field(default=20, alias="DETAIL_REPLY_LIMIT")
    max_render_depth: int = Field(default=3, alias="MAX_RENDER_DEPTH")
    placeholder_display_name: str = Field(
        default="Unknown User",
        alias="PLACEHOLDER_DISPLAY_NAME",
    )
    placeholder_username: str = Field(default="Unknown", alias="PLACEHOLDER_USERNAME")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
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
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides.

        Returns:
            The active database URL (test database if in testing mode, otherwise production)
        """
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()  # type: ignore[call-arg]
