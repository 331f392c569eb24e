"""
Configuration management for the Tripboard backend.
Uses Pydantic Settings to load configuration from environment variables.
"""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Database
    database_url: str = Field(
        default="postgresql+asyncpg://tripboard:tripboard@db:5432/tripboard",
        description="PostgreSQL connection URL with asyncpg driver"
    )
    database_echo: bool = Field(
        default=False,
        description="Log every SQL statement (debugging only)"
    )

    # =========================================================================
    # Uploads
    # =========================================================================

    uploads_dir: str = Field(
        default="uploads",
        description="Directory where uploaded post images are written"
    )
    uploads_url_prefix: str = Field(
        default="/uploads",
        description="Public URL prefix the uploads directory is served from"
    )
    max_post_images: int = Field(
        default=6,
        description="Maximum number of images attached to a single post"
    )
    max_crawl_location_images: int = Field(
        default=6,
        description="Maximum number of images attached to a single crawl stop"
    )
    max_image_size_bytes: int = Field(
        default=8 * 1024 * 1024,
        description="Maximum size of one uploaded image"
    )

    # =========================================================================
    # Feed limits
    # =========================================================================

    max_challenges_per_post: int = Field(
        default=3,
        description="Maximum number of challenges on a post"
    )
    max_challenges_per_crawl_location: int = Field(
        default=3,
        description="Maximum number of challenges on a crawl stop"
    )
    max_crawl_locations_per_post: int = Field(
        default=12,
        description="Maximum number of stops in a crawl post"
    )
    join_code_max_attempts: int = Field(
        default=10,
        description="Join code draws before trip creation gives up"
    )

    # CORS
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed to call the API from a browser"
    )

    # Server
    log_level: str = Field(default="INFO", description="Root log level")
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3001, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")


# Global settings instance
settings = Settings()
