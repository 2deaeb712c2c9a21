"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Everything here is read once at startup; the bucket URL, access policy
and collection layout do not change while the process runs.

Mock modes enable local development without an S3 bucket.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Nested values (image_collections) are given as JSON in the
    environment, e.g.
    IMAGE_COLLECTIONS='{"avatars": {"thumb": [50, 50]}}'
    """

    # API Configuration
    api_title: str = "EasyImages API"
    api_version: str = "v1"

    # S3 Storage Configuration
    s3_access_key_id: str = Field(
        default="",
        description="S3 access key ID, forwarded verbatim to the object store"
    )
    s3_secret_access_key: str = Field(
        default="",
        description="S3 secret access key"
    )
    s3_bucket_name: str = Field(
        default="easyimages",
        description="Bucket holding every collection's stores"
    )
    s3_public_read: bool = Field(
        default=False,
        description="Write objects public-read and hand out direct bucket URLs once stored."
    )
    s3_bucket_region: str = Field(
        default="",
        description="Bucket region. Leave blank for the default region."
    )
    s3_endpoint_url: Optional[str] = Field(
        default=None,
        description="Endpoint override for S3-compatible services (MinIO, R2)"
    )
    s3_mock_mode: bool = Field(
        default=False,
        description="Use in-memory mock instead of real S3. Enables local dev without a bucket."
    )

    # Image Processing
    imaging_enabled: bool = Field(
        default=True,
        description="When false, variants are skipped and only originals are stored."
    )
    image_collections: dict[str, dict[str, list[int]]] = Field(
        default_factory=lambda: {
            "images": {
                "thumbnail": [300, 300],
                "normal": [800, 400],
            }
        },
        description="Collections to create at startup: {collection: {variant: [width, height]}}"
    )
    server_url_prefix: str = Field(
        default="/cfs/files",
        description="Path prefix of the server-mediated file route"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set based on mock mode settings.

        Returns list of missing required fields.
        """
        missing = []

        if not self.s3_bucket_name:
            missing.append("S3_BUCKET_NAME")

        # credentials only required if not in mock mode
        if not self.s3_mock_mode:
            if not self.s3_access_key_id:
                missing.append("S3_ACCESS_KEY_ID")
            if not self.s3_secret_access_key:
                missing.append("S3_SECRET_ACCESS_KEY")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    For tests, call get_settings.cache_clear() to reset.
    """
    return Settings()
