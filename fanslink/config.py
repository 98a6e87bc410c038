"""
Configuration and settings for the fanslink service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")
    site_url: str = Field(default="https://fansl.ink/")

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, validation_alias="FANSLINK_USE_IN_MEMORY_BACKENDS"
    )

    # Firebase (Firestore documents, auth, storage bucket)
    firebase_project_id: Optional[str] = Field(
        default=None, validation_alias="FIREBASE_PROJECT_ID"
    )
    firebase_credentials_path: Optional[str] = Field(
        default=None, validation_alias="GOOGLE_APPLICATION_CREDENTIALS"
    )
    firebase_web_api_key: Optional[str] = Field(
        default=None, validation_alias="FIREBASE_WEB_API_KEY"
    )
    firebase_storage_bucket: Optional[str] = Field(
        default=None, validation_alias="FIREBASE_STORAGE_BUCKET"
    )

    # SQL document backend (Postgres, or SQLite for local runs)
    database_url: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")

    # S3-compatible storage, used when no Firebase bucket is configured
    s3_bucket: Optional[str] = Field(default=None, validation_alias="S3_BUCKET")
    s3_endpoint: Optional[str] = Field(default=None, validation_alias="S3_ENDPOINT")
    s3_region: Optional[str] = Field(default=None, validation_alias="S3_REGION")
    s3_public_base_url: Optional[str] = Field(
        default=None, validation_alias="S3_PUBLIC_BASE_URL"
    )
    aws_access_key_id: Optional[str] = Field(
        default=None, validation_alias="AWS_ACCESS_KEY_ID"
    )
    aws_secret_access_key: Optional[str] = Field(
        default=None, validation_alias="AWS_SECRET_ACCESS_KEY"
    )

    # Prismic headless CMS
    prismic_repository: Optional[str] = Field(
        default=None, validation_alias="PRISMIC_REPOSITORY"
    )
    prismic_access_token: Optional[str] = Field(
        default=None, validation_alias="PRISMIC_ACCESS_TOKEN"
    )

    # Image handling
    image_max_size_mb: float = Field(default=0.5)
    image_max_dimension: int = Field(default=1920)

    # Outbound HTTP (image proxy, previews, CMS, auth REST)
    request_timeout_seconds: float = Field(default=30)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
