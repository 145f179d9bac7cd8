# app/config.py
"""
Centralized configuration with validation.

Uses pydantic-settings to load and validate all environment variables at startup.
Storage providers are only registered when their required settings are present.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Storage selection
    STORAGE_PROVIDER: str = Field(
        default="gridfs",
        description="Default storage provider: gridfs, supabase, s3, local",
    )

    # GridFS (MongoDB)
    MONGODB_URI: str | None = Field(
        default=None,
        description="MongoDB connection string. Enables the gridfs provider when set.",
    )
    MONGODB_DB_NAME: str = Field(
        default="code_storage",
        description="MongoDB database holding the GridFS bucket",
    )
    GRIDFS_BUCKET_NAME: str = Field(
        default="code_files",
        description="GridFS bucket name",
    )

    # Supabase Storage
    SUPABASE_URL: str | None = Field(
        default=None,
        description="Supabase project URL. Enables the supabase provider when set.",
    )
    SUPABASE_KEY: str | None = Field(
        default=None,
        description="Supabase API key (anon or service role)",
    )
    SUPABASE_BUCKET: str = Field(
        default="code-files",
        description="Supabase Storage bucket name",
    )

    # S3 / S3-compatible
    S3_BUCKET: str | None = Field(
        default=None,
        description="S3 bucket name. Enables the s3 provider when set.",
    )
    S3_ENDPOINT_URL: str | None = Field(
        default=None,
        description="Custom endpoint for S3-compatible services (MinIO, Spaces)",
    )
    S3_REGION: str = Field(default="us-east-1")
    AWS_ACCESS_KEY_ID: str | None = None
    AWS_SECRET_ACCESS_KEY: str | None = None

    # Local filesystem
    LOCAL_STORAGE_PATH: str | None = Field(
        default=None,
        description="Base directory for the local provider. Enables it when set.",
    )

    # Upload limits
    MAX_FILE_SIZE_BYTES: int = Field(
        default=5 * 1024 * 1024,
        description="Per-file upload ceiling in bytes",
    )
    MAX_FILES_PER_REQUEST: int = Field(
        default=10,
        description="Maximum number of files accepted by one upload request",
    )
    ALLOWED_EXTENSIONS: str = Field(
        default=".js,.py,.ts,.jsx,.tsx,.vue,.svelte",
        description="Comma-separated list of accepted file extensions",
    )

    # Application
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment: development, staging, production",
    )
    LOG_LEVEL: str = Field(default="INFO")
    LOG_JSON: bool = Field(
        default=True,
        description="Emit single-line JSON logs (False for human-readable output)",
    )

    @field_validator("STORAGE_PROVIDER")
    @classmethod
    def normalize_provider(cls, v: str) -> str:
        return v.lower().strip()

    @property
    def allowed_extensions(self) -> list[str]:
        """Parsed extension allow-list, lowercase with leading dot."""
        exts = []
        for raw in self.ALLOWED_EXTENSIONS.split(","):
            ext = raw.strip().lower()
            if not ext:
                continue
            exts.append(ext if ext.startswith(".") else f".{ext}")
        return exts

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings. Call at startup to validate config."""
    return Settings()
