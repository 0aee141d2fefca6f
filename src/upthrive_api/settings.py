"""Settings for the requests API."""

from typing import Optional

from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for the requests API.

    [pydantic.BaseSettings](https://docs.pydantic.dev/latest/concepts/pydantic_settings/) is a popular
    framework for organizing, validating, and reading configuration values from a variety of sources
    including environment variables.

    This class automatically reads from:
    1. Environment variables (production)
    2. .env file (local development)

    Environment variable names are treated case-insensitively.
    """

    # Supabase (auth + storage)
    supabase_url: str
    """Base URL of the Supabase project, e.g. https://<project>.supabase.co (required)."""

    supabase_service_key: str
    """Supabase service role key, sent as the apikey header to auth and storage (required)."""

    auth_timeout_seconds: float = 5.0
    """Timeout for calls to Supabase auth and storage."""

    storage_bucket: str = "request-files"
    """Storage bucket holding request attachments and completed work."""

    max_upload_bytes: int = 100 * 1024 * 1024
    """Largest accepted upload (100MB)."""

    # Workflow database
    domain_db_connection_string: Optional[str] = None
    """PostgreSQL connection string for the request workflow database."""

    # Logging
    log_level: str = "INFO"
    """Minimum level for the stdout log sink."""

    environment: Optional[str] = None
    """Deployment environment name, included in startup logs."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",  # Load from .env file if it exists (local development)
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra environment variables not defined in the model
        validate_default=True,
    )
