"""Configuration management for s3-object-streams."""

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"
    otel_enabled: bool = False
    otel_service_name: str = "s3-object-streams"

    # Listing and aggregation defaults
    delimiter: str = "/"
    depth: int = 0
    output_factor: int = 100
    max_concurrency: int = 15
    page_size: int = 1000
    max_attempts: int = 3

    model_config = {
        "env_prefix": "S3_STREAMS_",
        "case_sensitive": False,
    }


settings = Settings()
