"""Shared boto3 S3 client for listing workers."""

from .s3_client import (
    DEFAULT_MAX_POOL_CONNECTIONS,
    S3ClientConfig,
    S3ClientManager,
    parse_s3_path,
)

__all__ = [
    "DEFAULT_MAX_POOL_CONNECTIONS",
    "S3ClientConfig",
    "S3ClientManager",
    "parse_s3_path",
]
