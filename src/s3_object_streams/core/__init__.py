"""Core utilities and shared components for s3-object-streams."""

from .config import settings
from .exceptions import (
    ListingError,
    MalformedEntryError,
    S3StreamsError,
    UnknownTierError,
    ValidationError,
)
from .observability import get_logger, get_tracer

__all__ = [
    "settings",
    "S3StreamsError",
    "ValidationError",
    "ListingError",
    "UnknownTierError",
    "MalformedEntryError",
    "get_logger",
    "get_tracer",
]
