"""Exception hierarchy for s3-object-streams."""

from typing import Optional


class S3StreamsError(Exception):
    """Base exception for all s3-object-streams errors."""

    pass


class ValidationError(S3StreamsError):
    """Raised when validation fails."""

    pass


class ListingError(S3StreamsError):
    """Raised when a listing request fails after the retry budget is spent."""

    def __init__(self, message: str, bucket: str, prefix: Optional[str] = None):
        super().__init__(message)
        self.bucket = bucket
        self.prefix = prefix


class UnknownTierError(S3StreamsError):
    """Raised when an object reports a storage class outside the known set."""

    def __init__(self, storage_class: object, path: Optional[str] = None):
        super().__init__(
            f"Unrecognized storage class {storage_class!r}"
            + (f" for '{path}'" if path else "")
        )
        self.storage_class = storage_class
        self.path = path


class MalformedEntryError(S3StreamsError):
    """Raised when an object definition is missing its key, size or bucket."""

    pass
