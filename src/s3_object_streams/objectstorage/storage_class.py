"""Storage class values reported by S3 for stored objects."""

from enum import Enum
from typing import Iterable, Optional

from s3_object_streams.core.exceptions import UnknownTierError


class StorageClass(str, Enum):
    """Closed set of S3 storage classes the usage summaries track."""

    STANDARD = "STANDARD"
    STANDARD_IA = "STANDARD_IA"
    REDUCED_REDUNDANCY = "REDUCED_REDUNDANCY"
    GLACIER = "GLACIER"
    ONEZONE_IA = "ONEZONE_IA"
    INTELLIGENT_TIERING = "INTELLIGENT_TIERING"
    DEEP_ARCHIVE = "DEEP_ARCHIVE"
    GLACIER_IR = "GLACIER_IR"
    OUTPOSTS = "OUTPOSTS"
    SNOW = "SNOW"
    EXPRESS_ONEZONE = "EXPRESS_ONEZONE"


# The storage classes of the original S3 offering
CLASSIC_STORAGE_CLASSES = (
    StorageClass.STANDARD,
    StorageClass.STANDARD_IA,
    StorageClass.REDUCED_REDUNDANCY,
    StorageClass.GLACIER,
)


def normalize_storage_classes(
    storage_classes: Optional[Iterable[str]] = None,
) -> tuple[str, ...]:
    """Return the tracked storage class names, in enumeration order by default.

    Raises:
        UnknownTierError: If a requested class is not a known S3 storage class
    """
    if storage_classes is None:
        return tuple(member.value for member in StorageClass)

    names = []
    for storage_class in storage_classes:
        try:
            names.append(StorageClass(storage_class).value)
        except ValueError:
            raise UnknownTierError(storage_class)
    return tuple(dict.fromkeys(names))
