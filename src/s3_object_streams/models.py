"""Data model shared by the listing streams and the usage aggregator."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Mapping, Optional

from .core.exceptions import MalformedEntryError


@dataclass(frozen=True)
class Entry:
    """One stored object, tagged with the bucket it was listed from.

    Attributes:
        bucket: Bucket name (the namespace identity)
        key: Full object key
        size: Object size in bytes
        storage_class: Storage class name as reported by S3
        last_modified: Last modification time, when the source reports it
        etag: Entity tag, when the source reports it
    """

    bucket: str
    key: str
    size: int
    storage_class: str
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None

    def path(self, delimiter: str = "/") -> str:
        """Bucket-qualified path of the object."""
        return f"{self.bucket}{delimiter}{self.key}"

    @classmethod
    def from_s3_object(cls, obj: Mapping[str, Any], bucket: str) -> "Entry":
        """Build an entry from one ``Contents`` item of a listing response.

        Raises:
            MalformedEntryError: If the key or size is missing or mistyped
        """
        key = obj.get("Key") if isinstance(obj, Mapping) else None
        size = obj.get("Size") if isinstance(obj, Mapping) else None

        if not isinstance(key, str) or not key:
            raise MalformedEntryError(f"Invalid S3 object definition provided: {obj!r}")
        if not isinstance(size, int) or isinstance(size, bool):
            raise MalformedEntryError(f"Invalid S3 object definition provided: {obj!r}")

        return cls(
            bucket=bucket,
            key=key,
            size=size,
            # list_objects omits the class for some S3-compatible services
            storage_class=obj.get("StorageClass", "STANDARD"),
            last_modified=obj.get("LastModified"),
            etag=obj.get("ETag"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "Bucket": self.bucket,
            "Key": self.key,
            "Size": self.size,
            "StorageClass": self.storage_class,
            "LastModified": (
                self.last_modified.isoformat() if self.last_modified else None
            ),
            "ETag": self.etag,
        }


@dataclass(frozen=True)
class ListingTask:
    """A request to list one page of a prefix.

    A prefix with more pages is resubmitted as the same logical task with a
    new continuation token; sub-prefixes become new tasks with no token.
    """

    prefix: str
    continuation_token: Optional[str] = None
    page_size: int = 1000

    def child(self, prefix: str) -> "ListingTask":
        """Task for a discovered sub-prefix, starting from its first page."""
        return replace(self, prefix=prefix, continuation_token=None)

    def continue_from(self, continuation_token: str) -> "ListingTask":
        """The same prefix, resuming at the given token."""
        return replace(self, continuation_token=continuation_token)


@dataclass(frozen=True)
class ListingPage:
    """One page of a listing response.

    Attributes:
        next_token: Cursor for the following page, None on the last page
        objects: Raw ``Contents`` items listed directly under the prefix
        common_prefixes: Sub-prefixes one delimiter segment deeper
    """

    next_token: Optional[str] = None
    objects: tuple[Mapping[str, Any], ...] = ()
    common_prefixes: tuple[str, ...] = ()

    @property
    def is_truncated(self) -> bool:
        return self.next_token is not None


@dataclass
class TierTotals:
    """Running count and byte total for one storage class."""

    count: int = 0
    size: int = 0


@dataclass
class AggregationNode:
    """Running usage totals for one bucket or folder path."""

    path: str
    storage_classes: dict[str, TierTotals] = field(default_factory=dict)

    @classmethod
    def empty(cls, path: str, storage_classes: tuple[str, ...]) -> "AggregationNode":
        return cls(
            path=path,
            storage_classes={name: TierTotals() for name in storage_classes},
        )

    @property
    def count(self) -> int:
        return sum(totals.count for totals in self.storage_classes.values())

    @property
    def size(self) -> int:
        return sum(totals.size for totals in self.storage_classes.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "storageClass": {
                name: {"count": totals.count, "size": totals.size}
                for name, totals in self.storage_classes.items()
            },
        }
