"""Object storage streams for S3-compatible services."""

from .analysis import UsageAggregator, derive_paths, usage_snapshots
from .clients import S3ClientConfig, S3ClientManager
from .inventory import InventoryManifest, iter_inventory_entries, read_manifest
from .listing import (
    BoundedWorkQueue,
    ConcurrentObjectLister,
    PageLister,
    S3MarkerPageLister,
    S3PageLister,
    SequentialObjectLister,
)
from .storage_class import StorageClass

__all__ = [
    "BoundedWorkQueue",
    "ConcurrentObjectLister",
    "InventoryManifest",
    "PageLister",
    "S3ClientConfig",
    "S3ClientManager",
    "S3MarkerPageLister",
    "S3PageLister",
    "SequentialObjectLister",
    "StorageClass",
    "UsageAggregator",
    "derive_paths",
    "iter_inventory_entries",
    "read_manifest",
    "usage_snapshots",
]
