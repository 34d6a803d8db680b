"""Object streams for listing very large S3 buckets and summarizing their usage.

This package lists the objects of S3 namespaces with millions of keys
without holding the listing in memory, and folds the listed objects into
running usage totals per storage class, grouped by bucket and folder.

Key Features:
    - Concurrent listing by recursive descent through common prefixes
    - Sequential single-cursor listing for small namespaces
    - Running usage totals with throttled snapshots
    - Usage from S3 Inventory reports instead of live listing
    - CLI interface

Recommended Usage:
    >>> from s3_object_streams import S3ClientConfig, stream_usage, UsageOptions
    >>> config = S3ClientConfig(aws_profile="my-profile")
    >>> for snapshot in stream_usage(
    ...     "s3://bucket/prefix", config, usage_options=UsageOptions(depth=1)
    ... ):
    ...     print(snapshot[0].count)

Advanced Usage:
    Import specific modules to assemble your own pipeline:

    >>> from s3_object_streams.objectstorage import ConcurrentObjectLister, S3PageLister
    >>> from s3_object_streams.objectstorage import UsageAggregator
"""

__version__ = "0.1.0"

from .core.exceptions import (
    ListingError,
    MalformedEntryError,
    S3StreamsError,
    UnknownTierError,
    ValidationError,
)
from .models import AggregationNode, Entry, ListingPage, ListingTask, TierTotals
from .objectstorage import (
    ConcurrentObjectLister,
    S3ClientConfig,
    SequentialObjectLister,
    StorageClass,
    UsageAggregator,
)
from .pipeline import (
    calculate_usage,
    create_lister,
    inventory_usage,
    list_objects,
    stream_usage,
)
from .schemas import ListingOptions, UsageOptions

__all__ = [
    # Errors
    "ListingError",
    "MalformedEntryError",
    "S3StreamsError",
    "UnknownTierError",
    "ValidationError",
    # Data model
    "AggregationNode",
    "Entry",
    "ListingPage",
    "ListingTask",
    "StorageClass",
    "TierTotals",
    # Options
    "ListingOptions",
    "S3ClientConfig",
    "UsageOptions",
    # Pipelines (recommended)
    "calculate_usage",
    "create_lister",
    "inventory_usage",
    "list_objects",
    "stream_usage",
    # Building blocks
    "ConcurrentObjectLister",
    "SequentialObjectLister",
    "UsageAggregator",
]
