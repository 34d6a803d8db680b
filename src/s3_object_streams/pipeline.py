"""Listing and usage pipelines wiring listers, aggregator and inventory together."""

from typing import Any, Iterable, Iterator, Optional

from .core import get_logger, get_tracer
from .models import Entry
from .objectstorage.analysis import usage_snapshots
from .objectstorage.analysis.usage import Snapshot
from .objectstorage.clients import S3ClientConfig, S3ClientManager, parse_s3_path
from .objectstorage.inventory import iter_inventory, read_manifest
from .objectstorage.inventory.manifest import PathLike
from .objectstorage.listing import (
    ConcurrentObjectLister,
    ObjectLister,
    S3MarkerPageLister,
    S3PageLister,
    SequentialObjectLister,
)
from .schemas import ListingOptions, UsageOptions

logger = get_logger(__name__)
tracer = get_tracer(__name__)


def create_lister(
    client: Any,
    options: Optional[ListingOptions] = None,
    sequential: bool = False,
) -> ObjectLister:
    """Create a concurrent or sequential lister over a shared S3 client.

    The concurrent lister groups keys by the delimiter to find prefixes it
    can list in parallel; the sequential lister pages through a flat listing.
    """
    options = options or ListingOptions()

    if sequential:
        page_lister = S3MarkerPageLister(
            client,
            delimiter=None,
            max_attempts=options.max_attempts,
            backoff_factor=options.backoff_factor,
        )
        return SequentialObjectLister(page_lister, options)

    page_lister = S3PageLister(
        client,
        delimiter=options.delimiter,
        max_attempts=options.max_attempts,
        backoff_factor=options.backoff_factor,
    )
    return ConcurrentObjectLister(page_lister, options)


def _client_for(
    client_config: Optional[S3ClientConfig], options: ListingOptions
) -> Any:
    manager = S3ClientManager(
        client_config or S3ClientConfig(),
        max_pool_connections=options.max_concurrency,
    )
    return manager.client


def list_objects(
    s3_path: str,
    client_config: Optional[S3ClientConfig] = None,
    options: Optional[ListingOptions] = None,
    sequential: bool = False,
    client: Any = None,
) -> Iterator[Entry]:
    """Stream every object under an S3 path.

    Args:
        s3_path: S3 path in format s3://bucket/prefix or s3://bucket
        client_config: Credentials and endpoint, when no client is given
        options: Listing options
        sequential: List through a single cursor instead of concurrently
        client: An existing boto3 S3 client to use

    Yields:
        Entry for each object, as soon as it is listed

    Raises:
        ValidationError: If the path is invalid
        ListingError: If a listing request fails after its retries
    """
    options = options or ListingOptions()
    bucket, prefix = parse_s3_path(s3_path)
    if client is None:
        client = _client_for(client_config, options)

    lister = create_lister(client, options, sequential=sequential)
    yield from lister.iter_objects(bucket, prefix)


def stream_usage(
    s3_path: str,
    client_config: Optional[S3ClientConfig] = None,
    listing_options: Optional[ListingOptions] = None,
    usage_options: Optional[UsageOptions] = None,
    sequential: bool = False,
    client: Any = None,
) -> Iterator[Snapshot]:
    """Stream running usage snapshots while listing an S3 path.

    Yields a snapshot every ``output_factor`` objects and a final one once
    the listing is complete.

    Raises:
        ListingError: If a listing request fails after its retries
        UnknownTierError: If an object has an untracked storage class
    """
    entries = list_objects(
        s3_path,
        client_config=client_config,
        options=listing_options,
        sequential=sequential,
        client=client,
    )
    yield from usage_snapshots(entries, usage_options)


def calculate_usage(
    s3_path: str,
    client_config: Optional[S3ClientConfig] = None,
    listing_options: Optional[ListingOptions] = None,
    usage_options: Optional[UsageOptions] = None,
    sequential: bool = False,
    client: Any = None,
) -> Snapshot:
    """List an S3 path and return its final usage summary."""
    with tracer.start_as_current_span("calculate_usage", attributes={"s3.path": s3_path}):
        snapshot: Snapshot = []
        for snapshot in stream_usage(
            s3_path,
            client_config=client_config,
            listing_options=listing_options,
            usage_options=usage_options,
            sequential=sequential,
            client=client,
        ):
            pass

        logger.info("Usage calculated", s3_path=s3_path, path_count=len(snapshot))
        return snapshot


def inventory_usage(
    manifest_path: PathLike,
    data_paths: Iterable[PathLike],
    usage_options: Optional[UsageOptions] = None,
) -> Iterator[Snapshot]:
    """Stream running usage snapshots from S3 Inventory data files.

    Raises:
        ValidationError: If the manifest or a data file cannot be read
        MalformedEntryError: If an inventory row is malformed
        UnknownTierError: If a row has an untracked storage class
    """
    manifest = read_manifest(manifest_path)
    yield from usage_snapshots(iter_inventory(manifest, data_paths), usage_options)
