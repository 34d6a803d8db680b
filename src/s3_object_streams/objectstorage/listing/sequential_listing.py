"""Sequential listing of S3 objects through a single cursor."""

from typing import Iterator, Optional

from s3_object_streams.core import get_logger
from s3_object_streams.models import Entry
from s3_object_streams.schemas import ListingOptions

from .base import EntrySink
from .page_lister import PageLister

logger = get_logger(__name__)


class SequentialObjectLister:
    """Lists S3 objects one page at a time, with no fan-out.

    Simpler and gentler on the API than the concurrent lister, and the
    better choice for small namespaces. Objects arrive in key order.
    """

    def __init__(self, page_lister: PageLister, options: Optional[ListingOptions] = None):
        self.page_lister = page_lister
        self.options = options or ListingOptions()

    def iter_objects(self, bucket: str, prefix: str = "") -> Iterator[Entry]:
        """Yield every object under ``prefix``, paging until S3 reports no more.

        Raises:
            ListingError: If a listing request fails after its retries
        """
        logger.info("Starting sequential listing", bucket=bucket, prefix=prefix)

        token = None
        page_count = 0
        entry_count = 0
        while True:
            page = self.page_lister.list_page(
                bucket, prefix, token, self.options.page_size
            )
            page_count += 1

            for obj in page.objects:
                entry_count += 1
                yield Entry.from_s3_object(obj, bucket)

            if not page.next_token:
                break
            token = page.next_token

        logger.info(
            "Sequential listing finished",
            bucket=bucket,
            prefix=prefix,
            page_count=page_count,
            entry_count=entry_count,
        )

    def process_namespace(self, bucket: str, prefix: str, sink: EntrySink) -> None:
        """List every object under ``prefix``, handing each one to ``sink``."""
        for entry in self.iter_objects(bucket, prefix):
            sink(entry)
