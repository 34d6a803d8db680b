"""Object storage listing operations."""

from .base import EntrySink, ObjectLister
from .concurrent_listing import ConcurrentObjectLister, ListingRun
from .page_lister import PageLister, S3MarkerPageLister, S3PageLister
from .sequential_listing import SequentialObjectLister
from .work_queue import BoundedWorkQueue

__all__ = [
    "BoundedWorkQueue",
    "ConcurrentObjectLister",
    "EntrySink",
    "ListingRun",
    "ObjectLister",
    "PageLister",
    "S3MarkerPageLister",
    "S3PageLister",
    "SequentialObjectLister",
]
