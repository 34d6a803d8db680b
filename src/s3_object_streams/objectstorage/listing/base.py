"""Interface shared by the sequential and concurrent object listers."""

from typing import Callable, Iterator, Protocol

from s3_object_streams.models import Entry

EntrySink = Callable[[Entry], None]


class ObjectLister(Protocol):
    """Protocol for streaming every object under a bucket prefix."""

    def process_namespace(self, bucket: str, prefix: str, sink: EntrySink) -> None:
        """List every object under ``prefix`` and hand each one to ``sink``.

        Raises:
            ListingError: If any listing request fails
        """
        ...

    def iter_objects(self, bucket: str, prefix: str = "") -> Iterator[Entry]:
        """Yield every object under ``prefix``."""
        ...
