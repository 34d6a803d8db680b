"""Running usage totals by storage class, grouped by bucket and folder.

Feed in objects one at a time; the aggregator keeps a count and byte total
per storage class for the bucket and for each folder down to the configured
depth. For an object at s3://bucket/a/b/c/file and depth 2 the tracked paths
are 'bucket', 'bucket/a' and 'bucket/a/b'.

Copying the whole summary is expensive for very large buckets or depths, so
a snapshot is only emitted once every ``output_factor`` objects, plus one
final snapshot when the input ends. The final snapshot can duplicate the
last throttled one.
"""

import bisect
import copy
from enum import Enum
from typing import Callable, Iterable, Iterator, Optional

from s3_object_streams.core import get_logger
from s3_object_streams.core.exceptions import (
    MalformedEntryError,
    UnknownTierError,
    ValidationError,
)
from s3_object_streams.models import AggregationNode, Entry
from s3_object_streams.objectstorage.storage_class import normalize_storage_classes
from s3_object_streams.schemas import UsageOptions

logger = get_logger(__name__)

Snapshot = list[AggregationNode]
SnapshotCallback = Callable[[Snapshot], None]


class AggregatorState(str, Enum):
    """Lifecycle of one aggregation run."""

    accepting = "accepting"
    finalizing = "finalizing"
    closed = "closed"


def derive_paths(bucket: str, key: str, depth: int = 0, delimiter: str = "/") -> list[str]:
    """Paths whose totals an object contributes to.

    The last key segment is the file name; of the remaining folder segments,
    the first ``depth`` each add one path.

    Example:
        >>> derive_paths("bucket", "a/b/c/1", depth=2)
        ['bucket', 'bucket/a', 'bucket/a/b']
    """
    paths = [bucket]
    if depth > 0:
        folders = key.split(delimiter)[:-1]
        for index in range(min(depth, len(folders))):
            paths.append(delimiter.join([bucket, *folders[: index + 1]]))
    return paths


class UsageAggregator:
    """Maintains sorted running totals and emits throttled snapshots.

    Calls to ``observe`` must come from one thread at a time; put the
    aggregator downstream of a single merged stream of objects.
    """

    def __init__(
        self,
        options: Optional[UsageOptions] = None,
        on_snapshot: Optional[SnapshotCallback] = None,
    ):
        """Initialize the aggregator.

        Args:
            options: Depth, delimiter, output factor and tracked storage classes
            on_snapshot: Called with every emitted snapshot

        Raises:
            UnknownTierError: If options name an unknown storage class
        """
        self.options = options or UsageOptions()
        self.on_snapshot = on_snapshot
        self.storage_classes = normalize_storage_classes(self.options.storage_classes)
        self.state = AggregatorState.accepting
        self.count = 0
        self.snapshot_count = 0

        self._nodes: dict[str, AggregationNode] = {}
        self._sorted_paths: list[str] = []
        self._sorted_nodes: list[AggregationNode] = []

    @property
    def nodes(self) -> Snapshot:
        """The live nodes in path order. Do not modify."""
        return self._sorted_nodes

    def observe(self, entry: Entry) -> None:
        """Add one object to the running totals.

        A rejected object leaves the totals untouched.

        Raises:
            MalformedEntryError: If bucket, key or size is missing or mistyped
            UnknownTierError: If the storage class is not tracked
            ValidationError: If the aggregator has finished
        """
        if self.state is not AggregatorState.accepting:
            raise ValidationError(f"Usage aggregator is {self.state.value}")
        self._validate(entry)

        for path in derive_paths(
            entry.bucket, entry.key, self.options.depth, self.options.delimiter
        ):
            totals = self._node(path).storage_classes[entry.storage_class]
            totals.count += 1
            totals.size += entry.size

        self.count += 1
        if self.count % self.options.output_factor == 0:
            self._emit()

    def flush(self) -> Snapshot:
        """Return a copy of the current totals without emitting it."""
        return copy.deepcopy(self._sorted_nodes)

    def finish(self) -> Snapshot:
        """End the input and emit the final snapshot.

        The final snapshot is always emitted, whatever the count.
        """
        if self.state is not AggregatorState.accepting:
            raise ValidationError(f"Usage aggregator is {self.state.value}")

        self.state = AggregatorState.finalizing
        snapshot = self._emit()
        self.state = AggregatorState.closed
        logger.info(
            "Usage aggregation finished",
            object_count=self.count,
            path_count=len(self._sorted_nodes),
            snapshot_count=self.snapshot_count,
        )
        return snapshot

    def _validate(self, entry: Entry) -> None:
        if not isinstance(entry, Entry):
            raise MalformedEntryError(f"Invalid S3 object definition provided: {entry!r}")
        if not isinstance(entry.bucket, str) or not entry.bucket:
            raise MalformedEntryError(f"Object has no bucket: {entry!r}")
        if not isinstance(entry.key, str) or not entry.key:
            raise MalformedEntryError(f"Object has no key: {entry!r}")
        if (
            not isinstance(entry.size, int)
            or isinstance(entry.size, bool)
            or entry.size < 0
        ):
            raise MalformedEntryError(f"Object has no valid size: {entry!r}")
        if entry.storage_class not in self.storage_classes:
            raise UnknownTierError(
                entry.storage_class, path=entry.path(self.options.delimiter)
            )

    def _node(self, path: str) -> AggregationNode:
        node = self._nodes.get(path)
        if node is None:
            node = AggregationNode.empty(path, self.storage_classes)
            self._nodes[path] = node
            index = bisect.bisect_left(self._sorted_paths, path)
            self._sorted_paths.insert(index, path)
            self._sorted_nodes.insert(index, node)
        return node

    def _emit(self) -> Snapshot:
        snapshot = copy.deepcopy(self._sorted_nodes)
        self.snapshot_count += 1
        if self.on_snapshot is not None:
            self.on_snapshot(snapshot)
        return snapshot


def usage_snapshots(
    entries: Iterable[Entry], options: Optional[UsageOptions] = None
) -> Iterator[Snapshot]:
    """Yield running snapshots for a stream of objects, then the final one.

    Raises:
        MalformedEntryError: If an object is malformed
        UnknownTierError: If an object has an untracked storage class
    """
    pending: list[Snapshot] = []
    aggregator = UsageAggregator(options, on_snapshot=pending.append)

    for entry in entries:
        aggregator.observe(entry)
        while pending:
            yield pending.pop(0)

    aggregator.finish()
    yield from pending
