"""Object storage usage analysis."""

from .usage import AggregatorState, UsageAggregator, derive_paths, usage_snapshots

__all__ = ["AggregatorState", "UsageAggregator", "derive_paths", "usage_snapshots"]
