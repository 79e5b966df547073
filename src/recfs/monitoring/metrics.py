"""Prometheus metrics for record split/join operations."""

from prometheus_client import Counter, Histogram

# Counters
RECORDS_SPLIT = Counter(
    "recfs_records_split_total", "Data records copied into parts", ["format"]
)
PARTS_WRITTEN = Counter(
    "recfs_parts_written_total", "Part files written by split", ["format"]
)
RECORDS_JOINED = Counter(
    "recfs_records_joined_total", "Data records copied into joined outputs", ["format"]
)
PARTS_JOINED = Counter(
    "recfs_parts_joined_total", "Part files consumed by join", ["format"]
)

# Histograms
OPERATION_DURATION = Histogram(
    "recfs_operation_duration_seconds",
    "Duration of split/join operations",
    ["operation", "format"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1, 5, 30, 120, 600),
)

__all__ = [
    "RECORDS_SPLIT",
    "PARTS_WRITTEN",
    "RECORDS_JOINED",
    "PARTS_JOINED",
    "OPERATION_DURATION",
]
