"""Split one record file into bounded parts without breaking records."""

from __future__ import annotations

import os
from typing import Callable, Optional

from recfs.core.base import RecordWriter, close_after_error
from recfs.core.errors import EndOfStream
from recfs.core.formats import PathArg, RecordFormat
from recfs.core.models import SplitStats
from recfs.monitoring.metrics import (
    OPERATION_DURATION,
    PARTS_WRITTEN,
    RECORDS_SPLIT,
)
from recfs.utils.logging import get_logger, log_context

__all__ = ["PartitionFn", "split_records"]

logger = get_logger(__name__)

# Maps a zero-based part index to the part's path
PartitionFn = Callable[[int], PathArg]


def split_records(
    fmt: RecordFormat,
    input_path: PathArg,
    limit: int,
    partition_fn: PartitionFn,
) -> SplitStats:
    """
    Split a record file into parts of at most ``limit`` data records.

    Parts are opened lazily, so an input without data records produces no
    part at all. With a header format every part starts with the header,
    which does not count toward ``limit``.

    On error, parts written so far stay on disk; the part being written is
    closed as-is and the error propagates.

    Args:
        fmt: Record format of input and parts
        input_path: File to split (``.gz`` is decompressed)
        limit: Maximum data records per part (>= 1)
        partition_fn: Called once per part, in index order, for its path

    Returns:
        SplitStats with part paths in order
    """
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")

    input_name = os.fspath(input_path)
    stats = SplitStats()
    writer: Optional[RecordWriter] = None
    in_part = 0

    with log_context(input=input_name, format=fmt.name), OPERATION_DURATION.labels(
        "split", fmt.name
    ).time():
        try:
            with fmt.open_reader(input_name) as reader:
                if fmt.has_header:
                    try:
                        stats.header = reader.read_record()
                    except EndOfStream:
                        logger.info("split_empty_input")
                        return stats

                for record in reader:
                    if fmt.validate is not None:
                        fmt.validate(record)

                    if writer is None:
                        part_path = os.fspath(partition_fn(len(stats.parts)))
                        writer = fmt.open_writer(part_path)
                        stats.parts.append(part_path)
                        if stats.header is not None:
                            writer.write_record(stats.header)
                        logger.debug(
                            "split_part_opened", part=part_path, index=len(stats.parts) - 1
                        )

                    writer.write_record(record)
                    stats.records += 1
                    in_part += 1

                    if in_part == limit:
                        part_writer, writer, in_part = writer, None, 0
                        part_writer.close()
                        PARTS_WRITTEN.labels(fmt.name).inc()

                if writer is not None:
                    part_writer, writer = writer, None
                    part_writer.close()
                    PARTS_WRITTEN.labels(fmt.name).inc()
        except Exception:
            logger.error(
                "split_failed",
                parts_written=len(stats.parts),
                records=stats.records,
                exc_info=True,
            )
            if writer is not None:
                close_after_error(writer, "split_part_close_failed")
            raise

        RECORDS_SPLIT.labels(fmt.name).inc(stats.records)
        logger.info("split_completed", parts=stats.part_count, records=stats.records)
    return stats
