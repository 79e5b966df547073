"""Join record file parts back into one logical stream."""

from __future__ import annotations

import os
from typing import Any, Iterable, Optional

from recfs.core.base import close_after_error
from recfs.core.errors import CsvHeaderMismatchError, EndOfStream
from recfs.core.formats import PathArg, RecordFormat
from recfs.core.models import JoinStats
from recfs.monitoring.metrics import (
    OPERATION_DURATION,
    PARTS_JOINED,
    RECORDS_JOINED,
)
from recfs.utils.logging import get_logger, log_context

__all__ = ["join_records"]

logger = get_logger(__name__)


def join_records(
    fmt: RecordFormat,
    output_path: PathArg,
    parts: Iterable[PathArg],
    validate_header: bool = True,
) -> JoinStats:
    """
    Concatenate the data records of ``parts`` into ``output_path``.

    Parts are read strictly in the given order. With a header format the
    first header is written once and the headers of later parts are
    skipped; an empty part file contributes nothing.

    The output is closed exactly once, also when an error aborts the join;
    a failed join leaves a truncated output on disk.

    Args:
        fmt: Record format of parts and output
        output_path: File to create (``.gz`` is compressed)
        parts: Part paths in order
        validate_header: Reject parts whose header differs from the first one

    Raises:
        CsvHeaderMismatchError: If ``validate_header`` and headers differ
    """
    output_name = os.fspath(output_path)
    stats = JoinStats(output=output_name)
    header: Optional[list[Any]] = None

    with log_context(output=output_name, format=fmt.name), OPERATION_DURATION.labels(
        "join", fmt.name
    ).time():
        writer = fmt.open_writer(output_name)
        try:
            for part in parts:
                part_name = os.fspath(part)
                with fmt.open_reader(part_name) as reader:
                    if fmt.has_header:
                        try:
                            part_header = reader.read_record()
                        except EndOfStream:
                            logger.debug("join_part_empty", part=part_name)
                            stats.parts += 1
                            continue

                        if header is None:
                            header = part_header
                            writer.write_record(header)
                        else:
                            if validate_header and part_header != header:
                                raise CsvHeaderMismatchError(part_name, header, part_header)
                            stats.skipped_headers += 1

                    copied = 0
                    for record in reader:
                        if fmt.validate is not None:
                            fmt.validate(record)
                        writer.write_record(record)
                        copied += 1

                stats.parts += 1
                stats.records += copied
                PARTS_JOINED.labels(fmt.name).inc()
                logger.debug("join_part_copied", part=part_name, records=copied)
        except Exception:
            logger.error(
                "join_failed",
                parts_joined=stats.parts,
                records=stats.records,
                exc_info=True,
            )
            close_after_error(writer, "join_output_close_failed")
            raise

        writer.close()
        RECORDS_JOINED.labels(fmt.name).inc(stats.records)
        logger.info("join_completed", parts=stats.parts, records=stats.records)
    return stats
