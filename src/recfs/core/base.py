"""Reader/writer contract shared by all record formats."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterator, Optional, Union

from recfs.core.errors import EndOfStream
from recfs.core.streams import ByteSink, ByteSource
from recfs.utils.logging import get_logger

__all__ = ["RecordReader", "RecordWriter", "Stream", "close_after_error"]

logger = get_logger(__name__)


class RecordReader(ABC):
    """
    Reads one framed record at a time from a byte source.

    ``read_record`` raises ``EndOfStream`` when no record remains; iterating
    the reader stops at that point.
    """

    def __init__(self, source: ByteSource) -> None:
        self._source = source
        self.records_read = 0

    @property
    def name(self) -> str:
        return self._source.name

    @property
    def closed(self) -> bool:
        return self._source.closed

    @abstractmethod
    def read_record(self) -> Any:
        """Read the next record in the format's native shape."""
        pass

    def _check_open(self) -> None:
        if self._source.closed:
            raise RuntimeError(f"Reader is already closed: {self.name}")

    def _end_of_stream(self) -> EndOfStream:
        return EndOfStream(f"No more records in {self.name}")

    def __iter__(self) -> Iterator[Any]:
        while True:
            try:
                record = self.read_record()
            except EndOfStream:
                return
            yield record

    def close(self) -> None:
        """Close the stream and the layers underneath it."""
        self._source.close()

    def __enter__(self) -> "RecordReader":
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Any,
    ) -> None:
        self.close()


class RecordWriter(ABC):
    """
    Writes one framed record at a time to a byte sink.

    A record is either written whole or not at all by ``write_record``;
    ``close`` flushes every buffered byte and must be checked for errors.
    """

    def __init__(self, sink: ByteSink) -> None:
        self._sink = sink
        self.records_written = 0

    @property
    def name(self) -> str:
        return self._sink.name

    @property
    def closed(self) -> bool:
        return self._sink.closed

    @abstractmethod
    def write_record(self, record: Any) -> None:
        """Write one record in the format's native shape."""
        pass

    def _check_open(self) -> None:
        if self._sink.closed:
            raise RuntimeError(f"Writer is already closed: {self.name}")

    def close(self) -> None:
        """Close the stream and flush underlying buffers."""
        self._sink.close()

    def __enter__(self) -> "RecordWriter":
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Any,
    ) -> None:
        if not self.closed:
            self.close()


Stream = Union[RecordReader, RecordWriter]


def close_after_error(stream: Stream, event: str) -> None:
    """
    Close a stream while another error is already propagating.

    A failing close is logged so the original error reaches the caller.
    """
    try:
        stream.close()
    except Exception as exc:
        logger.warning(event, stream=stream.name, error=str(exc))
