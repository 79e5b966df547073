"""CSV streams, header schema and named field access."""

from __future__ import annotations

import csv
import io
from types import MappingProxyType
from typing import Callable, Iterable, Iterator, Mapping, Optional, Sequence

from recfs.core.base import RecordReader, RecordWriter
from recfs.core.constants import (
    CSV_DELIMITER,
    CSV_ENCODING,
    CSV_FIELD_SIZE_LIMIT,
    CSV_LINE_TERMINATOR,
)
from recfs.core.errors import DecodeError, EndOfStream
from recfs.core.streams import ByteSink, ByteSource

__all__ = [
    "CsvValueProcessor",
    "CsvWriter",
    "CsvStream",
    "CsvReader",
    "CsvSchema",
    "CsvRecord",
    "CsvFile",
]

# Readers accept any cell the writer can produce
csv.field_size_limit(CSV_FIELD_SIZE_LIMIT)

# Pre-processes every value on read or write (e.g. trimming, escaping)
CsvValueProcessor = Callable[[str], str]


def _process(processors: Sequence[CsvValueProcessor], values: Iterable[str]) -> list[str]:
    if not processors:
        return list(values)
    result = []
    for value in values:
        for processor in processors:
            value = processor(value)
        result.append(value)
    return result


class CsvWriter(RecordWriter):
    """
    Writes CSV rows with standard quoting, ``\\n`` terminated.
    """

    def __init__(self, sink: ByteSink, *value_processors: CsvValueProcessor) -> None:
        super().__init__(sink)
        self.value_processors = value_processors
        self._text = io.TextIOWrapper(
            sink.stream, encoding=CSV_ENCODING, newline="", write_through=True
        )
        self._writer = csv.writer(
            self._text, delimiter=CSV_DELIMITER, lineterminator=CSV_LINE_TERMINATOR
        )

    def write(self, *values: str) -> None:
        """Write one row."""
        self._check_open()
        self._writer.writerow(_process(self.value_processors, values))
        self.records_written += 1

    def write_record(self, record: Sequence[str]) -> None:
        self.write(*record)

    def close(self) -> None:
        if self.closed:
            return
        # Hand the byte layer back without closing it; the sink owns it
        self._text.flush()
        self._text.detach()
        super().close()


class CsvStream(RecordReader):
    """
    Reads CSV rows; every row, including the first, is a record.
    """

    def __init__(self, source: ByteSource, *value_processors: CsvValueProcessor) -> None:
        super().__init__(source)
        self.value_processors = value_processors
        self._text = io.TextIOWrapper(source.stream, encoding=CSV_ENCODING, newline="")
        self._reader = csv.reader(self._text, delimiter=CSV_DELIMITER)

    def read(self) -> list[str]:
        """
        Read one row.

        Raises:
            EndOfStream: If no more rows remain
            DecodeError: If the row is malformed
        """
        self._check_open()
        try:
            row = next(self._reader)
        except StopIteration:
            raise self._end_of_stream() from None
        except (csv.Error, UnicodeDecodeError) as exc:
            raise DecodeError(
                f"Invalid CSV row at line {self._reader.line_num} in {self.name}: {exc}"
            ) from exc
        self.records_read += 1
        return _process(self.value_processors, row)

    def read_record(self) -> list[str]:
        return self.read()

    def close(self) -> None:
        if self.closed:
            return
        self._text.detach()
        super().close()


class CsvReader(CsvStream):
    """
    Reads CSV files whose first row is a header.
    """

    def __init__(self, source: ByteSource, *value_processors: CsvValueProcessor) -> None:
        super().__init__(source, *value_processors)
        self._file: Optional[CsvFile] = None

    def read_header(self) -> "CsvFile":
        """
        Consume the first row as the header.

        Returns:
            CsvFile view yielding records bound to the header schema

        Raises:
            EndOfStream: If the file is empty
            RuntimeError: If data rows were already read
        """
        if self._file is not None:
            return self._file
        if self.records_read:
            raise RuntimeError(f"Header must be read before any row: {self.name}")
        header = self.read()
        self._file = CsvFile(self, CsvSchema(header))
        return self._file


class CsvSchema:
    """
    Header-derived mapping from column name to zero-based index.

    With duplicate column names the last occurrence wins.
    """

    def __init__(self, header: Sequence[str]) -> None:
        self._header = tuple(header)
        self._index: Mapping[str, int] = MappingProxyType(
            {name: i for i, name in enumerate(self._header)}
        )

    @property
    def header(self) -> list[str]:
        return list(self._header)

    @property
    def index(self) -> Mapping[str, int]:
        return self._index

    def record(self, row: list[str]) -> "CsvRecord":
        """Wrap a row without copying it."""
        return CsvRecord(self, row)

    def __len__(self) -> int:
        return len(self._header)

    def __repr__(self) -> str:
        return f"CsvSchema(header={list(self._header)!r})"


class CsvRecord:
    """
    Row view with named field access through a schema.
    """

    def __init__(self, schema: CsvSchema, row: list[str]) -> None:
        self.schema = schema
        self._row = row

    @property
    def values(self) -> list[str]:
        return self._row

    def field(self, name: str, default: str = "") -> str:
        """Value of a column; ``default`` if the column is unknown or missing in this row."""
        i = self.schema.index.get(name)
        if i is None or i >= len(self._row):
            return default
        return self._row[i]

    def fields(self) -> dict[str, str]:
        """All columns present in this row, keyed by name."""
        return {
            name: self._row[i]
            for name, i in self.schema.index.items()
            if i < len(self._row)
        }

    def __getitem__(self, name: str) -> str:
        i = self.schema.index.get(name)
        if i is None or i >= len(self._row):
            raise KeyError(name)
        return self._row[i]

    def __len__(self) -> int:
        return len(self._row)

    def __repr__(self) -> str:
        return f"CsvRecord({self.fields()!r})"


class CsvFile:
    """
    Data rows of a CSV reader whose header has been consumed.
    """

    def __init__(self, reader: CsvReader, schema: CsvSchema) -> None:
        self._reader = reader
        self.schema = schema

    @property
    def header(self) -> list[str]:
        return self.schema.header

    @property
    def index(self) -> Mapping[str, int]:
        return self.schema.index

    def next(self) -> CsvRecord:
        """
        Read the next record.

        Raises:
            EndOfStream: If no more records remain
        """
        return self.schema.record(self._reader.read())

    def __iter__(self) -> Iterator[CsvRecord]:
        while True:
            try:
                record = self.next()
            except EndOfStream:
                return
            yield record
