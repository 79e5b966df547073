"""
FileService: one entry point for JSON, proto and CSV record files.

Buffer size and marshal options are read when a stream is opened; changing
them later does not affect streams that are already open.
"""

from __future__ import annotations

from typing import BinaryIO, Iterable, Optional, Sequence

from google.protobuf.message import Message

from recfs.config.config import FileServiceConfig
from recfs.core.constants import (
    DEFAULT_BUFFER_SIZE,
    DEFAULT_COMPRESS_LEVEL,
    FORMAT_CSV,
    FORMAT_JSON,
    FORMAT_PROTO,
    MIN_BUFFER_SIZE,
)
from recfs.core.csv_file import (
    CsvReader,
    CsvSchema,
    CsvStream,
    CsvValueProcessor,
    CsvWriter,
)
from recfs.core.formats import PathArg, RecordFormat
from recfs.core.joiner import join_records
from recfs.core.json_file import JsonReader, JsonWriter
from recfs.core.models import JoinStats, MarshalOptions, SplitStats, UnmarshalOptions
from recfs.core.proto_file import (
    ProtoBufferWriter,
    ProtoReader,
    ProtoWriter,
    decode_message,
)
from recfs.core.splitter import PartitionFn, split_records
from recfs.core.streams import (
    ByteSink,
    ByteSource,
    handle_name,
    is_gzip_path,
    open_sink,
    open_source,
    sink_from_handle,
    source_from_handle,
)

__all__ = ["FileService"]


class FileService:
    """
    Opens, creates, splits and joins record files.

    Paths ending in ``.gz`` are transparently compressed/decompressed;
    handle-based constructors take an explicit ``with_gzip`` flag.
    """

    def __init__(
        self,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        marshal_options: Optional[MarshalOptions] = None,
        unmarshal_options: Optional[UnmarshalOptions] = None,
        compress_level: int = DEFAULT_COMPRESS_LEVEL,
        validate_csv_header: bool = True,
    ) -> None:
        self._buffer_size = DEFAULT_BUFFER_SIZE
        self.set_buffer_size(buffer_size)
        self._marshal_options = marshal_options or MarshalOptions()
        self._unmarshal_options = unmarshal_options or UnmarshalOptions()
        self.compress_level = compress_level
        self.validate_csv_header = validate_csv_header

    @classmethod
    def from_config(cls, config: FileServiceConfig) -> "FileService":
        return cls(
            buffer_size=config.buffer_size,
            marshal_options=config.marshal_options(),
            unmarshal_options=config.unmarshal_options(),
            compress_level=config.compress_level,
            validate_csv_header=config.validate_csv_header,
        )

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def buffer_size(self) -> int:
        """Buffer size used on each file opening or creation (default 64 KiB)."""
        return self._buffer_size

    def set_buffer_size(self, rw_buf_size: int) -> None:
        if rw_buf_size < MIN_BUFFER_SIZE:
            raise ValueError(
                f"Buffer size too small: {rw_buf_size} bytes (min {MIN_BUFFER_SIZE})"
            )
        self._buffer_size = rw_buf_size

    def marshal_options(self) -> MarshalOptions:
        return self._marshal_options

    def set_marshal_options(self, options: MarshalOptions) -> None:
        self._marshal_options = options

    def unmarshal_options(self) -> UnmarshalOptions:
        return self._unmarshal_options

    def set_unmarshal_options(self, options: UnmarshalOptions) -> None:
        self._unmarshal_options = options

    # ------------------------------------------------------------------
    # Byte layers
    # ------------------------------------------------------------------

    def _create(self, file_path: PathArg) -> ByteSink:
        return open_sink(
            file_path, buffer_size=self._buffer_size, compress_level=self.compress_level
        )

    def _open(self, file_path: PathArg) -> ByteSource:
        return open_source(file_path, buffer_size=self._buffer_size)

    def _wrap_sink(self, fd: BinaryIO, with_gzip: bool) -> ByteSink:
        return sink_from_handle(fd, with_gzip=with_gzip, compress_level=self.compress_level)

    @staticmethod
    def _wrap_file(fd: BinaryIO) -> ByteSource:
        # File objects handed over by path-less callers are owned by the reader
        return source_from_handle(fd, with_gzip=is_gzip_path(handle_name(fd, "")), owns_raw=True)

    # ------------------------------------------------------------------
    # JSON
    # ------------------------------------------------------------------

    def new_json_stream(self, fd: BinaryIO, with_gzip: bool = False) -> JsonWriter:
        """Create a JSON writer on top of a writable handle."""
        return JsonWriter(self._wrap_sink(fd, with_gzip), self._marshal_options)

    def new_json_file(self, file_path: PathArg) -> JsonWriter:
        """Create a JSON file; ``.gz`` paths are compressed."""
        return JsonWriter(self._create(file_path), self._marshal_options)

    def json_stream(self, fd: BinaryIO, with_gzip: bool = False) -> JsonReader:
        """Open a JSON reader on top of a readable handle."""
        return JsonReader(source_from_handle(fd, with_gzip=with_gzip), self._unmarshal_options)

    def open_json_file(self, file_path: PathArg) -> JsonReader:
        """Open a JSON file; ``.gz`` paths are decompressed."""
        return JsonReader(self._open(file_path), self._unmarshal_options)

    def json_file(self, fd: BinaryIO) -> JsonReader:
        """Open a JSON reader over a file object; closing the reader closes it."""
        return JsonReader(self._wrap_file(fd), self._unmarshal_options)

    def _json_format(self) -> RecordFormat:
        return RecordFormat(
            name=FORMAT_JSON,
            open_reader=self.open_json_file,
            open_writer=self.new_json_file,
        )

    def split_json_file(
        self, input_file_path: PathArg, limit: int, partition_fn: PartitionFn
    ) -> list[str]:
        """Split a JSON file into parts of at most ``limit`` records."""
        return split_records(self._json_format(), input_file_path, limit, partition_fn).parts

    def join_json_files(self, output_file_path: PathArg, parts: Iterable[PathArg]) -> JoinStats:
        """Join JSON parts, in order, into one file."""
        return join_records(self._json_format(), output_file_path, parts)

    # ------------------------------------------------------------------
    # Proto
    # ------------------------------------------------------------------

    def proto_stream(
        self,
        fd: BinaryIO,
        with_gzip: bool = False,
        message_type: Optional[type[Message]] = None,
    ) -> ProtoReader:
        """Open a proto reader on top of a readable handle."""
        return ProtoReader(source_from_handle(fd, with_gzip=with_gzip), message_type)

    def open_proto_file(
        self, file_path: PathArg, message_type: Optional[type[Message]] = None
    ) -> ProtoReader:
        """Open a proto file; ``.gz`` paths are decompressed."""
        return ProtoReader(self._open(file_path), message_type)

    def proto_file(
        self, fd: BinaryIO, message_type: Optional[type[Message]] = None
    ) -> ProtoReader:
        """Open a proto reader over a file object; closing the reader closes it."""
        return ProtoReader(self._wrap_file(fd), message_type)

    def new_proto_stream(self, fd: BinaryIO, with_gzip: bool = False) -> ProtoWriter:
        """Create a proto writer on top of a writable handle."""
        return ProtoWriter(self._wrap_sink(fd, with_gzip))

    def new_proto_buffer(self, gzip_enabled: bool = False) -> ProtoBufferWriter:
        """Create an in-memory proto writer."""
        return ProtoBufferWriter(gzip_enabled)

    def new_proto_file(self, file_path: PathArg) -> ProtoWriter:
        """Create a proto file; ``.gz`` paths are compressed."""
        return ProtoWriter(self._create(file_path))

    def _proto_format(self, message_type: Optional[type[Message]]) -> RecordFormat:
        def validate(payload: bytes) -> Message:
            return decode_message(payload, message_type())

        # Readers stay unbound so payloads are copied byte for byte
        return RecordFormat(
            name=FORMAT_PROTO,
            open_reader=self.open_proto_file,
            open_writer=self.new_proto_file,
            validate=validate if message_type is not None else None,
        )

    def split_proto_file(
        self,
        input_file_path: PathArg,
        limit: int,
        partition_fn: PartitionFn,
        message_type: Optional[type[Message]] = None,
    ) -> list[str]:
        """
        Split a proto file into parts of at most ``limit`` messages.

        With ``message_type`` every payload is decoded before it is copied.
        """
        fmt = self._proto_format(message_type)
        return split_records(fmt, input_file_path, limit, partition_fn).parts

    def join_proto_files(
        self,
        output_file_path: PathArg,
        parts: Iterable[PathArg],
        message_type: Optional[type[Message]] = None,
    ) -> JoinStats:
        """Join proto parts, in order, into one file."""
        return join_records(self._proto_format(message_type), output_file_path, parts)

    # ------------------------------------------------------------------
    # CSV
    # ------------------------------------------------------------------

    def new_csv_stream(
        self, fw: BinaryIO, with_gzip: bool = False, *value_processors: CsvValueProcessor
    ) -> CsvWriter:
        """Create a CSV writer on top of a writable handle."""
        return CsvWriter(self._wrap_sink(fw, with_gzip), *value_processors)

    def new_csv_file(self, file_path: PathArg, *value_processors: CsvValueProcessor) -> CsvWriter:
        """Create a CSV file; ``.gz`` paths are compressed."""
        return CsvWriter(self._create(file_path), *value_processors)

    def open_csv_stream(
        self, fr: BinaryIO, with_gzip: bool = False, *value_processors: CsvValueProcessor
    ) -> CsvStream:
        """Open a header-less CSV reader on top of a readable handle."""
        return CsvStream(source_from_handle(fr, with_gzip=with_gzip), *value_processors)

    def open_csv_file(self, file_path: PathArg, *value_processors: CsvValueProcessor) -> CsvReader:
        """Open a CSV file; ``.gz`` paths are decompressed."""
        return CsvReader(self._open(file_path), *value_processors)

    def csv_file_reader(self, fd: BinaryIO, *value_processors: CsvValueProcessor) -> CsvReader:
        """Open a CSV reader over a file object; closing the reader closes it."""
        return CsvReader(self._wrap_file(fd), *value_processors)

    @staticmethod
    def new_csv_schema(header: Sequence[str]) -> CsvSchema:
        return CsvSchema(header)

    def _csv_format(self) -> RecordFormat:
        # Rows are copied unprocessed; value processors only apply to callers' streams
        return RecordFormat(
            name=FORMAT_CSV,
            open_reader=self.open_csv_file,
            open_writer=self.new_csv_file,
            has_header=True,
        )

    def split_csv_file(
        self, input_file_path: PathArg, limit: int, partition_fn: PartitionFn
    ) -> list[str]:
        """
        Split a CSV file into parts of at most ``limit`` data rows.

        Every part starts with the input's header row.
        """
        return split_records(self._csv_format(), input_file_path, limit, partition_fn).parts

    def join_csv_files(
        self,
        output_file_path: PathArg,
        parts: Iterable[PathArg],
        validate_header: Optional[bool] = None,
    ) -> JoinStats:
        """Join CSV parts, in order, into one file with a single header row."""
        if validate_header is None:
            validate_header = self.validate_csv_header
        return join_records(self._csv_format(), output_file_path, parts, validate_header)

    # ------------------------------------------------------------------
    # Generic
    # ------------------------------------------------------------------

    def record_format(
        self, name: str, message_type: Optional[type[Message]] = None
    ) -> RecordFormat:
        """Format descriptor by name ("json", "proto", "csv")."""
        if name == FORMAT_JSON:
            return self._json_format()
        if name == FORMAT_PROTO:
            return self._proto_format(message_type)
        if name == FORMAT_CSV:
            return self._csv_format()
        raise ValueError(f"Unknown record format: {name!r}")

    def split(
        self, name: str, input_file_path: PathArg, limit: int, partition_fn: PartitionFn
    ) -> SplitStats:
        """Split a file of the named format, returning full statistics."""
        return split_records(self.record_format(name), input_file_path, limit, partition_fn)

    def join(
        self, name: str, output_file_path: PathArg, parts: Iterable[PathArg]
    ) -> JoinStats:
        """Join parts of the named format, returning full statistics."""
        if name == FORMAT_CSV:
            return self.join_csv_files(output_file_path, parts)
        return join_records(self.record_format(name), output_file_path, parts)

    def __repr__(self) -> str:
        return f"FileService(buffer_size={self._buffer_size})"
