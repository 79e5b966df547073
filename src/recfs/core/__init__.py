"""recfs core: record framing, streams, split and join."""

from .base import RecordReader, RecordWriter
from .csv_file import CsvFile, CsvReader, CsvRecord, CsvSchema, CsvStream, CsvWriter
from .errors import (
    CsvHeaderMismatchError,
    DecodeError,
    EndOfStream,
    FramingError,
    RecordFileError,
)
from .formats import RecordFormat
from .joiner import join_records
from .json_file import JsonReader, JsonWriter
from .models import JoinStats, MarshalOptions, SplitStats, UnmarshalOptions
from .proto_file import ProtoBufferWriter, ProtoReader, ProtoWriter
from .splitter import split_records

__all__ = [
    "RecordReader",
    "RecordWriter",
    "RecordFormat",
    "JsonReader",
    "JsonWriter",
    "ProtoReader",
    "ProtoWriter",
    "ProtoBufferWriter",
    "CsvReader",
    "CsvStream",
    "CsvWriter",
    "CsvSchema",
    "CsvRecord",
    "CsvFile",
    "MarshalOptions",
    "UnmarshalOptions",
    "SplitStats",
    "JoinStats",
    "split_records",
    "join_records",
    "RecordFileError",
    "FramingError",
    "DecodeError",
    "CsvHeaderMismatchError",
    "EndOfStream",
]
