"""recfs - record-oriented JSON, proto and CSV files with split/join."""

__version__ = "0.1.0"

from .core import (  # noqa: E402
    CsvHeaderMismatchError,
    CsvRecord,
    CsvSchema,
    DecodeError,
    EndOfStream,
    FramingError,
    MarshalOptions,
    RecordFileError,
    UnmarshalOptions,
)
from .service import FileService  # noqa: E402

__all__ = [
    "FileService",
    "CsvSchema",
    "CsvRecord",
    "MarshalOptions",
    "UnmarshalOptions",
    "RecordFileError",
    "FramingError",
    "DecodeError",
    "CsvHeaderMismatchError",
    "EndOfStream",
]
