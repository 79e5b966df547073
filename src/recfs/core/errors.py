"""Error kinds raised by record streams.

I/O failures (open/read/write/close, gzip layer) are not wrapped: they
surface as the built-in ``OSError`` family.
"""

__all__ = [
    "RecordFileError",
    "FramingError",
    "DecodeError",
    "CsvHeaderMismatchError",
    "EndOfStream",
]


class RecordFileError(Exception):
    """Base error for record stream operations."""


class FramingError(RecordFileError, ValueError):
    """Record boundary is malformed: bad length header or truncated record."""


class DecodeError(RecordFileError, ValueError):
    """Record bytes do not conform to the requested type."""


class CsvHeaderMismatchError(RecordFileError, ValueError):
    """CSV parts being joined do not share the same header."""

    def __init__(self, path: str, expected: list[str], actual: list[str]) -> None:
        super().__init__(
            f"CSV header mismatch in {path}: expected {expected!r}, got {actual!r}"
        )
        self.path = path
        self.expected = expected
        self.actual = actual


class EndOfStream(RecordFileError, EOFError):
    """No more records remain in the stream.

    Not a failure: callers check for it explicitly, iteration stops on it.
    """
