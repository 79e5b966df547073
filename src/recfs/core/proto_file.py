"""
Length-prefixed protobuf streams.

Layout (repeated until end of input):

    [uint32 big-endian payload length][payload bytes]
"""

from __future__ import annotations

import io
from typing import Any, Optional, TypeVar

from google.protobuf.message import DecodeError as ProtoDecodeError
from google.protobuf.message import Message

from recfs.core.base import RecordReader, RecordWriter
from recfs.core.constants import (
    MAX_PROTO_MESSAGE_SIZE,
    PROTO_HEADER_SIZE,
    PROTO_HEADER_STRUCT,
)
from recfs.core.errors import DecodeError, FramingError
from recfs.core.streams import ByteSink, ByteSource, sink_from_handle

__all__ = ["ProtoReader", "ProtoWriter", "ProtoBufferWriter", "decode_message"]

M = TypeVar("M", bound=Message)


def decode_message(payload: bytes, message: M, source: str = "<payload>") -> M:
    """Parse a serialized payload into ``message`` (cleared first)."""
    try:
        message.ParseFromString(payload)
    except ProtoDecodeError as exc:
        raise DecodeError(
            f"Invalid {message.DESCRIPTOR.full_name} payload in {source}: {exc}"
        ) from exc
    return message


class ProtoWriter(RecordWriter):
    """
    Writes size-prefixed protobuf messages.
    """

    def write(self, message: Message) -> bytes:
        """
        Serialize and write a message.

        Returns:
            The serialized payload (without the length header)
        """
        payload = message.SerializeToString()
        self.write_raw(payload)
        return payload

    def write_raw(self, payload: bytes) -> None:
        """
        Write an already serialized message.

        Raises:
            FramingError: If the payload does not fit the 4-byte length header
        """
        self._check_open()
        if not isinstance(payload, (bytes, bytearray)):
            raise TypeError("payload must be bytes-like")
        if len(payload) > MAX_PROTO_MESSAGE_SIZE:
            raise FramingError(
                f"Message too large: {len(payload)} bytes (max {MAX_PROTO_MESSAGE_SIZE})"
            )
        # Single write keeps header and payload together in the sink
        self._sink.write(PROTO_HEADER_STRUCT.pack(len(payload)) + bytes(payload))
        self.records_written += 1

    def write_record(self, record: Any) -> None:
        if isinstance(record, Message):
            self.write(record)
        else:
            self.write_raw(record)


class ProtoBufferWriter(ProtoWriter):
    """
    Proto writer backed by an in-memory buffer.

    ``getvalue()`` returns the complete stream once the writer is closed
    (with gzip enabled the trailer is only written on close).
    """

    def __init__(self, gzip_enabled: bool = False) -> None:
        self._buffer = io.BytesIO()
        super().__init__(sink_from_handle(self._buffer, with_gzip=gzip_enabled))

    def getvalue(self) -> bytes:
        return self._buffer.getvalue()


class ProtoReader(RecordReader):
    """
    Reads size-prefixed protobuf messages.

    When ``message_type`` is given, ``read()`` and iteration yield decoded
    messages of that type; otherwise iteration yields raw payloads.
    """

    def __init__(self, source: ByteSource, message_type: Optional[type[Message]] = None) -> None:
        super().__init__(source)
        self.message_type = message_type

    def read_raw(self) -> bytes:
        """
        Read the size header and the payload that follows it.

        Raises:
            EndOfStream: If the stream ends cleanly before a header
            FramingError: If the header or the payload is truncated
        """
        self._check_open()
        header = self._source.read_exact(PROTO_HEADER_SIZE)
        if not header:
            raise self._end_of_stream()
        if len(header) < PROTO_HEADER_SIZE:
            raise FramingError(
                f"Truncated length header in {self.name}: "
                f"{len(header)} of {PROTO_HEADER_SIZE} bytes"
            )

        (size,) = PROTO_HEADER_STRUCT.unpack(header)
        payload = self._source.read_exact(size)
        if len(payload) < size:
            raise FramingError(
                f"Truncated record in {self.name}: expected {size} bytes, got {len(payload)}"
            )
        self.records_read += 1
        return payload

    def read_to(self, message: M) -> M:
        """Read the next record into ``message`` and return it."""
        return decode_message(self.read_raw(), message, self.name)

    def read(self, message_type: Optional[type[M]] = None) -> M:
        """Read the next record as a new message of the given (or bound) type."""
        message_type = message_type or self.message_type  # type: ignore[assignment]
        if message_type is None:
            raise ValueError("message_type is required for unbound proto readers")
        return self.read_to(message_type())

    def read_record(self) -> Any:
        if self.message_type is None:
            return self.read_raw()
        return self.read()
