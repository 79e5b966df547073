"""
Newline-delimited JSON streams.

Every record is a single JSON value on its own line; lines are separated by
``\\n``. The last line may omit its terminator.
"""

from __future__ import annotations

import json
from typing import Any, Optional, Union

from google.protobuf import json_format
from google.protobuf.message import Message
from pydantic import BaseModel

from recfs.core.base import RecordReader, RecordWriter
from recfs.core.constants import JSON_RECORD_SEPARATOR
from recfs.core.errors import DecodeError, FramingError
from recfs.core.models import MarshalOptions, UnmarshalOptions
from recfs.core.streams import ByteSink, ByteSource

__all__ = ["JsonReader", "JsonWriter"]


class JsonWriter(RecordWriter):
    """
    Writes JSON values, one per line.
    """

    def __init__(self, sink: ByteSink, options: Optional[MarshalOptions] = None) -> None:
        super().__init__(sink)
        self.options = options or MarshalOptions()

    def write_raw(self, message: Union[bytes, str]) -> None:
        """
        Write an already formatted JSON value.

        Raises:
            FramingError: If the value spans more than one line
        """
        self._check_open()
        if isinstance(message, str):
            message = message.encode("utf-8")
        if JSON_RECORD_SEPARATOR in message:
            raise FramingError(
                f"JSON record contains a line separator and would break framing in {self.name}"
            )
        self._sink.write(message + JSON_RECORD_SEPARATOR)
        self.records_written += 1

    def write(self, obj: Any) -> None:
        """
        Serialize and write an object.

        Protobuf messages are encoded with ``json_format`` and the marshal
        options, pydantic models with ``model_dump_json``, anything else with
        ``json.dumps``.
        """
        self.write_raw(self._encode(obj))

    def write_record(self, record: Any) -> None:
        self.write_raw(record)

    def _encode(self, obj: Any) -> str:
        if isinstance(obj, Message):
            obj = json_format.MessageToDict(obj, **self.options.proto_kwargs())
        elif isinstance(obj, BaseModel):
            return obj.model_dump_json()
        return json.dumps(
            obj,
            separators=(",", ":"),
            ensure_ascii=self.options.ensure_ascii,
            sort_keys=self.options.sort_keys,
        )


class JsonReader(RecordReader):
    """
    Reads JSON values, one per line.
    """

    def __init__(self, source: ByteSource, options: Optional[UnmarshalOptions] = None) -> None:
        super().__init__(source)
        self.options = options or UnmarshalOptions()

    def read_raw(self) -> bytes:
        """
        Read a single line without its terminator.

        Raises:
            EndOfStream: If no more lines remain
        """
        self._check_open()
        line = self._source.readline()
        if not line:
            raise self._end_of_stream()
        if line.endswith(JSON_RECORD_SEPARATOR):
            line = line[: -len(JSON_RECORD_SEPARATOR)]
        self.records_read += 1
        return line

    def read(self, holder: Any = None) -> Any:
        """
        Read a single line and decode it.

        Args:
            holder: Protobuf message instance to fill in place, pydantic model
                class to validate into, or None for plain Python values

        Returns:
            The filled message, the model instance or the decoded value

        Raises:
            EndOfStream: If no more lines remain
            DecodeError: If the line does not decode into the holder type
        """
        if holder is not None and not (
            isinstance(holder, Message)
            or (isinstance(holder, type) and issubclass(holder, BaseModel))
        ):
            raise TypeError(
                "holder must be a protobuf message instance or a pydantic model class"
            )

        raw = self.read_raw()
        try:
            if isinstance(holder, Message):
                holder.Clear()
                json_format.Parse(raw, holder, **self.options.proto_kwargs())
                return holder
            if holder is not None:
                return holder.model_validate_json(raw)
            return json.loads(raw)
        except (json_format.ParseError, ValueError) as exc:
            raise DecodeError(
                f"Invalid JSON record #{self.records_read} in {self.name}: {exc}"
            ) from exc

    def read_record(self) -> bytes:
        return self.read_raw()
