"""Format descriptors consumed by the splitter and the joiner."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Callable, Optional

from recfs.core.base import RecordReader, RecordWriter

PathArg = str | os.PathLike[str]


@dataclass(frozen=True)
class RecordFormat:
    """
    How to open readers/writers for one record format.

    Attributes:
        name: Format name ("json", "proto", "csv")
        open_reader: Opens a path for reading, records in native shape
        open_writer: Creates a path for writing
        has_header: First record is a structural header (CSV) that every
            part repeats and that never counts as data
        validate: Optional check applied to every data record before copy
    """

    name: str
    open_reader: Callable[[PathArg], RecordReader]
    open_writer: Callable[[PathArg], RecordWriter]
    has_header: bool = False
    validate: Optional[Callable[[Any], Any]] = None
