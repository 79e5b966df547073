"""Byte sources and sinks underneath record streams.

A sink/source owns the layering: raw handle (file opened by path or a
caller-supplied handle), optional gzip wrapper, and the close order between
them. Handles supplied by the caller are flushed on close but left open.
"""

from __future__ import annotations

import gzip
import os
from typing import BinaryIO, Optional

from recfs.core.constants import (
    DEFAULT_BUFFER_SIZE,
    DEFAULT_COMPRESS_LEVEL,
    GZIP_SUFFIX,
)

__all__ = [
    "ByteSink",
    "ByteSource",
    "is_gzip_path",
    "open_sink",
    "open_source",
    "sink_from_handle",
    "source_from_handle",
]


def is_gzip_path(path: str | os.PathLike[str]) -> bool:
    """Check whether a path names a gzip-compressed file."""
    return os.fspath(path).lower().endswith(GZIP_SUFFIX)


def handle_name(fd: object, default: str = "<stream>") -> str:
    name = getattr(fd, "name", None)
    return name if isinstance(name, str) else default


class ByteSink:
    """Writable byte layer with optional gzip compression."""

    def __init__(
        self,
        raw: BinaryIO,
        *,
        with_gzip: bool,
        owns_raw: bool,
        name: str,
        compress_level: int = DEFAULT_COMPRESS_LEVEL,
    ) -> None:
        self.name = name
        self.compressed = with_gzip
        self._raw = raw
        self._owns_raw = owns_raw
        self._gzip: Optional[gzip.GzipFile] = None
        if with_gzip:
            # mtime=0 keeps output deterministic for identical content
            self._gzip = gzip.GzipFile(
                filename="", mode="wb", compresslevel=compress_level, fileobj=raw, mtime=0
            )
        self.bytes_written = 0
        self._closed = False

    @property
    def stream(self) -> BinaryIO:
        """Top-most writable layer."""
        if self._gzip is not None:
            return self._gzip  # type: ignore[return-value]
        return self._raw

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, data: bytes) -> None:
        if self._closed:
            raise RuntimeError(f"Sink is already closed: {self.name}")
        self.stream.write(data)
        self.bytes_written += len(data)

    def flush(self) -> None:
        self.stream.flush()

    def close(self) -> None:
        """Finish compression, flush buffers and release the handle if owned."""
        if self._closed:
            return
        self._closed = True
        try:
            if self._gzip is not None:
                self._gzip.close()
            self._raw.flush()
        finally:
            if self._owns_raw:
                self._raw.close()


class ByteSource:
    """Readable byte layer with optional gzip decompression."""

    def __init__(self, raw: BinaryIO, *, with_gzip: bool, owns_raw: bool, name: str) -> None:
        self.name = name
        self.compressed = with_gzip
        self._raw = raw
        self._owns_raw = owns_raw
        self._gzip: Optional[gzip.GzipFile] = None
        if with_gzip:
            self._gzip = gzip.GzipFile(filename="", mode="rb", fileobj=raw)
        self._closed = False

    @property
    def stream(self) -> BinaryIO:
        """Top-most readable layer."""
        if self._gzip is not None:
            return self._gzip  # type: ignore[return-value]
        return self._raw

    @property
    def closed(self) -> bool:
        return self._closed

    def read_exact(self, size: int) -> bytes:
        """
        Read up to ``size`` bytes, looping over short reads.

        Returns fewer than ``size`` bytes only at end of input. Reads are
        bounded by the buffer size, so a corrupt length does not allocate
        the whole claimed size up front.
        """
        if self._closed:
            raise RuntimeError(f"Source is already closed: {self.name}")
        chunks: list[bytes] = []
        remaining = size
        while remaining > 0:
            chunk = self.stream.read(min(remaining, DEFAULT_BUFFER_SIZE))
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    def readline(self) -> bytes:
        if self._closed:
            raise RuntimeError(f"Source is already closed: {self.name}")
        return self.stream.readline()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            if self._gzip is not None:
                self._gzip.close()
        finally:
            if self._owns_raw:
                self._raw.close()


def open_sink(
    path: str | os.PathLike[str],
    *,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
    compress_level: int = DEFAULT_COMPRESS_LEVEL,
) -> ByteSink:
    """
    Create (or truncate) a file for writing.

    Paths ending in ``.gz`` are gzip-compressed. Missing parent directories
    are created.
    """
    path = os.fspath(path)
    dir_path = os.path.dirname(path)
    if dir_path and not os.path.exists(dir_path):
        os.makedirs(dir_path, exist_ok=True)

    raw = open(path, "wb", buffering=buffer_size)
    return ByteSink(
        raw,
        with_gzip=is_gzip_path(path),
        owns_raw=True,
        name=path,
        compress_level=compress_level,
    )


def sink_from_handle(
    fd: BinaryIO,
    *,
    with_gzip: bool,
    owns_raw: bool = False,
    compress_level: int = DEFAULT_COMPRESS_LEVEL,
) -> ByteSink:
    return ByteSink(
        fd,
        with_gzip=with_gzip,
        owns_raw=owns_raw,
        name=handle_name(fd),
        compress_level=compress_level,
    )


def open_source(
    path: str | os.PathLike[str], *, buffer_size: int = DEFAULT_BUFFER_SIZE
) -> ByteSource:
    """Open a file for reading; paths ending in ``.gz`` are decompressed."""
    path = os.fspath(path)
    raw = open(path, "rb", buffering=buffer_size)
    return ByteSource(raw, with_gzip=is_gzip_path(path), owns_raw=True, name=path)


def source_from_handle(fd: BinaryIO, *, with_gzip: bool, owns_raw: bool = False) -> ByteSource:
    return ByteSource(fd, with_gzip=with_gzip, owns_raw=owns_raw, name=handle_name(fd))
