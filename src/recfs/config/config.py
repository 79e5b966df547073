"""Configuration management."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field

from recfs.core.constants import (
    DEFAULT_BUFFER_SIZE,
    DEFAULT_COMPRESS_LEVEL,
    MIN_BUFFER_SIZE,
)
from recfs.core.models import MarshalOptions, UnmarshalOptions


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class FileServiceConfig(BaseModel):
    """File service configuration."""

    buffer_size: int = Field(
        DEFAULT_BUFFER_SIZE,
        ge=MIN_BUFFER_SIZE,
        description="Buffer size (bytes) used for every file opened or created",
    )
    compress_level: int = Field(
        DEFAULT_COMPRESS_LEVEL,
        ge=0,
        le=9,
        description="gzip compression level for .gz outputs",
    )
    use_proto_names: bool = Field(
        False,
        description="JSON: emit proto field names instead of lowerCamelCase",
    )
    use_enum_numbers: bool = Field(
        False,
        description="JSON: emit enum values as numbers",
    )
    emit_unpopulated: bool = Field(
        False,
        description="JSON: emit fields holding default values",
    )
    discard_unknown: bool = Field(
        False,
        description="JSON: ignore fields unknown to the target message",
    )
    validate_csv_header: bool = Field(
        True,
        description="Reject CSV parts whose header differs when joining",
    )
    log_level: str = Field(
        "INFO",
        description="Logging level",
    )

    def marshal_options(self) -> MarshalOptions:
        return MarshalOptions(
            use_proto_names=self.use_proto_names,
            use_enum_numbers=self.use_enum_numbers,
            emit_unpopulated=self.emit_unpopulated,
        )

    def unmarshal_options(self) -> UnmarshalOptions:
        return UnmarshalOptions(discard_unknown=self.discard_unknown)

    @classmethod
    def from_env(cls) -> "FileServiceConfig":
        return cls(
            buffer_size=int(os.getenv("RECFS_BUFFER_SIZE", str(DEFAULT_BUFFER_SIZE))),
            compress_level=int(
                os.getenv("RECFS_COMPRESS_LEVEL", str(DEFAULT_COMPRESS_LEVEL))
            ),
            use_proto_names=_env_bool("RECFS_USE_PROTO_NAMES", False),
            use_enum_numbers=_env_bool("RECFS_USE_ENUM_NUMBERS", False),
            emit_unpopulated=_env_bool("RECFS_EMIT_UNPOPULATED", False),
            discard_unknown=_env_bool("RECFS_DISCARD_UNKNOWN", False),
            validate_csv_header=_env_bool("RECFS_VALIDATE_CSV_HEADER", True),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    @classmethod
    def from_yaml(cls, path: str | Path, section: Optional[str] = "recfs") -> "FileServiceConfig":
        """
        Load configuration from a YAML file.

        Args:
            path: YAML file path
            section: Top-level key holding the settings; None reads the
                whole document. A missing section yields defaults.
        """
        with open(path, "r", encoding="utf-8") as f:
            data: Any = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {path}")
        if section is not None:
            data = data.get(section) or {}
        return cls(**data)


__all__ = ["FileServiceConfig"]
