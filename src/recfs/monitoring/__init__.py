"""Monitoring helpers for recfs."""

from .metrics import (
    OPERATION_DURATION,
    PARTS_JOINED,
    PARTS_WRITTEN,
    RECORDS_JOINED,
    RECORDS_SPLIT,
)

__all__ = [
    "RECORDS_SPLIT",
    "PARTS_WRITTEN",
    "RECORDS_JOINED",
    "PARTS_JOINED",
    "OPERATION_DURATION",
]
