"""Configuration for recfs."""

from .config import FileServiceConfig

__all__ = ["FileServiceConfig"]
