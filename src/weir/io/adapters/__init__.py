"""Concrete I/O adapter implementations."""

from .local import LocalContainerFiles, LocalEventLog

__all__ = [
    "LocalContainerFiles",
    "LocalEventLog",
]
