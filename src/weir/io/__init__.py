"""I/O interfaces and wire schemas for weir."""

from .schema import (
    EventType,
    ItemType,
    OutputItem,
    ResponseEvent,
    ResponseSnapshot,
    ToolType,
)
from .interfaces import ContainerFileStore, EventSink, EventSource

__all__ = [
    "EventType",
    "ItemType",
    "OutputItem",
    "ResponseEvent",
    "ResponseSnapshot",
    "ToolType",
    "ContainerFileStore",
    "EventSink",
    "EventSource",
]
