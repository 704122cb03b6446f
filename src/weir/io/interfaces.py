"""Abstract interfaces for weir I/O components."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Iterator, Mapping

from .schema import JSONValue, ResponseEvent

if TYPE_CHECKING:
    from weir.core.responses.attachments import ContainerFileData


class EventSource(ABC):
    """Source of captured stream events in wire order."""

    @abstractmethod
    def events(self) -> Iterator[dict[str, JSONValue]]:
        """Yield each captured event payload."""

    def read(self) -> list[dict[str, JSONValue]]:
        """Return every captured event payload."""

        return list(self.events())


class EventSink(ABC):
    """Destination for raw stream events, e.g. a capture file."""

    @abstractmethod
    def write(self, event: ResponseEvent | Mapping[str, Any]) -> None:
        """Persist one event."""

    @abstractmethod
    def flush(self) -> None:
        """Ensure all written events are visible to readers."""


class ContainerFileStore(ABC):
    """Provider of container files; instances are usable as file loaders."""

    @abstractmethod
    async def load(self, container_id: str, file_id: str) -> ContainerFileData:
        """Fetch the bytes of ``file_id`` inside ``container_id``."""

    async def __call__(self, container_id: str, file_id: str) -> ContainerFileData:
        return await self.load(container_id, file_id)


__all__ = ["ContainerFileStore", "EventSink", "EventSource"]
