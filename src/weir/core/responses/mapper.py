"""Route Responses stream events to their handlers."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from weir.config import StreamConfig
from weir.io.schema import ResponseEvent

from ..message import ChatResult
from .attachments import AttachmentCollector, ContainerFileLoader
from .handlers import (
    EventHandler,
    FallbackEventHandler,
    FunctionCallEventHandler,
    OutputItemEventHandler,
    ReasoningEventHandler,
    TerminalEventHandler,
    TextEventHandler,
    ToolEventHandler,
)
from .recorder import ToolEventRecorder
from .state import EventMappingState

LOGGER = logging.getLogger(__name__)


def coerce_event(raw: Any) -> ResponseEvent:
    """Validate ``raw`` as a :class:`ResponseEvent`.

    Accepts already-typed events, plain mappings and SDK objects exposing
    ``model_dump``/``dict``/``__dict__``. Raises :class:`TypeError` when the
    value has no mapping form and lets pydantic's ``ValidationError`` escape
    for payloads that do not describe an event.
    """

    if isinstance(raw, ResponseEvent):
        return raw
    return ResponseEvent.model_validate(_coerce_mapping(raw))


def _coerce_mapping(value: Any) -> Mapping[str, Any]:
    if isinstance(value, Mapping):
        return value

    if hasattr(value, "model_dump"):
        mapping = value.model_dump()
        if isinstance(mapping, Mapping):
            return mapping

    if hasattr(value, "dict"):
        mapping = value.dict()
        if isinstance(mapping, Mapping):
            return mapping

    if hasattr(value, "__dict__"):
        return vars(value)

    msg = f"stream event of type {type(value).__name__} is not a mapping"
    raise TypeError(msg)


class ResponsesEventMapper:
    """Turn a single stream's events into partial and final results.

    One mapper serves exactly one stream invocation: it owns the accumulation
    state and the attachment collector and routes each event to the first
    handler in priority order that claims its tag. Tags nobody claims go to
    the fallback handler, which only logs them.
    """

    def __init__(
        self,
        config: StreamConfig | None = None,
        *,
        container_file_loader: ContainerFileLoader | None = None,
    ) -> None:
        self._config = config or StreamConfig()
        self._state = EventMappingState()
        self._attachments = AttachmentCollector(container_file_loader)
        recorder = ToolEventRecorder()

        self._handlers: tuple[EventHandler, ...] = (
            TerminalEventHandler(self._config, self._attachments),
            OutputItemEventHandler(self._attachments, recorder),
            FunctionCallEventHandler(),
            TextEventHandler(),
            ReasoningEventHandler(),
            ToolEventHandler(self._attachments, recorder),
        )
        self._fallback = FallbackEventHandler()

        routes: dict[str, EventHandler] = {}
        for handler in self._handlers:
            for event_type in handler.event_types:
                routes.setdefault(event_type, handler)
        self._routes = routes

    @property
    def config(self) -> StreamConfig:
        return self._config

    @property
    def state(self) -> EventMappingState:
        return self._state

    @property
    def attachments(self) -> AttachmentCollector:
        return self._attachments

    @property
    def finalized(self) -> bool:
        """Whether the terminal event has been processed."""

        return self._state.finalized

    def handler_for(self, event: ResponseEvent) -> EventHandler:
        return self._routes.get(event.type, self._fallback)

    async def map_event(self, event: ResponseEvent) -> list[ChatResult]:
        if self._state.finalized:
            LOGGER.debug("ignoring %s after finalization", event.type)
            return []

        handler = self.handler_for(event)
        LOGGER.debug("routing %s to %s", event.type, type(handler).__name__)
        return await handler.handle(event, self._state)

    async def normalize_chunk(self, chunk: Any) -> list[ChatResult]:
        """Coerce a raw stream chunk and map it; malformed chunks are dropped."""

        try:
            event = coerce_event(chunk)
        except (TypeError, ValidationError) as exc:
            LOGGER.warning("dropping malformed stream event: %s", exc)
            return []
        return await self.map_event(event)


__all__ = ["ResponsesEventMapper", "coerce_event"]
