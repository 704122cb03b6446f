"""Record server-side tool telemetry and surface it as metadata chunks."""

from __future__ import annotations

import logging
from typing import Any

from weir.io.schema import EventType, ResponseEvent, ToolType

from ..message import ChatResult
from .state import EventMappingState

LOGGER = logging.getLogger(__name__)

TOOL_EVENT_TYPES: dict[str, ToolType] = {
    EventType.IMAGE_GENERATION_PARTIAL_IMAGE.value: ToolType.IMAGE_GENERATION,
    EventType.IMAGE_GENERATION_IN_PROGRESS.value: ToolType.IMAGE_GENERATION,
    EventType.IMAGE_GENERATION_GENERATING.value: ToolType.IMAGE_GENERATION,
    EventType.IMAGE_GENERATION_COMPLETED.value: ToolType.IMAGE_GENERATION,
    EventType.WEB_SEARCH_IN_PROGRESS.value: ToolType.WEB_SEARCH,
    EventType.WEB_SEARCH_SEARCHING.value: ToolType.WEB_SEARCH,
    EventType.WEB_SEARCH_COMPLETED.value: ToolType.WEB_SEARCH,
    EventType.FILE_SEARCH_IN_PROGRESS.value: ToolType.FILE_SEARCH,
    EventType.FILE_SEARCH_SEARCHING.value: ToolType.FILE_SEARCH,
    EventType.FILE_SEARCH_COMPLETED.value: ToolType.FILE_SEARCH,
    EventType.MCP_CALL_ARGUMENTS_DELTA.value: ToolType.MCP,
    EventType.MCP_CALL_ARGUMENTS_DONE.value: ToolType.MCP,
    EventType.MCP_CALL_IN_PROGRESS.value: ToolType.MCP,
    EventType.MCP_CALL_COMPLETED.value: ToolType.MCP,
    EventType.MCP_CALL_FAILED.value: ToolType.MCP,
    EventType.MCP_LIST_TOOLS_IN_PROGRESS.value: ToolType.MCP,
    EventType.MCP_LIST_TOOLS_COMPLETED.value: ToolType.MCP,
    EventType.MCP_LIST_TOOLS_FAILED.value: ToolType.MCP,
    EventType.CODE_INTERPRETER_CODE_DELTA.value: ToolType.CODE_INTERPRETER,
    EventType.CODE_INTERPRETER_CODE_DONE.value: ToolType.CODE_INTERPRETER,
    EventType.CODE_INTERPRETER_IN_PROGRESS.value: ToolType.CODE_INTERPRETER,
    EventType.CODE_INTERPRETER_INTERPRETING.value: ToolType.CODE_INTERPRETER,
    EventType.CODE_INTERPRETER_COMPLETED.value: ToolType.CODE_INTERPRETER,
}


class ToolEventRecorder:
    """Append tool events to the per-stream log and wrap them for streaming."""

    def tool_for(self, event: ResponseEvent) -> ToolType | None:
        return TOOL_EVENT_TYPES.get(event.type)

    def record(self, tool: ToolType | str, event: ResponseEvent | dict[str, Any], state: EventMappingState) -> None:
        state.record_tool_event(_key(tool), _as_record(event))

    def metadata_chunk(self, tool: ToolType | str, event: ResponseEvent | dict[str, Any]) -> ChatResult:
        """Wrap a single event in a metadata-only result.

        The value is always a one-element list so consumers can treat
        streamed and final telemetry the same way.
        """

        return ChatResult(metadata={_key(tool): [_as_record(event)]})

    def record_and_emit(self, event: ResponseEvent, state: EventMappingState) -> list[ChatResult]:
        tool = self.tool_for(event)
        if tool is None:
            LOGGER.warning("unhandled tool event: %s", event.type)
            return []
        self.record(tool, event, state)
        return [self.metadata_chunk(tool, event)]


def _key(tool: ToolType | str) -> str:
    return tool.value if isinstance(tool, ToolType) else str(tool)


def _as_record(event: ResponseEvent | dict[str, Any]) -> dict[str, Any]:
    if isinstance(event, ResponseEvent):
        return event.to_record()
    return dict(event)
