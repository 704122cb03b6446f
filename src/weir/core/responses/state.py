"""Mutable bookkeeping shared by the event handlers of one stream."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from weir.io.schema import ToolType


class MappingPhase(str, Enum):
    """Lifecycle of a single stream invocation."""

    STREAMING = "streaming"
    FINALIZED = "finalized"


@dataclass(slots=True)
class StreamingFunctionCall:
    """A function call whose arguments are still arriving."""

    item_id: str
    call_id: str
    name: str
    output_index: int
    arguments: str = ""

    def append_arguments(self, delta: str) -> None:
        self.arguments += delta

    @property
    def is_complete(self) -> bool:
        return bool(self.arguments)


def _empty_tool_log() -> dict[str, list[dict[str, Any]]]:
    return {tool.value: [] for tool in ToolType}


@dataclass(slots=True)
class EventMappingState:
    """All in-flight partial data for one stream invocation.

    Created when the stream starts, mutated by every handler and discarded
    once the terminal event has produced its aggregate result.
    """

    thinking_buffer: list[str] = field(default_factory=list)
    function_calls: dict[int, StreamingFunctionCall] = field(default_factory=dict)
    has_streamed_text: bool = False
    streamed_text_buffer: list[str] = field(default_factory=list)
    tool_event_log: dict[str, list[dict[str, Any]]] = field(default_factory=_empty_tool_log)
    reasoning_output_indices: set[int] = field(default_factory=set)
    code_interpreter_code_buffers: dict[str, list[str]] = field(default_factory=dict)
    reasoning_part_buffers: dict[tuple[str, int], str] = field(default_factory=dict)
    phase: MappingPhase = MappingPhase.STREAMING

    @property
    def thinking(self) -> str:
        return "".join(self.thinking_buffer)

    @property
    def streamed_text(self) -> str:
        return "".join(self.streamed_text_buffer)

    @property
    def finalized(self) -> bool:
        return self.phase is MappingPhase.FINALIZED

    def mark_finalized(self) -> None:
        self.phase = MappingPhase.FINALIZED

    def append_streamed_text(self, delta: str) -> None:
        self.has_streamed_text = True
        self.streamed_text_buffer.append(delta)

    def append_thinking(self, delta: str) -> None:
        self.thinking_buffer.append(delta)

    def record_tool_event(self, tool: str, record: dict[str, Any]) -> None:
        self.tool_event_log.setdefault(tool, []).append(record)

    def code_buffer(self, item_id: str) -> list[str]:
        """Return the code buffer for ``item_id``, creating it when missing."""

        return self.code_interpreter_code_buffers.setdefault(item_id, [])

    def pop_code_buffer(self, item_id: str) -> str | None:
        buffer = self.code_interpreter_code_buffers.pop(item_id, None)
        if buffer is None:
            return None
        return "".join(buffer)

    def function_call_by_call_id(self, call_id: str) -> StreamingFunctionCall | None:
        for call in self.function_calls.values():
            if call.call_id == call_id:
                return call
        return None

    def non_empty_tool_events(self) -> dict[str, list[dict[str, Any]]]:
        return {tool: list(events) for tool, events in self.tool_event_log.items() if events}
