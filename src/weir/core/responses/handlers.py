"""Event handlers, one per family of Responses stream events.

Each handler declares the event tags it owns and turns one event into an
ordered list of zero or more partial results while mutating the shared
:class:`EventMappingState`. The mapper routes every event to exactly one
handler; see :mod:`weir.core.responses.mapper`.
"""

from __future__ import annotations

import abc
import logging

from weir.config import StreamConfig
from weir.io.schema import EventType, ItemType, OutputItem, ResponseEvent, ResponseSnapshot, ToolType

from ..errors import ResponsesRequestError
from ..message import ChatMessage, ChatResult, MessageRole, TextPart
from .attachments import AttachmentCollector
from .builder import ResponseMessageBuilder
from .parts import ResponsePartMapper, register_code_interpreter_files
from .recorder import TOOL_EVENT_TYPES, ToolEventRecorder
from .session import SessionMetadataBuilder
from .state import EventMappingState, StreamingFunctionCall

LOGGER = logging.getLogger(__name__)

_KNOWN_EVENT_TYPES = frozenset(event_type.value for event_type in EventType)
_LIFECYCLE_EVENT_TYPES = frozenset(
    {
        EventType.RESPONSE_CREATED.value,
        EventType.RESPONSE_IN_PROGRESS.value,
        EventType.RESPONSE_QUEUED.value,
    }
)

DEFAULT_FAILURE_MESSAGE = "OpenAI Responses request failed"


class EventHandler(abc.ABC):
    """Base class for a handler owning a fixed set of event tags."""

    event_types: frozenset[str] = frozenset()

    def can_handle(self, event: ResponseEvent) -> bool:
        return event.type in self.event_types

    @abc.abstractmethod
    async def handle(self, event: ResponseEvent, state: EventMappingState) -> list[ChatResult]:
        """Process ``event`` and return the partial results it produces."""


class TerminalEventHandler(EventHandler):
    """Finalize the stream or raise the upstream failure."""

    event_types = frozenset(
        {
            EventType.RESPONSE_COMPLETED.value,
            EventType.RESPONSE_INCOMPLETE.value,
            EventType.RESPONSE_FAILED.value,
            EventType.ERROR.value,
        }
    )

    def __init__(
        self,
        config: StreamConfig,
        attachments: AttachmentCollector,
        *,
        part_mapper: ResponsePartMapper | None = None,
        session_builder: SessionMetadataBuilder | None = None,
        message_builder: ResponseMessageBuilder | None = None,
    ) -> None:
        self._config = config
        self._attachments = attachments
        self._part_mapper = part_mapper or ResponsePartMapper()
        self._session_builder = session_builder or SessionMetadataBuilder()
        self._message_builder = message_builder or ResponseMessageBuilder()

    async def handle(self, event: ResponseEvent, state: EventMappingState) -> list[ChatResult]:
        if event.type == EventType.ERROR.value:
            state.mark_finalized()
            raise ResponsesRequestError(
                event.message or DEFAULT_FAILURE_MESSAGE,
                code=event.code,
                param=event.param,
            )

        if event.type == EventType.RESPONSE_FAILED.value:
            state.mark_finalized()
            error = event.response.error if event.response is not None else None
            if error is None:
                raise ResponsesRequestError(DEFAULT_FAILURE_MESSAGE)
            raise ResponsesRequestError(error.message, code=error.code, param=error.param)

        if state.finalized:
            LOGGER.debug("ignoring %s after the final result was built", event.type)
            return []
        state.mark_finalized()

        response = event.response
        if response is None:
            LOGGER.warning("%s event carried no response snapshot", event.type)
            response = ResponseSnapshot(status=event.type.rsplit(".", 1)[-1])

        return [await self._build_final_result(response, state)]

    async def _build_final_result(self, response: ResponseSnapshot, state: EventMappingState) -> ChatResult:
        mapped = self._part_mapper.map_items(response.output, self._attachments, state)
        parts = list(mapped.parts)
        parts.extend(await self._attachments.resolve_attachments())

        message_metadata = self._session_builder.message_metadata(
            state,
            response_id=response.id,
            store_session=self._config.store_session,
        )
        result_metadata = self._session_builder.result_metadata(
            response,
            container_id=mapped.container_id,
        )

        result = self._message_builder.build(
            response,
            parts,
            message_metadata=message_metadata,
            result_metadata=result_metadata,
            has_streamed_text=state.has_streamed_text,
        )
        LOGGER.info(
            "built final result id=%s status=%s parts=%d streamed_text=%s",
            response.id,
            response.status,
            len(parts),
            state.has_streamed_text,
        )
        return result


class OutputItemEventHandler(EventHandler):
    """Track output item lifecycle: function-call setup, reasoning and tool items."""

    event_types = frozenset(
        {
            EventType.OUTPUT_ITEM_ADDED.value,
            EventType.OUTPUT_ITEM_DONE.value,
        }
    )

    def __init__(self, attachments: AttachmentCollector, recorder: ToolEventRecorder) -> None:
        self._attachments = attachments
        self._recorder = recorder

    async def handle(self, event: ResponseEvent, state: EventMappingState) -> list[ChatResult]:
        item = event.item
        index = event.output_index
        if item is None or index is None:
            LOGGER.warning("dropping %s without item or output_index", event.type)
            return []

        if event.type == EventType.OUTPUT_ITEM_ADDED.value:
            self._item_added(item, index, state)
            return []
        return self._item_done(event, item, state)

    def _item_added(self, item: OutputItem, index: int, state: EventMappingState) -> None:
        if item.type == ItemType.FUNCTION_CALL.value:
            item_id = item.id or f"item_{index}"
            state.function_calls[index] = StreamingFunctionCall(
                item_id=item_id,
                call_id=item.call_id or item_id,
                name=item.name or "",
                output_index=index,
            )
            LOGGER.debug("function call %s started at index %d", item.name, index)
        elif item.type == ItemType.REASONING.value:
            state.reasoning_output_indices.add(index)
            LOGGER.debug("reasoning item at index %d", index)
        else:
            LOGGER.debug("output item %s added at index %d", item.type, index)

    def _item_done(self, event: ResponseEvent, item: OutputItem, state: EventMappingState) -> list[ChatResult]:
        if item.type == ItemType.IMAGE_GENERATION_CALL.value:
            self._attachments.mark_image_generation_completed(
                index=event.output_index,
                result_b64=item.result,
            )
            LOGGER.debug("image generation item done at index %s", event.output_index)
            return []

        if item.type == ItemType.CODE_INTERPRETER_CALL.value:
            register_code_interpreter_files(item, self._attachments)
            self._recorder.record(ToolType.CODE_INTERPRETER, event, state)
            return [self._recorder.metadata_chunk(ToolType.CODE_INTERPRETER, event)]

        return []


class FunctionCallEventHandler(EventHandler):
    """Accumulate streamed function-call arguments by output index."""

    event_types = frozenset(
        {
            EventType.FUNCTION_CALL_ARGUMENTS_DELTA.value,
            EventType.FUNCTION_CALL_ARGUMENTS_DONE.value,
        }
    )

    async def handle(self, event: ResponseEvent, state: EventMappingState) -> list[ChatResult]:
        call = state.function_calls.get(event.output_index) if event.output_index is not None else None
        if call is None:
            LOGGER.warning(
                "dropping %s for unknown function call index %s",
                event.type,
                event.output_index,
            )
            return []

        if event.type == EventType.FUNCTION_CALL_ARGUMENTS_DELTA.value:
            call.append_arguments(event.delta or "")
        else:
            call.arguments = event.arguments or ""
            LOGGER.debug("function call %s arguments complete", call.call_id)
        return []


class TextEventHandler(EventHandler):
    """Stream visible text deltas, skipping anything at a reasoning index."""

    event_types = frozenset(
        {
            EventType.OUTPUT_TEXT_DELTA.value,
            EventType.OUTPUT_TEXT_DONE.value,
            EventType.OUTPUT_TEXT_ANNOTATION_ADDED.value,
        }
    )

    async def handle(self, event: ResponseEvent, state: EventMappingState) -> list[ChatResult]:
        if event.type != EventType.OUTPUT_TEXT_DELTA.value:
            return []
        if event.output_index in state.reasoning_output_indices:
            return []

        delta = event.delta
        if not delta:
            return []

        state.append_streamed_text(delta)
        output = ChatMessage(role=MessageRole.ASSISTANT, parts=(TextPart(delta),))
        return [ChatResult(output=output)]


class ReasoningEventHandler(EventHandler):
    """Collect reasoning summaries as thinking metadata."""

    event_types = frozenset(
        {
            EventType.REASONING_SUMMARY_TEXT_DELTA.value,
            EventType.REASONING_SUMMARY_TEXT_DONE.value,
            EventType.REASONING_SUMMARY_PART_ADDED.value,
            EventType.REASONING_SUMMARY_PART_DONE.value,
            EventType.REASONING_TEXT_DELTA.value,
            EventType.REASONING_TEXT_DONE.value,
            EventType.REASONING_DELTA.value,
            EventType.REASONING_DONE.value,
        }
    )

    async def handle(self, event: ResponseEvent, state: EventMappingState) -> list[ChatResult]:
        if event.type == EventType.REASONING_SUMMARY_TEXT_DELTA.value:
            delta = event.delta
            if not delta:
                return []
            key = _summary_key(event)
            state.reasoning_part_buffers[key] = state.reasoning_part_buffers.get(key, "") + delta
            return [self._thinking(delta, state)]

        if event.type == EventType.REASONING_SUMMARY_TEXT_DONE.value:
            return self._summary_done(event, state)

        return []

    def _summary_done(self, event: ResponseEvent, state: EventMappingState) -> list[ChatResult]:
        text = event.text or ""
        key = _summary_key(event)
        seen = state.reasoning_part_buffers.get(key, "")
        state.reasoning_part_buffers[key] = text if len(text) >= len(seen) else seen

        if not text.startswith(seen):
            LOGGER.debug("summary text for %s diverges from its deltas; keeping the deltas", key)
            return []

        suffix = text[len(seen):]
        if not suffix:
            return []
        return [self._thinking(suffix, state)]

    def _thinking(self, text: str, state: EventMappingState) -> ChatResult:
        state.append_thinking(text)
        return ChatResult(metadata={"thinking": text})


def _summary_key(event: ResponseEvent) -> tuple[str, int]:
    item_id = event.item_id or f"item_{event.output_index}"
    return item_id, event.summary_index or 0


class ToolEventHandler(EventHandler):
    """Record server-side tool telemetry and feed image and code buffers."""

    event_types = frozenset(TOOL_EVENT_TYPES)

    def __init__(self, attachments: AttachmentCollector, recorder: ToolEventRecorder) -> None:
        self._attachments = attachments
        self._recorder = recorder

    async def handle(self, event: ResponseEvent, state: EventMappingState) -> list[ChatResult]:
        if event.type == EventType.IMAGE_GENERATION_PARTIAL_IMAGE.value:
            if event.partial_image_b64:
                self._attachments.record_partial_image(
                    b64=event.partial_image_b64,
                    index=event.partial_image_index,
                )
            return self._recorder.record_and_emit(event, state)

        if event.type == EventType.CODE_INTERPRETER_CODE_DELTA.value:
            state.code_buffer(_code_key(event)).append(event.delta or "")
            return [self._recorder.metadata_chunk(ToolType.CODE_INTERPRETER, event)]

        if event.type == EventType.CODE_INTERPRETER_CODE_DONE.value:
            return self._code_done(event, state)

        return self._recorder.record_and_emit(event, state)

    def _code_done(self, event: ResponseEvent, state: EventMappingState) -> list[ChatResult]:
        item_id = _code_key(event)
        accumulated = state.pop_code_buffer(item_id)
        if accumulated is not None:
            self._recorder.record(
                ToolType.CODE_INTERPRETER,
                {
                    "type": EventType.CODE_INTERPRETER_CODE_DELTA.value,
                    "item_id": item_id,
                    "output_index": event.output_index,
                    "delta": accumulated,
                },
                state,
            )

        self._recorder.record(ToolType.CODE_INTERPRETER, event, state)
        return [self._recorder.metadata_chunk(ToolType.CODE_INTERPRETER, event)]


def _code_key(event: ResponseEvent) -> str:
    return event.item_id or f"item_{event.output_index}"


class FallbackEventHandler(EventHandler):
    """Accept every event no other handler claimed and log it."""

    def can_handle(self, event: ResponseEvent) -> bool:
        return True

    async def handle(self, event: ResponseEvent, state: EventMappingState) -> list[ChatResult]:
        if event.type in _LIFECYCLE_EVENT_TYPES:
            LOGGER.debug("response lifecycle event %s", event.type)
        elif event.type in _KNOWN_EVENT_TYPES:
            LOGGER.debug("ignoring event %s", event.type)
        else:
            LOGGER.warning("unhandled event type %s", event.type)
        return []


__all__ = [
    "DEFAULT_FAILURE_MESSAGE",
    "EventHandler",
    "FallbackEventHandler",
    "FunctionCallEventHandler",
    "OutputItemEventHandler",
    "ReasoningEventHandler",
    "TerminalEventHandler",
    "TextEventHandler",
    "ToolEventHandler",
]
