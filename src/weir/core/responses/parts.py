"""Map response snapshot items onto provider-agnostic message parts."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from weir.io.schema import ContentEntry, ItemType, OutputItem

from ..message import LinkPart, Part, TextPart, ToolCallPart, ToolResultPart
from .attachments import AttachmentCollector
from .state import EventMappingState

LOGGER = logging.getLogger(__name__)

_SKIPPED_ITEM_TYPES = frozenset(
    {
        ItemType.REASONING.value,
        ItemType.WEB_SEARCH_CALL.value,
        ItemType.FILE_SEARCH_CALL.value,
        ItemType.LOCAL_SHELL_CALL.value,
        ItemType.LOCAL_SHELL_CALL_OUTPUT.value,
        ItemType.COMPUTER_CALL_OUTPUT.value,
        ItemType.MCP_CALL.value,
        ItemType.MCP_LIST_TOOLS.value,
        ItemType.MCP_APPROVAL_REQUEST.value,
        ItemType.MCP_APPROVAL_RESPONSE.value,
    }
)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite JSON constant {name}")


def decode_arguments(raw: str | None) -> dict[str, Any]:
    """Decode tool-call arguments, wrapping anything that is not an object."""

    if raw is None or not raw.strip():
        return {}
    try:
        decoded = json.loads(raw, parse_constant=_reject_constant)
    except ValueError:
        return {"value": raw}
    if isinstance(decoded, dict):
        return decoded
    return {"value": decoded}


def decode_result(raw: Any) -> Any:
    """Decode a tool result, passing non-JSON payloads through unchanged."""

    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw, parse_constant=_reject_constant)
    except ValueError:
        return raw


def register_code_interpreter_files(item: OutputItem, attachments: AttachmentCollector) -> int:
    """Track every file output of a code interpreter item; return how many were seen."""

    container_id = item.container_id
    if not container_id:
        return 0

    seen = 0
    for result in item.code_interpreter_results():
        for file in result.files:
            file_id = file.resolved_id
            if file_id is None:
                continue
            LOGGER.info(
                "code interpreter file output container_id=%s file_id=%s",
                container_id,
                file_id,
            )
            attachments.track_container_citation(container_id=container_id, file_id=file_id)
            seen += 1
    return seen


@dataclass(slots=True)
class MappedItems:
    """Parts produced from a snapshot plus the call-id to name index."""

    parts: list[Part] = field(default_factory=list)
    tool_call_names: dict[str, str] = field(default_factory=dict)
    container_id: str | None = None


class ResponsePartMapper:
    """Convert snapshot items into parts, registering attachments on the way."""

    def map_items(
        self,
        items: Sequence[OutputItem],
        attachments: AttachmentCollector,
        state: EventMappingState | None = None,
    ) -> MappedItems:
        mapped = MappedItems()
        seen_links: set[str] = set()

        LOGGER.debug("mapping %d response items", len(items))
        for index, item in enumerate(items):
            item_type = item.type

            if item_type == ItemType.MESSAGE.value:
                mapped.parts.extend(self.map_output_message(item.content, attachments, seen_links))
                continue

            if item_type == ItemType.FUNCTION_CALL.value:
                part = self._map_function_call(item, state)
                if part is not None:
                    mapped.tool_call_names[part.id] = part.name
                    mapped.parts.append(part)
                continue

            if item_type == ItemType.FUNCTION_CALL_OUTPUT.value:
                call_id = item.call_id
                if not call_id:
                    LOGGER.warning("function call output without call_id at index %d", index)
                    continue
                mapped.parts.append(
                    ToolResultPart(
                        id=call_id,
                        name=mapped.tool_call_names.get(call_id, call_id),
                        result=decode_result(item.output),
                    )
                )
                continue

            if item_type == ItemType.IMAGE_GENERATION_CALL.value:
                attachments.mark_image_generation_completed(index=index, result_b64=item.result)
                continue

            if item_type == ItemType.CODE_INTERPRETER_CALL.value:
                register_code_interpreter_files(item, attachments)
                if item.container_id:
                    mapped.container_id = item.container_id
                continue

            if item_type in _SKIPPED_ITEM_TYPES:
                continue

            LOGGER.debug("ignoring response item of type %s", item_type)

        return mapped

    def map_output_message(
        self,
        content: Sequence[ContentEntry],
        attachments: AttachmentCollector,
        seen_links: set[str] | None = None,
    ) -> list[Part]:
        if seen_links is None:
            seen_links = set()

        parts: list[Part] = []
        for entry in content:
            if entry.type == "output_text":
                parts.append(TextPart(entry.text or ""))
                parts.extend(self._map_annotations(entry, attachments, seen_links))
            elif entry.type == "refusal":
                parts.append(TextPart(entry.refusal or ""))
            elif entry.type == "reasoning_summary_text":
                continue
            else:
                parts.append(TextPart(json.dumps(entry.to_record(), sort_keys=True)))
        return parts

    def _map_annotations(
        self,
        entry: ContentEntry,
        attachments: AttachmentCollector,
        seen_links: set[str],
    ) -> list[Part]:
        links: list[Part] = []
        for annotation in entry.annotations:
            if annotation.type == "container_file_citation":
                if annotation.container_id and annotation.file_id:
                    attachments.track_container_citation(
                        container_id=annotation.container_id,
                        file_id=annotation.file_id,
                    )
                continue

            if annotation.type == "url_citation" and annotation.url:
                if annotation.url in seen_links:
                    continue
                seen_links.add(annotation.url)
                links.append(LinkPart(url=annotation.url, name=annotation.title))
        return links

    def _map_function_call(
        self,
        item: OutputItem,
        state: EventMappingState | None,
    ) -> ToolCallPart | None:
        if not item.call_id or not item.name:
            LOGGER.warning("function call item missing call_id or name: %s", item.id)
            return None

        raw_arguments = item.arguments
        if not raw_arguments and state is not None:
            streamed = state.function_call_by_call_id(item.call_id)
            if streamed is not None and streamed.is_complete:
                raw_arguments = streamed.arguments

        LOGGER.debug("adding function call %s (id=%s)", item.name, item.call_id)
        return ToolCallPart(
            id=item.call_id,
            name=item.name,
            arguments=decode_arguments(raw_arguments),
        )
