"""Assemble the aggregate result emitted on the terminal event."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from weir.io.schema import ResponseSnapshot, Usage

from ..message import ChatMessage, ChatResult, FinishReason, LanguageModelUsage, MessageRole, Part, TextPart


def map_usage(usage: Usage | None) -> LanguageModelUsage | None:
    if usage is None:
        return None
    return LanguageModelUsage(
        prompt_tokens=usage.input_tokens,
        response_tokens=usage.output_tokens,
        total_tokens=usage.total_tokens,
    )


def map_finish_reason(response: ResponseSnapshot) -> FinishReason:
    """Translate the terminal status into a :class:`FinishReason`."""

    if response.status == "completed":
        return FinishReason.STOP
    if response.status == "incomplete":
        reason = response.incomplete_details.reason if response.incomplete_details else None
        if reason == "max_output_tokens":
            return FinishReason.LENGTH
        if reason == "content_filter":
            return FinishReason.CONTENT_FILTER
    return FinishReason.UNSPECIFIED


class ResponseMessageBuilder:
    """Reconcile the final parts against what was already streamed.

    When text deltas were streamed the aggregate output carries metadata only,
    so concatenating every streamed output never repeats text. Non-text parts
    (tool calls, attachments, links) are still delivered through ``messages``.
    Without streamed text the output holds every part and ``messages`` repeats
    that same message.
    """

    def build(
        self,
        response: ResponseSnapshot,
        parts: Sequence[Part],
        *,
        message_metadata: Mapping[str, Any],
        result_metadata: Mapping[str, Any],
        has_streamed_text: bool,
    ) -> ChatResult:
        if has_streamed_text:
            return self.streaming_result(response, parts, message_metadata, result_metadata)
        return self.non_streaming_result(response, parts, message_metadata, result_metadata)

    def streaming_result(
        self,
        response: ResponseSnapshot,
        parts: Sequence[Part],
        message_metadata: Mapping[str, Any],
        result_metadata: Mapping[str, Any],
    ) -> ChatResult:
        non_text = tuple(part for part in parts if not isinstance(part, TextPart))
        messages: tuple[ChatMessage, ...] = ()
        if non_text:
            messages = (ChatMessage(role=MessageRole.ASSISTANT, parts=non_text, metadata=message_metadata),)

        return ChatResult(
            output=ChatMessage(role=MessageRole.ASSISTANT, parts=(), metadata=message_metadata),
            messages=messages,
            metadata=result_metadata,
            usage=map_usage(response.usage),
            finish_reason=map_finish_reason(response),
            id=response.id,
        )

    def non_streaming_result(
        self,
        response: ResponseSnapshot,
        parts: Sequence[Part],
        message_metadata: Mapping[str, Any],
        result_metadata: Mapping[str, Any],
    ) -> ChatResult:
        message = ChatMessage(role=MessageRole.ASSISTANT, parts=tuple(parts), metadata=message_metadata)
        return ChatResult(
            output=message,
            messages=(message,),
            metadata=result_metadata,
            usage=map_usage(response.usage),
            finish_reason=map_finish_reason(response),
            id=response.id,
        )
