"""Fold streamed results into one consolidated view."""

from __future__ import annotations

from collections.abc import Mapping
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any

from weir.core.message import (
    ChatMessage,
    ChatResult,
    FinishReason,
    LanguageModelUsage,
    MessageRole,
    Part,
    TextPart,
)


@dataclass(slots=True)
class AccumulatedResult:
    """Running totals of a result stream."""

    text: str = ""
    messages: list[ChatMessage] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    message_metadata: dict[str, Any] = field(default_factory=dict)
    usage: LanguageModelUsage | None = None
    finish_reason: FinishReason = FinishReason.UNSPECIFIED
    id: str | None = None
    count: int = 0

    def snapshot(self) -> AccumulatedResult:
        """Return a copy that later folds do not affect."""

        # Messages are frozen; metadata holds nested telemetry lists.
        return AccumulatedResult(
            text=self.text,
            messages=list(self.messages),
            metadata=deepcopy(self.metadata),
            message_metadata=deepcopy(self.message_metadata),
            usage=self.usage,
            finish_reason=self.finish_reason,
            id=self.id,
            count=self.count,
        )


class ResultAccumulator:
    """Fold a :class:`ChatResult` sequence into a single result.

    Output text is concatenated and ``messages`` are collected in order.
    Result metadata merges with the last value winning, except ``thinking``
    which is concatenated. The id, usage and finish reason of the latest
    result that reports one are kept.
    """

    def __init__(self) -> None:
        self._state = AccumulatedResult()

    @property
    def state(self) -> AccumulatedResult:
        return self._state

    def add(self, result: ChatResult) -> AccumulatedResult:
        state = self._state
        state.count += 1
        state.text += result.output.text
        state.messages.extend(result.messages)

        _merge_metadata(state.metadata, result.metadata)
        _merge_metadata(state.message_metadata, result.output.metadata)

        if result.id is not None:
            state.id = result.id
        if result.usage is not None:
            state.usage = result.usage
        if result.finish_reason is not FinishReason.UNSPECIFIED:
            state.finish_reason = result.finish_reason
        return state

    def build(self) -> ChatResult:
        """Return the consolidated result seen so far."""

        state = self._state
        parts: list[Part] = []
        if state.text:
            parts.append(TextPart(state.text))
        for message in state.messages:
            parts.extend(part for part in message.parts if not isinstance(part, TextPart))

        output = ChatMessage(role=MessageRole.ASSISTANT, parts=tuple(parts), metadata=state.message_metadata)
        return ChatResult(
            output=output,
            messages=tuple(state.messages),
            metadata=state.metadata,
            usage=state.usage,
            finish_reason=state.finish_reason,
            id=state.id,
        )


def _merge_metadata(target: dict[str, Any], update: Mapping[str, Any]) -> None:
    for key, value in update.items():
        if key == "thinking" and isinstance(value, str):
            target[key] = target.get(key, "") + value
        else:
            target[key] = value
