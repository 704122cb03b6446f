"""Provider-agnostic result schema produced by the event mapper."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
import json
import math
from types import MappingProxyType
from typing import Any, Union


class MessageRole(str, Enum):
    """Canonical role names."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class FinishReason(str, Enum):
    """Why the model stopped producing output."""

    STOP = "stop"
    LENGTH = "length"
    CONTENT_FILTER = "content_filter"
    UNSPECIFIED = "unspecified"


@dataclass(frozen=True, slots=True)
class TextPart:
    """Visible text."""

    text: str

    def __post_init__(self) -> None:
        if not isinstance(self.text, str):
            msg = "text part content must be a string"
            raise TypeError(msg)


@dataclass(frozen=True, slots=True)
class DataPart:
    """Binary payload such as a generated image or a downloaded file."""

    data: bytes
    mime_type: str = "application/octet-stream"
    name: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.data, (bytes, bytearray)):
            msg = "data part payload must be bytes"
            raise TypeError(msg)
        if not isinstance(self.mime_type, str) or not self.mime_type:
            msg = "data part mime type must be a non-empty string"
            raise ValueError(msg)
        object.__setattr__(self, "data", bytes(self.data))


@dataclass(frozen=True, slots=True)
class LinkPart:
    """Reference to an external resource, e.g. a URL citation."""

    url: str
    name: str | None = None
    mime_type: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.url, str) or not self.url:
            msg = "link part url must be a non-empty string"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class ToolCallPart:
    """A tool/function invocation requested by the model."""

    id: str
    name: str
    arguments: Mapping[str, Any]

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            msg = "tool call id must be a non-empty string"
            raise ValueError(msg)
        if not isinstance(self.name, str) or not self.name:
            msg = "tool call name must be a non-empty string"
            raise ValueError(msg)
        if not isinstance(self.arguments, Mapping):
            msg = "tool call arguments must be a mapping"
            raise TypeError(msg)

        plain_arguments = _thaw_json_structure(dict(self.arguments))
        _ensure_json_compatible(plain_arguments, path="ToolCallPart.arguments")

        sanitized = json.loads(json.dumps(plain_arguments, allow_nan=False))
        frozen = _freeze_json_structure(sanitized)
        object.__setattr__(self, "arguments", frozen)

    def plain_arguments(self) -> dict[str, Any]:
        """Return a mutable deep copy of :attr:`arguments`."""

        return _thaw_json_structure(self.arguments)


@dataclass(frozen=True, slots=True)
class ToolResultPart:
    """Output returned for a previously issued tool call."""

    id: str
    name: str
    result: Any = None

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            msg = "tool result id must be a non-empty string"
            raise ValueError(msg)


Part = Union[TextPart, DataPart, LinkPart, ToolCallPart, ToolResultPart]
_PART_TYPES = (TextPart, DataPart, LinkPart, ToolCallPart, ToolResultPart)


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """A single message made of ordered parts plus free-form metadata."""

    role: MessageRole = MessageRole.ASSISTANT
    parts: tuple[Part, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.parts, Sequence) or isinstance(self.parts, (str, bytes, bytearray)):
            msg = "message parts must be a sequence of Part instances"
            raise TypeError(msg)
        candidates = tuple(self.parts)
        for part in candidates:
            if not isinstance(part, _PART_TYPES):
                msg = f"unsupported message part type {type(part).__name__}"
                raise TypeError(msg)
        object.__setattr__(self, "parts", candidates)
        object.__setattr__(self, "metadata", dict(self.metadata))

    @property
    def text(self) -> str:
        """Concatenated text of every :class:`TextPart`."""

        return "".join(part.text for part in self.parts if isinstance(part, TextPart))

    @property
    def tool_calls(self) -> tuple[ToolCallPart, ...]:
        return tuple(part for part in self.parts if isinstance(part, ToolCallPart))

    @property
    def tool_results(self) -> tuple[ToolResultPart, ...]:
        return tuple(part for part in self.parts if isinstance(part, ToolResultPart))

    @property
    def data_parts(self) -> tuple[DataPart, ...]:
        return tuple(part for part in self.parts if isinstance(part, DataPart))

    def without_text(self) -> ChatMessage:
        """Return a copy holding only the non-text parts."""

        remaining = tuple(part for part in self.parts if not isinstance(part, TextPart))
        return ChatMessage(role=self.role, parts=remaining, metadata=self.metadata)


@dataclass(frozen=True, slots=True)
class LanguageModelUsage:
    """Token accounting reported with the terminal event."""

    prompt_tokens: int | None = None
    response_tokens: int | None = None
    total_tokens: int | None = None


@dataclass(frozen=True, slots=True)
class ChatResult:
    """One increment of a streamed response.

    Partial results carry a single text delta or a metadata-only update; the
    aggregate result emitted on the terminal event carries usage, finish
    reason, the response id and any parts not already streamed.
    """

    output: ChatMessage = field(default_factory=ChatMessage)
    messages: tuple[ChatMessage, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict)
    usage: LanguageModelUsage | None = None
    finish_reason: FinishReason = FinishReason.UNSPECIFIED
    id: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.output, ChatMessage):
            msg = "result output must be a ChatMessage"
            raise TypeError(msg)
        messages = tuple(self.messages)
        for message in messages:
            if not isinstance(message, ChatMessage):
                msg = "result messages must contain ChatMessage instances"
                raise TypeError(msg)
        object.__setattr__(self, "messages", messages)
        object.__setattr__(self, "metadata", dict(self.metadata))

    @property
    def thinking(self) -> str | None:
        """Reasoning text carried by this increment, if any."""

        value = self.metadata.get("thinking")
        return value if isinstance(value, str) and value else None


def _ensure_json_compatible(value: Any, *, path: str) -> None:
    if isinstance(value, Mapping):
        for key, inner in value.items():
            if not isinstance(key, str):
                msg = f"{path} keys must be strings"
                raise TypeError(msg)
            _ensure_json_compatible(inner, path=f"{path}.{key}")
        return

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        for index, item in enumerate(value):
            _ensure_json_compatible(item, path=f"{path}[{index}]")
        return

    if isinstance(value, (bool, type(None), str)):
        return

    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            msg = f"{path} contains non-finite float values"
            raise ValueError(msg)
        return

    msg = f"{path} contains unsupported value type {type(value).__name__}"
    raise TypeError(msg)


def _freeze_json_structure(value: Any) -> Any:
    if isinstance(value, dict):
        frozen_dict = {key: _freeze_json_structure(inner) for key, inner in value.items()}
        return MappingProxyType(frozen_dict)

    if isinstance(value, list):
        return tuple(_freeze_json_structure(inner) for inner in value)

    return value


def _thaw_json_structure(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _thaw_json_structure(inner) for key, inner in value.items()}

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [_thaw_json_structure(inner) for inner in value]

    return value
