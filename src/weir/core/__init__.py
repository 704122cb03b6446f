"""Core data structures, event mapping and adapters for weir."""

from __future__ import annotations

from .errors import AdapterError, AttachmentDownloadError, ResponsesRequestError
from .message import (
    ChatMessage,
    ChatResult,
    DataPart,
    FinishReason,
    LanguageModelUsage,
    LinkPart,
    MessageRole,
    TextPart,
    ToolCallPart,
    ToolResultPart,
)

__all__ = [
    "AdapterError",
    "AttachmentDownloadError",
    "ChatMessage",
    "ChatResult",
    "DataPart",
    "FinishReason",
    "LanguageModelUsage",
    "LinkPart",
    "MessageRole",
    "ResponsesRequestError",
    "TextPart",
    "ToolCallPart",
    "ToolResultPart",
]
