"""Map OpenAI Responses event streams onto provider-agnostic chat results.

The package turns the incremental server-sent events of a streamed response
into partial results as they arrive plus one consolidated result when the
terminal event lands, resolving generated images and cited container files
along the way.
"""

from __future__ import annotations

from .config import StreamConfig
from .core.adapters import OpenAIResponsesAdapter, ReplayStreamIterator
from .core.errors import AdapterError, AttachmentDownloadError, ResponsesRequestError
from .core.message import ChatMessage, ChatResult, FinishReason
from .core.responses import ContainerFileData, ResponsesEventMapper
from .runtime import ResponsesRuntime, ResultAccumulator

__all__ = [
    "AdapterError",
    "AttachmentDownloadError",
    "ChatMessage",
    "ChatResult",
    "ContainerFileData",
    "FinishReason",
    "OpenAIResponsesAdapter",
    "ReplayStreamIterator",
    "ResponsesEventMapper",
    "ResponsesRequestError",
    "ResponsesRuntime",
    "ResultAccumulator",
    "StreamConfig",
]

__version__ = "0.1.0"
