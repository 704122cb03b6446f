"""Streaming event mapping for the OpenAI Responses protocol."""

from __future__ import annotations

from .attachments import AttachmentCollector, ContainerFileData, ContainerFileLoader, sniff_mime_type
from .builder import ResponseMessageBuilder, map_finish_reason, map_usage
from .mapper import ResponsesEventMapper, coerce_event
from .parts import ResponsePartMapper, decode_arguments, decode_result
from .recorder import ToolEventRecorder
from .session import SESSION_KEY, SessionMetadataBuilder
from .state import EventMappingState, MappingPhase, StreamingFunctionCall

__all__ = [
    "AttachmentCollector",
    "ContainerFileData",
    "ContainerFileLoader",
    "EventMappingState",
    "MappingPhase",
    "ResponseMessageBuilder",
    "ResponsePartMapper",
    "ResponsesEventMapper",
    "SESSION_KEY",
    "SessionMetadataBuilder",
    "StreamingFunctionCall",
    "ToolEventRecorder",
    "coerce_event",
    "decode_arguments",
    "decode_result",
    "map_finish_reason",
    "map_usage",
    "sniff_mime_type",
]
