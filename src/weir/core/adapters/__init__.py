"""Adapter interfaces and provider implementations."""

from __future__ import annotations

from .base import ModelAdapter
from .openai import (
    OpenAIContainerFileLoader,
    OpenAIResponsesAdapter,
    ResponsesStreamIterator,
    create_responses_stream,
)
from .stream import BaseStreamIterator, ReplayStreamIterator, StreamNormalizer, replay_stream

__all__ = [
    "ModelAdapter",
    "OpenAIContainerFileLoader",
    "OpenAIResponsesAdapter",
    "ResponsesStreamIterator",
    "BaseStreamIterator",
    "ReplayStreamIterator",
    "StreamNormalizer",
    "create_responses_stream",
    "replay_stream",
]
