"""Async runtime loop folding streamed results into transcripts."""

from .loop import ResponsesRuntime, SessionTranscript
from .state import AccumulatedResult, ResultAccumulator

__all__ = [
    "ResponsesRuntime",
    "SessionTranscript",
    "AccumulatedResult",
    "ResultAccumulator",
]
