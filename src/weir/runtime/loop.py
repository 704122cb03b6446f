"""Async runtime loop coordinating adapters, result folding and transcripts."""

from __future__ import annotations

import inspect
import logging
from asyncio import CancelledError
from collections.abc import AsyncIterator, Mapping
from typing import Any

from weir.core.adapters import ModelAdapter
from weir.core.adapters.stream import BaseStreamIterator
from weir.core.message import ChatResult
from weir.io.schema import ToolType

from .state import AccumulatedResult, ResultAccumulator


LOGGER = logging.getLogger(__name__)

_TOOL_KEYS = tuple(tool.value for tool in ToolType)


class SessionTranscript:
    """Buffer of streamed results and accumulator snapshots for deterministic replay."""

    def __init__(self) -> None:
        self._results: list[ChatResult] = []
        self._states: list[AccumulatedResult] = []

    def record(self, result: ChatResult, state: AccumulatedResult) -> None:
        """Append a result alongside a snapshot of the accumulated state."""

        self._results.append(result)
        self._states.append(state.snapshot())

    @property
    def results(self) -> tuple[ChatResult, ...]:
        """Return the recorded results in emission order."""

        return tuple(self._results)

    @property
    def states(self) -> tuple[AccumulatedResult, ...]:
        return tuple(self._states)

    def __len__(self) -> int:
        return len(self._results)

    async def replay(self) -> AsyncIterator[ChatResult]:
        """Yield recorded results as an async iterator."""

        for result in self._results:
            yield result


class ResponsesRuntime(AsyncIterator[ChatResult]):
    """Drive one adapter stream, folding and recording every result."""

    def __init__(
        self,
        adapter: ModelAdapter,
        payload: Mapping[str, Any] | None = None,
        /,
        *,
        options: Mapping[str, Any] | None = None,
        transcript: SessionTranscript | None = None,
    ) -> None:
        self._adapter = adapter
        self._payload = dict(payload or {})
        self._options = dict(options or {})
        self._stream: BaseStreamIterator | None = None
        self._closed = False
        self._completed = False

        self.accumulator = ResultAccumulator()
        self.transcript = transcript or SessionTranscript()

    def __aiter__(self) -> ResponsesRuntime:
        return self

    async def __anext__(self) -> ChatResult:
        if self._closed:
            raise StopAsyncIteration

        iterator = self._ensure_stream()
        try:
            result = await iterator.__anext__()
        except StopAsyncIteration:
            finalized = iterator.finalized
            await self.aclose()
            if finalized:
                self._complete()
            raise
        except CancelledError:
            await self.aclose()
            raise
        except Exception:
            await self.aclose()
            raise

        self._handle_result(result)
        return result

    @property
    def closed(self) -> bool:
        """Whether the runtime has been closed."""

        return self._closed

    @property
    def completed(self) -> bool:
        """Whether the stream reached its terminal event."""

        return self._completed

    async def run(self) -> ChatResult:
        """Consume the whole stream and return the consolidated result."""

        async for _ in self:
            pass
        return self.accumulator.build()

    async def aclose(self) -> None:
        """Close the underlying stream iterator and mark the runtime closed."""

        if self._closed:
            return

        self._closed = True
        iterator = self._stream
        self._stream = None
        if iterator is None:
            return

        closer = getattr(iterator, "aclose", None)
        if closer is not None:
            result = closer()
            if inspect.isawaitable(result):
                await result
            return

        await iterator.close()

    def on_text(self, result: ChatResult) -> None:
        LOGGER.debug("on_text %r", result.output.text)

    def on_thinking(self, result: ChatResult) -> None:
        LOGGER.debug("on_thinking %r", result.thinking)

    def on_tool(self, tool: str, events: list[Any]) -> None:
        """Log server-side tool telemetry for observability."""

        for event in events:
            event_type = event.get("type") if isinstance(event, Mapping) else None
            LOGGER.info("on_tool tool=%s type=%s", tool, event_type)

    def on_complete(self, result: ChatResult) -> None:
        """Log completion of the streaming session."""

        LOGGER.info(
            "on_complete id=%s finish_reason=%s text_length=%d tokens=%s",
            result.id,
            result.finish_reason.value,
            len(result.output.text),
            result.usage.total_tokens if result.usage else None,
        )

    def _ensure_stream(self) -> BaseStreamIterator:
        if self._stream is None:
            self._stream = self._adapter.stream(self._payload, **self._options)
        return self._stream

    def _handle_result(self, result: ChatResult) -> None:
        state = self.accumulator.add(result)

        if result.output.text:
            self.on_text(result)
        if result.thinking is not None:
            self.on_thinking(result)
        for key in _TOOL_KEYS:
            events = result.metadata.get(key)
            if isinstance(events, list) and events:
                self.on_tool(key, events)

        self.transcript.record(result, state)

    def _complete(self) -> None:
        self._completed = True
        self.on_complete(self.accumulator.build())
