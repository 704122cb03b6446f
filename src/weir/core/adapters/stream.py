"""Pull-driven async iterator primitives for mapped result streams."""

from __future__ import annotations

import abc
import asyncio
import logging
from collections import deque
from typing import Any, AsyncIterator, Deque, Iterable, List, Protocol

from ..message import ChatResult
from ..responses.mapper import ResponsesEventMapper

LOGGER = logging.getLogger(__name__)


class StreamNormalizer(Protocol):
    @property
    def finalized(self) -> bool:
        """Whether the terminal chunk has been processed."""

    async def normalize_chunk(self, chunk: Any) -> List[ChatResult]:
        """Map one raw provider chunk into zero or more results."""


class BaseStreamIterator(AsyncIterator[ChatResult], metaclass=abc.ABCMeta):
    """Shared async iterator driving provider-specific streaming adapters.

    Subclasses are responsible for sourcing raw provider chunks by
    implementing :meth:`_get_next_chunk`. Each chunk is handed to a
    :class:`StreamNormalizer`, which may return several results or none at
    all; the iterator buffers them so consumers see a linear stream. Once the
    normalizer reports that it has finalized, buffered results are drained
    and the iterator closes itself. A single pull may therefore consume many
    chunks before a result is available.
    """

    def __init__(self, normalizer: StreamNormalizer) -> None:
        self._normalizer = normalizer
        self._buffer: Deque[ChatResult] = deque()
        self._closed = False
        self._finalized = False
        self._close_lock = asyncio.Lock()

    def __aiter__(self) -> BaseStreamIterator:
        return self

    async def __anext__(self) -> ChatResult:
        if self._buffer:
            return self._buffer.popleft()

        while True:
            if self._closed:
                raise StopAsyncIteration

            if self._finalized:
                await self.close()
                raise StopAsyncIteration

            chunk = await self._consume_chunk()
            try:
                results = await self._normalizer.normalize_chunk(chunk)
            except Exception:
                await self.close()
                raise

            if self._normalizer.finalized:
                self._finalized = True

            if results:
                self._buffer.extend(results)
                return self._buffer.popleft()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def finalized(self) -> bool:
        return self._finalized

    async def close(self) -> None:
        """Release provider resources and prevent additional iteration."""

        async with self._close_lock:
            if self._closed:
                return

            self._closed = True
            self._buffer.clear()
            await self._on_close()

    async def aclose(self) -> None:
        await self.close()

    async def _consume_chunk(self) -> Any:
        try:
            return await self._get_next_chunk()
        except StopAsyncIteration:
            if not self._finalized:
                LOGGER.warning("stream ended without a terminal event")
            await self.close()
            raise
        except BaseException:
            await self.close()
            raise

    @abc.abstractmethod
    async def _get_next_chunk(self) -> Any:
        """Retrieve the next raw chunk from the provider stream."""

    async def _on_close(self) -> None:
        """Allow subclasses to dispose provider resources when closing."""


class ReplayStreamIterator(BaseStreamIterator):
    """Feed previously captured events through a normalizer.

    Useful for tests and for replaying recorded sessions offline.
    """

    def __init__(self, events: Iterable[Any], normalizer: StreamNormalizer | None = None) -> None:
        self._events: Deque[Any] = deque(events)
        super().__init__(normalizer or ResponsesEventMapper())

    async def _get_next_chunk(self) -> Any:
        await asyncio.sleep(0)
        if not self._events:
            raise StopAsyncIteration
        return self._events.popleft()

    async def _on_close(self) -> None:
        self._events.clear()


async def replay_stream(iterator: BaseStreamIterator) -> List[ChatResult]:
    """Collect all results emitted by a stream iterator."""

    results: List[ChatResult] = []
    try:
        async for result in iterator:
            results.append(result)
    finally:
        await iterator.close()
    return results
