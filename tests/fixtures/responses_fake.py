"""Deterministic Responses API streaming fixtures for offline tests."""

from __future__ import annotations

import asyncio
import base64
from collections import deque
from types import SimpleNamespace
from typing import Any, Deque, Iterable, Mapping, Sequence

from weir.config import StreamConfig
from weir.core.adapters.stream import ReplayStreamIterator, replay_stream
from weir.core.message import ChatResult
from weir.core.responses.attachments import ContainerFileData, ContainerFileLoader
from weir.core.responses.mapper import ResponsesEventMapper

StreamEvent = Mapping[str, Any]

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 16


class FakeAsyncStream:
    """Async iterator that replays pre-defined stream events."""

    def __init__(self, events: Iterable[StreamEvent | BaseException]) -> None:
        self._events: Deque[Any] = deque(
            event if isinstance(event, BaseException) else dict(event) for event in events
        )
        self.closed = False
        self.pulled = 0

    def __aiter__(self) -> "FakeAsyncStream":
        return self

    async def __anext__(self) -> dict[str, Any]:
        if not self._events:
            raise StopAsyncIteration
        await asyncio.sleep(0)
        self.pulled += 1
        event = self._events.popleft()
        if isinstance(event, BaseException):
            raise event
        return event

    async def aclose(self) -> None:
        self.closed = True


class FakeResponses:
    """Minimal stub for ``client.responses``."""

    def __init__(self, stream: FakeAsyncStream) -> None:
        self._stream = stream
        self.calls: list[dict[str, Any]] = []

    def create(self, **kwargs: Any) -> FakeAsyncStream:
        self.calls.append(dict(kwargs))
        return self._stream


class FakeContainerFileContent:
    def __init__(self, files: Mapping[tuple[str, str], bytes]) -> None:
        self._files = dict(files)
        self.calls: list[tuple[str, str]] = []

    async def retrieve(self, file_id: str, *, container_id: str) -> SimpleNamespace:
        self.calls.append((container_id, file_id))
        try:
            data = self._files[(container_id, file_id)]
        except KeyError:
            raise LookupError(f"{container_id}/{file_id} not found") from None
        return SimpleNamespace(content=data)


class FakeContainerFiles:
    """Stub for ``client.containers.files``."""

    def __init__(
        self,
        files: Mapping[tuple[str, str], bytes],
        paths: Mapping[tuple[str, str], str] | None = None,
    ) -> None:
        self.content = FakeContainerFileContent(files)
        self._paths = dict(paths or {})

    async def retrieve(self, file_id: str, *, container_id: str) -> SimpleNamespace:
        path = self._paths.get((container_id, file_id))
        if path is None:
            raise LookupError(f"{container_id}/{file_id} has no metadata")
        return SimpleNamespace(id=file_id, path=path)


def build_streaming_client(
    events: Sequence[StreamEvent | BaseException],
    *,
    files: Mapping[tuple[str, str], bytes] | None = None,
    paths: Mapping[tuple[str, str], str] | None = None,
) -> tuple[SimpleNamespace, FakeAsyncStream]:
    """Return a fake OpenAI client and associated stream for the given events."""

    stream = FakeAsyncStream(events)
    responses = FakeResponses(stream)
    containers = SimpleNamespace(files=FakeContainerFiles(files or {}, paths))
    client = SimpleNamespace(responses=responses, containers=containers)
    return client, stream


def create_responses_stream(client: Any, payload: Mapping[str, Any]) -> FakeAsyncStream:
    """Replica of the adapter's streaming factory that records invocations."""

    return client.responses.create(**payload)


class RecordingLoader:
    """Container file loader that serves in-memory files and records calls."""

    def __init__(self, files: Mapping[tuple[str, str], ContainerFileData | bytes]) -> None:
        self._files = dict(files)
        self.calls: list[tuple[str, str]] = []

    async def __call__(self, container_id: str, file_id: str) -> ContainerFileData:
        self.calls.append((container_id, file_id))
        value = self._files[(container_id, file_id)]
        if isinstance(value, ContainerFileData):
            return value
        return ContainerFileData(data=value)


def map_events(
    events: Iterable[Any],
    *,
    mapper: ResponsesEventMapper | None = None,
    config: StreamConfig | None = None,
    loader: ContainerFileLoader | None = None,
) -> list[ChatResult]:
    """Replay raw events through a fresh (or the given) mapper and collect every result."""

    if mapper is None:
        mapper = ResponsesEventMapper(config, container_file_loader=loader)
    return asyncio.run(replay_stream(ReplayStreamIterator(events, mapper)))


# Event builders -----------------------------------------------------------


def response(
    output: Sequence[Mapping[str, Any]] = (),
    *,
    response_id: str = "resp_1",
    status: str = "completed",
    model: str | None = "gpt-4.1-mini",
    usage: Mapping[str, Any] | None = None,
    **extra: Any,
) -> dict[str, Any]:
    payload: dict[str, Any] = {"id": response_id, "status": status, "output": list(output)}
    if model is not None:
        payload["model"] = model
    if usage is not None:
        payload["usage"] = dict(usage)
    payload.update(extra)
    return payload


def created(response_id: str = "resp_1") -> dict[str, Any]:
    return {"type": "response.created", "response": response(response_id=response_id, status="in_progress")}


def completed(
    output: Sequence[Mapping[str, Any]] = (),
    **kwargs: Any,
) -> dict[str, Any]:
    return {"type": "response.completed", "response": response(output, **kwargs)}


def message_item(
    text: str,
    *,
    item_id: str = "msg_1",
    annotations: Sequence[Mapping[str, Any]] = (),
) -> dict[str, Any]:
    return {
        "type": "message",
        "id": item_id,
        "status": "completed",
        "role": "assistant",
        "content": [{"type": "output_text", "text": text, "annotations": list(annotations)}],
    }


def text_delta(delta: str, *, output_index: int = 0, item_id: str = "msg_1") -> dict[str, Any]:
    return {
        "type": "response.output_text.delta",
        "output_index": output_index,
        "item_id": item_id,
        "content_index": 0,
        "delta": delta,
    }


def function_call_item(
    *,
    call_id: str = "call_1",
    name: str = "get_weather",
    arguments: str = "",
    item_id: str = "fc_1",
) -> dict[str, Any]:
    return {
        "type": "function_call",
        "id": item_id,
        "call_id": call_id,
        "name": name,
        "arguments": arguments,
        "status": "completed",
    }


def item_added(item: Mapping[str, Any], output_index: int) -> dict[str, Any]:
    return {"type": "response.output_item.added", "output_index": output_index, "item": dict(item)}


def item_done(item: Mapping[str, Any], output_index: int) -> dict[str, Any]:
    return {"type": "response.output_item.done", "output_index": output_index, "item": dict(item)}


def reasoning_delta(
    delta: str,
    *,
    item_id: str = "rs_1",
    output_index: int = 0,
    summary_index: int = 0,
) -> dict[str, Any]:
    return {
        "type": "response.reasoning_summary_text.delta",
        "item_id": item_id,
        "output_index": output_index,
        "summary_index": summary_index,
        "delta": delta,
    }


def partial_image(data: bytes, *, output_index: int, item_id: str = "ig_1", partial_index: int = 0) -> dict[str, Any]:
    return {
        "type": "response.image_generation_call.partial_image",
        "item_id": item_id,
        "output_index": output_index,
        "partial_image_index": partial_index,
        "partial_image_b64": base64.b64encode(data).decode("ascii"),
    }


def code_interpreter_item(
    *,
    container_id: str = "cntr_1",
    file_ids: Sequence[str] = (),
    item_id: str = "ci_1",
    code: str = "print(1)",
) -> dict[str, Any]:
    return {
        "type": "code_interpreter_call",
        "id": item_id,
        "status": "completed",
        "code": code,
        "container_id": container_id,
        "results": [
            {"type": "files", "files": [{"file_id": file_id, "mime_type": None} for file_id in file_ids]}
        ],
    }


def container_citation(container_id: str, file_id: str, filename: str | None = None) -> dict[str, Any]:
    return {
        "type": "container_file_citation",
        "container_id": container_id,
        "file_id": file_id,
        "filename": filename,
        "start_index": 0,
        "end_index": 1,
    }


def text_stream(*deltas: str, response_id: str = "resp_1") -> list[dict[str, Any]]:
    """Events for a plain streamed text answer."""

    full = "".join(deltas)
    return [
        created(response_id),
        item_added({"type": "message", "id": "msg_1", "role": "assistant", "content": []}, 0),
        *[text_delta(delta) for delta in deltas],
        {"type": "response.output_text.done", "output_index": 0, "item_id": "msg_1", "text": full},
        completed(
            [message_item(full)],
            response_id=response_id,
            usage={"input_tokens": 5, "output_tokens": 3, "total_tokens": 8},
        ),
    ]


__all__ = [
    "FakeAsyncStream",
    "FakeContainerFiles",
    "FakeResponses",
    "JPEG_BYTES",
    "PNG_BYTES",
    "RecordingLoader",
    "build_streaming_client",
    "code_interpreter_item",
    "completed",
    "container_citation",
    "create_responses_stream",
    "created",
    "function_call_item",
    "item_added",
    "item_done",
    "map_events",
    "message_item",
    "partial_image",
    "reasoning_delta",
    "response",
    "text_delta",
    "text_stream",
]
