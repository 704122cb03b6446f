"""OpenAI Responses adapter over a caller-supplied client."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Mapping
from pathlib import PurePosixPath
from typing import Any

from weir.config import StreamConfig

from ..errors import AdapterError
from ..responses.attachments import ContainerFileData, ContainerFileLoader
from ..responses.mapper import ResponsesEventMapper
from .base import ModelAdapter
from .stream import BaseStreamIterator, StreamNormalizer

LOGGER = logging.getLogger(__name__)


def create_responses_stream(client: Any, payload: Mapping[str, Any]) -> Any:
    """Create a streaming response using the provided OpenAI client."""

    return client.responses.create(**payload)


class OpenAIResponsesAdapter(ModelAdapter):
    """Send prepared Responses requests and map the resulting event stream.

    The adapter does not build request bodies: ``payload`` is forwarded as
    given after merging default parameters and forcing ``stream=True``. The
    ``store`` flag of the final request decides whether the aggregate message
    carries a continuation token.
    """

    def __init__(
        self,
        client: Any,
        *,
        default_model: str | None = None,
        default_params: Mapping[str, Any] | None = None,
        container_file_loader: ContainerFileLoader | None = None,
    ) -> None:
        self._client = client
        self._default_model = default_model
        self._default_params = dict(default_params or {})
        self._container_file_loader = container_file_loader or OpenAIContainerFileLoader(client)

        if "model" in self._default_params and self._default_model is None:
            model_value = self._default_params.pop("model")
            self._default_model = str(model_value)

        if "stream" in self._default_params:
            msg = "default parameters cannot include reserved keys: stream"
            raise ValueError(msg)

    def stream(
        self,
        payload: Mapping[str, Any] | None = None,
        /,
        **options: Any,
    ) -> ResponsesStreamIterator:
        request_payload = self._build_payload(payload or {}, options)

        try:
            config = StreamConfig.from_options(request_payload)
        except ValueError as exc:
            raise AdapterError(str(exc)) from exc

        try:
            stream = create_responses_stream(self._client, request_payload)
        except Exception as exc:
            msg = "OpenAI client call failed"
            raise AdapterError(msg) from exc

        LOGGER.debug("opened responses stream model=%s store=%s", config.model, config.store_session)
        mapper = ResponsesEventMapper(config, container_file_loader=self._container_file_loader)
        return ResponsesStreamIterator(stream, normalizer=mapper)

    def _build_payload(self, payload: Mapping[str, Any], options: Mapping[str, Any]) -> dict[str, Any]:
        request_payload: dict[str, Any] = dict(self._default_params)
        for source in (payload, options):
            if "stream" in source:
                msg = "option 'stream' is managed by the adapter"
                raise AdapterError(msg)
            request_payload.update(source)

        model_name = request_payload.get("model") or self._default_model
        if not model_name:
            msg = "a model name must be provided"
            raise AdapterError(msg)

        request_payload["model"] = str(model_name)
        request_payload["stream"] = True
        return request_payload


class ResponsesStreamIterator(BaseStreamIterator):
    """Stream iterator over the raw events of a Responses API stream.

    ``stream`` may be an async iterable or an awaitable resolving to one, as
    returned by async clients; the awaitable is resolved on the first pull.
    """

    def __init__(
        self,
        stream: Any,
        *,
        normalizer: StreamNormalizer | None = None,
    ) -> None:
        self._stream = stream
        self._iterator: Any | None = None
        if not inspect.isawaitable(stream):
            self._iterator = self._coerce_async_iterator(stream)
        self._stream_closed = False
        super().__init__(normalizer or ResponsesEventMapper())

    async def _get_next_chunk(self) -> Any:
        iterator = await self._ensure_iterator()
        try:
            return await iterator.__anext__()
        except StopAsyncIteration:
            raise
        except Exception as exc:
            msg = "OpenAI stream raised an unexpected error"
            raise AdapterError(msg) from exc

    async def _ensure_iterator(self) -> Any:
        if self._iterator is not None:
            return self._iterator

        try:
            self._stream = await self._stream
        except Exception as exc:
            msg = "OpenAI client call failed"
            raise AdapterError(msg) from exc
        self._iterator = self._coerce_async_iterator(self._stream)
        return self._iterator

    async def _on_close(self) -> None:
        if self._stream_closed:
            return
        self._stream_closed = True

        for closer_name in ("aclose", "close"):
            closer = getattr(self._stream, closer_name, None)
            if closer is None:
                continue
            result = closer()
            if inspect.isawaitable(result):
                await result
            return

    def _coerce_async_iterator(self, stream: Any) -> Any:
        iterator_factory = getattr(stream, "__aiter__", None)
        if iterator_factory is None or not callable(iterator_factory):
            msg = "OpenAI stream must support async iteration"
            raise AdapterError(msg)
        try:
            iterator = iterator_factory()
        except TypeError as exc:
            msg = "OpenAI stream '__aiter__' must be callable without arguments"
            raise AdapterError(msg) from exc

        if not hasattr(iterator, "__anext__"):
            msg = "OpenAI stream iterator must define '__anext__'"
            raise AdapterError(msg)
        return iterator


class OpenAIContainerFileLoader:
    """Download code interpreter container files through the OpenAI client."""

    def __init__(self, client: Any) -> None:
        self._client = client

    async def __call__(self, container_id: str, file_id: str) -> ContainerFileData:
        files = self._client.containers.files
        content = await _resolve(files.content.retrieve(file_id, container_id=container_id))
        data = await _read_bytes(content)
        return ContainerFileData(data=data, file_name=await self._file_name(container_id, file_id))

    async def _file_name(self, container_id: str, file_id: str) -> str | None:
        try:
            info = await _resolve(self._client.containers.files.retrieve(file_id, container_id=container_id))
        except Exception as exc:
            LOGGER.debug("no file metadata for %s/%s: %s", container_id, file_id, exc)
            return None

        path = info.get("path") if isinstance(info, Mapping) else getattr(info, "path", None)
        if not isinstance(path, str) or not path:
            return None
        return PurePosixPath(path).name or None


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


async def _read_bytes(content: Any) -> bytes:
    if isinstance(content, (bytes, bytearray)):
        return bytes(content)

    raw = getattr(content, "content", None)
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw)

    for reader_name in ("aread", "read"):
        reader = getattr(content, reader_name, None)
        if reader is None:
            continue
        data = await _resolve(reader())
        if isinstance(data, (bytes, bytearray)):
            return bytes(data)

    msg = "container file content must be bytes"
    raise AdapterError(msg)


__all__ = [
    "OpenAIContainerFileLoader",
    "OpenAIResponsesAdapter",
    "ResponsesStreamIterator",
    "create_responses_stream",
]
