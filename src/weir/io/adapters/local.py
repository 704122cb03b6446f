"""Local filesystem-backed I/O adapters for replay and development."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterator, Mapping, Optional, cast

from weir.core.responses.attachments import ContainerFileData

from ..interfaces import ContainerFileStore, EventSink, EventSource
from ..schema import JSONValue, ResponseEvent

LOGGER = logging.getLogger(__name__)

_SSE_DATA_PREFIX = "data:"
_SSE_DONE = "[DONE]"


def _ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def _parse_line(line: str) -> Optional[str]:
    """Return the JSON body of a capture line, or ``None`` to skip it."""

    stripped = line.strip()
    if not stripped or stripped.startswith(":") or stripped.startswith("event:"):
        return None
    if stripped.startswith(_SSE_DATA_PREFIX):
        stripped = stripped[len(_SSE_DATA_PREFIX):].strip()
    if not stripped or stripped == _SSE_DONE:
        return None
    return stripped


class LocalEventLog(EventSource, EventSink):
    """Captured stream stored as JSON lines.

    Reading also accepts raw server-sent event captures: ``event:`` lines and
    comments are ignored, the ``data:`` prefix is stripped and the ``[DONE]``
    sentinel is skipped. Lines that are not JSON objects are logged and
    dropped.
    """

    def __init__(self, path: Path | str):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        """File backing this log."""

        return self._path

    def events(self) -> Iterator[dict[str, JSONValue]]:
        if not self._path.exists():
            return
        with self._path.open(encoding="utf-8") as handle:
            for number, line in enumerate(handle, start=1):
                body = _parse_line(line)
                if body is None:
                    continue
                try:
                    payload = json.loads(body)
                except json.JSONDecodeError as exc:
                    LOGGER.warning("skipping malformed line %d of %s: %s", number, self._path, exc)
                    continue
                if not isinstance(payload, dict):
                    LOGGER.warning("skipping non-object line %d of %s", number, self._path)
                    continue
                yield cast(dict[str, JSONValue], payload)

    def write(self, event: ResponseEvent | Mapping[str, Any]) -> None:
        payload = event.to_record() if isinstance(event, ResponseEvent) else dict(event)
        _ensure_directory(self._path.parent)
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(payload, ensure_ascii=False, sort_keys=True))
            handle.write("\n")

    def flush(self) -> None:
        _ensure_directory(self._path.parent)


class LocalContainerFiles(ContainerFileStore):
    """Serve container files from ``<root>/<container_id>/<file_id>*``.

    A file named exactly ``file_id`` is served without a name hint; any other
    match (``file_id.csv``, ``file_id-report.pdf``) passes its file name on so
    the MIME type can be guessed from the extension.
    """

    def __init__(self, root: Path | str):
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    async def load(self, container_id: str, file_id: str) -> ContainerFileData:
        directory = self._root / container_id
        candidates = sorted(p for p in directory.glob(f"{file_id}*") if p.is_file()) if directory.is_dir() else []
        if not candidates:
            msg = f"no file {file_id!r} in container directory {directory}"
            raise FileNotFoundError(msg)

        path = candidates[0]
        file_name = None if path.name == file_id else path.name
        return ContainerFileData(data=path.read_bytes(), file_name=file_name)


__all__ = ["LocalContainerFiles", "LocalEventLog"]
