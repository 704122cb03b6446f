"""Deferred binary attachments resolved once a response stream concludes."""

from __future__ import annotations

import base64
import binascii
import logging
import mimetypes
from dataclasses import dataclass
from typing import Awaitable, Callable

import magic

from ..errors import AttachmentDownloadError
from ..message import DataPart

LOGGER = logging.getLogger(__name__)

OCTET_STREAM = "application/octet-stream"

# libmagic reports these when it cannot tell what the bytes are.
_UNDETECTED = frozenset({OCTET_STREAM, "application/x-empty", "inode/x-empty"})
_MAGIC_WINDOW = 8192

# Checked in order; the first matching prefix wins.
_SIGNATURES: tuple[tuple[bytes, str], ...] = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"%PDF-", "application/pdf"),
    (b"BM", "image/bmp"),
    (b"PK\x03\x04", "application/zip"),
)

_PREFERRED_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/tiff": "tiff",
    "text/plain": "txt",
    "text/csv": "csv",
}


@dataclass(frozen=True, slots=True)
class ContainerFileData:
    """Downloaded container file plus optional hints from the provider."""

    data: bytes
    file_name: str | None = None
    mime_type: str | None = None


ContainerFileLoader = Callable[[str, str], Awaitable[ContainerFileData]]


def sniff_mime_type(data: bytes) -> str | None:
    """Infer a MIME type from the leading bytes of ``data``.

    Common image and archive signatures are matched directly; anything else
    is handed to libmagic. Returns ``None`` when the type stays unknown.
    """

    if not data:
        return None
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    for signature, mime_type in _SIGNATURES:
        if data.startswith(signature):
            return mime_type

    try:
        detected = magic.from_buffer(data[:_MAGIC_WINDOW], mime=True)
    except magic.MagicException as exc:
        LOGGER.warning("libmagic could not inspect %d bytes: %s", len(data), exc)
        return None
    if not detected or detected in _UNDETECTED:
        return None
    return detected


def extension_for_mime_type(mime_type: str) -> str | None:
    """Return a file extension without the leading dot, if one is known."""

    if mime_type == OCTET_STREAM:
        return None
    preferred = _PREFERRED_EXTENSIONS.get(mime_type)
    if preferred is not None:
        return preferred
    guessed = mimetypes.guess_extension(mime_type)
    if guessed is None:
        return None
    return guessed.lstrip(".")


def _with_extension(base_name: str, mime_type: str) -> str:
    extension = extension_for_mime_type(mime_type)
    return f"{base_name}.{extension}" if extension else base_name


class AttachmentCollector:
    """Track images and container files that are materialized at finalization.

    Image generation streams only partial frames and signals completion
    through the item lifecycle, so the last partial received before the item
    is done is the final image unless the item carries its own result.
    Container citations are deduplicated by ``(container_id, file_id)`` and
    downloaded at most once per stream.
    """

    def __init__(self, container_file_loader: ContainerFileLoader | None = None) -> None:
        self._container_file_loader = container_file_loader
        self._latest_image_b64: str | None = None
        self._latest_image_index: int | None = None
        self._image_generation_completed = False
        self._container_files: dict[tuple[str, str], None] = {}

    @property
    def pending_citations(self) -> tuple[tuple[str, str], ...]:
        return tuple(self._container_files)

    @property
    def image_generation_completed(self) -> bool:
        return self._image_generation_completed

    def record_partial_image(self, *, b64: str, index: int | None) -> None:
        self._latest_image_b64 = b64
        if index is not None:
            self._latest_image_index = index
        LOGGER.debug("stored partial image index=%s", self._latest_image_index)

    def mark_image_generation_completed(
        self,
        *,
        index: int | None = None,
        result_b64: str | None = None,
    ) -> None:
        self._image_generation_completed = True
        if index is not None and self._latest_image_index is None:
            self._latest_image_index = index
        if result_b64:
            self._latest_image_b64 = result_b64

    def track_container_citation(self, *, container_id: str, file_id: str) -> None:
        key = (container_id, file_id)
        if key in self._container_files:
            LOGGER.debug("container file %s/%s already tracked", container_id, file_id)
            return
        self._container_files[key] = None
        LOGGER.debug("tracking container file %s/%s", container_id, file_id)

    async def resolve_attachments(self) -> list[DataPart]:
        """Materialize the final image and download every tracked citation."""

        attachments: list[DataPart] = []
        image_part = self._resolve_image()
        if image_part is not None:
            attachments.append(image_part)

        if self._container_files:
            attachments.extend(await self._resolve_container_files())
        return attachments

    def _resolve_image(self) -> DataPart | None:
        if not self._image_generation_completed or not self._latest_image_b64:
            return None

        try:
            data = base64.b64decode(self._latest_image_b64, validate=False)
        except (binascii.Error, ValueError):
            LOGGER.warning("discarding generated image with undecodable payload")
            return None

        mime_type = sniff_mime_type(data) or OCTET_STREAM
        name = _with_extension(f"image_{self._latest_image_index or 0}", mime_type)
        return DataPart(data, mime_type=mime_type, name=name)

    async def _resolve_container_files(self) -> list[DataPart]:
        citations = list(self._container_files)
        self._container_files.clear()

        if self._container_file_loader is None:
            container_id, file_id = citations[0]
            msg = f"no container file loader configured to fetch {file_id} from {container_id}"
            raise AttachmentDownloadError(msg, container_id=container_id, file_id=file_id)

        parts: list[DataPart] = []
        for container_id, file_id in citations:
            LOGGER.info("downloading container file %s from %s", file_id, container_id)
            try:
                loaded = await self._container_file_loader(container_id, file_id)
            except Exception as exc:
                msg = f"failed to download container file {file_id} from {container_id}"
                raise AttachmentDownloadError(msg, container_id=container_id, file_id=file_id) from exc

            mime_type = (
                loaded.mime_type
                or (mimetypes.guess_type(loaded.file_name)[0] if loaded.file_name else None)
                or sniff_mime_type(loaded.data)
                or OCTET_STREAM
            )
            name = loaded.file_name or _with_extension(file_id, mime_type)
            parts.append(DataPart(loaded.data, mime_type=mime_type, name=name))
            LOGGER.info(
                "added container file %s (%d bytes, mime=%s)",
                name,
                len(loaded.data),
                mime_type,
            )
        return parts
