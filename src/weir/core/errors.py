"""Custom exception types used by weir."""

from __future__ import annotations


class AdapterError(RuntimeError):
    """Raised when an adapter cannot fulfil a request."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ResponsesRequestError(AdapterError):
    """Raised when the upstream API reports that a streamed request failed."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        param: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.param = param

    def __str__(self) -> str:
        details = [f"code={self.code}" if self.code else None, f"param={self.param}" if self.param else None]
        suffix = ", ".join(part for part in details if part)
        if suffix:
            return f"{self.message} ({suffix})"
        return self.message


class AttachmentDownloadError(AdapterError):
    """Raised when a container file referenced by the response cannot be fetched."""

    def __init__(self, message: str, *, container_id: str, file_id: str) -> None:
        super().__init__(message)
        self.container_id = container_id
        self.file_id = file_id
