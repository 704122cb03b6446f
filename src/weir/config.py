"""Per-invocation configuration for the streaming event mapper."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(slots=True)
class StreamConfig:
    """Settings that shape how one response stream is mapped.

    Attributes
    ----------
    store_session:
        Whether the upstream request asked the API to persist the response.
        When enabled the aggregate message carries a continuation token with
        the response identifier so a later request can resume from it.
    model:
        The model name the request was issued against. Used for logging only;
        the authoritative model identifier comes from the response snapshot.
    """

    store_session: bool = True
    model: str | None = None

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "StreamConfig":
        """Build a :class:`StreamConfig` from request options.

        Parameters
        ----------
        options:
            The outgoing request payload or option mapping. ``store`` and
            ``model`` are read when present; everything else is ignored.
        """

        store = options.get("store", True)
        if store is None:
            store = True
        if not isinstance(store, bool):
            raise ValueError("'store' option must be a boolean")

        model = options.get("model")
        if model is not None:
            model = str(model).strip() or None

        return cls(store_session=store, model=model)
