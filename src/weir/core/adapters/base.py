"""Adapter interface shared by provider implementations."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from .stream import BaseStreamIterator


class ModelAdapter(ABC):
    """Abstract interface for provider-specific streaming adapters."""

    @abstractmethod
    def stream(
        self,
        payload: Mapping[str, Any] | None = None,
        /,
        **options: Any,
    ) -> BaseStreamIterator:
        """Send a prepared request and return an async iterator of mapped results."""
