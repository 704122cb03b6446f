"""Continuation tokens and result-level metadata for finished responses."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from weir.io.schema import ResponseSnapshot

from ..message import ChatMessage
from .state import EventMappingState

LOGGER = logging.getLogger(__name__)

SESSION_KEY = "_responses_session"
RESPONSE_ID_KEY = "response_id"


class SessionMetadataBuilder:
    """Stamp session and telemetry metadata onto the aggregate message."""

    def build_session(self, response_id: str) -> dict[str, Any]:
        return {RESPONSE_ID_KEY: response_id}

    def get_session_data(self, metadata: Mapping[str, Any]) -> dict[str, Any] | None:
        session = metadata.get(SESSION_KEY)
        if not isinstance(session, Mapping):
            return None
        return dict(session)

    def get_response_id(self, metadata: Mapping[str, Any]) -> str | None:
        session = self.get_session_data(metadata)
        if session is None:
            return None
        response_id = session.get(RESPONSE_ID_KEY)
        return response_id if isinstance(response_id, str) and response_id else None

    def latest_response_id(self, messages: Sequence[ChatMessage]) -> str | None:
        """Return the continuation id of the newest message that carries one."""

        for message in reversed(messages):
            response_id = self.get_response_id(message.metadata)
            if response_id is not None:
                return response_id
        return None

    def message_metadata(
        self,
        state: EventMappingState,
        *,
        response_id: str | None,
        store_session: bool,
    ) -> dict[str, Any]:
        metadata: dict[str, Any] = {}

        thinking = state.thinking
        if thinking:
            metadata["thinking"] = thinking

        metadata.update(state.non_empty_tool_events())

        if store_session and response_id:
            metadata[SESSION_KEY] = self.build_session(response_id)
            LOGGER.debug("stored continuation token for response %s", response_id)
        return metadata

    def result_metadata(
        self,
        response: ResponseSnapshot,
        *,
        container_id: str | None = None,
    ) -> dict[str, Any]:
        metadata: dict[str, Any] = {RESPONSE_ID_KEY: response.id}
        if response.model:
            metadata["model"] = response.model
        if response.status:
            metadata["status"] = response.status
        if container_id:
            metadata["container_id"] = container_id
        return metadata
