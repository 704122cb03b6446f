from __future__ import annotations

from weir.core.message import ChatMessage
from weir.core.responses.session import SESSION_KEY, SessionMetadataBuilder
from weir.core.responses.state import EventMappingState
from weir.io.schema import ResponseSnapshot


def _state() -> EventMappingState:
    state = EventMappingState()
    state.append_thinking("Let me ")
    state.append_thinking("check.")
    state.tool_event_log["web_search"].append({"type": "response.web_search_call.completed"})
    return state


def test_message_metadata_collects_thinking_tools_and_session() -> None:
    metadata = SessionMetadataBuilder().message_metadata(_state(), response_id="resp_1", store_session=True)

    assert metadata == {
        "thinking": "Let me check.",
        "web_search": [{"type": "response.web_search_call.completed"}],
        SESSION_KEY: {"response_id": "resp_1"},
    }


def test_message_metadata_without_storage_or_activity() -> None:
    builder = SessionMetadataBuilder()

    assert builder.message_metadata(EventMappingState(), response_id="resp_1", store_session=False) == {}
    assert builder.message_metadata(EventMappingState(), response_id=None, store_session=True) == {}


def test_result_metadata_includes_only_known_fields() -> None:
    builder = SessionMetadataBuilder()
    snapshot = ResponseSnapshot.model_validate({"id": "resp_2", "model": "gpt-4.1", "status": "completed"})

    assert builder.result_metadata(snapshot, container_id="cntr_1") == {
        "response_id": "resp_2",
        "model": "gpt-4.1",
        "status": "completed",
        "container_id": "cntr_1",
    }
    assert builder.result_metadata(ResponseSnapshot.model_validate({"id": "resp_3"})) == {"response_id": "resp_3"}


def test_latest_response_id_scans_newest_first() -> None:
    builder = SessionMetadataBuilder()
    history = [
        ChatMessage(metadata={SESSION_KEY: {"response_id": "resp_old"}}),
        ChatMessage(metadata={SESSION_KEY: {"response_id": "resp_new"}}),
        ChatMessage(metadata={"thinking": "no session here"}),
        ChatMessage(metadata={SESSION_KEY: "corrupt"}),
    ]

    assert builder.latest_response_id(history) == "resp_new"
    assert builder.latest_response_id([]) is None
    assert builder.get_session_data({SESSION_KEY: "corrupt"}) is None
