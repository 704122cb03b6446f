from __future__ import annotations

import logging

import pytest

from weir.core.responses.mapper import ResponsesEventMapper
from weir.core.responses.recorder import TOOL_EVENT_TYPES, ToolEventRecorder
from weir.core.responses.state import EventMappingState
from weir.io.schema import ResponseEvent, ToolType

from tests.fixtures import responses_fake as fake


def _web_search(kind: str) -> dict:
    return {"type": f"response.web_search_call.{kind}", "output_index": 0, "item_id": "ws_1"}


def test_web_search_events_are_streamed_and_logged() -> None:
    events = [
        _web_search("in_progress"),
        _web_search("searching"),
        _web_search("completed"),
        fake.item_added({"type": "message", "id": "msg_1", "role": "assistant", "content": []}, 1),
        fake.completed([fake.message_item("Found it")]),
    ]

    results = fake.map_events(events)

    chunks = results[:-1]
    assert [chunk.metadata["web_search"][0]["type"] for chunk in chunks] == [
        "response.web_search_call.in_progress",
        "response.web_search_call.searching",
        "response.web_search_call.completed",
    ]
    assert all(chunk.output.parts == () for chunk in chunks)

    final = results[-1]
    assert [record["type"] for record in final.output.metadata["web_search"]] == [
        "response.web_search_call.in_progress",
        "response.web_search_call.searching",
        "response.web_search_call.completed",
    ]
    assert "file_search" not in final.output.metadata


def test_code_deltas_are_flushed_as_one_log_entry() -> None:
    mapper = ResponsesEventMapper()
    events = [
        {"type": "response.code_interpreter_call_code.delta", "output_index": 0, "item_id": "ci_1", "delta": "print("},
        {"type": "response.code_interpreter_call_code.delta", "output_index": 0, "item_id": "ci_1", "delta": "1)"},
        {"type": "response.code_interpreter_call_code.done", "output_index": 0, "item_id": "ci_1", "code": "print(1)"},
        fake.completed([fake.code_interpreter_item(code="print(1)")]),
    ]

    results = fake.map_events(events, mapper=mapper)

    streamed = [result.metadata["code_interpreter"][0] for result in results[:3]]
    assert [record["type"] for record in streamed] == [
        "response.code_interpreter_call_code.delta",
        "response.code_interpreter_call_code.delta",
        "response.code_interpreter_call_code.done",
    ]
    assert streamed[0]["delta"] == "print("

    logged = results[-1].output.metadata["code_interpreter"]
    assert logged == [
        {
            "type": "response.code_interpreter_call_code.delta",
            "item_id": "ci_1",
            "output_index": 0,
            "delta": "print(1)",
        },
        {
            "type": "response.code_interpreter_call_code.done",
            "output_index": 0,
            "item_id": "ci_1",
            "code": "print(1)",
        },
    ]
    assert mapper.state.code_interpreter_code_buffers == {}
    assert results[-1].metadata["container_id"] == "cntr_1"


def test_code_done_without_deltas_logs_only_the_done_event() -> None:
    mapper = ResponsesEventMapper()
    events = [
        {"type": "response.code_interpreter_call_code.done", "output_index": 0, "item_id": "ci_1", "code": "x = 1"},
        fake.completed([]),
    ]

    results = fake.map_events(events, mapper=mapper)

    [record] = results[-1].output.metadata["code_interpreter"]
    assert record["type"] == "response.code_interpreter_call_code.done"


def test_mcp_and_file_search_events_use_their_tool_keys() -> None:
    events = [
        {"type": "response.mcp_call_arguments.delta", "output_index": 0, "item_id": "mcp_1", "delta": "{}"},
        {"type": "response.mcp_call.completed", "output_index": 0, "item_id": "mcp_1"},
        {"type": "response.file_search_call.searching", "output_index": 1, "item_id": "fs_1"},
        fake.completed([]),
    ]

    results = fake.map_events(events)

    assert list(results[0].metadata) == ["mcp"]
    assert list(results[1].metadata) == ["mcp"]
    assert list(results[2].metadata) == ["file_search"]
    final_metadata = results[-1].output.metadata
    assert len(final_metadata["mcp"]) == 2
    assert len(final_metadata["file_search"]) == 1


def test_image_completed_telemetry_does_not_finalize_the_image() -> None:
    events = [
        fake.partial_image(fake.PNG_BYTES, output_index=0),
        {"type": "response.image_generation_call.completed", "output_index": 0, "item_id": "ig_1"},
        fake.completed([]),
    ]

    results = fake.map_events(events)

    assert results[-1].output.data_parts == ()
    assert len(results[-1].output.metadata["image_generation"]) == 2


def test_vendor_fields_survive_into_records() -> None:
    event = ResponseEvent.model_validate(
        {
            "type": "response.web_search_call.completed",
            "output_index": 0,
            "item_id": "ws_1",
            "sequence_number": 7,
            "vendor_extra": {"region": "eu"},
        }
    )
    recorder = ToolEventRecorder()
    state = EventMappingState()

    [chunk] = recorder.record_and_emit(event, state)

    expected = {
        "type": "response.web_search_call.completed",
        "output_index": 0,
        "item_id": "ws_1",
        "sequence_number": 7,
        "vendor_extra": {"region": "eu"},
    }
    assert chunk.metadata == {"web_search": [expected]}
    assert state.tool_event_log["web_search"] == [expected]


def test_recorder_ignores_events_without_a_tool(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING)
    state = EventMappingState()

    chunks = ToolEventRecorder().record_and_emit(ResponseEvent(type="response.output_text.delta"), state)

    assert chunks == []
    assert state.non_empty_tool_events() == {}
    assert "unhandled tool event" in caplog.text


def test_every_tool_event_maps_to_a_known_tool() -> None:
    assert set(TOOL_EVENT_TYPES.values()) <= set(ToolType)
    assert TOOL_EVENT_TYPES["response.mcp_list_tools.failed"] is ToolType.MCP
