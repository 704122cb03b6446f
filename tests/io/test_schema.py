from __future__ import annotations

import pytest
from pydantic import ValidationError

from weir.io.schema import EventType, OutputItem, ResponseEvent, ResponseSnapshot

from tests.fixtures import responses_fake as fake


def test_event_requires_only_a_type() -> None:
    event = ResponseEvent.model_validate({"type": "response.brand_new", "extra_field": [1]})

    assert event.type == "response.brand_new"
    assert event.to_record() == {"type": "response.brand_new", "extra_field": [1]}

    with pytest.raises(ValidationError):
        ResponseEvent.model_validate({"delta": "no type"})


def test_terminal_event_parses_nested_snapshot() -> None:
    event = ResponseEvent.model_validate(
        fake.completed(
            [fake.message_item("Hi"), fake.function_call_item(arguments="{}")],
            usage={"input_tokens": 1, "output_tokens": 2, "total_tokens": 3},
        )
    )

    assert event.type == EventType.RESPONSE_COMPLETED.value
    assert isinstance(event.response, ResponseSnapshot)
    assert [item.type for item in event.response.output] == ["message", "function_call"]
    assert event.response.output[0].content[0].text == "Hi"
    assert event.response.usage is not None and event.response.usage.total_tokens == 3


def test_code_interpreter_results_accept_both_spellings() -> None:
    with_results = OutputItem.model_validate(fake.code_interpreter_item(file_ids=["file_1"]))
    with_outputs = OutputItem.model_validate(
        {"type": "code_interpreter_call", "outputs": [{"type": "files", "files": [{"id": "file_2"}]}]}
    )

    assert [file.resolved_id for file in with_results.code_interpreter_results()[0].files] == ["file_1"]
    assert [file.resolved_id for file in with_outputs.code_interpreter_results()[0].files] == ["file_2"]
    assert OutputItem.model_validate({"type": "message"}).code_interpreter_results() == []


def test_file_search_results_do_not_break_the_snapshot() -> None:
    snapshot = ResponseSnapshot.model_validate(
        {
            "output": [
                {
                    "type": "file_search_call",
                    "results": [{"file_id": "file_9", "filename": "notes.txt", "score": 0.9}],
                }
            ]
        }
    )

    assert snapshot.output[0].type == "file_search_call"


def test_null_lists_from_sdk_dumps_become_empty() -> None:
    snapshot = ResponseSnapshot.model_validate(
        {
            "id": "resp_1",
            "output": [
                {"type": "reasoning", "id": "rs_1", "summary": None, "content": None},
                {
                    "type": "message",
                    "id": "msg_1",
                    "content": [{"type": "output_text", "text": "Hi", "annotations": None}],
                },
                {"type": "code_interpreter_call", "results": [{"type": "files", "files": None}]},
            ],
            "usage": None,
        }
    )

    reasoning, message, code = snapshot.output
    assert reasoning.summary == []
    assert reasoning.content == []
    assert message.content[0].annotations == []
    assert code.code_interpreter_results()[0].files == []
    assert ResponseSnapshot.model_validate({"output": None}).output == []
