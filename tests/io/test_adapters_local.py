from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import pytest

from weir.core.responses.attachments import ContainerFileData
from weir.io.adapters.local import LocalContainerFiles, LocalEventLog
from weir.io.schema import ResponseEvent

from tests.fixtures import responses_fake as fake


def test_event_log_round_trips_written_events(tmp_path: Path) -> None:
    log = LocalEventLog(tmp_path / "captures" / "run.jsonl")
    log.write(fake.text_delta("Hi"))
    log.write(ResponseEvent.model_validate(fake.completed([])))
    log.flush()

    events = log.read()

    assert [event["type"] for event in events] == ["response.output_text.delta", "response.completed"]
    assert events[0]["delta"] == "Hi"
    assert log.path.parent.is_dir()


def test_event_log_reads_raw_sse_captures(tmp_path: Path) -> None:
    capture = tmp_path / "stream.sse"
    capture.write_text(
        "\n".join(
            [
                ": keep-alive",
                "event: response.output_text.delta",
                "data: " + json.dumps(fake.text_delta("Hello")),
                "",
                "event: response.completed",
                "data: " + json.dumps(fake.completed([fake.message_item("Hello")])),
                "",
                "data: [DONE]",
            ]
        ),
        encoding="utf-8",
    )

    events = list(LocalEventLog(capture).events())

    assert [event["type"] for event in events] == ["response.output_text.delta", "response.completed"]


def test_event_log_skips_malformed_lines(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING)
    capture = tmp_path / "run.jsonl"
    capture.write_text('{"type": "response.created"}\n{broken\n[1, 2]\n', encoding="utf-8")

    events = LocalEventLog(capture).read()

    assert events == [{"type": "response.created"}]
    assert "skipping malformed line 2" in caplog.text
    assert "skipping non-object line 3" in caplog.text


def test_missing_event_log_is_empty(tmp_path: Path) -> None:
    assert LocalEventLog(tmp_path / "absent.jsonl").read() == []


def test_container_files_are_served_from_disk(tmp_path: Path) -> None:
    container = tmp_path / "cntr_1"
    container.mkdir()
    (container / "file_1").write_bytes(b"raw")
    (container / "file_2-report.csv").write_bytes(b"a,b\n")
    store = LocalContainerFiles(tmp_path)

    plain = asyncio.run(store.load("cntr_1", "file_1"))
    named = asyncio.run(store("cntr_1", "file_2"))

    assert plain == ContainerFileData(data=b"raw")
    assert named == ContainerFileData(data=b"a,b\n", file_name="file_2-report.csv")


def test_missing_container_file_raises(tmp_path: Path) -> None:
    store = LocalContainerFiles(tmp_path)

    with pytest.raises(FileNotFoundError):
        asyncio.run(store.load("cntr_1", "file_1"))
