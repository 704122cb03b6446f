"""Command line interface for replaying captured Responses streams."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Mapping, Sequence

from .config import StreamConfig
from .core.adapters.stream import ReplayStreamIterator, replay_stream
from .core.errors import AdapterError
from .core.message import ChatResult, DataPart, LinkPart, ToolCallPart, ToolResultPart
from .core.responses.mapper import ResponsesEventMapper
from .core.responses.session import SessionMetadataBuilder
from .io.adapters.local import LocalContainerFiles, LocalEventLog
from .io.interfaces import EventSink
from .runtime.state import ResultAccumulator

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Utilities for OpenAI Responses event streams")
    subparsers = parser.add_subparsers(dest="command", required=True)

    replay_parser = subparsers.add_parser(
        "replay", help="map a captured event stream and print the consolidated result"
    )
    replay_parser.add_argument(
        "file",
        type=Path,
        help="JSON lines or raw server-sent events capture of one response stream",
    )
    replay_parser.add_argument(
        "--no-store",
        dest="store",
        action="store_false",
        help="Do not attach a continuation token to the final message",
    )
    replay_parser.add_argument(
        "--files-dir",
        type=Path,
        help="Directory holding <container_id>/<file_id> files for cited attachments",
    )
    replay_parser.add_argument(
        "--record",
        type=Path,
        help="Append every parsed event to this JSON lines file",
    )
    replay_parser.add_argument(
        "--json",
        action="store_true",
        help="Print a JSON summary instead of the plain text",
    )
    replay_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log every mapped event",
    )

    return parser


def replay_file(
    path: Path,
    *,
    store_session: bool = True,
    files_dir: Path | None = None,
    record: Path | None = None,
) -> ChatResult:
    """Map a captured stream and fold it into a single result.

    With ``record`` set, the parsed events are also appended to that file as
    JSON lines, which turns a raw server-sent events capture into a clean log.
    """

    loader = LocalContainerFiles(files_dir) if files_dir is not None else None
    mapper = ResponsesEventMapper(
        StreamConfig(store_session=store_session),
        container_file_loader=loader,
    )
    events = LocalEventLog(path).read()
    if record is not None:
        _record_events(events, LocalEventLog(record))
    iterator = ReplayStreamIterator(events, mapper)

    accumulator = ResultAccumulator()
    for result in asyncio.run(replay_stream(iterator)):
        accumulator.add(result)
    return accumulator.build()


def _record_events(events: Sequence[Mapping[str, Any]], sink: EventSink) -> None:
    for event in events:
        sink.write(event)
    sink.flush()
    LOGGER.info("recorded %d events", len(events))


def _summarize(result: ChatResult) -> dict[str, Any]:
    parts: list[dict[str, Any]] = []
    for part in result.output.parts:
        if isinstance(part, ToolCallPart):
            parts.append({"type": "tool_call", "id": part.id, "name": part.name, "arguments": part.plain_arguments()})
        elif isinstance(part, ToolResultPart):
            parts.append({"type": "tool_result", "id": part.id, "name": part.name, "result": part.result})
        elif isinstance(part, DataPart):
            parts.append({"type": "data", "name": part.name, "mime_type": part.mime_type, "size": len(part.data)})
        elif isinstance(part, LinkPart):
            parts.append({"type": "link", "url": part.url, "name": part.name})

    usage = None
    if result.usage is not None:
        usage = {
            "prompt_tokens": result.usage.prompt_tokens,
            "response_tokens": result.usage.response_tokens,
            "total_tokens": result.usage.total_tokens,
        }

    return {
        "id": result.id,
        "finish_reason": result.finish_reason.value,
        "text": result.output.text,
        "thinking": result.output.metadata.get("thinking"),
        "parts": parts,
        "usage": usage,
        "metadata": {key: value for key, value in result.metadata.items() if key != "thinking"},
        "continuation": SessionMetadataBuilder().get_response_id(result.output.metadata),
    }


def _handle_replay(args: argparse.Namespace) -> int:
    if not args.file.is_file():
        sys.stderr.write(f"error: capture file {args.file} does not exist\n")
        return 2
    if args.record is not None and args.record.resolve() == args.file.resolve():
        sys.stderr.write("error: --record must name a different file than the capture\n")
        return 2

    try:
        result = replay_file(
            args.file,
            store_session=args.store,
            files_dir=args.files_dir,
            record=args.record,
        )
    except AdapterError as exc:
        sys.stderr.write(f"error: {exc}\n")
        return 1

    if args.json:
        sys.stdout.write(json.dumps(_summarize(result), indent=2, sort_keys=True, default=str))
        sys.stdout.write("\n")
        return 0

    text = result.output.text
    sys.stdout.write(text)
    if not text.endswith("\n"):
        sys.stdout.write("\n")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if getattr(args, "verbose", False) else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if args.command == "replay":
        return _handle_replay(args)
    parser.error("no command provided")
    return 2


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
