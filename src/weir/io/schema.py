"""Wire schemas for the Responses streaming protocol."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

JSONPrimitive = Union[str, int, float, bool, None]
JSONValue = Union[JSONPrimitive, Dict[str, "JSONValue"], List["JSONValue"]]


class EventType(str, Enum):
    """Event tags understood by the event mapper."""

    RESPONSE_CREATED = "response.created"
    RESPONSE_IN_PROGRESS = "response.in_progress"
    RESPONSE_QUEUED = "response.queued"
    RESPONSE_COMPLETED = "response.completed"
    RESPONSE_FAILED = "response.failed"
    RESPONSE_INCOMPLETE = "response.incomplete"
    ERROR = "error"

    OUTPUT_ITEM_ADDED = "response.output_item.added"
    OUTPUT_ITEM_DONE = "response.output_item.done"
    CONTENT_PART_ADDED = "response.content_part.added"
    CONTENT_PART_DONE = "response.content_part.done"

    FUNCTION_CALL_ARGUMENTS_DELTA = "response.function_call_arguments.delta"
    FUNCTION_CALL_ARGUMENTS_DONE = "response.function_call_arguments.done"

    OUTPUT_TEXT_DELTA = "response.output_text.delta"
    OUTPUT_TEXT_DONE = "response.output_text.done"
    OUTPUT_TEXT_ANNOTATION_ADDED = "response.output_text.annotation.added"

    REASONING_SUMMARY_TEXT_DELTA = "response.reasoning_summary_text.delta"
    REASONING_SUMMARY_TEXT_DONE = "response.reasoning_summary_text.done"
    REASONING_SUMMARY_PART_ADDED = "response.reasoning_summary_part.added"
    REASONING_SUMMARY_PART_DONE = "response.reasoning_summary_part.done"
    REASONING_TEXT_DELTA = "response.reasoning_text.delta"
    REASONING_TEXT_DONE = "response.reasoning_text.done"
    REASONING_DELTA = "response.reasoning.delta"
    REASONING_DONE = "response.reasoning.done"

    IMAGE_GENERATION_PARTIAL_IMAGE = "response.image_generation_call.partial_image"
    IMAGE_GENERATION_IN_PROGRESS = "response.image_generation_call.in_progress"
    IMAGE_GENERATION_GENERATING = "response.image_generation_call.generating"
    IMAGE_GENERATION_COMPLETED = "response.image_generation_call.completed"

    CODE_INTERPRETER_CODE_DELTA = "response.code_interpreter_call_code.delta"
    CODE_INTERPRETER_CODE_DONE = "response.code_interpreter_call_code.done"
    CODE_INTERPRETER_IN_PROGRESS = "response.code_interpreter_call.in_progress"
    CODE_INTERPRETER_INTERPRETING = "response.code_interpreter_call.interpreting"
    CODE_INTERPRETER_COMPLETED = "response.code_interpreter_call.completed"

    WEB_SEARCH_IN_PROGRESS = "response.web_search_call.in_progress"
    WEB_SEARCH_SEARCHING = "response.web_search_call.searching"
    WEB_SEARCH_COMPLETED = "response.web_search_call.completed"

    FILE_SEARCH_IN_PROGRESS = "response.file_search_call.in_progress"
    FILE_SEARCH_SEARCHING = "response.file_search_call.searching"
    FILE_SEARCH_COMPLETED = "response.file_search_call.completed"

    MCP_CALL_ARGUMENTS_DELTA = "response.mcp_call_arguments.delta"
    MCP_CALL_ARGUMENTS_DONE = "response.mcp_call_arguments.done"
    MCP_CALL_IN_PROGRESS = "response.mcp_call.in_progress"
    MCP_CALL_COMPLETED = "response.mcp_call.completed"
    MCP_CALL_FAILED = "response.mcp_call.failed"
    MCP_LIST_TOOLS_IN_PROGRESS = "response.mcp_list_tools.in_progress"
    MCP_LIST_TOOLS_COMPLETED = "response.mcp_list_tools.completed"
    MCP_LIST_TOOLS_FAILED = "response.mcp_list_tools.failed"


class ItemType(str, Enum):
    """Output item types that carry behaviour in the mapper."""

    MESSAGE = "message"
    FUNCTION_CALL = "function_call"
    FUNCTION_CALL_OUTPUT = "function_call_output"
    REASONING = "reasoning"
    IMAGE_GENERATION_CALL = "image_generation_call"
    CODE_INTERPRETER_CALL = "code_interpreter_call"
    WEB_SEARCH_CALL = "web_search_call"
    FILE_SEARCH_CALL = "file_search_call"
    LOCAL_SHELL_CALL = "local_shell_call"
    LOCAL_SHELL_CALL_OUTPUT = "local_shell_call_output"
    COMPUTER_CALL_OUTPUT = "computer_call_output"
    MCP_CALL = "mcp_call"
    MCP_LIST_TOOLS = "mcp_list_tools"
    MCP_APPROVAL_REQUEST = "mcp_approval_request"
    MCP_APPROVAL_RESPONSE = "mcp_approval_response"


class ToolType(str, Enum):
    """Server-side tool families; the values double as metadata keys."""

    WEB_SEARCH = "web_search"
    FILE_SEARCH = "file_search"
    IMAGE_GENERATION = "image_generation"
    LOCAL_SHELL = "local_shell"
    MCP = "mcp"
    CODE_INTERPRETER = "code_interpreter"


class _WireModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    def to_record(self) -> dict[str, Any]:
        """Return the payload as received, including vendor extensions."""

        return self.model_dump(mode="json", exclude_unset=True)


def _none_as_empty(value: Any) -> Any:
    # SDK objects dump unset list fields as None.
    return [] if value is None else value


class Annotation(_WireModel):
    """Annotation attached to a span of output text."""

    type: str = Field(..., description="Annotation kind, e.g. 'container_file_citation'.")
    container_id: Optional[str] = None
    file_id: Optional[str] = None
    filename: Optional[str] = None
    url: Optional[str] = None
    title: Optional[str] = None


class ContentEntry(_WireModel):
    """One entry of an output message's content list."""

    type: str
    text: Optional[str] = None
    refusal: Optional[str] = None
    annotations: List[Annotation] = Field(default_factory=list)

    @field_validator("annotations", mode="before")
    @classmethod
    def _null_annotations(cls, value: Any) -> Any:
        return _none_as_empty(value)


class CodeInterpreterFile(_WireModel):
    """File produced by a code interpreter run."""

    file_id: Optional[str] = None
    id: Optional[str] = None
    mime_type: Optional[str] = None

    @property
    def resolved_id(self) -> str | None:
        return self.file_id or self.id


class CodeInterpreterResult(_WireModel):
    """Result entry of a code interpreter call (logs, files, images)."""

    type: Optional[str] = None
    logs: Optional[str] = None
    files: List[CodeInterpreterFile] = Field(default_factory=list)

    @field_validator("files", mode="before")
    @classmethod
    def _null_files(cls, value: Any) -> Any:
        return _none_as_empty(value)


class SummaryText(_WireModel):
    type: str = "summary_text"
    text: str = ""

    @field_validator("text", mode="before")
    @classmethod
    def _null_text(cls, value: Any) -> Any:
        return "" if value is None else value


class OutputItem(_WireModel):
    """Snapshot of a single item in a response's output list."""

    type: str = Field(..., description="Item kind, e.g. 'message' or 'function_call'.")
    id: Optional[str] = None
    status: Optional[str] = None
    role: Optional[str] = None
    content: List[ContentEntry] = Field(default_factory=list)
    call_id: Optional[str] = None
    name: Optional[str] = None
    arguments: Optional[str] = None
    output: Any = None
    summary: List[SummaryText] = Field(default_factory=list)
    result: Optional[str] = None
    code: Optional[str] = None
    container_id: Optional[str] = None
    results: Optional[List[CodeInterpreterResult]] = None
    outputs: Optional[List[CodeInterpreterResult]] = None

    @field_validator("content", "summary", mode="before")
    @classmethod
    def _null_lists(cls, value: Any) -> Any:
        return _none_as_empty(value)

    def code_interpreter_results(self) -> list[CodeInterpreterResult]:
        """Return result entries, accepting both the ``results`` and ``outputs`` spellings."""

        return list(self.results or self.outputs or [])


class Usage(_WireModel):
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None
    total_tokens: Optional[int] = None


class IncompleteDetails(_WireModel):
    reason: Optional[str] = None


class ErrorPayload(_WireModel):
    """Structured error reported by the API."""

    message: str = "OpenAI Responses request failed"
    code: Optional[str] = None
    param: Optional[str] = None


class ResponseSnapshot(_WireModel):
    """Full response object delivered by lifecycle and terminal events."""

    id: Optional[str] = None
    model: Optional[str] = None
    status: Optional[str] = None
    output: List[OutputItem] = Field(default_factory=list)
    usage: Optional[Usage] = None
    incomplete_details: Optional[IncompleteDetails] = None
    error: Optional[ErrorPayload] = None

    @field_validator("output", mode="before")
    @classmethod
    def _null_output(cls, value: Any) -> Any:
        return _none_as_empty(value)


class ResponseEvent(_WireModel):
    """A single decoded server-sent event.

    Only the ``type`` tag is required. Every other field is optional so that
    events from newer protocol revisions still validate and reach the
    fallback handler instead of aborting the stream.
    """

    type: str = Field(..., description="Event tag, see :class:`EventType`.")
    sequence_number: Optional[int] = None
    output_index: Optional[int] = None
    item_id: Optional[str] = None
    content_index: Optional[int] = None
    summary_index: Optional[int] = None
    delta: Optional[str] = None
    text: Optional[str] = None
    arguments: Optional[str] = None
    code: Optional[str] = None
    message: Optional[str] = None
    param: Optional[str] = None
    item: Optional[OutputItem] = None
    response: Optional[ResponseSnapshot] = None
    partial_image_b64: Optional[str] = None
    partial_image_index: Optional[int] = None


__all__ = [
    "Annotation",
    "CodeInterpreterFile",
    "CodeInterpreterResult",
    "ContentEntry",
    "ErrorPayload",
    "EventType",
    "IncompleteDetails",
    "ItemType",
    "JSONValue",
    "OutputItem",
    "ResponseEvent",
    "ResponseSnapshot",
    "SummaryText",
    "ToolType",
    "Usage",
]
