"""Content-related type definitions for the SDK.

These types model the messages exchanged between users, agents and models. A message is a `Content` made of
`Part`s; a part carries text, a function call requested by the model, or the response to such a call.
"""

from typing import Any, Literal

from typing_extensions import TypedDict

Role = Literal["user", "model"]
"""Role of the author of a content message."""


class FunctionCall(TypedDict, total=False):
    """A function call predicted by the model.

    Attributes:
        id: Unique identifier of the call, used to pair it with its response.
        name: Name of the function (tool) to call.
        args: Arguments for the call.
    """

    id: str
    name: str
    args: dict[str, Any]


class FunctionResponse(TypedDict, total=False):
    """The result of a function call.

    Attributes:
        id: Identifier of the call this response answers.
        name: Name of the function that was called.
        response: The function's result.
    """

    id: str
    name: str
    response: dict[str, Any]


class CodeExecutionResult(TypedDict, total=False):
    """Result of executing code generated by the model."""

    outcome: str
    output: str


class Blob(TypedDict, total=False):
    """Raw media bytes sent over a live connection.

    Attributes:
        mime_type: IANA media type of the data.
        data: The raw bytes.
    """

    mime_type: str
    data: bytes


class Part(TypedDict, total=False):
    """A single part of a content message.

    Only one of the fields is expected to be set.
    """

    text: str
    thought: bool
    function_call: FunctionCall
    function_response: FunctionResponse
    code_execution_result: CodeExecutionResult


class Content(TypedDict, total=False):
    """A message exchanged with a model.

    Attributes:
        role: Who produced the message.
        parts: The message parts.
    """

    role: str
    parts: list[Part]
