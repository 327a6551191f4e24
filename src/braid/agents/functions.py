"""Function call handling for LLM agents.

Executes the function calls predicted by a model, threading each call through the plugin and agent tool callbacks,
and builds the events that carry the responses and any confirmation or credential requests.
"""

import asyncio
import copy
import inspect
import logging
import uuid
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Union

from ..events.event import Event
from ..events.event_actions import EventActions, merge_event_actions
from ..tools.tool_context import ToolContext
from ..types.content import Content, FunctionCall, Part
from ..types.tools import (
    REQUEST_CONFIRMATION_FUNCTION_CALL_NAME,
    REQUEST_CREDENTIAL_FUNCTION_CALL_NAME,
    ToolConfirmation,
)

if TYPE_CHECKING:
    from ..tools.base_tool import BaseTool
    from .invocation_context import InvocationContext

logger = logging.getLogger(__name__)

CLIENT_FUNCTION_CALL_ID_PREFIX = "braid-"

BeforeToolCallback = Callable[..., Union[Awaitable[Optional[dict[str, Any]]], Optional[dict[str, Any]]]]
"""Called with `tool`, `args` and `tool_context`. A returned dict is used as the result and the tool is skipped."""

AfterToolCallback = Callable[..., Union[Awaitable[Optional[dict[str, Any]]], Optional[dict[str, Any]]]]
"""Called with `tool`, `args`, `tool_context` and `tool_response`. A returned dict replaces the result."""


def generate_client_function_call_id() -> str:
    """Generate an id for a function call that the model did not give one."""
    return f"{CLIENT_FUNCTION_CALL_ID_PREFIX}{uuid.uuid4()}"


def populate_client_function_call_id(event: Event) -> None:
    """Give every function call of an event an id."""
    for function_call in event.get_function_calls():
        if not function_call.get("id"):
            function_call["id"] = generate_client_function_call_id()


def remove_client_function_call_id(content: Optional[Content]) -> None:
    """Remove generated function call ids from a content before it is sent to a model."""
    if not content:
        return
    for part in content.get("parts", []):
        for key in ("function_call", "function_response"):
            value = part.get(key)
            if value and value.get("id", "").startswith(CLIENT_FUNCTION_CALL_ID_PREFIX):
                del value["id"]  # type: ignore[misc]


def get_long_running_function_calls(
    function_calls: list[FunctionCall], tools_dict: dict[str, "BaseTool"]
) -> list[str]:
    """Return the ids of the calls that target long-running tools."""
    ids = []
    for function_call in function_calls:
        tool = tools_dict.get(function_call.get("name", ""))
        if tool is not None and tool.is_long_running and function_call.get("id"):
            ids.append(function_call["id"])
    return ids


def generate_auth_event(context: "InvocationContext", function_response_event: Event) -> Optional[Event]:
    """Build the event asking the client for the credentials requested by tools, if any."""
    requested = function_response_event.actions.requested_auth_configs
    if not requested:
        return None

    parts: list[Part] = []
    long_running_tool_ids = []
    for function_call_id, auth_config in requested.items():
        request_call: FunctionCall = {
            "id": generate_client_function_call_id(),
            "name": REQUEST_CREDENTIAL_FUNCTION_CALL_NAME,
            "args": {"function_call_id": function_call_id, "auth_config": auth_config},
        }
        long_running_tool_ids.append(request_call["id"])
        parts.append({"function_call": request_call})

    return Event(
        invocation_id=context.invocation_id,
        author=context.agent.name,
        branch=context.branch,
        content={"role": "model", "parts": parts},
        long_running_tool_ids=long_running_tool_ids,
    )


def generate_request_confirmation_event(
    context: "InvocationContext", function_call_event: Event, function_response_event: Event
) -> Optional[Event]:
    """Build the event asking the client to confirm tool calls, if any tool requested it.

    Each confirmation request is a long-running function call carrying the original call and the requested
    confirmation, so the event is a final response and the invocation pauses until the client answers.
    """
    requested = function_response_event.actions.requested_tool_confirmations
    if not requested:
        return None

    function_calls = {call.get("id"): call for call in function_call_event.get_function_calls()}
    parts: list[Part] = []
    long_running_tool_ids = []
    for function_call_id, tool_confirmation in requested.items():
        original_function_call = function_calls.get(function_call_id)
        if original_function_call is None:
            continue

        request_call: FunctionCall = {
            "id": generate_client_function_call_id(),
            "name": REQUEST_CONFIRMATION_FUNCTION_CALL_NAME,
            "args": {
                "original_function_call": copy.deepcopy(dict(original_function_call)),
                "tool_confirmation": tool_confirmation.model_dump(mode="json"),
            },
        }
        long_running_tool_ids.append(request_call["id"])
        parts.append({"function_call": request_call})

    if not parts:
        return None

    return Event(
        invocation_id=context.invocation_id,
        author=context.agent.name,
        branch=context.branch,
        content={"role": "model", "parts": parts},
        long_running_tool_ids=long_running_tool_ids,
    )


async def handle_function_calls_async(
    context: "InvocationContext",
    function_call_event: Event,
    tools_dict: dict[str, "BaseTool"],
    before_tool_callbacks: Optional[list[BeforeToolCallback]] = None,
    after_tool_callbacks: Optional[list[AfterToolCallback]] = None,
) -> Optional[Event]:
    """Execute the function calls of an event.

    Returns:
        A single event with every response, or None if no call produced a response.
    """
    return await handle_function_call_list(
        context,
        function_call_event.get_function_calls(),
        tools_dict,
        before_tool_callbacks,
        after_tool_callbacks,
    )


async def handle_function_call_list(
    context: "InvocationContext",
    function_calls: list[FunctionCall],
    tools_dict: dict[str, "BaseTool"],
    before_tool_callbacks: Optional[list[BeforeToolCallback]] = None,
    after_tool_callbacks: Optional[list[AfterToolCallback]] = None,
    tool_confirmation_dict: Optional[dict[str, ToolConfirmation]] = None,
) -> Optional[Event]:
    """Execute function calls concurrently and merge their responses into one event.

    Args:
        context: The current invocation.
        function_calls: Calls to execute.
        tools_dict: Available tools, by name.
        before_tool_callbacks: The agent's before tool callbacks.
        after_tool_callbacks: The agent's after tool callbacks.
        tool_confirmation_dict: Resolved confirmations, by function call id.

    Returns:
        The merged response event, or None if no call produced a response.
    """
    tool_confirmation_dict = tool_confirmation_dict or {}
    results = await asyncio.gather(
        *(
            _execute_single_function_call(
                context,
                function_call,
                tools_dict,
                before_tool_callbacks or [],
                after_tool_callbacks or [],
                tool_confirmation_dict.get(function_call.get("id", "")),
            )
            for function_call in function_calls
        )
    )

    function_response_events = [event for event in results if event is not None]
    if not function_response_events:
        return None
    if len(function_response_events) == 1:
        return function_response_events[0]
    return merge_parallel_function_response_events(function_response_events)


async def _execute_single_function_call(
    context: "InvocationContext",
    function_call: FunctionCall,
    tools_dict: dict[str, "BaseTool"],
    before_tool_callbacks: list[BeforeToolCallback],
    after_tool_callbacks: list[AfterToolCallback],
    tool_confirmation: Optional[ToolConfirmation],
) -> Optional[Event]:
    tool_name = function_call.get("name", "")
    function_args = dict(function_call.get("args") or {})
    tool = tools_dict.get(tool_name)

    if tool is None:
        logger.warning("tool_name=<%s> | function is not found in the tools_dict", tool_name)
        return _build_response_event(
            context,
            function_call.get("id"),
            tool_name,
            {"error": f"Function {tool_name} is not found in the tools_dict."},
            EventActions(),
        )

    tool_context = ToolContext(
        context,
        function_call_id=function_call.get("id"),
        tool_confirmation=tool_confirmation,
    )

    function_response = await context.plugin_manager.run_before_tool_callback(
        tool=tool, tool_args=function_args, tool_context=tool_context
    )
    if function_response is None:
        for callback in before_tool_callbacks:
            function_response = await _maybe_await(callback(tool=tool, args=function_args, tool_context=tool_context))
            if function_response is not None:
                break

    function_response_error: Optional[str] = None
    if function_response is None:
        try:
            function_response = await tool.run_async(args=function_args, tool_context=tool_context)
        except Exception as e:
            logger.debug("tool_name=<%s>, error=<%s> | tool call failed", tool_name, e)
            function_response = await context.plugin_manager.run_on_tool_error_callback(
                tool=tool, tool_args=function_args, tool_context=tool_context, error=e
            )
            if function_response is None:
                function_response_error = str(e)

    altered_response = await context.plugin_manager.run_after_tool_callback(
        tool=tool, tool_args=function_args, tool_context=tool_context, result=function_response
    )
    if altered_response is None:
        for callback in after_tool_callbacks:
            altered_response = await _maybe_await(
                callback(tool=tool, args=function_args, tool_context=tool_context, tool_response=function_response)
            )
            if altered_response is not None:
                break
    if altered_response is not None:
        function_response = altered_response
        function_response_error = None

    if tool.is_long_running and function_response is None and function_response_error is None:
        return None

    if function_response_error is not None:
        function_response = {"error": function_response_error}
    elif not isinstance(function_response, dict):
        function_response = {"result": function_response}

    return _build_response_event(context, function_call.get("id"), tool.name, function_response, tool_context.actions)


def _build_response_event(
    context: "InvocationContext",
    function_call_id: Optional[str],
    tool_name: str,
    function_response: dict[str, Any],
    actions: EventActions,
) -> Event:
    part: Part = {"function_response": {"name": tool_name, "response": function_response}}
    if function_call_id:
        part["function_response"]["id"] = function_call_id

    return Event(
        invocation_id=context.invocation_id,
        author=context.agent.name,
        branch=context.branch,
        content={"role": "user", "parts": [part]},
        actions=actions,
    )


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def merge_parallel_function_response_events(function_response_events: list[Event]) -> Event:
    """Merge the responses of concurrently executed calls into one event."""
    base_event = function_response_events[0]
    parts: list[Part] = []
    for event in function_response_events:
        if event.content:
            parts.extend(event.content.get("parts", []))

    return Event(
        invocation_id=base_event.invocation_id,
        author=base_event.author,
        branch=base_event.branch,
        content={"role": "user", "parts": parts},
        actions=merge_event_actions(event.actions for event in function_response_events),
        timestamp=base_event.timestamp,
    )


def find_matching_function_call(events: list[Event]) -> Optional[Event]:
    """Find the event holding the function call answered by the last event.

    Returns:
        The event with the matching function call, or None if the last event holds no function response or no
        call matches.
    """
    if not events:
        return None

    function_responses = events[-1].get_function_responses()
    if not function_responses:
        return None

    function_call_id = function_responses[0].get("id")
    for event in reversed(events[:-1]):
        if any(call.get("id") == function_call_id for call in event.get_function_calls()):
            return event
    return None
