"""Resumption of tool calls that were paused for confirmation."""

import json
import logging
from typing import TYPE_CHECKING, Any, AsyncGenerator, Optional

from ..events.event import Event
from ..types.content import FunctionCall
from ..types.tools import REQUEST_CONFIRMATION_FUNCTION_CALL_NAME, ToolConfirmation
from .functions import handle_function_call_list

if TYPE_CHECKING:
    from .invocation_context import InvocationContext
    from .llm_agent import LlmAgent

logger = logging.getLogger(__name__)


def parse_tool_confirmation(response: Optional[dict[str, Any]]) -> ToolConfirmation:
    """Parse the client's answer to a confirmation request.

    Clients may send the confirmation fields directly, or JSON encoded under a single `response` key.
    """
    data: Any = response or {}
    if len(data) == 1 and isinstance(data.get("response"), str):
        data = json.loads(data["response"])
    return ToolConfirmation.model_validate(data)


async def resume_confirmed_function_calls(
    context: "InvocationContext", agent: "LlmAgent"
) -> AsyncGenerator[Event, None]:
    """Re-execute the tool calls the user has just answered a confirmation request for.

    The latest user event is inspected for responses to confirmation requests. Each answered request is mapped back
    to the original function call, which is executed again with the resolved `ToolConfirmation` on its tool
    context. Calls that already have a response after the user's answer are skipped.

    Yields:
        The event with the responses of the resumed calls.
    """
    events = context.session.events
    if not events:
        return

    confirmations_by_request_id: dict[str, ToolConfirmation] = {}
    user_event_index = -1
    for index in range(len(events) - 1, -1, -1):
        event = events[index]
        if event.author != "user":
            continue

        for function_response in event.get_function_responses():
            if function_response.get("name") != REQUEST_CONFIRMATION_FUNCTION_CALL_NAME:
                continue
            confirmations_by_request_id[function_response.get("id", "")] = parse_tool_confirmation(
                function_response.get("response")
            )
        user_event_index = index
        break

    if not confirmations_by_request_id:
        return

    for index in range(user_event_index - 1, -1, -1):
        function_calls = events[index].get_function_calls()
        if not function_calls:
            continue

        tool_confirmations: dict[str, ToolConfirmation] = {}
        original_function_calls: dict[str, FunctionCall] = {}
        for function_call in function_calls:
            confirmation = confirmations_by_request_id.get(function_call.get("id", ""))
            if confirmation is None:
                continue
            original_function_call = (function_call.get("args") or {}).get("original_function_call")
            if not original_function_call or not original_function_call.get("id"):
                continue
            tool_confirmations[original_function_call["id"]] = confirmation
            original_function_calls[original_function_call["id"]] = original_function_call

        if not tool_confirmations:
            continue

        for later_event in events[user_event_index + 1 :]:
            for function_response in later_event.get_function_responses():
                resumed_id = function_response.get("id", "")
                tool_confirmations.pop(resumed_id, None)
                original_function_calls.pop(resumed_id, None)

        if not tool_confirmations:
            return

        logger.debug(
            "agent_name=<%s>, function_call_ids=<%s> | resuming confirmed function calls",
            agent.name,
            list(tool_confirmations),
        )
        tools_dict = {tool.name: tool for tool in await agent.canonical_tools(context)}
        function_response_event = await handle_function_call_list(
            context,
            list(original_function_calls.values()),
            tools_dict,
            agent.canonical_before_tool_callbacks,
            agent.canonical_after_tool_callbacks,
            tool_confirmation_dict=tool_confirmations,
        )
        if function_response_event is not None:
            yield function_response_event
        return
