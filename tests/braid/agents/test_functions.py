import unittest.mock

import pytest

from braid.agents.functions import (
    CLIENT_FUNCTION_CALL_ID_PREFIX,
    find_matching_function_call,
    generate_auth_event,
    generate_request_confirmation_event,
    get_long_running_function_calls,
    handle_function_call_list,
    handle_function_calls_async,
    merge_parallel_function_response_events,
    populate_client_function_call_id,
    remove_client_function_call_id,
)
from braid.agents.request_confirmation import parse_tool_confirmation
from braid.events.event import Event
from braid.events.event_actions import EventActions
from braid.plugins.base_plugin import BasePlugin
from braid.plugins.plugin_manager import PluginManager
from braid.tools.function_tool import FunctionTool
from braid.types.tools import REQUEST_CONFIRMATION_FUNCTION_CALL_NAME, REQUEST_CREDENTIAL_FUNCTION_CALL_NAME
from tests.fixtures.mock_agents import TextAgent


def multiply(a: int, b: int) -> int:
    return a * b


def fail(reason: str) -> dict:
    raise ValueError(reason)


def greet(name: str) -> str:
    return f"hello {name}"


def call_event(*function_calls):
    return Event(
        author="agent",
        content={"role": "model", "parts": [{"function_call": call} for call in function_calls]},
    )


def response_event(call_id, name="multiply", response=None, author="agent"):
    return Event(
        author=author,
        content={
            "role": "user",
            "parts": [{"function_response": {"id": call_id, "name": name, "response": response or {}}}],
        },
    )


def tools_of(*funcs, **kwargs):
    return {tool.name: tool for tool in (FunctionTool(func, **kwargs) for func in funcs)}


class ShortCircuitPlugin(BasePlugin):
    name = "short_circuit"

    async def before_tool_callback(self, *, tool, tool_args, tool_context):
        return {"from": "plugin"}


class ToolErrorPlugin(BasePlugin):
    name = "tool_error"

    async def on_tool_error_callback(self, *, tool, tool_args, tool_context, error):
        return {"handled": str(error)}


@pytest.fixture
def agent():
    return TextAgent("agent")


@pytest.fixture
def context(agent, invocation_context_factory):
    return invocation_context_factory(agent)


def test_populate_client_function_call_id_only_fills_missing():
    event = call_event({"name": "multiply", "args": {}}, {"id": "model-id", "name": "multiply", "args": {}})

    populate_client_function_call_id(event)

    first, second = event.get_function_calls()
    assert first["id"].startswith(CLIENT_FUNCTION_CALL_ID_PREFIX)
    assert second["id"] == "model-id"


def test_remove_client_function_call_id_keeps_model_ids():
    content = {
        "role": "model",
        "parts": [
            {"function_call": {"id": f"{CLIENT_FUNCTION_CALL_ID_PREFIX}1", "name": "a", "args": {}}},
            {"function_call": {"id": "model-id", "name": "b", "args": {}}},
        ],
    }

    remove_client_function_call_id(content)
    remove_client_function_call_id(None)

    assert content["parts"][0]["function_call"] == {"name": "a", "args": {}}
    assert content["parts"][1]["function_call"]["id"] == "model-id"


def test_get_long_running_function_calls():
    tools = {**tools_of(multiply), **tools_of(greet, is_long_running=True)}
    calls = [
        {"id": "1", "name": "multiply", "args": {}},
        {"id": "2", "name": "greet", "args": {}},
        {"id": "3", "name": "unknown", "args": {}},
    ]

    assert get_long_running_function_calls(calls, tools) == ["2"]


@pytest.mark.asyncio
async def test_handle_function_calls_executes_tool(context):
    event = call_event({"id": "c1", "name": "multiply", "args": {"a": 3, "b": 4}})

    result = await handle_function_calls_async(context, event, tools_of(multiply))

    assert result.author == "agent"
    assert result.invocation_id == "inv-1"
    assert result.get_function_responses() == [{"id": "c1", "name": "multiply", "response": {"result": 12}}]


@pytest.mark.asyncio
async def test_handle_function_calls_merges_concurrent_calls_in_order(context):
    event = call_event(
        {"id": "c1", "name": "multiply", "args": {"a": 1, "b": 2}},
        {"id": "c2", "name": "greet", "args": {"name": "Ada"}},
    )

    result = await handle_function_calls_async(context, event, tools_of(multiply, greet))

    assert [response["id"] for response in result.get_function_responses()] == ["c1", "c2"]
    assert result.get_function_responses()[1]["response"] == {"result": "hello Ada"}


@pytest.mark.asyncio
async def test_handle_function_calls_tool_error_becomes_error_response(context):
    event = call_event({"id": "c1", "name": "fail", "args": {"reason": "disk full"}})

    result = await handle_function_calls_async(context, event, tools_of(fail))

    assert result.get_function_responses()[0]["response"] == {"error": "disk full"}


@pytest.mark.asyncio
async def test_handle_function_calls_tool_error_handled_by_plugin(agent, invocation_context_factory):
    context = invocation_context_factory(agent, plugin_manager=PluginManager(plugins=[ToolErrorPlugin()]))
    event = call_event({"id": "c1", "name": "fail", "args": {"reason": "disk full"}})

    result = await handle_function_calls_async(context, event, tools_of(fail))

    assert result.get_function_responses()[0]["response"] == {"handled": "disk full"}


@pytest.mark.asyncio
async def test_handle_function_calls_unknown_tool(context):
    event = call_event({"id": "c1", "name": "missing", "args": {}})

    result = await handle_function_calls_async(context, event, {})

    assert result.get_function_responses()[0]["response"] == {
        "error": "Function missing is not found in the tools_dict."
    }


@pytest.mark.asyncio
async def test_handle_function_calls_long_running_without_result(context):
    calls = []

    def pending() -> None:
        calls.append("pending")

    tools = tools_of(pending, is_long_running=True)

    result = await handle_function_calls_async(context, call_event({"id": "c1", "name": "pending", "args": {}}), tools)

    assert result is None
    assert calls == ["pending"]


@pytest.mark.asyncio
async def test_handle_function_calls_before_tool_callback_skips_tool(context):
    tool_func = unittest.mock.Mock(return_value=1)

    def counted() -> int:
        return tool_func()

    tools = tools_of(counted)

    async def before_tool(tool, args, tool_context):
        return {"cached": True}

    result = await handle_function_calls_async(
        context,
        call_event({"id": "c1", "name": "counted", "args": {}}),
        tools,
        before_tool_callbacks=[before_tool],
    )

    assert result.get_function_responses()[0]["response"] == {"cached": True}
    tool_func.assert_not_called()


@pytest.mark.asyncio
async def test_handle_function_calls_plugin_runs_before_agent_callbacks(agent, invocation_context_factory):
    context = invocation_context_factory(agent, plugin_manager=PluginManager(plugins=[ShortCircuitPlugin()]))
    before_tool = unittest.mock.Mock(return_value=None)

    result = await handle_function_calls_async(
        context,
        call_event({"id": "c1", "name": "multiply", "args": {"a": 1, "b": 1}}),
        tools_of(multiply),
        before_tool_callbacks=[before_tool],
    )

    assert result.get_function_responses()[0]["response"] == {"from": "plugin"}
    before_tool.assert_not_called()


@pytest.mark.asyncio
async def test_handle_function_calls_after_tool_callback_replaces_result(context):
    def after_tool(tool, args, tool_context, tool_response):
        return {"doubled": tool_response * 2}

    result = await handle_function_calls_async(
        context,
        call_event({"id": "c1", "name": "multiply", "args": {"a": 2, "b": 3}}),
        tools_of(multiply),
        after_tool_callbacks=[after_tool],
    )

    assert result.get_function_responses()[0]["response"] == {"doubled": 12}


@pytest.mark.asyncio
async def test_handle_function_calls_records_state_changes(context):
    def remember(value: str, tool_context) -> dict:
        tool_context.state["remembered"] = value
        return {"ok": True}

    result = await handle_function_calls_async(
        context,
        call_event({"id": "c1", "name": "remember", "args": {"value": "blue"}}),
        tools_of(remember),
    )

    assert result.actions.state_delta == {"remembered": "blue"}


@pytest.mark.asyncio
async def test_handle_function_call_list_passes_tool_confirmation(context):
    from braid.types.tools import ToolConfirmation

    seen = []

    def guarded(tool_context) -> dict:
        seen.append(tool_context.tool_confirmation)
        return {"ok": True}

    confirmation = ToolConfirmation(confirmed=True)
    await handle_function_call_list(
        context,
        [{"id": "c1", "name": "guarded", "args": {}}],
        tools_of(guarded),
        tool_confirmation_dict={"c1": confirmation},
    )

    assert seen == [confirmation]


@pytest.mark.asyncio
async def test_generate_request_confirmation_event(context):
    def delete_file(path: str, tool_context) -> dict:
        tool_context.request_confirmation(hint="Really delete?")
        return {"status": "pending"}

    function_call_event = call_event({"id": "c1", "name": "delete_file", "args": {"path": "/tmp/x"}})
    function_response_event = await handle_function_calls_async(context, function_call_event, tools_of(delete_file))

    confirmation_event = generate_request_confirmation_event(context, function_call_event, function_response_event)

    request_call = confirmation_event.get_function_calls()[0]
    assert request_call["name"] == REQUEST_CONFIRMATION_FUNCTION_CALL_NAME
    assert request_call["args"]["original_function_call"] == {
        "id": "c1",
        "name": "delete_file",
        "args": {"path": "/tmp/x"},
    }
    assert request_call["args"]["tool_confirmation"] == {"hint": "Really delete?", "confirmed": False, "payload": None}
    assert confirmation_event.long_running_tool_ids == [request_call["id"]]
    assert confirmation_event.is_final_response()


def test_generate_request_confirmation_event_without_requests(context):
    assert generate_request_confirmation_event(context, call_event(), response_event("c1")) is None


def test_generate_auth_event(context):
    function_response_event = response_event("c1")
    function_response_event.actions.requested_auth_configs["c1"] = {"scheme": "oauth2"}

    auth_event = generate_auth_event(context, function_response_event)

    request_call = auth_event.get_function_calls()[0]
    assert request_call["name"] == REQUEST_CREDENTIAL_FUNCTION_CALL_NAME
    assert request_call["args"] == {"function_call_id": "c1", "auth_config": {"scheme": "oauth2"}}
    assert auth_event.long_running_tool_ids == [request_call["id"]]
    assert generate_auth_event(context, response_event("c2")) is None


def test_merge_parallel_function_response_events():
    first = response_event("c1", response={"result": 1})
    first.actions = EventActions(state_delta={"a": 1})
    second = response_event("c2", response={"result": 2})
    second.actions = EventActions(state_delta={"b": 2}, transfer_to_agent="helper")

    merged = merge_parallel_function_response_events([first, second])

    assert [response["id"] for response in merged.get_function_responses()] == ["c1", "c2"]
    assert merged.actions.state_delta == {"a": 1, "b": 2}
    assert merged.actions.transfer_to_agent == "helper"
    assert merged.timestamp == first.timestamp
    assert merged.id != first.id


def test_find_matching_function_call():
    call = call_event({"id": "c1", "name": "multiply", "args": {}})
    events = [Event(author="user"), call, Event(author="other"), response_event("c1", author="user")]

    assert find_matching_function_call(events) is call


@pytest.mark.parametrize(
    "events",
    [
        [],
        [Event(author="user")],
        [call_event({"id": "c1", "name": "multiply", "args": {}}), response_event("c2", author="user")],
    ],
)
def test_find_matching_function_call_no_match(events):
    assert find_matching_function_call(events) is None


@pytest.mark.parametrize(
    ("response", "expected"),
    [
        ({"confirmed": True}, (True, None)),
        ({"confirmed": False, "payload": {"approved_amount": 10}}, (False, {"approved_amount": 10})),
        ({"response": '{"confirmed": true, "payload": "ok"}'}, (True, "ok")),
        (None, (False, None)),
    ],
)
def test_parse_tool_confirmation(response, expected):
    confirmation = parse_tool_confirmation(response)

    assert (confirmation.confirmed, confirmation.payload) == expected
