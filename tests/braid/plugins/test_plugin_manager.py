import unittest.mock

import pytest

from braid.plugins.base_plugin import BasePlugin
from braid.plugins.plugin_manager import PluginManager
from braid.types.exceptions import PluginCallbackException


class RecordingPlugin(BasePlugin):
    def __init__(self, name, result=None, error=None, calls=None):
        self._name = name
        self.result = result
        self.error = error
        self.calls = calls if calls is not None else []

    @property
    def name(self):
        return self._name

    async def before_run_callback(self, *, invocation_context):
        self.calls.append((self.name, "before_run_callback"))
        if self.error:
            raise self.error
        return self.result

    async def after_run_callback(self, *, invocation_context):
        self.calls.append((self.name, "after_run_callback"))
        return self.result


class SyncPlugin(BasePlugin):
    name = "sync_plugin"

    def on_user_message_callback(self, *, invocation_context, user_message):
        return {"role": "user", "parts": [{"text": "rewritten"}]}


@pytest.fixture
def invocation_context():
    return unittest.mock.Mock()


def test_register_plugin_duplicate_instance():
    plugin = RecordingPlugin("a")
    manager = PluginManager(plugins=[plugin])

    with pytest.raises(ValueError, match="already registered"):
        manager.register_plugin(plugin)


def test_register_plugin_duplicate_name():
    with pytest.raises(ValueError, match="already registered"):
        PluginManager(plugins=[RecordingPlugin("a"), RecordingPlugin("a")])


def test_get_plugin_and_plugins_order():
    first = RecordingPlugin("first")
    second = RecordingPlugin("second")
    manager = PluginManager(plugins=[first, second])

    assert manager.plugins == [first, second]
    assert manager.get_plugin("second") is second
    assert manager.get_plugin("missing") is None


@pytest.mark.asyncio
async def test_callbacks_run_in_registration_order(invocation_context):
    calls = []
    manager = PluginManager(plugins=[RecordingPlugin(name, calls=calls) for name in ("a", "b", "c")])

    result = await manager.run_before_run_callback(invocation_context=invocation_context)

    assert result is None
    assert calls == [("a", "before_run_callback"), ("b", "before_run_callback"), ("c", "before_run_callback")]


@pytest.mark.asyncio
async def test_first_defined_result_stops_chain(invocation_context):
    calls = []
    content = {"role": "model", "parts": [{"text": "cached"}]}
    manager = PluginManager(
        plugins=[
            RecordingPlugin("a", calls=calls),
            RecordingPlugin("b", result=content, calls=calls),
            RecordingPlugin("c", result={"role": "model", "parts": []}, calls=calls),
        ]
    )

    result = await manager.run_before_run_callback(invocation_context=invocation_context)

    assert result is content
    assert calls == [("a", "before_run_callback"), ("b", "before_run_callback")]


@pytest.mark.asyncio
async def test_falsy_result_stops_chain(invocation_context):
    calls = []
    manager = PluginManager(plugins=[RecordingPlugin("a", result={}, calls=calls), RecordingPlugin("b", calls=calls)])

    result = await manager.run_before_run_callback(invocation_context=invocation_context)

    assert result == {}
    assert calls == [("a", "before_run_callback")]


@pytest.mark.asyncio
async def test_error_is_wrapped_and_aborts_dispatch(invocation_context):
    calls = []
    error = KeyError("boom")
    manager = PluginManager(
        plugins=[
            RecordingPlugin("a", calls=calls),
            RecordingPlugin("b", error=error, calls=calls),
            RecordingPlugin("c", calls=calls),
        ]
    )

    with pytest.raises(PluginCallbackException) as exc_info:
        await manager.run_before_run_callback(invocation_context=invocation_context)

    assert exc_info.value.plugin_name == "b"
    assert exc_info.value.callback_name == "before_run_callback"
    assert exc_info.value.original_exception is error
    assert exc_info.value.__cause__ is error
    assert "Error in plugin 'b' during 'before_run_callback' callback" in str(exc_info.value)
    assert calls == [("a", "before_run_callback"), ("b", "before_run_callback")]


@pytest.mark.asyncio
async def test_after_run_callback_reaches_every_plugin(invocation_context):
    calls = []
    manager = PluginManager(
        plugins=[
            RecordingPlugin("a", result="ignored", calls=calls),
            RecordingPlugin("b", calls=calls),
        ]
    )

    result = await manager.run_after_run_callback(invocation_context=invocation_context)

    assert result is None
    assert calls == [("a", "after_run_callback"), ("b", "after_run_callback")]


@pytest.mark.asyncio
async def test_sync_callbacks_supported(invocation_context):
    manager = PluginManager(plugins=[SyncPlugin()])

    result = await manager.run_on_user_message_callback(
        invocation_context=invocation_context, user_message={"role": "user", "parts": [{"text": "hi"}]}
    )

    assert result == {"role": "user", "parts": [{"text": "rewritten"}]}


@pytest.mark.asyncio
async def test_default_callbacks_return_none(invocation_context):
    manager = PluginManager(plugins=[SyncPlugin()])
    mock = unittest.mock.Mock()

    assert await manager.run_before_agent_callback(agent=mock, callback_context=mock) is None
    assert await manager.run_after_agent_callback(agent=mock, callback_context=mock) is None
    assert await manager.run_before_model_callback(callback_context=mock, llm_request=mock) is None
    assert await manager.run_after_model_callback(callback_context=mock, llm_response=mock) is None
    assert (
        await manager.run_on_model_error_callback(callback_context=mock, llm_request=mock, error=ValueError()) is None
    )
    assert await manager.run_before_tool_callback(tool=mock, tool_args={}, tool_context=mock) is None
    assert await manager.run_after_tool_callback(tool=mock, tool_args={}, tool_context=mock, result={}) is None
    assert (
        await manager.run_on_tool_error_callback(tool=mock, tool_args={}, tool_context=mock, error=ValueError()) is None
    )
    assert await manager.run_on_event_callback(invocation_context=invocation_context, event=mock) is None
