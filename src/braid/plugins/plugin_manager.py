"""Ordered dispatch of plugin callbacks.

The PluginManager holds the plugins registered with a Runner and invokes them, in registration order, at each
lifecycle point of an invocation:

1. Plugins are called one at a time in the order they were registered
2. The first plugin that returns a value other than `None` stops the chain and its value is returned
3. An error raised by a plugin stops the chain and is re-raised as a `PluginCallbackException`

`after_run_callback` is a notification and is delivered to every plugin.
"""

import inspect
import logging
from typing import TYPE_CHECKING, Any, Optional

from ..types.content import Content
from ..types.exceptions import PluginCallbackException
from .base_plugin import BasePlugin

if TYPE_CHECKING:
    from ..agents.base_agent import BaseAgent
    from ..agents.callback_context import CallbackContext
    from ..agents.invocation_context import InvocationContext
    from ..events.event import Event
    from ..models.llm_request import LlmRequest
    from ..models.llm_response import LlmResponse
    from ..tools.base_tool import BaseTool
    from ..tools.tool_context import ToolContext

logger = logging.getLogger(__name__)


class PluginManager:
    """Registry and dispatcher for plugins.

    Example:
        ```python
        manager = PluginManager(plugins=[LoggingPlugin()])
        manager.register_plugin(SecurityPlugin())

        response = await manager.run_before_model_callback(callback_context=context, llm_request=request)
        ```
    """

    def __init__(self, plugins: Optional[list[BasePlugin]] = None) -> None:
        """Initialize the manager.

        Args:
            plugins: Plugins to register, in order.
        """
        self._plugins: dict[str, BasePlugin] = {}
        for plugin in plugins or []:
            self.register_plugin(plugin)

    @property
    def plugins(self) -> list[BasePlugin]:
        """Registered plugins, in registration order."""
        return list(self._plugins.values())

    def register_plugin(self, plugin: BasePlugin) -> None:
        """Register a plugin.

        Args:
            plugin: The plugin to register.

        Raises:
            ValueError: If the plugin, or another plugin with the same name, is already registered.
        """
        if any(registered is plugin for registered in self._plugins.values()):
            raise ValueError(f"plugin_name=<{plugin.name}> | plugin instance already registered")
        if plugin.name in self._plugins:
            raise ValueError(f"plugin_name=<{plugin.name}> | plugin already registered")

        self._plugins[plugin.name] = plugin
        logger.debug("plugin_name=<%s> | plugin registered", plugin.name)

    def get_plugin(self, plugin_name: str) -> Optional[BasePlugin]:
        """Return the plugin registered under a name, if any."""
        return self._plugins.get(plugin_name)

    async def run_on_user_message_callback(
        self, *, invocation_context: "InvocationContext", user_message: Content
    ) -> Optional[Content]:
        """Run `on_user_message_callback` for all plugins."""
        return await self._run_callbacks(
            "on_user_message_callback", invocation_context=invocation_context, user_message=user_message
        )

    async def run_before_run_callback(self, *, invocation_context: "InvocationContext") -> Optional[Content]:
        """Run `before_run_callback` for all plugins."""
        return await self._run_callbacks("before_run_callback", invocation_context=invocation_context)

    async def run_after_run_callback(self, *, invocation_context: "InvocationContext") -> None:
        """Run `after_run_callback` for every plugin, regardless of what each returns."""
        await self._run_callbacks("after_run_callback", early_exit=False, invocation_context=invocation_context)

    async def run_on_event_callback(
        self, *, invocation_context: "InvocationContext", event: "Event"
    ) -> Optional["Event"]:
        """Run `on_event_callback` for all plugins."""
        return await self._run_callbacks("on_event_callback", invocation_context=invocation_context, event=event)

    async def run_before_agent_callback(
        self, *, agent: "BaseAgent", callback_context: "CallbackContext"
    ) -> Optional[Content]:
        """Run `before_agent_callback` for all plugins."""
        return await self._run_callbacks("before_agent_callback", agent=agent, callback_context=callback_context)

    async def run_after_agent_callback(
        self, *, agent: "BaseAgent", callback_context: "CallbackContext"
    ) -> Optional[Content]:
        """Run `after_agent_callback` for all plugins."""
        return await self._run_callbacks("after_agent_callback", agent=agent, callback_context=callback_context)

    async def run_before_tool_callback(
        self, *, tool: "BaseTool", tool_args: dict[str, Any], tool_context: "ToolContext"
    ) -> Optional[dict[str, Any]]:
        """Run `before_tool_callback` for all plugins."""
        return await self._run_callbacks(
            "before_tool_callback", tool=tool, tool_args=tool_args, tool_context=tool_context
        )

    async def run_after_tool_callback(
        self, *, tool: "BaseTool", tool_args: dict[str, Any], tool_context: "ToolContext", result: Any
    ) -> Optional[dict[str, Any]]:
        """Run `after_tool_callback` for all plugins."""
        return await self._run_callbacks(
            "after_tool_callback", tool=tool, tool_args=tool_args, tool_context=tool_context, result=result
        )

    async def run_on_tool_error_callback(
        self, *, tool: "BaseTool", tool_args: dict[str, Any], tool_context: "ToolContext", error: Exception
    ) -> Optional[dict[str, Any]]:
        """Run `on_tool_error_callback` for all plugins."""
        return await self._run_callbacks(
            "on_tool_error_callback", tool=tool, tool_args=tool_args, tool_context=tool_context, error=error
        )

    async def run_before_model_callback(
        self, *, callback_context: "CallbackContext", llm_request: "LlmRequest"
    ) -> Optional["LlmResponse"]:
        """Run `before_model_callback` for all plugins."""
        return await self._run_callbacks(
            "before_model_callback", callback_context=callback_context, llm_request=llm_request
        )

    async def run_after_model_callback(
        self, *, callback_context: "CallbackContext", llm_response: "LlmResponse"
    ) -> Optional["LlmResponse"]:
        """Run `after_model_callback` for all plugins."""
        return await self._run_callbacks(
            "after_model_callback", callback_context=callback_context, llm_response=llm_response
        )

    async def run_on_model_error_callback(
        self, *, callback_context: "CallbackContext", llm_request: "LlmRequest", error: Exception
    ) -> Optional["LlmResponse"]:
        """Run `on_model_error_callback` for all plugins."""
        return await self._run_callbacks(
            "on_model_error_callback", callback_context=callback_context, llm_request=llm_request, error=error
        )

    async def _run_callbacks(self, callback_name: str, early_exit: bool = True, **kwargs: Any) -> Any:
        """Invoke a callback on each plugin in registration order.

        Both sync and async plugin callbacks are supported.

        Args:
            callback_name: Name of the plugin method to call.
            early_exit: Stop at, and return, the first result that is not None.
            **kwargs: Keyword arguments passed to the callback.

        Returns:
            The first result that is not None, or None.

        Raises:
            PluginCallbackException: If a plugin callback raises.
        """
        for plugin in self.plugins:
            callback = getattr(plugin, callback_name)
            try:
                result = callback(**kwargs)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                logger.error(
                    "plugin_name=<%s>, callback=<%s>, error=<%s> | plugin callback failed",
                    plugin.name,
                    callback_name,
                    e,
                )
                raise PluginCallbackException(plugin.name, callback_name, e) from e

            if early_exit and result is not None:
                logger.debug(
                    "plugin_name=<%s>, callback=<%s> | plugin returned a value, skipping remaining plugins",
                    plugin.name,
                    callback_name,
                )
                return result

        return None
