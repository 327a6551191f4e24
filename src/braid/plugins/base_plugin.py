"""Plugin base class for observing and intercepting an invocation.

A plugin hooks into twelve lifecycle points of an invocation. Every hook is optional: the default implementations
do nothing and return `None`. Returning anything other than `None` from a hook stops the remaining plugins from
running for that hook and replaces the default behavior with the returned value (for example, a cached model
response or a rewritten event).
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Optional

from ..types.content import Content

if TYPE_CHECKING:
    from ..agents.base_agent import BaseAgent
    from ..agents.callback_context import CallbackContext
    from ..agents.invocation_context import InvocationContext
    from ..events.event import Event
    from ..models.llm_request import LlmRequest
    from ..models.llm_response import LlmResponse
    from ..tools.base_tool import BaseTool
    from ..tools.tool_context import ToolContext


class BasePlugin(ABC):
    """Base class for plugins.

    Attributes:
        name: A stable string identifier for the plugin (must be provided by subclass)

    Example:
        ```python
        class CachePlugin(BasePlugin):
            name = "cache"

            async def before_model_callback(self, *, callback_context, llm_request):
                return self._cache.get(llm_request.model)
        ```
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """A stable string identifier for the plugin."""
        ...

    async def on_user_message_callback(
        self, *, invocation_context: "InvocationContext", user_message: Content
    ) -> Optional[Content]:
        """Called with the incoming user message. A returned content replaces it."""
        return None

    async def before_run_callback(self, *, invocation_context: "InvocationContext") -> Optional[Content]:
        """Called before the agent runs. A returned content becomes the only emitted event and the agent is skipped."""
        return None

    async def on_event_callback(self, *, invocation_context: "InvocationContext", event: "Event") -> Optional["Event"]:
        """Called for every event the agent yields. A returned event replaces it."""
        return None

    async def after_run_callback(self, *, invocation_context: "InvocationContext") -> None:
        """Called once the agent's event stream is exhausted."""
        return None

    async def before_agent_callback(
        self, *, agent: "BaseAgent", callback_context: "CallbackContext"
    ) -> Optional[Content]:
        """Called before an agent runs. A returned content skips the agent."""
        return None

    async def after_agent_callback(
        self, *, agent: "BaseAgent", callback_context: "CallbackContext"
    ) -> Optional[Content]:
        """Called after an agent runs. A returned content is emitted as an additional event."""
        return None

    async def before_model_callback(
        self, *, callback_context: "CallbackContext", llm_request: "LlmRequest"
    ) -> Optional["LlmResponse"]:
        """Called before the model is called. A returned response is used instead of calling the model."""
        return None

    async def after_model_callback(
        self, *, callback_context: "CallbackContext", llm_response: "LlmResponse"
    ) -> Optional["LlmResponse"]:
        """Called after the model responds. A returned response replaces the model's."""
        return None

    async def on_model_error_callback(
        self, *, callback_context: "CallbackContext", llm_request: "LlmRequest", error: Exception
    ) -> Optional["LlmResponse"]:
        """Called when the model call fails. A returned response is used instead of the error."""
        return None

    async def before_tool_callback(
        self, *, tool: "BaseTool", tool_args: dict[str, Any], tool_context: "ToolContext"
    ) -> Optional[dict[str, Any]]:
        """Called before a tool runs. A returned dict is used as the tool's result and the tool is skipped."""
        return None

    async def after_tool_callback(
        self, *, tool: "BaseTool", tool_args: dict[str, Any], tool_context: "ToolContext", result: Any
    ) -> Optional[dict[str, Any]]:
        """Called after a tool runs. A returned dict replaces the tool's result."""
        return None

    async def on_tool_error_callback(
        self, *, tool: "BaseTool", tool_args: dict[str, Any], tool_context: "ToolContext", error: Exception
    ) -> Optional[dict[str, Any]]:
        """Called when a tool fails. A returned dict is used as the tool's result instead of the error."""
        return None
