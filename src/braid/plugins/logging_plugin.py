"""Plugin that logs every lifecycle point of an invocation."""

import json
import logging
from typing import TYPE_CHECKING, Any, Optional

from typing_extensions import override

from ..types.content import Content
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


def _format_content(content: Optional[Content], max_length: int = 200) -> str:
    if not content or not content.get("parts"):
        return "None"

    parts = []
    for part in content.get("parts", []):
        if "text" in part:
            text = part["text"].strip()
            if len(text) > max_length:
                text = text[:max_length] + "..."
            parts.append(f"text: '{text}'")
        elif "function_call" in part:
            parts.append(f"function_call: {part['function_call'].get('name')}")
        elif "function_response" in part:
            parts.append(f"function_response: {part['function_response'].get('name')}")
        elif "code_execution_result" in part:
            parts.append("code_execution_result")
        else:
            parts.append("other_part")
    return " | ".join(parts)


def _format_args(args: Any, max_length: int = 300) -> str:
    if args is None:
        return "{}"
    formatted = json.dumps(args, default=str)
    if len(formatted) > max_length:
        formatted = formatted[:max_length] + "...}"
    return formatted


class LoggingPlugin(BasePlugin):
    """Logs every callback at INFO level.

    Never alters the invocation: every callback returns None.
    """

    def __init__(self, name: str = "logging_plugin") -> None:
        """Initialize the plugin.

        Args:
            name: Name of the plugin.
        """
        self._name = name

    @property
    def name(self) -> str:
        """A stable string identifier for the plugin."""
        return self._name

    @override
    async def on_user_message_callback(
        self, *, invocation_context: "InvocationContext", user_message: Content
    ) -> Optional[Content]:
        logger.info(
            "invocation_id=<%s>, session_id=<%s>, user_id=<%s>, app_name=<%s>, agent=<%s>, branch=<%s>, "
            "content=<%s> | user message received",
            invocation_context.invocation_id,
            invocation_context.session.id,
            invocation_context.user_id,
            invocation_context.app_name,
            invocation_context.agent.name,
            invocation_context.branch,
            _format_content(user_message),
        )
        return None

    @override
    async def before_run_callback(self, *, invocation_context: "InvocationContext") -> Optional[Content]:
        logger.info(
            "invocation_id=<%s>, agent=<%s> | invocation starting",
            invocation_context.invocation_id,
            invocation_context.agent.name,
        )
        return None

    @override
    async def on_event_callback(
        self, *, invocation_context: "InvocationContext", event: "Event"
    ) -> Optional["Event"]:
        logger.info(
            "event_id=<%s>, author=<%s>, content=<%s>, final_response=<%s>, function_calls=<%s>, "
            "function_responses=<%s>, long_running_tool_ids=<%s> | event yielded",
            event.id,
            event.author,
            _format_content(event.content),
            event.is_final_response(),
            [call.get("name") for call in event.get_function_calls()],
            [response.get("name") for response in event.get_function_responses()],
            event.long_running_tool_ids,
        )
        return None

    @override
    async def after_run_callback(self, *, invocation_context: "InvocationContext") -> None:
        logger.info(
            "invocation_id=<%s>, agent=<%s> | invocation completed",
            invocation_context.invocation_id,
            invocation_context.agent.name,
        )

    @override
    async def before_agent_callback(
        self, *, agent: "BaseAgent", callback_context: "CallbackContext"
    ) -> Optional[Content]:
        logger.info(
            "agent=<%s>, invocation_id=<%s>, branch=<%s> | agent starting",
            callback_context.agent_name,
            callback_context.invocation_id,
            callback_context.invocation_context.branch,
        )
        return None

    @override
    async def after_agent_callback(
        self, *, agent: "BaseAgent", callback_context: "CallbackContext"
    ) -> Optional[Content]:
        logger.info(
            "agent=<%s>, invocation_id=<%s> | agent completed",
            callback_context.agent_name,
            callback_context.invocation_id,
        )
        return None

    @override
    async def before_model_callback(
        self, *, callback_context: "CallbackContext", llm_request: "LlmRequest"
    ) -> Optional["LlmResponse"]:
        instruction = llm_request.config.get("system_instruction") or ""
        if len(instruction) > 200:
            instruction = instruction[:200] + "..."
        logger.info(
            "model=<%s>, agent=<%s>, system_instruction=<%s>, tools=<%s> | model request",
            llm_request.model or "default",
            callback_context.agent_name,
            instruction,
            list(llm_request.tools_dict),
        )
        return None

    @override
    async def after_model_callback(
        self, *, callback_context: "CallbackContext", llm_response: "LlmResponse"
    ) -> Optional["LlmResponse"]:
        if llm_response.error_code:
            logger.info(
                "agent=<%s>, error_code=<%s>, error_message=<%s> | model response error",
                callback_context.agent_name,
                llm_response.error_code,
                llm_response.error_message,
            )
        else:
            logger.info(
                "agent=<%s>, content=<%s>, partial=<%s>, turn_complete=<%s>, usage=<%s> | model response",
                callback_context.agent_name,
                _format_content(llm_response.content),
                llm_response.partial,
                llm_response.turn_complete,
                llm_response.usage_metadata,
            )
        return None

    @override
    async def on_model_error_callback(
        self, *, callback_context: "CallbackContext", llm_request: "LlmRequest", error: Exception
    ) -> Optional["LlmResponse"]:
        logger.info("agent=<%s>, error=<%s> | model error", callback_context.agent_name, error)
        return None

    @override
    async def before_tool_callback(
        self, *, tool: "BaseTool", tool_args: dict[str, Any], tool_context: "ToolContext"
    ) -> Optional[dict[str, Any]]:
        logger.info(
            "tool_name=<%s>, agent=<%s>, function_call_id=<%s>, args=<%s> | tool starting",
            tool.name,
            tool_context.agent_name,
            tool_context.function_call_id,
            _format_args(tool_args),
        )
        return None

    @override
    async def after_tool_callback(
        self, *, tool: "BaseTool", tool_args: dict[str, Any], tool_context: "ToolContext", result: Any
    ) -> Optional[dict[str, Any]]:
        logger.info(
            "tool_name=<%s>, agent=<%s>, function_call_id=<%s>, result=<%s> | tool completed",
            tool.name,
            tool_context.agent_name,
            tool_context.function_call_id,
            _format_args(result),
        )
        return None

    @override
    async def on_tool_error_callback(
        self, *, tool: "BaseTool", tool_args: dict[str, Any], tool_context: "ToolContext", error: Exception
    ) -> Optional[dict[str, Any]]:
        logger.info(
            "tool_name=<%s>, agent=<%s>, function_call_id=<%s>, args=<%s>, error=<%s> | tool error",
            tool.name,
            tool_context.agent_name,
            tool_context.function_call_id,
            _format_args(tool_args),
            error,
        )
        return None
