"""Policy-based gating of tool calls with a human confirmation round trip.

Every tool call is checked once against a policy engine, which answers ALLOW, DENY or CONFIRM. The outcome is
stored in session state under the call's function call id, so it survives across invocations:

- ALLOW: the call proceeds
- DENY: the call is rejected with an error result, now and on any later attempt
- CONFIRM: confirmation is requested from the client and a pending result is returned. When the client answers,
  the call is resumed: a rejection is final, an approval lets the call proceed
"""

import abc
import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional, Union

from typing_extensions import override

from ..types.content import FunctionCall
from ..types.tools import REQUEST_CONFIRMATION_FUNCTION_CALL_NAME
from .base_plugin import BasePlugin

if TYPE_CHECKING:
    from ..events.event import Event
    from ..tools.base_tool import BaseTool
    from ..tools.tool_context import ToolContext

logger = logging.getLogger(__name__)

TOOL_CALL_SECURITY_CHECK_STATES = "braid_tool_call_security_check_states"
INTERMEDIATE_REQUIRE_TOOL_CALL_CONFIRMATION_ERROR = "This tool call needs external confirmation before completion."


class PolicyOutcome(str, enum.Enum):
    """Decision of a policy engine about a tool call."""

    DENY = "DENY"
    CONFIRM = "CONFIRM"
    ALLOW = "ALLOW"


@dataclass
class PolicyCheckResult:
    """Result of a policy check.

    Attributes:
        outcome: The decision.
        reason: Why the decision was made.
    """

    outcome: PolicyOutcome
    reason: Optional[str] = None


@dataclass(frozen=True)
class ToolCallPolicyContext:
    """The tool call a policy engine is asked about."""

    tool: "BaseTool"
    tool_args: dict[str, Any]


class BasePolicyEngine(abc.ABC):
    """Decides whether tool calls are allowed."""

    @abc.abstractmethod
    async def evaluate(self, context: ToolCallPolicyContext) -> PolicyCheckResult:
        """Evaluate a tool call."""


class InMemoryPolicyEngine(BasePolicyEngine):
    """Policy engine that allows every tool call."""

    @override
    async def evaluate(self, context: ToolCallPolicyContext) -> PolicyCheckResult:
        return PolicyCheckResult(
            outcome=PolicyOutcome.ALLOW,
            reason="For prototyping purpose, all tool calls are allowed.",
        )


class SecurityPlugin(BasePlugin):
    """Plugin that checks every tool call against a policy engine."""

    name = "security_plugin"

    def __init__(self, policy_engine: Optional[BasePolicyEngine] = None) -> None:
        """Initialize the plugin.

        Args:
            policy_engine: Engine that decides on tool calls. Defaults to one that allows everything.
        """
        self.policy_engine = policy_engine or InMemoryPolicyEngine()

    @override
    async def before_tool_callback(
        self, *, tool: "BaseTool", tool_args: dict[str, Any], tool_context: "ToolContext"
    ) -> Optional[dict[str, Any]]:
        state = self._get_tool_call_check_state(tool_context)

        if state is None:
            return await self._check_tool_call_policy(tool, tool_args, tool_context)

        if state == PolicyOutcome.DENY.value:
            return {"error": "This tool call is rejected by policy engine."}

        if isinstance(state, dict):
            # A confirmation was already received for this call.
            if not state.get("confirmed"):
                return {"error": "Tool call rejected from confirmation flow."}
            return None

        if state != PolicyOutcome.CONFIRM.value:
            return None

        if tool_context.tool_confirmation is None:
            return {"partial": INTERMEDIATE_REQUIRE_TOOL_CALL_CONFIRMATION_ERROR}

        self._set_tool_call_check_state(tool_context, tool_context.tool_confirmation.model_dump(mode="json"))
        if not tool_context.tool_confirmation.confirmed:
            logger.debug("function_call_id=<%s> | tool call rejected by confirmation", tool_context.function_call_id)
            return {"error": "Tool call rejected from confirmation flow."}

        tool_context.tool_confirmation = None
        return None

    async def _check_tool_call_policy(
        self, tool: "BaseTool", tool_args: dict[str, Any], tool_context: "ToolContext"
    ) -> Optional[dict[str, Any]]:
        result = await self.policy_engine.evaluate(ToolCallPolicyContext(tool=tool, tool_args=tool_args))
        outcome = PolicyOutcome(result.outcome)
        logger.debug(
            "tool_name=<%s>, function_call_id=<%s>, outcome=<%s> | evaluated tool call policy",
            tool.name,
            tool_context.function_call_id,
            outcome.value,
        )

        if outcome == PolicyOutcome.ALLOW:
            return None

        self._set_tool_call_check_state(tool_context, outcome.value)

        if outcome == PolicyOutcome.DENY:
            return {"error": f"This tool call is rejected by policy engine. Reason: {result.reason}"}

        tool_context.request_confirmation(
            hint=f"Policy engine requires confirmation calling tool: {tool.name}. Reason: {result.reason}"
        )
        return {"partial": INTERMEDIATE_REQUIRE_TOOL_CALL_CONFIRMATION_ERROR}

    def _get_tool_call_check_state(self, tool_context: "ToolContext") -> Union[None, str, dict[str, Any]]:
        if not tool_context.function_call_id:
            return None
        states = tool_context.state.get(TOOL_CALL_SECURITY_CHECK_STATES) or {}
        return states.get(tool_context.function_call_id)

    def _set_tool_call_check_state(self, tool_context: "ToolContext", state: Union[str, dict[str, Any]]) -> None:
        if not tool_context.function_call_id:
            return
        states = dict(tool_context.state.get(TOOL_CALL_SECURITY_CHECK_STATES) or {})
        states[tool_context.function_call_id] = state
        tool_context.state.set(TOOL_CALL_SECURITY_CHECK_STATES, states)


def get_ask_user_confirmation_function_calls(event: "Event") -> list[FunctionCall]:
    """Return the confirmation requests carried by an event."""
    return [call for call in event.get_function_calls() if call.get("name") == REQUEST_CONFIRMATION_FUNCTION_CALL_NAME]

