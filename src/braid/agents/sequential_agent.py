"""Agent that runs its sub-agents one after another."""

import logging
from typing import TYPE_CHECKING, AsyncGenerator

from typing_extensions import override

from ..events.event import Event
from ..tools.function_tool import FunctionTool
from .base_agent import BaseAgent
from .llm_agent import LlmAgent

if TYPE_CHECKING:
    from .invocation_context import InvocationContext

logger = logging.getLogger(__name__)

TASK_COMPLETED_INSTRUCTION = (
    "If you finished the user's request according to its description, call the task_completed function to exit "
    "so the next agents can take over. When calling this function, do not generate any text other than the "
    "function call."
)


def task_completed() -> str:
    """Signals that the agent has successfully completed the user's question or task."""
    return "Task completion signaled."


class SequentialAgent(BaseAgent):
    """Runs each sub-agent to completion, in order, forwarding every event unchanged."""

    @override
    async def _run_async_impl(self, context: "InvocationContext") -> AsyncGenerator[Event, None]:
        for sub_agent in self.sub_agents:
            async for event in sub_agent.run_async(context):
                yield event

    @override
    async def _run_live_impl(self, context: "InvocationContext") -> AsyncGenerator[Event, None]:
        """Run sub-agents in live mode, one after another.

        A live model never signals on its own that it is done, so every `LlmAgent` sub-agent is given a
        `task_completed` tool that ends its live session and lets the next sub-agent take over.
        """
        for sub_agent in self.sub_agents:
            if isinstance(sub_agent, LlmAgent):
                tool_names = [getattr(t, "name", getattr(t, "__name__", None)) for t in sub_agent.tools]
                if task_completed.__name__ not in tool_names:
                    sub_agent.tools.append(FunctionTool(task_completed))
                    sub_agent.instruction_suffixes.append(TASK_COMPLETED_INSTRUCTION)

        for sub_agent in self.sub_agents:
            logger.debug("agent_name=<%s>, sub_agent=<%s> | running sub-agent live", self.name, sub_agent.name)
            async for event in sub_agent.run_live(context):
                yield event
