"""Agent that runs its sub-agents in a loop."""

import logging
from typing import TYPE_CHECKING, Any, AsyncGenerator, Optional

from typing_extensions import override

from ..events.event import Event
from .base_agent import BaseAgent

if TYPE_CHECKING:
    from .invocation_context import InvocationContext

logger = logging.getLogger(__name__)


class LoopAgent(BaseAgent):
    """Runs its sub-agents in order, repeatedly.

    The loop stops when `max_iterations` passes have completed, or after any sub-agent yields an event with
    `actions.escalate` set. In the latter case the escalating sub-agent's stream is drained and the remaining
    sub-agents of the pass are skipped.
    """

    def __init__(self, *, max_iterations: Optional[int] = None, **kwargs: Any) -> None:
        """Initialize the agent.

        Args:
            max_iterations: Maximum number of passes. Unbounded when None.
            **kwargs: Arguments passed to `BaseAgent`.
        """
        super().__init__(**kwargs)
        self.max_iterations = max_iterations

    @override
    async def _run_async_impl(self, context: "InvocationContext") -> AsyncGenerator[Event, None]:
        if not self.sub_agents:
            return

        times_looped = 0
        while self.max_iterations is None or times_looped < self.max_iterations:
            logger.debug("agent_name=<%s>, iteration=<%d> | starting loop iteration", self.name, times_looped)

            for sub_agent in self.sub_agents:
                should_exit = False
                async for event in sub_agent.run_async(context):
                    yield event
                    if event.actions.escalate:
                        should_exit = True

                if should_exit:
                    logger.debug("agent_name=<%s>, sub_agent=<%s> | loop escalated", self.name, sub_agent.name)
                    return

            times_looped += 1

    @override
    async def _run_live_impl(self, context: "InvocationContext") -> AsyncGenerator[Event, None]:
        raise NotImplementedError("This is not supported yet for LoopAgent.")
        # Make this a generator (unreachable code, but satisfies type hint)
        yield  # pragma: no cover
