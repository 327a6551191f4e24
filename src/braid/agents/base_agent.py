"""Base class for all agents.

Agents form a tree: each agent owns its `sub_agents` and keeps a back-reference to its `parent_agent`, which is only
used for lookups. Running an agent yields a stream of events. The public `run_async` and `run_live` methods wrap the
agent's own implementation with the before and after agent callbacks (plugins first, then the agent's own).
"""

import inspect
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, AsyncGenerator, Awaitable, Callable, Optional, Union

from ..events.event import Event
from ..types.content import Content
from .callback_context import CallbackContext

if TYPE_CHECKING:
    from .invocation_context import InvocationContext

logger = logging.getLogger(__name__)

AgentCallback = Callable[[CallbackContext], Union[Awaitable[Optional[Content]], Optional[Content]]]
"""A before or after agent callback. It is called with a `callback_context` keyword argument."""


def _to_list(callbacks: Union[None, AgentCallback, list[AgentCallback]]) -> list[AgentCallback]:
    if callbacks is None:
        return []
    if isinstance(callbacks, list):
        return callbacks
    return [callbacks]


class BaseAgent(ABC):
    """Base class for agents.

    Attributes:
        name: Name of the agent. Must be a Python identifier, unique among its siblings, and not "user".
        description: One-line description of what the agent does, used when other agents decide to transfer to it.
        parent_agent: The agent this agent is a sub-agent of.
        sub_agents: Agents driven by this agent.
    """

    def __init__(
        self,
        *,
        name: str,
        description: str = "",
        sub_agents: Optional[list["BaseAgent"]] = None,
        before_agent_callback: Union[None, AgentCallback, list[AgentCallback]] = None,
        after_agent_callback: Union[None, AgentCallback, list[AgentCallback]] = None,
    ) -> None:
        """Initialize the agent.

        Args:
            name: Name of the agent.
            description: Description of the agent.
            sub_agents: Agents driven by this agent. Each becomes a child of this agent.
            before_agent_callback: Callback or list of callbacks run before the agent. Returning content skips the
                agent.
            after_agent_callback: Callback or list of callbacks run after the agent. Returning content emits an
                additional event.

        Raises:
            ValueError: If the name is invalid, a sub-agent already has a parent, or sibling names collide.
        """
        if not name.isidentifier():
            raise ValueError(f"agent_name=<{name}> | agent name must be a valid identifier")
        if name == "user":
            raise ValueError("agent_name=<user> | agent name cannot be 'user', it is reserved for end-user input")

        self.name = name
        self.description = description
        self.parent_agent: Optional[BaseAgent] = None
        self.sub_agents: list[BaseAgent] = list(sub_agents or [])
        self.before_agent_callback = before_agent_callback
        self.after_agent_callback = after_agent_callback

        seen: set[str] = set()
        for sub_agent in self.sub_agents:
            if sub_agent.name in seen:
                raise ValueError(f"agent_name=<{sub_agent.name}> | duplicate sub-agent name under <{name}>")
            seen.add(sub_agent.name)

            if sub_agent.parent_agent is not None:
                raise ValueError(
                    f"agent_name=<{sub_agent.name}> | agent already has parent <{sub_agent.parent_agent.name}>, "
                    f"cannot add it to <{name}>"
                )
            sub_agent.parent_agent = self

    @property
    def root_agent(self) -> "BaseAgent":
        """The root of the tree this agent belongs to."""
        agent = self
        while agent.parent_agent is not None:
            agent = agent.parent_agent
        return agent

    @property
    def canonical_before_agent_callbacks(self) -> list[AgentCallback]:
        """Before agent callbacks as a list."""
        return _to_list(self.before_agent_callback)

    @property
    def canonical_after_agent_callbacks(self) -> list[AgentCallback]:
        """After agent callbacks as a list."""
        return _to_list(self.after_agent_callback)

    def find_agent(self, name: str) -> Optional["BaseAgent"]:
        """Find this agent or a descendant by name."""
        if self.name == name:
            return self
        return self.find_sub_agent(name)

    def find_sub_agent(self, name: str) -> Optional["BaseAgent"]:
        """Find a descendant by name."""
        for sub_agent in self.sub_agents:
            result = sub_agent.find_agent(name)
            if result is not None:
                return result
        return None

    async def run_async(self, parent_context: "InvocationContext") -> AsyncGenerator[Event, None]:
        """Run the agent in turn-by-turn mode.

        Args:
            parent_context: Context of the caller.

        Yields:
            Events produced by the agent and its sub-agents.
        """
        context = self._create_invocation_context(parent_context)
        logger.debug("agent_name=<%s>, branch=<%s> | running agent", self.name, context.branch)

        event = await self._handle_before_agent_callback(context)
        if event is not None:
            yield event
        if context.end_invocation:
            return

        async for event in self._run_async_impl(context):
            yield event

        if context.end_invocation:
            return

        event = await self._handle_after_agent_callback(context)
        if event is not None:
            yield event

    async def run_live(self, parent_context: "InvocationContext") -> AsyncGenerator[Event, None]:
        """Run the agent in live (bidirectional streaming) mode.

        Args:
            parent_context: Context of the caller. Its `live_request_queue` carries the user's input.

        Yields:
            Events produced by the agent and its sub-agents.
        """
        context = self._create_invocation_context(parent_context)
        logger.debug("agent_name=<%s> | running agent live", self.name)

        event = await self._handle_before_agent_callback(context)
        if event is not None:
            yield event
        if context.end_invocation:
            return

        async for event in self._run_live_impl(context):
            yield event

        if context.end_invocation:
            return

        event = await self._handle_after_agent_callback(context)
        if event is not None:
            yield event

    @abstractmethod
    def _run_async_impl(self, context: "InvocationContext") -> AsyncGenerator[Event, None]:
        """Agent specific turn-by-turn logic."""

    @abstractmethod
    def _run_live_impl(self, context: "InvocationContext") -> AsyncGenerator[Event, None]:
        """Agent specific live logic."""

    def _create_invocation_context(self, parent_context: "InvocationContext") -> "InvocationContext":
        return parent_context.copy(agent=self)

    async def _handle_before_agent_callback(self, context: "InvocationContext") -> Optional[Event]:
        callback_context = CallbackContext(context)

        content = await context.plugin_manager.run_before_agent_callback(agent=self, callback_context=callback_context)
        if content is None:
            for callback in self.canonical_before_agent_callbacks:
                content = callback(callback_context=callback_context)  # type: ignore[call-arg]
                if inspect.isawaitable(content):
                    content = await content
                if content is not None:
                    break

        if content is not None:
            context.end_invocation = True
            return Event(
                invocation_id=context.invocation_id,
                author=self.name,
                branch=context.branch,
                content=content,
                actions=callback_context.event_actions,
            )

        if callback_context.state.has_delta():
            return Event(
                invocation_id=context.invocation_id,
                author=self.name,
                branch=context.branch,
                actions=callback_context.event_actions,
            )

        return None

    async def _handle_after_agent_callback(self, context: "InvocationContext") -> Optional[Event]:
        callback_context = CallbackContext(context)

        content = await context.plugin_manager.run_after_agent_callback(agent=self, callback_context=callback_context)
        if content is None:
            for callback in self.canonical_after_agent_callbacks:
                content = callback(callback_context=callback_context)  # type: ignore[call-arg]
                if inspect.isawaitable(content):
                    content = await content
                if content is not None:
                    break

        if content is not None or callback_context.state.has_delta():
            return Event(
                invocation_id=context.invocation_id,
                author=self.name,
                branch=context.branch,
                content=content,
                actions=callback_context.event_actions,
            )

        return None
