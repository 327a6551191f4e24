"""Top-level invocation loop.

A Runner takes a user message, appends it to the session, picks the agent that should answer it and drives that
agent. Every event the agent yields goes through the plugins' `on_event_callback`, is appended to the session and is
then emitted to the caller.
"""

import logging
from typing import TYPE_CHECKING, Any, AsyncGenerator, Optional

from .._async import run_async
from ..agents.base_agent import BaseAgent
from ..agents.functions import find_matching_function_call
from ..agents.invocation_context import InvocationContext, new_invocation_context_id
from ..agents.live_request_queue import LiveRequestQueue
from ..agents.llm_agent import LlmAgent
from ..agents.run_config import RunConfig
from ..events.event import Event
from ..events.event_actions import EventActions
from ..plugins.base_plugin import BasePlugin
from ..plugins.plugin_manager import PluginManager
from ..sessions.base_session_service import BaseSessionService
from ..sessions.in_memory_session_service import InMemorySessionService
from ..sessions.session import Session
from ..types.content import Content
from ..types.exceptions import SessionNotFoundException

if TYPE_CHECKING:
    from ..artifacts.base_artifact_service import BaseArtifactService
    from ..memory.base_memory_service import BaseMemoryService

logger = logging.getLogger(__name__)


class Runner:
    """Runs an agent tree for the sessions of one app.

    Example:
        ```python
        runner = Runner(app_name="weather", agent=root_agent, session_service=InMemorySessionService())
        async for event in runner.run_async(
            user_id="u1", session_id="s1", new_message={"role": "user", "parts": [{"text": "Hi"}]}
        ):
            print(event.get_text())
        ```
    """

    def __init__(
        self,
        *,
        app_name: str,
        agent: BaseAgent,
        session_service: BaseSessionService,
        artifact_service: Optional["BaseArtifactService"] = None,
        memory_service: Optional["BaseMemoryService"] = None,
        plugins: Optional[list[BasePlugin]] = None,
        auto_create_session: bool = False,
    ) -> None:
        """Initialize the runner.

        Args:
            app_name: Name of the app the sessions belong to.
            agent: Root of the agent tree.
            session_service: Service that stores sessions and events.
            artifact_service: Service that stores artifacts.
            memory_service: Service that searches long-term memory.
            plugins: Plugins to register, in order.
            auto_create_session: Create missing sessions instead of raising.

        Raises:
            ValueError: If two plugins share a name.
        """
        self.app_name = app_name
        self.agent = agent
        self.session_service = session_service
        self.artifact_service = artifact_service
        self.memory_service = memory_service
        self.plugin_manager = PluginManager(plugins=plugins)
        self.auto_create_session = auto_create_session

    def run(
        self,
        *,
        user_id: str,
        session_id: str,
        new_message: Content,
        state_delta: Optional[dict[str, Any]] = None,
        run_config: Optional[RunConfig] = None,
    ) -> list[Event]:
        """Run the agent synchronously and return every emitted event.

        Args:
            user_id: Id of the user.
            session_id: Id of the session.
            new_message: The user message.
            state_delta: State changes carried on the user event.
            run_config: Configuration of the run.

        Returns:
            The emitted events, in order.
        """

        async def collect() -> list[Event]:
            return [
                event
                async for event in self.run_async(
                    user_id=user_id,
                    session_id=session_id,
                    new_message=new_message,
                    state_delta=state_delta,
                    run_config=run_config,
                )
            ]

        return run_async(collect)

    async def run_async(
        self,
        *,
        user_id: str,
        session_id: str,
        new_message: Content,
        state_delta: Optional[dict[str, Any]] = None,
        run_config: Optional[RunConfig] = None,
    ) -> AsyncGenerator[Event, None]:
        """Run the agent for a new user message.

        Args:
            user_id: Id of the user.
            session_id: Id of the session.
            new_message: The user message.
            state_delta: State changes carried on the user event.
            run_config: Configuration of the run.

        Yields:
            The events of the invocation.

        Raises:
            SessionNotFoundException: If the session does not exist and `auto_create_session` is not set.
        """
        session = await self._get_or_create_session(user_id=user_id, session_id=session_id)

        context = InvocationContext(
            session=session,
            agent=self.agent,
            invocation_id=new_invocation_context_id(),
            session_service=self.session_service,
            artifact_service=self.artifact_service,
            memory_service=self.memory_service,
            plugin_manager=self.plugin_manager,
            user_content=new_message,
            run_config=run_config or RunConfig(),
        )

        modified_message = await self.plugin_manager.run_on_user_message_callback(
            invocation_context=context, user_message=new_message
        )
        if modified_message is not None:
            new_message = modified_message
            context.user_content = new_message

        if new_message.get("parts"):
            await self._append_new_message_to_session(session, new_message, context, state_delta)

        context.agent = self._find_agent_to_run(session, self.agent)
        logger.debug(
            "invocation_id=<%s>, agent_name=<%s> | running agent", context.invocation_id, context.agent.name
        )

        async for event in self._exec_with_plugin(context, session, context.agent.run_async(context)):
            yield event

    async def run_live(
        self,
        *,
        user_id: str,
        session_id: str,
        live_request_queue: LiveRequestQueue,
        run_config: Optional[RunConfig] = None,
    ) -> AsyncGenerator[Event, None]:
        """Run the agent in live mode.

        The caller feeds the agent through `live_request_queue` and closes the queue to end the run.

        Args:
            user_id: Id of the user.
            session_id: Id of the session.
            live_request_queue: Queue of live requests for the agent.
            run_config: Configuration of the run.

        Yields:
            The events of the invocation.
        """
        session = await self._get_or_create_session(user_id=user_id, session_id=session_id)

        context = InvocationContext(
            session=session,
            agent=self.agent,
            invocation_id=new_invocation_context_id(),
            session_service=self.session_service,
            artifact_service=self.artifact_service,
            memory_service=self.memory_service,
            plugin_manager=self.plugin_manager,
            run_config=run_config or RunConfig(),
            live_request_queue=live_request_queue,
        )
        context.agent = self._find_agent_to_run(session, self.agent)

        async for event in self._exec_with_plugin(context, session, context.agent.run_live(context)):
            yield event

    async def _get_or_create_session(self, *, user_id: str, session_id: str) -> Session:
        session = await self.session_service.get_session(
            app_name=self.app_name, user_id=user_id, session_id=session_id
        )
        if session is not None:
            return session

        if not self.auto_create_session:
            raise SessionNotFoundException(f"session_id=<{session_id}>, user_id=<{user_id}> | session not found")

        logger.debug("session_id=<%s>, user_id=<%s> | creating session", session_id, user_id)
        return await self.session_service.create_session(
            app_name=self.app_name, user_id=user_id, session_id=session_id
        )

    async def _exec_with_plugin(
        self,
        context: InvocationContext,
        session: Session,
        agent_stream: AsyncGenerator[Event, None],
    ) -> AsyncGenerator[Event, None]:
        """Drive an agent stream through the run-level plugin callbacks.

        A `before_run_callback` that returns content replaces the whole run with a single event. Otherwise every
        event of the stream is offered to `on_event_callback`, appended to the session and emitted.
        """
        early_exit_content = await self.plugin_manager.run_before_run_callback(invocation_context=context)
        if early_exit_content is not None:
            await agent_stream.aclose()
            event = Event(invocation_id=context.invocation_id, author="model", content=early_exit_content)
            await self.session_service.append_event(session, event)
            yield event
        else:
            async for event in agent_stream:
                modified_event = await self.plugin_manager.run_on_event_callback(
                    invocation_context=context, event=event
                )
                if modified_event is not None:
                    event = modified_event

                if not event.partial:
                    await self.session_service.append_event(session, event)
                yield event

        await self.plugin_manager.run_after_run_callback(invocation_context=context)

    async def _append_new_message_to_session(
        self,
        session: Session,
        new_message: Content,
        context: InvocationContext,
        state_delta: Optional[dict[str, Any]] = None,
    ) -> None:
        event = Event(
            invocation_id=context.invocation_id,
            author="user",
            content=new_message,
            actions=EventActions(state_delta=dict(state_delta or {})),
        )
        await self.session_service.append_event(session, event)

    def _find_agent_to_run(self, session: Session, root_agent: BaseAgent) -> BaseAgent:
        """Pick the agent that answers the new user turn.

        1. If the last event answers a function call, the agent that made the call.
        2. Otherwise, the author of the most recent agent event, if it can still be transferred to.
        3. Otherwise, the root agent.
        """
        function_call_event = find_matching_function_call(session.events)
        if function_call_event is not None:
            agent = root_agent.find_agent(function_call_event.author)
            if agent is not None:
                logger.debug("agent_name=<%s> | resuming agent with pending function call", agent.name)
                return agent

        for event in reversed(session.events):
            if event.author == "user":
                continue
            if event.author == root_agent.name:
                return root_agent

            agent = root_agent.find_sub_agent(event.author)
            if agent is None:
                logger.warning(
                    "author=<%s>, event_id=<%s> | event author not found in agent tree", event.author, event.id
                )
                continue
            if self._is_transferable_across_agent_tree(agent):
                logger.debug("agent_name=<%s> | resuming most recent agent", agent.name)
                return agent

        return root_agent

    def _is_transferable_across_agent_tree(self, agent_to_run: BaseAgent) -> bool:
        """Whether control can move back up the tree from `agent_to_run` to the root."""
        agent: Optional[BaseAgent] = agent_to_run
        while agent is not None:
            if not isinstance(agent, LlmAgent):
                return False
            if agent.disallow_transfer_to_parent:
                return False
            agent = agent.parent_agent
        return True


class InMemoryRunner(Runner):
    """A Runner backed by an in-memory session service, for tests and local experiments."""

    def __init__(
        self,
        agent: BaseAgent,
        *,
        app_name: str = "InMemoryRunner",
        plugins: Optional[list[BasePlugin]] = None,
    ) -> None:
        """Initialize the runner.

        Args:
            agent: Root of the agent tree.
            app_name: Name of the app.
            plugins: Plugins to register, in order.
        """
        super().__init__(
            app_name=app_name,
            agent=agent,
            session_service=InMemorySessionService(),
            plugins=plugins,
            auto_create_session=True,
        )
