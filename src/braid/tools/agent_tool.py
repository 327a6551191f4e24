"""Agent tool that enables calling one agent from another as a tool."""

import logging
from typing import TYPE_CHECKING, Any, Optional

from typing_extensions import override

from ..agents.base_agent import BaseAgent
from ..events.event import Event
from ..runner.runner import Runner
from ..sessions.in_memory_session_service import InMemorySessionService
from ..types.content import Content
from .base_tool import BaseTool
from .forwarding_artifact_service import ForwardingArtifactService

if TYPE_CHECKING:
    from .tool_context import ToolContext

logger = logging.getLogger(__name__)

_TMP_USER_ID = "tmp_user"


class AgentTool(BaseTool):
    """Wrapper that makes an agent usable as a tool.

    The wrapped agent runs in a child session seeded with a copy of the caller's state. State changes made by the
    child are applied to the caller's state, and artifacts are saved to and loaded from the caller's session. The
    text of the child's last event is returned as the tool result.

    Example:
        ```python
        researcher = LlmAgent(name="researcher", description="Looks up facts.", model=model)
        writer = LlmAgent(name="writer", model=model, tools=[AgentTool(researcher)])
        ```
    """

    def __init__(self, agent: BaseAgent, skip_summarization: bool = False) -> None:
        """Initialize the agent tool.

        Args:
            agent: The agent to wrap. Its name and description become the tool's.
            skip_summarization: Whether the calling model should skip summarizing the result.
        """
        super().__init__(name=agent.name, description=agent.description)
        self.agent = agent
        self.skip_summarization = skip_summarization

    @override
    def _get_declaration(self) -> Optional[dict[str, Any]]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": {
                "type": "object",
                "properties": {
                    "request": {"type": "string", "description": "The request or task to send to the agent"},
                },
                "required": ["request"],
            },
        }

    @override
    async def run_async(self, *, args: dict[str, Any], tool_context: "ToolContext") -> Any:
        if self.skip_summarization:
            tool_context.actions.skip_summarization = True

        content: Content = {"role": "user", "parts": [{"text": str(args.get("request", ""))}]}

        runner = Runner(
            app_name=self.agent.name,
            agent=self.agent,
            session_service=InMemorySessionService(),
            artifact_service=ForwardingArtifactService(tool_context),
            memory_service=tool_context.invocation_context.memory_service,
        )
        session = await runner.session_service.create_session(
            app_name=self.agent.name, user_id=_TMP_USER_ID, state=tool_context.state.to_dict()
        )
        logger.debug("agent_name=<%s>, session_id=<%s> | running agent as a tool", self.agent.name, session.id)

        last_event: Optional[Event] = None
        async for event in runner.run_async(user_id=session.user_id, session_id=session.id, new_message=content):
            if event.actions.state_delta:
                tool_context.state.update(event.actions.state_delta)
            last_event = event

        if last_event is None or not last_event.content or not last_event.content.get("parts"):
            return ""

        return "\n".join(part["text"] for part in last_event.content["parts"] if part.get("text"))
