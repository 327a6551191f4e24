"""Context shared by every agent, tool and callback of one invocation."""

import dataclasses
import logging
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from ..plugins.plugin_manager import PluginManager
from ..sessions.session import Session
from ..types.content import Content
from ..types.exceptions import LlmCallsLimitExceededException
from .live_request_queue import LiveRequestQueue
from .run_config import RunConfig

if TYPE_CHECKING:
    from ..artifacts.base_artifact_service import BaseArtifactService
    from ..memory.base_memory_service import BaseMemoryService
    from ..sessions.base_session_service import BaseSessionService
    from .base_agent import BaseAgent

logger = logging.getLogger(__name__)


class InvocationCostManager:
    """Tracks the cost of an invocation against the limits of its run config."""

    def __init__(self) -> None:
        """Initialize the counters."""
        self._number_of_llm_calls = 0

    @property
    def number_of_llm_calls(self) -> int:
        """Model calls made so far."""
        return self._number_of_llm_calls

    def increment_and_enforce_llm_calls_limit(self, run_config: Optional[RunConfig]) -> None:
        """Count a model call and enforce `max_llm_calls`.

        Raises:
            LlmCallsLimitExceededException: If the count exceeds a positive `max_llm_calls`.
        """
        self._number_of_llm_calls += 1

        if run_config and 0 < run_config.max_llm_calls < self._number_of_llm_calls:
            raise LlmCallsLimitExceededException(
                f"Max number of llm calls limit of `{run_config.max_llm_calls}` exceeded"
            )


def new_invocation_context_id() -> str:
    """Generate a new invocation id."""
    return f"e-{uuid.uuid4()}"


@dataclass
class InvocationContext:
    """State of one invocation, threaded through every agent run.

    An invocation starts with a user message and ends with the final response of the agents. Each agent gets a copy
    of the context with `agent` (and, for parallel branches, `branch`) replaced. Copies share the session, the
    services and the cost manager.

    Attributes:
        session: The session the invocation belongs to.
        agent: The agent currently running.
        invocation_id: Id of the invocation.
        session_service: Service that stores the session.
        artifact_service: Service that stores artifacts.
        memory_service: Service that searches long-term memory.
        plugin_manager: Plugins of the runner.
        branch: Dot separated agent ancestry of parallel branches.
        user_content: The user message that started the invocation.
        end_invocation: Set to stop the invocation after the current step.
        run_config: Configuration of the run.
        live_request_queue: Queue of live requests, in live mode.
    """

    session: Session
    agent: "BaseAgent"
    invocation_id: str = field(default_factory=new_invocation_context_id)
    session_service: Optional["BaseSessionService"] = None
    artifact_service: Optional["BaseArtifactService"] = None
    memory_service: Optional["BaseMemoryService"] = None
    plugin_manager: PluginManager = field(default_factory=PluginManager)
    branch: Optional[str] = None
    user_content: Optional[Content] = None
    end_invocation: bool = False
    run_config: RunConfig = field(default_factory=RunConfig)
    live_request_queue: Optional[LiveRequestQueue] = None
    cost_manager: InvocationCostManager = field(default_factory=InvocationCostManager, repr=False)

    @property
    def app_name(self) -> str:
        """Name of the app the session belongs to."""
        return self.session.app_name

    @property
    def user_id(self) -> str:
        """Id of the user the session belongs to."""
        return self.session.user_id

    def copy(self, **changes: Any) -> "InvocationContext":
        """Return a shallow copy with some fields replaced."""
        return dataclasses.replace(self, **changes)

    def increment_llm_call_count(self) -> None:
        """Count a model call against the run's limit.

        Raises:
            LlmCallsLimitExceededException: If the limit is exceeded.
        """
        self.cost_manager.increment_and_enforce_llm_calls_limit(self.run_config)
